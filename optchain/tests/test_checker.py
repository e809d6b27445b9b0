from __future__ import annotations

import pytest

from optchain import ast
from optchain.checker import Checker, check_source
from optchain.diagnostics import DiagnosticKind
from optchain.lvalue import ResolvedExpr
from optchain.options import CheckOptions
from optchain.parser import parse_program
from optchain.types import ERROR, INT, Type, wrap

PRELUDE = """
struct S {
  var x: Int = 0
  let y: Int = 0
  mutating func mutateS() {}
  init() {}
}
struct T {
  var mutS: S? = nil
  let immS: S? = nil
  mutating func mutateT() {}
  init() {}
}
var mutT: T?
let immT: T? = nil
"""


def diag_kinds(source: str, options: CheckOptions | None = None) -> list[DiagnosticKind]:
    return [d.kind for d in check_source(PRELUDE + source, options).diagnostics]


def test_prelude_is_clean():
    checked = check_source(PRELUDE)
    assert checked.ok
    assert set(checked.symbols.aggregates) == {"S", "T"}
    assert checked.globals["mutT"].type == wrap(Type("T"))
    assert checked.globals["mutT"].mutable
    assert not checked.globals["immT"].mutable


def test_statement_records_read_and_assign_targets():
    checked = check_source(PRELUDE + "mutT?.mutS?.x\nmutT?.mutS?.x = 1\n")
    read_stmt, assign_stmt = checked.statements[-2:]
    assert read_stmt.resolved == ResolvedExpr.rvalue(wrap(wrap(INT)))
    assert assign_stmt.resolved == ResolvedExpr.location(INT, True)
    assert not read_stmt.diagnostics and not assign_stmt.diagnostics


def test_fixture_errors_in_order():
    source = "\n".join(
        [
            "immT?.mutateT()",
            "mutT?.immS?.mutateS()",
            "mutT?.mutS?.y++",
            "++mutT?.mutS?.x",
            "_ = mutT?.mutS?.x + 0",
            "mutT?.immS = S()",
        ]
    )
    assert diag_kinds(source) == [
        DiagnosticKind.MUTATING_ON_IMMUTABLE_RECEIVER,
        DiagnosticKind.MUTATING_ON_IMMUTABLE_RECEIVER,
        DiagnosticKind.CANNOT_ASSIGN_IMMUTABLE,
        DiagnosticKind.OPERATOR_NOT_APPLICABLE,
        DiagnosticKind.UNWRAPPED_OPTIONAL_REQUIRED,
        DiagnosticKind.CANNOT_ASSIGN_IMMUTABLE,
    ]


def test_fixture_accepted_lines():
    source = "\n".join(
        [
            "mutT?.mutateT()",
            "mutT?.mutS?.mutateS()",
            "mutT?.mutS?.x++",
            "mutT? = T()",
            "mutT?.mutS = S()",
            "mutT?.mutS? = S()",
            "mutT?.mutS?.x += 0",
        ]
    )
    assert diag_kinds(source) == []


def test_strict_assignment_rejects_injection():
    strict = CheckOptions(optional_injection=False)
    assert diag_kinds("mutT?.mutS = S()", strict) == [DiagnosticKind.TYPE_MISMATCH]
    assert diag_kinds("mutT?.mutS = nil\nmutT?.mutS? = S()", strict) == []


def test_diagnostic_locations_point_at_statement_line():
    checked = check_source(PRELUDE + "mutT?.mutS?.y -= 0\n")
    (diag,) = checked.diagnostics
    assert diag.kind is DiagnosticKind.CANNOT_ASSIGN_IMMUTABLE
    assert diag.line == PRELUDE.count("\n") + 1
    assert "cannot-assign-immutable" in str(diag)


def test_unknown_identifier_does_not_stop_later_statements():
    kinds = diag_kinds("nope?.x = 1\nimmT?.mutateT()")
    assert kinds == [DiagnosticKind.UNKNOWN_IDENTIFIER, DiagnosticKind.MUTATING_ON_IMMUTABLE_RECEIVER]


def test_unknown_member_does_not_cascade():
    assert diag_kinds("mutT?.nothing?.x += 1") == [DiagnosticKind.UNKNOWN_MEMBER]
    assert diag_kinds("mutT.mutS = nil") == [DiagnosticKind.UNWRAPPED_OPTIONAL_REQUIRED]


def test_not_assignable_rvalues():
    assert diag_kinds("1 = 2") == [DiagnosticKind.NOT_ASSIGNABLE]
    assert diag_kinds("S().x = 1") == [DiagnosticKind.NOT_ASSIGNABLE]


def test_optional_chain_on_non_optional():
    assert diag_kinds("var s = S()\ns?.x = 1") == [DiagnosticKind.NOT_OPTIONAL_CHAIN]


def test_declaration_errors():
    assert diag_kinds("let mutT: Int = 0") == [DiagnosticKind.DUPLICATE_DECLARATION]
    assert diag_kinds("let z = nil") == [DiagnosticKind.TYPE_MISMATCH]
    assert diag_kinds("var w: Int = mutT") == [DiagnosticKind.TYPE_MISMATCH]
    assert diag_kinds("var q: Q? = nil") == [DiagnosticKind.UNKNOWN_TYPE]
    assert diag_kinds("var s = S(1)") == [DiagnosticKind.TYPE_MISMATCH]


def test_struct_registration_errors():
    source = """
struct A {
  var a: Int = 0
  var a: Int = 1
  var b: Missing
}
struct A {}
struct Int {}
var v = A()
v.b = 1
"""
    checked = check_source(source)
    assert [d.kind for d in checked.diagnostics] == [
        DiagnosticKind.DUPLICATE_DECLARATION,
        DiagnosticKind.DUPLICATE_DECLARATION,
        DiagnosticKind.DUPLICATE_DECLARATION,
        DiagnosticKind.UNKNOWN_TYPE,
    ]
    info = checked.symbols.lookup_name("A")
    assert info.members["b"].type == ERROR


def test_checking_is_repeatable():
    program = parse_program(PRELUDE + "mutT?.immS?.y -= 0\n++mutT?.mutS?.x\n")
    checker = Checker()
    first = checker.check(program)
    second = checker.check(program)
    assert first.diagnostics == second.diagnostics
    assert [s.resolved for s in first.statements] == [s.resolved for s in second.statements]


def test_parenthesized_chain_is_a_read_value():
    assert diag_kinds("(mutT?.mutS?.x) = 5") == [DiagnosticKind.NOT_ASSIGNABLE]
    assert diag_kinds("(mutT?.mutS?.x) += 1") == [DiagnosticKind.NOT_ASSIGNABLE]
    assert diag_kinds("(mutT?.mutS?.x)++") == [DiagnosticKind.NOT_ASSIGNABLE]
    checked = check_source(PRELUDE + "(mutT?.mutS?.x) = 5\n")
    assert checked.statements[-1].resolved == ResolvedExpr.rvalue(wrap(wrap(INT)))


def test_parenthesized_plain_location_stays_assignable():
    assert diag_kinds("var n: Int = 0\n(n) = 5\n(n) += 1") == []


def test_unsupported_nodes_are_programming_errors():
    loc = ast.Located(1, 1)
    literal = ast.Program(structs=[], statements=[ast.ExprStmt(loc=loc, value=ast.Literal(loc=loc, value="s"))])
    with pytest.raises(TypeError):
        Checker().check(literal)
    with pytest.raises(TypeError):
        Checker().check(ast.Program(structs=[], statements=[ast.Stmt()]))
