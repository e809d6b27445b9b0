from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Container, Dict, List, Optional, Tuple

from . import ast
from .access import argument_matches
from .assign import (
    AssignError,
    AssignOp,
    check_assignment,
    check_binary_operands,
    check_prefix_operator,
    is_assignable_value,
)
from .chain import Call, ChainLink, ChainResult, OptionalUnwrap, Plain, Subscript, evaluate_chain
from .diagnostics import Diagnostic, DiagnosticKind
from .lvalue import ResolvedExpr
from .options import CheckOptions
from .symbols import AggregateInfo, Member, Method, Subscript as SubscriptInfo, SymbolTable, build_aggregate
from .types import (
    ERROR,
    INT,
    NIL,
    Type,
    VOID,
    TypeSystemError,
    base_of,
    is_numeric,
    resolve_type,
)

logger = logging.getLogger(__name__)

BUILTIN_TYPE_NAMES = frozenset({"Int", "Double", "Bool", "String", "Void", "Optional"})

DISCARD = "_"


@dataclass
class VarInfo:
    type: Type
    mutable: bool


@dataclass
class CheckedStmt:
    stmt: ast.Stmt
    # Read value of an expression statement, or the location a statement writes.
    resolved: Optional[ResolvedExpr]
    diagnostics: List[Diagnostic] = field(default_factory=list)


@dataclass
class CheckedProgram:
    program: ast.Program
    symbols: SymbolTable
    globals: Dict[str, VarInfo]
    statements: List[CheckedStmt]
    diagnostics: List[Diagnostic]

    @property
    def ok(self) -> bool:
        return not self.diagnostics


class CheckError(Exception):
    """Aborts the current statement; the checker records it and moves on."""

    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(str(diagnostic))
        self.diagnostic = diagnostic


def _error(kind: DiagnosticKind, loc: ast.Located, message: str, ty: Optional[Type] = None) -> Diagnostic:
    return Diagnostic(kind=kind, loc=loc, message=message, type=ty)


class Scope:
    def __init__(self, parent: Optional[Scope] = None) -> None:
        self.parent = parent
        self.vars: Dict[str, VarInfo] = {}

    def define(self, name: str, info: VarInfo, loc: ast.Located) -> None:
        if name in self.vars:
            raise CheckError(
                _error(DiagnosticKind.DUPLICATE_DECLARATION, loc, f"'{name}' already defined in this scope")
            )
        self.vars[name] = info

    def lookup(self, name: str, loc: ast.Located) -> VarInfo:
        if name in self.vars:
            return self.vars[name]
        if self.parent:
            return self.parent.lookup(name, loc)
        raise CheckError(_error(DiagnosticKind.UNKNOWN_IDENTIFIER, loc, f"Unknown identifier '{name}'"))


class Checker:
    def __init__(self, options: Optional[CheckOptions] = None) -> None:
        self.options = options or CheckOptions()
        self.symbols = SymbolTable()
        self.diagnostics: List[Diagnostic] = []

    def check(self, program: ast.Program) -> CheckedProgram:
        self.diagnostics = []
        self.symbols = self._register_structs(program.structs)
        self._check_field_defaults(program.structs)
        global_scope = Scope()
        statements = [self._check_top_level(stmt, global_scope) for stmt in program.statements]
        logger.debug(
            "checked %d statement(s) over %d struct(s): %d diagnostic(s)",
            len(statements),
            len(self.symbols.aggregates),
            len(self.diagnostics),
        )
        return CheckedProgram(
            program=program,
            symbols=self.symbols,
            globals=global_scope.vars.copy(),
            statements=statements,
            diagnostics=list(self.diagnostics),
        )

    # ---- declarations ----

    def _register_structs(self, structs: List[ast.StructDef]) -> SymbolTable:
        names: Dict[str, ast.StructDef] = {}
        for struct in structs:
            if struct.name in BUILTIN_TYPE_NAMES or struct.name in names:
                self.diagnostics.append(
                    _error(DiagnosticKind.DUPLICATE_DECLARATION, struct.loc, f"Struct '{struct.name}' already defined")
                )
                continue
            names[struct.name] = struct
        aggregates: Dict[str, AggregateInfo] = {}
        for struct in names.values():
            aggregates[struct.name] = self._define_struct(struct, names)
        return SymbolTable(aggregates)

    def _define_struct(self, struct: ast.StructDef, known: Container[str]) -> AggregateInfo:
        members: Dict[str, Member] = {}
        methods: Dict[str, Method] = {}
        for decl in struct.fields:
            ty = self._resolve_type(decl.type_expr, decl.loc, known, self.diagnostics)
            if not self._claim_name(struct, decl.name, decl.loc, members, methods):
                continue
            members[decl.name] = Member(name=decl.name, type=ty, mutable=decl.mutable)
        for method in struct.methods:
            params = self._resolve_params(method.params, method.loc, known)
            return_type = VOID
            if method.return_type is not None:
                return_type = self._resolve_type(method.return_type, method.loc, known, self.diagnostics)
            if not self._claim_name(struct, method.name, method.loc, members, methods):
                continue
            methods[method.name] = Method(
                name=method.name,
                params=params,
                return_type=return_type,
                requires_mutable_receiver=method.mutating,
            )
        subscript: Optional[SubscriptInfo] = None
        for decl in struct.subscripts:
            if subscript is not None:
                self.diagnostics.append(
                    _error(
                        DiagnosticKind.DUPLICATE_DECLARATION,
                        decl.loc,
                        f"Struct '{struct.name}' already declares a subscript",
                    )
                )
                continue
            subscript = SubscriptInfo(
                params=self._resolve_params(decl.params, decl.loc, known),
                element_type=self._resolve_type(decl.element_type, decl.loc, known, self.diagnostics),
                settable=decl.settable,
            )
        initializers = tuple(self._resolve_params(init.params, init.loc, known) for init in struct.inits)
        logger.debug(
            "registered struct %s: %d member(s), %d method(s), subscript=%s",
            struct.name,
            len(members),
            len(methods),
            subscript is not None,
        )
        return build_aggregate(struct.name, members, methods, subscript, initializers)

    def _claim_name(
        self,
        struct: ast.StructDef,
        name: str,
        loc: ast.Located,
        members: Dict[str, Member],
        methods: Dict[str, Method],
    ) -> bool:
        if name in members or name in methods:
            self.diagnostics.append(
                _error(
                    DiagnosticKind.DUPLICATE_DECLARATION,
                    loc,
                    f"Struct '{struct.name}' already has a member named '{name}'",
                )
            )
            return False
        return True

    def _resolve_params(self, params: List[ast.Param], loc: ast.Located, known: Container[str]) -> Tuple[Type, ...]:
        return tuple(self._resolve_type(param.type_expr, loc, known, self.diagnostics) for param in params)

    def _resolve_type(
        self,
        type_expr: ast.TypeExpr,
        loc: ast.Located,
        known: Container[str],
        diagnostics: List[Diagnostic],
    ) -> Type:
        try:
            return resolve_type(type_expr, known)
        except TypeSystemError as exc:
            diagnostics.append(_error(DiagnosticKind.UNKNOWN_TYPE, loc, str(exc)))
            return ERROR

    def _check_field_defaults(self, structs: List[ast.StructDef]) -> None:
        for struct in structs:
            info = self.symbols.lookup_name(struct.name)
            if info is None:
                continue
            for decl in struct.fields:
                member = info.members.get(decl.name)
                if decl.default is None or member is None:
                    continue
                try:
                    value = self._check_expr(decl.default, Scope(), self.diagnostics)
                except CheckError as exc:
                    self.diagnostics.append(exc.diagnostic)
                    continue
                self._expect_value(value.type, member.type, decl.default.loc, self.diagnostics)

    # ---- statements ----

    def _check_top_level(self, stmt: ast.Stmt, scope: Scope) -> CheckedStmt:
        diagnostics: List[Diagnostic] = []
        resolved: Optional[ResolvedExpr] = None
        try:
            resolved = self._check_stmt(stmt, scope, diagnostics)
        except CheckError as exc:
            logger.debug("statement at line %s abandoned: %s", exc.diagnostic.line, exc.diagnostic.kind.value)
            diagnostics.append(exc.diagnostic)
        self.diagnostics.extend(diagnostics)
        return CheckedStmt(stmt=stmt, resolved=resolved, diagnostics=diagnostics)

    def _check_stmt(self, stmt: ast.Stmt, scope: Scope, diagnostics: List[Diagnostic]) -> Optional[ResolvedExpr]:
        if isinstance(stmt, ast.VarDecl):
            return self._check_var_decl(stmt, scope, diagnostics)
        if isinstance(stmt, ast.AssignStmt):
            op = AssignOp(stmt.op)
            if op is AssignOp.ASSIGN and isinstance(stmt.target, ast.Name) and stmt.target.ident == DISCARD:
                return self._check_expr(stmt.value, scope, diagnostics)
            target = self._check_chain(stmt.target, scope, diagnostics).target
            value = self._check_expr(stmt.value, scope, diagnostics)
            self._assign(target, value.type, op, stmt.loc, diagnostics)
            return target
        if isinstance(stmt, ast.ExprStmt):
            return self._check_expr(stmt.value, scope, diagnostics)
        raise TypeError(f"unsupported statement {type(stmt).__name__}")

    def _check_var_decl(self, stmt: ast.VarDecl, scope: Scope, diagnostics: List[Diagnostic]) -> ResolvedExpr:
        decl_type: Optional[Type] = None
        if stmt.type_expr is not None:
            decl_type = self._resolve_type(stmt.type_expr, stmt.loc, self.symbols, diagnostics)
        if stmt.value is not None:
            value = self._check_expr(stmt.value, scope, diagnostics)
            if decl_type is None:
                if value.type == NIL:
                    raise CheckError(
                        _error(DiagnosticKind.TYPE_MISMATCH, stmt.loc, "'nil' requires a contextual type")
                    )
                decl_type = value.type
            else:
                self._expect_value(value.type, decl_type, stmt.value.loc, diagnostics)
        elif decl_type is None:
            raise CheckError(_error(DiagnosticKind.TYPE_MISMATCH, stmt.loc, "Type annotation required"))
        scope.define(stmt.name, VarInfo(type=decl_type, mutable=stmt.mutable), stmt.loc)
        return ResolvedExpr.location(decl_type, stmt.mutable)

    def _assign(
        self,
        target: ResolvedExpr,
        rhs_type: Type,
        op: AssignOp,
        loc: ast.Located,
        diagnostics: List[Diagnostic],
    ) -> None:
        if target.type == ERROR:
            return
        try:
            check_assignment(target, rhs_type, op, optional_injection=self.options.optional_injection)
        except AssignError as exc:
            diagnostics.append(exc.at(loc))

    def _expect_value(self, actual: Type, expected: Type, loc: ast.Located, diagnostics: List[Diagnostic]) -> None:
        if not is_assignable_value(actual, expected, optional_injection=self.options.optional_injection):
            diagnostics.append(
                _error(
                    DiagnosticKind.TYPE_MISMATCH,
                    loc,
                    f"Expected type {expected}, got {actual}",
                    actual,
                )
            )

    # ---- expressions ----

    def _check_expr(self, expr: ast.Expr, scope: Scope, diagnostics: List[Diagnostic]) -> ResolvedExpr:
        if isinstance(expr, ast.Literal):
            if isinstance(expr.value, int):
                return ResolvedExpr.rvalue(INT)
            raise TypeError(f"unsupported literal {expr.value!r}")
        if isinstance(expr, ast.NilLiteral):
            return ResolvedExpr.rvalue(NIL)
        if isinstance(expr, ast.Group):
            return self._check_expr(expr.value, scope, diagnostics)
        if isinstance(expr, (ast.Name, ast.Attr, ast.OptionalUnwrap, ast.Index, ast.Call)):
            chain = self._check_chain(expr, scope, diagnostics)
            # The wrapped read of an unwrapping chain is a value, never a location.
            if chain.unwrap_count:
                return ResolvedExpr.rvalue(chain.read.type)
            return chain.read
        if isinstance(expr, ast.Binary):
            return self._check_binary(expr, scope, diagnostics)
        if isinstance(expr, ast.Prefix):
            chain = self._check_chain(expr.operand, scope, diagnostics)
            try:
                check_prefix_operator(chain.read, AssignOp(expr.op))
            except AssignError as exc:
                diagnostics.append(exc.at(expr.loc))
            return ResolvedExpr.rvalue(chain.read.type)
        if isinstance(expr, ast.Postfix):
            chain = self._check_chain(expr.operand, scope, diagnostics)
            self._assign(chain.target, INT, AssignOp(expr.op), expr.loc, diagnostics)
            return ResolvedExpr.rvalue(chain.read.type)
        raise TypeError(f"unsupported expression {type(expr).__name__}")

    def _check_binary(self, expr: ast.Binary, scope: Scope, diagnostics: List[Diagnostic]) -> ResolvedExpr:
        left = self._check_expr(expr.left, scope, diagnostics)
        right = self._check_expr(expr.right, scope, diagnostics)
        try:
            return ResolvedExpr.rvalue(check_binary_operands(expr.op, left.type, right.type))
        except AssignError as exc:
            diagnostics.append(exc.at(expr.loc))
        recovered = base_of(left.type)
        return ResolvedExpr.rvalue(recovered if is_numeric(recovered) else ERROR)

    def _check_chain(self, expr: ast.Expr, scope: Scope, diagnostics: List[Diagnostic]) -> ChainResult:
        root_expr, nodes = _split_chain(expr)
        root = self._check_root(root_expr, scope, diagnostics)
        links = self._lower_links(nodes, scope, diagnostics)
        result = evaluate_chain(self.symbols, root, links)
        diagnostics.extend(result.diagnostics)
        return result

    def _check_root(self, expr: ast.Expr, scope: Scope, diagnostics: List[Diagnostic]) -> ResolvedExpr:
        if isinstance(expr, ast.Name):
            info = scope.lookup(expr.ident, expr.loc)
            return ResolvedExpr.location(info.type, info.mutable)
        if isinstance(expr, ast.Call):
            return self._check_constructor(expr, scope, diagnostics)
        return self._check_expr(expr, scope, diagnostics)

    def _check_constructor(self, expr: ast.Call, scope: Scope, diagnostics: List[Diagnostic]) -> ResolvedExpr:
        if not isinstance(expr.func, ast.Name):
            raise CheckError(_error(DiagnosticKind.UNKNOWN_IDENTIFIER, expr.loc, "Unsupported callee expression"))
        info = self.symbols.lookup_name(expr.func.ident)
        if info is None:
            raise CheckError(
                _error(DiagnosticKind.UNKNOWN_IDENTIFIER, expr.func.loc, f"Unknown type '{expr.func.ident}'")
            )
        arg_types = [self._check_expr(arg, scope, diagnostics).type for arg in expr.args]
        if not any(_params_accept(params, arg_types) for params in info.initializers):
            rendered = ", ".join(str(ty) for ty in arg_types)
            diagnostics.append(
                _error(
                    DiagnosticKind.TYPE_MISMATCH,
                    expr.loc,
                    f"no initializer of '{info.name}' accepts ({rendered})",
                )
            )
        return ResolvedExpr.rvalue(info.type)

    def _lower_links(self, nodes: List[ast.Expr], scope: Scope, diagnostics: List[Diagnostic]) -> List[ChainLink]:
        links: List[ChainLink] = []
        # A postfix `?` fuses with the access that follows it.
        pending: Optional[ast.OptionalUnwrap] = None
        for node in nodes:
            if isinstance(node, ast.OptionalUnwrap):
                if pending is not None:
                    links.append(OptionalUnwrap(name=None, loc=pending.loc))
                pending = node
                continue
            if isinstance(node, ast.Attr):
                if pending is not None:
                    links.append(OptionalUnwrap(name=node.attr, loc=node.loc))
                else:
                    links.append(Plain(name=node.attr, loc=node.loc))
            elif isinstance(node, ast.Index):
                index_types = tuple(self._check_expr(arg, scope, diagnostics).type for arg in node.index)
                links.append(Subscript(index_types=index_types, optional=pending is not None, loc=node.loc))
            elif isinstance(node, ast.Call):
                if pending is not None:
                    links.append(OptionalUnwrap(name=None, loc=pending.loc))
                arg_types = tuple(self._check_expr(arg, scope, diagnostics).type for arg in node.args)
                links.append(Call(method=node.func.attr, arg_types=arg_types, loc=node.loc))
            pending = None
        if pending is not None:
            links.append(OptionalUnwrap(name=None, loc=pending.loc))
        return links


def _split_chain(expr: ast.Expr) -> Tuple[ast.Expr, List[ast.Expr]]:
    """Peel postfix accesses off `expr`; returns the root and the accesses left to right."""
    nodes: List[ast.Expr] = []
    node = expr
    while True:
        if isinstance(node, (ast.Attr, ast.OptionalUnwrap, ast.Index)):
            nodes.append(node)
            node = node.value
        elif isinstance(node, ast.Call) and isinstance(node.func, ast.Attr):
            nodes.append(node)
            node = node.func.value
        else:
            break
    nodes.reverse()
    return node, nodes


def _params_accept(params: Tuple[Type, ...], args: List[Type]) -> bool:
    if len(params) != len(args):
        return False
    return all(argument_matches(actual, expected) for actual, expected in zip(args, params))


def check_source(source: str, options: Optional[CheckOptions] = None) -> CheckedProgram:
    from .parser import parse_program

    return Checker(options).check(parse_program(source))
