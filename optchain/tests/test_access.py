from __future__ import annotations

import pytest

from conftest import GRID, S, T
from optchain.access import AccessError, argument_matches, resolve_member, resolve_method_call, resolve_subscript
from optchain.diagnostics import DiagnosticKind
from optchain.lvalue import ResolvedExpr
from optchain.types import ERROR, INT, NIL, VOID, wrap


def test_member_of_mutable_location(symbols):
    out = resolve_member(symbols, ResolvedExpr.location(S, True), "x")
    assert out == ResolvedExpr.location(INT, True)


def test_let_member_is_immutable_location(symbols):
    out = resolve_member(symbols, ResolvedExpr.location(S, True), "y")
    assert out == ResolvedExpr.location(INT, False)


def test_member_of_rvalue_is_rvalue(symbols):
    out = resolve_member(symbols, ResolvedExpr.rvalue(S), "x")
    assert out == ResolvedExpr.rvalue(INT)


def test_member_of_optional_requires_unwrap(symbols):
    with pytest.raises(AccessError) as excinfo:
        resolve_member(symbols, ResolvedExpr.location(wrap(T), True), "mutS")
    assert excinfo.value.kind is DiagnosticKind.UNWRAPPED_OPTIONAL_REQUIRED
    assert excinfo.value.recovered.type == ERROR


def test_unknown_member(symbols):
    with pytest.raises(AccessError) as excinfo:
        resolve_member(symbols, ResolvedExpr.location(S, True), "z")
    assert excinfo.value.kind is DiagnosticKind.UNKNOWN_MEMBER


def test_member_of_primitive_is_unknown(symbols):
    with pytest.raises(AccessError) as excinfo:
        resolve_member(symbols, ResolvedExpr.location(INT, True), "x")
    assert excinfo.value.kind is DiagnosticKind.UNKNOWN_MEMBER


def test_mutating_method_needs_mutable_receiver(symbols):
    ok = resolve_method_call(symbols, ResolvedExpr.location(T, True), "mutateT")
    assert ok == ResolvedExpr.rvalue(VOID)
    with pytest.raises(AccessError) as excinfo:
        resolve_method_call(symbols, ResolvedExpr.location(T, False), "mutateT")
    assert excinfo.value.kind is DiagnosticKind.MUTATING_ON_IMMUTABLE_RECEIVER
    with pytest.raises(AccessError):
        resolve_method_call(symbols, ResolvedExpr.rvalue(T), "mutateT")


def test_non_mutating_method_on_rvalue(symbols):
    out = resolve_method_call(symbols, ResolvedExpr.rvalue(S), "getX")
    assert out == ResolvedExpr.rvalue(INT)


def test_method_arguments_checked(symbols):
    base = ResolvedExpr.location(GRID, True)
    resolve_method_call(symbols, base, "put", (INT, NIL))
    resolve_method_call(symbols, base, "put", (INT, INT))
    with pytest.raises(AccessError) as excinfo:
        resolve_method_call(symbols, base, "put", (INT,))
    assert excinfo.value.kind is DiagnosticKind.TYPE_MISMATCH


def test_subscript_follows_settable_and_base(symbols):
    assert resolve_subscript(symbols, ResolvedExpr.location(GRID, True), (INT,)) == ResolvedExpr.location(INT, True)
    assert resolve_subscript(symbols, ResolvedExpr.location(GRID, False), (INT,)) == ResolvedExpr.location(INT, False)
    with pytest.raises(AccessError) as excinfo:
        resolve_subscript(symbols, ResolvedExpr.location(S, True), (INT,))
    assert excinfo.value.kind is DiagnosticKind.UNKNOWN_MEMBER


@pytest.mark.parametrize(
    "actual, expected, ok",
    [
        (INT, INT, True),
        (NIL, wrap(INT), True),
        (NIL, INT, False),
        (INT, wrap(INT), True),
        (INT, wrap(wrap(INT)), False),
        (ERROR, S, True),
    ],
)
def test_argument_matches(actual, expected, ok):
    assert argument_matches(actual, expected) is ok
