from __future__ import annotations

from typing import Optional, Sequence

from .diagnostics import DiagnosticError, DiagnosticKind
from .lvalue import ResolvedExpr, narrow
from .symbols import AggregateInfo, SymbolTable
from .types import ERROR, NIL, Type, is_optional, unwrap_one


class AccessError(DiagnosticError):
    """A failed access plus the value evaluation continues with."""

    def __init__(
        self,
        kind: DiagnosticKind,
        message: str,
        recovered: ResolvedExpr,
        ty: Optional[Type] = None,
    ) -> None:
        super().__init__(kind, message, ty)
        self.recovered = recovered


def _aggregate_for(symbols: SymbolTable, base: ResolvedExpr, what: str) -> AggregateInfo:
    if is_optional(base.type):
        raise AccessError(
            DiagnosticKind.UNWRAPPED_OPTIONAL_REQUIRED,
            f"value of optional type '{base.type}' not unwrapped; use '?' to access {what}",
            recovered=ResolvedExpr.with_access(ERROR, narrow(base.access, False)),
            ty=base.type,
        )
    info = symbols.lookup(base.type)
    if info is None:
        raise AccessError(
            DiagnosticKind.UNKNOWN_MEMBER,
            f"type '{base.type}' has no {what}",
            recovered=ResolvedExpr.rvalue(ERROR),
            ty=base.type,
        )
    return info


def resolve_member(symbols: SymbolTable, base: ResolvedExpr, name: str) -> ResolvedExpr:
    info = _aggregate_for(symbols, base, f"member '{name}'")
    member = info.members.get(name)
    if member is None:
        raise AccessError(
            DiagnosticKind.UNKNOWN_MEMBER,
            f"struct '{info.name}' has no member '{name}'",
            recovered=ResolvedExpr.rvalue(ERROR),
            ty=base.type,
        )
    return ResolvedExpr.with_access(member.type, narrow(base.access, member.mutable))


def resolve_method_call(
    symbols: SymbolTable,
    base: ResolvedExpr,
    name: str,
    arg_types: Sequence[Type] = (),
) -> ResolvedExpr:
    info = _aggregate_for(symbols, base, f"method '{name}'")
    method = info.methods.get(name)
    if method is None:
        raise AccessError(
            DiagnosticKind.UNKNOWN_MEMBER,
            f"struct '{info.name}' has no method '{name}'",
            recovered=ResolvedExpr.rvalue(ERROR),
            ty=base.type,
        )
    result = ResolvedExpr.rvalue(method.return_type)
    if method.requires_mutable_receiver and not (base.is_lvalue and base.is_mutable):
        raise AccessError(
            DiagnosticKind.MUTATING_ON_IMMUTABLE_RECEIVER,
            f"immutable value of type '{info.name}' only has mutating members named '{name}'",
            recovered=result,
            ty=base.type,
        )
    _check_arguments(f"'{name}'", method.params, arg_types, result)
    return result


def resolve_subscript(
    symbols: SymbolTable,
    base: ResolvedExpr,
    index_types: Sequence[Type],
) -> ResolvedExpr:
    info = _aggregate_for(symbols, base, "subscript")
    subscript = info.subscript
    if subscript is None:
        raise AccessError(
            DiagnosticKind.UNKNOWN_MEMBER,
            f"struct '{info.name}' has no subscript",
            recovered=ResolvedExpr.rvalue(ERROR),
            ty=base.type,
        )
    result = ResolvedExpr.with_access(subscript.element_type, narrow(base.access, subscript.settable))
    _check_arguments("subscript", subscript.params, index_types, result)
    return result


def _check_arguments(
    callee: str,
    params: Sequence[Type],
    args: Sequence[Type],
    result: ResolvedExpr,
) -> None:
    if len(args) != len(params):
        raise AccessError(
            DiagnosticKind.TYPE_MISMATCH,
            f"{callee} expects {len(params)} args, got {len(args)}",
            recovered=result,
        )
    for idx, (actual, expected) in enumerate(zip(args, params)):
        if not argument_matches(actual, expected):
            raise AccessError(
                DiagnosticKind.TYPE_MISMATCH,
                f"argument {idx + 1} of {callee}: expected {expected}, got {actual}",
                recovered=result,
                ty=actual,
            )


def argument_matches(actual: Type, expected: Type) -> bool:
    if actual == ERROR or actual == expected:
        return True
    if actual == NIL:
        return is_optional(expected)
    # Arguments promote a value into an optional parameter, one layer deep.
    return is_optional(expected) and unwrap_one(expected) == actual

