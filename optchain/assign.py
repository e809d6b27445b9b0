from __future__ import annotations

from enum import Enum

from .diagnostics import DiagnosticError, DiagnosticKind
from .lvalue import ResolvedExpr
from .types import ERROR, INT, NIL, Type, base_of, is_numeric, is_optional, unwrap_one


class AssignOp(Enum):
    ASSIGN = "="
    ADD_ASSIGN = "+="
    SUB_ASSIGN = "-="
    INCREMENT = "++"
    DECREMENT = "--"


class AssignError(DiagnosticError):
    pass


def check_assignment(
    target: ResolvedExpr,
    rhs_type: Type,
    op: AssignOp,
    *,
    optional_injection: bool = True,
) -> None:
    """
    Validate `target <op> rhs` and raise AssignError on the first failed rule.

    `target` is the unwrapped location a chain assigns through, never its
    optional-wrapped read value. Increments ignore `rhs_type`.
    """
    if not target.is_lvalue:
        raise AssignError(
            DiagnosticKind.NOT_ASSIGNABLE,
            f"cannot assign to value of type '{target.type}': not a storage location",
            target.type,
        )
    if not target.is_mutable:
        raise AssignError(
            DiagnosticKind.CANNOT_ASSIGN_IMMUTABLE,
            f"cannot assign through immutable location of type '{target.type}'",
            target.type,
        )
    if target.type == ERROR:
        return
    if op is AssignOp.ASSIGN:
        if not is_assignable_value(rhs_type, target.type, optional_injection=optional_injection):
            raise AssignError(
                DiagnosticKind.TYPE_MISMATCH,
                f"cannot assign value of type '{rhs_type}' to '{target.type}'",
                rhs_type,
            )
        return
    _check_arithmetic_target(target.type, op)
    if op in (AssignOp.INCREMENT, AssignOp.DECREMENT):
        return
    _check_operand(rhs_type, target.type)


def check_prefix_operator(operand: ResolvedExpr, op: AssignOp) -> None:
    """
    `++x` / `--x` look at the value `x` reads as.

    Prefix operators never unwrap: an optional chain reads as at least one
    optional layer and is rejected by type, before any mutability check.
    """
    if operand.type == ERROR:
        return
    if is_optional(operand.type):
        raise AssignError(
            DiagnosticKind.OPERATOR_NOT_APPLICABLE,
            f"cannot apply prefix '{op.value}' to an argument of type '{operand.type}'",
            operand.type,
        )
    check_assignment(operand, INT, op)


def check_binary_operands(op: str, left: Type, right: Type) -> Type:
    """Type of `left <op> right` for the arithmetic operators `+` and `-`."""
    if left == ERROR or right == ERROR:
        return ERROR
    for operand in (left, right):
        if is_optional(operand):
            raise AssignError(
                DiagnosticKind.UNWRAPPED_OPTIONAL_REQUIRED,
                f"value of optional type '{operand}' not unwrapped",
                operand,
            )
    if not is_numeric(left) or not is_numeric(right):
        raise AssignError(
            DiagnosticKind.OPERATOR_NOT_APPLICABLE,
            f"binary operator '{op}' cannot be applied to operands of type '{left}' and '{right}'",
            left if not is_numeric(left) else right,
        )
    if left != right:
        raise AssignError(
            DiagnosticKind.TYPE_MISMATCH,
            f"binary operator '{op}' operands differ: '{left}' and '{right}'",
            right,
        )
    return left


def is_assignable_value(value: Type, expected: Type, *, optional_injection: bool = True) -> bool:
    if ERROR in (value, expected) or value == expected:
        return True
    if value == NIL:
        return is_optional(expected)
    if optional_injection and is_optional(expected):
        return is_assignable_value(value, unwrap_one(expected), optional_injection=True)
    return False


def _check_arithmetic_target(target: Type, op: AssignOp) -> None:
    if is_optional(target) or not is_numeric(target):
        raise AssignError(
            DiagnosticKind.OPERATOR_NOT_APPLICABLE,
            f"operator '{op.value}' cannot be applied to a location of type '{target}'",
            target,
        )


def _check_operand(rhs: Type, target: Type) -> None:
    if rhs == ERROR or rhs == target:
        return
    if is_optional(rhs) and base_of(rhs) == target:
        raise AssignError(
            DiagnosticKind.UNWRAPPED_OPTIONAL_REQUIRED,
            f"value of optional type '{rhs}' not unwrapped",
            rhs,
        )
    raise AssignError(
        DiagnosticKind.TYPE_MISMATCH,
        f"cannot combine '{rhs}' into location of type '{target}'",
        rhs,
    )
