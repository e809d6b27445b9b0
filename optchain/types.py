from __future__ import annotations

from dataclasses import dataclass
from typing import Container, Dict, Tuple

from .ast import TypeExpr


@dataclass(frozen=True)
class Type:
    name: str
    args: Tuple["Type", ...] = ()

    def __str__(self) -> str:
        if not self.args:
            return self.name
        inner = ", ".join(str(a) for a in self.args)
        return f"{self.name}[{inner}]"


@dataclass(frozen=True)
class OptionalType(Type):
    """`inner?`; nests, so `Int??` is distinct from `Int?`."""

    @property
    def inner(self) -> Type:
        return self.args[0]

    def __str__(self) -> str:
        return f"{self.inner}?"


INT = Type("Int")
DOUBLE = Type("Double")
BOOL = Type("Bool")
STR = Type("String")
VOID = Type("Void")
NIL = Type("nil")
ERROR = Type("<error>")

_PRIMITIVES: Dict[str, Type] = {
    "Int": INT,
    "Double": DOUBLE,
    "Bool": BOOL,
    "String": STR,
    "Void": VOID,
}

NUMERIC = frozenset({INT, DOUBLE})

OPTIONAL_TYPE_NAME = "Optional"


class TypeSystemError(Exception):
    pass


class NotOptionalError(TypeSystemError):
    def __init__(self, ty: Type) -> None:
        super().__init__(f"type '{ty}' is not optional")
        self.type = ty


def wrap(inner: Type) -> OptionalType:
    return OptionalType(name=OPTIONAL_TYPE_NAME, args=(inner,))


def wrap_n(ty: Type, count: int) -> Type:
    # The recovery type absorbs wrapping so it stays recognizable.
    if ty == ERROR:
        return ty
    for _ in range(count):
        ty = wrap(ty)
    return ty


def is_optional(ty: Type) -> bool:
    return isinstance(ty, OptionalType)


def unwrap_one(ty: Type) -> Type:
    if not isinstance(ty, OptionalType):
        raise NotOptionalError(ty)
    return ty.inner


def optional_depth(ty: Type) -> int:
    depth = 0
    while isinstance(ty, OptionalType):
        ty = ty.inner
        depth += 1
    return depth


def base_of(ty: Type) -> Type:
    while isinstance(ty, OptionalType):
        ty = ty.inner
    return ty


def is_numeric(ty: Type) -> bool:
    return ty in NUMERIC


def resolve_type(type_expr: TypeExpr, known_names: Container[str] = frozenset()) -> Type:
    if type_expr.name == OPTIONAL_TYPE_NAME and type_expr.args:
        return wrap(resolve_type(type_expr.args[0], known_names))
    builtin = _PRIMITIVES.get(type_expr.name)
    if builtin:
        return builtin
    if type_expr.name in known_names:
        return Type(type_expr.name)
    raise TypeSystemError(f"Type '{type_expr.name}' is not defined")
