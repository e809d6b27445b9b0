from __future__ import annotations

from dataclasses import dataclass, replace

from .types import Type


@dataclass(frozen=True)
class Access:
    is_lvalue: bool
    is_mutable: bool


RVALUE = Access(is_lvalue=False, is_mutable=False)


def narrow(parent: Access, member_mutable: bool) -> Access:
    """
    Lvalue-ness of a member reached from `parent`.

    Mutability is the AND along the whole path: a `var` field reached
    through a `let` root is still immutable. Members of a non-lvalue are
    readable but never assignable.
    """
    if not parent.is_lvalue:
        return RVALUE
    return Access(is_lvalue=True, is_mutable=parent.is_mutable and member_mutable)


@dataclass(frozen=True)
class ResolvedExpr:
    type: Type
    is_lvalue: bool = False
    # Only meaningful when is_lvalue is set.
    is_mutable: bool = False

    @property
    def access(self) -> Access:
        return Access(is_lvalue=self.is_lvalue, is_mutable=self.is_mutable)

    @classmethod
    def rvalue(cls, ty: Type) -> "ResolvedExpr":
        return cls(type=ty)

    @classmethod
    def location(cls, ty: Type, mutable: bool) -> "ResolvedExpr":
        return cls(type=ty, is_lvalue=True, is_mutable=mutable)

    @classmethod
    def with_access(cls, ty: Type, access: Access) -> "ResolvedExpr":
        return cls(type=ty, is_lvalue=access.is_lvalue, is_mutable=access.is_mutable)

    def with_type(self, ty: Type) -> "ResolvedExpr":
        return replace(self, type=ty)
