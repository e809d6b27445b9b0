from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from .types import Type, VOID, is_optional


@dataclass(frozen=True)
class Member:
    name: str
    type: Type
    mutable: bool


@dataclass(frozen=True)
class Method:
    name: str
    params: Tuple[Type, ...] = ()
    return_type: Type = VOID
    requires_mutable_receiver: bool = False


@dataclass(frozen=True)
class Subscript:
    params: Tuple[Type, ...]
    element_type: Type
    settable: bool = False


@dataclass(frozen=True)
class AggregateInfo:
    name: str
    members: Mapping[str, Member] = field(default_factory=dict)
    methods: Mapping[str, Method] = field(default_factory=dict)
    subscript: Optional[Subscript] = None
    # Parameter lists of the declared initializers; an empty struct gets `init()`.
    initializers: Tuple[Tuple[Type, ...], ...] = ((),)

    def __post_init__(self) -> None:
        object.__setattr__(self, "members", MappingProxyType(dict(self.members)))
        object.__setattr__(self, "methods", MappingProxyType(dict(self.methods)))

    @property
    def type(self) -> Type:
        return Type(self.name)


class SymbolTable:
    """Read-only declaration context threaded through every resolution call."""

    def __init__(self, aggregates: Mapping[str, AggregateInfo] | None = None) -> None:
        self._aggregates: Mapping[str, AggregateInfo] = MappingProxyType(dict(aggregates or {}))

    @property
    def aggregates(self) -> Mapping[str, AggregateInfo]:
        return self._aggregates

    def __contains__(self, name: object) -> bool:
        return name in self._aggregates

    def lookup(self, ty: Type) -> Optional[AggregateInfo]:
        if is_optional(ty) or ty.args:
            return None
        return self._aggregates.get(ty.name)

    def lookup_name(self, name: str) -> Optional[AggregateInfo]:
        return self._aggregates.get(name)


def build_aggregate(
    name: str,
    members: Dict[str, Member],
    methods: Dict[str, Method],
    subscript: Optional[Subscript] = None,
    initializers: Tuple[Tuple[Type, ...], ...] = (),
) -> AggregateInfo:
    return AggregateInfo(
        name=name,
        members=members,
        methods=methods,
        subscript=subscript,
        initializers=initializers or ((),),
    )
