"""
Optional-chain evaluation.

A chain is a root value followed by links applied left to right. Every
`?.name` (or bare `?`) unwraps one optional layer for the rest of the
chain and adds one layer back onto the value the whole chain reads as,
since any link may short-circuit. Assignment targets keep the unwrapped
shape: `mutT?.mutS?.x` reads as `Int??` but assigns as `Int`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from .access import AccessError, resolve_member, resolve_method_call, resolve_subscript
from .ast import Located
from .diagnostics import Diagnostic, DiagnosticKind
from .lvalue import ResolvedExpr
from .symbols import SymbolTable
from .types import ERROR, NotOptionalError, Type, unwrap_one, wrap_n

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Plain:
    name: str
    loc: Optional[Located] = None


@dataclass(frozen=True)
class OptionalUnwrap:
    # None for a bare `?` that is not followed by a member name.
    name: Optional[str] = None
    loc: Optional[Located] = None


@dataclass(frozen=True)
class Subscript:
    index_types: Tuple[Type, ...] = ()
    optional: bool = False
    loc: Optional[Located] = None


@dataclass(frozen=True)
class Call:
    method: str
    arg_types: Tuple[Type, ...] = ()
    loc: Optional[Located] = None


ChainLink = Union[Plain, OptionalUnwrap, Subscript, Call]


@dataclass(frozen=True)
class ChainResult:
    read: ResolvedExpr
    target: ResolvedExpr
    unwrap_count: int
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.diagnostics


def evaluate_chain(
    symbols: SymbolTable,
    root: ResolvedExpr,
    links: Sequence[ChainLink],
) -> ChainResult:
    current = root
    unwrap_count = 0
    diagnostics: List[Diagnostic] = []

    for link in links:
        if current.type == ERROR:
            # Already reported; later links would only cascade.
            break
        if isinstance(link, OptionalUnwrap):
            current, unwrapped = _unwrap(current, link.loc, diagnostics)
            unwrap_count += unwrapped
            if link.name is not None:
                current = _apply(resolve_member, symbols, current, link.name, link.loc, diagnostics)
        elif isinstance(link, Plain):
            current = _apply(resolve_member, symbols, current, link.name, link.loc, diagnostics)
        elif isinstance(link, Subscript):
            if link.optional:
                current, unwrapped = _unwrap(current, link.loc, diagnostics)
                unwrap_count += unwrapped
            current = _apply(resolve_subscript, symbols, current, link.index_types, link.loc, diagnostics)
        elif isinstance(link, Call):
            current = _apply(resolve_method_call, symbols, current, link, link.loc, diagnostics)
        else:
            raise TypeError(f"unknown chain link {link!r}")

    read = current.with_type(wrap_n(current.type, unwrap_count))
    logger.debug(
        "chain over %d link(s): read %s, target %s, %d diagnostic(s)",
        len(links),
        read.type,
        current.type,
        len(diagnostics),
    )
    return ChainResult(
        read=read,
        target=current,
        unwrap_count=unwrap_count,
        diagnostics=tuple(diagnostics),
    )


def _unwrap(
    current: ResolvedExpr,
    loc: Optional[Located],
    diagnostics: List[Diagnostic],
) -> tuple[ResolvedExpr, int]:
    try:
        inner = unwrap_one(current.type)
    except NotOptionalError as exc:
        diagnostics.append(
            Diagnostic(
                kind=DiagnosticKind.NOT_OPTIONAL_CHAIN,
                loc=loc,
                message=f"cannot use optional chaining on non-optional value of type '{exc.type}'",
                type=exc.type,
            )
        )
        return current, 0
    return current.with_type(inner), 1


def _apply(resolver, symbols, current, arg, loc, diagnostics: List[Diagnostic]) -> ResolvedExpr:
    try:
        if isinstance(arg, Call):
            return resolver(symbols, current, arg.method, arg.arg_types)
        return resolver(symbols, current, arg)
    except AccessError as exc:
        diagnostics.append(exc.at(loc))
        return exc.recovered

