"""
Diagnostic structure shared by the resolver and the statement checker.

The resolver only signals a kind and the offending type; `message` is a
terse human hint, not a stable contract. Tests and the verify harness match
on `kind`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .ast import Located
from .types import Type


class DiagnosticKind(Enum):
    NOT_OPTIONAL_CHAIN = "not-optional-chain"
    UNKNOWN_MEMBER = "unknown-member"
    MUTATING_ON_IMMUTABLE_RECEIVER = "mutating-on-immutable-receiver"
    NOT_ASSIGNABLE = "not-assignable"
    CANNOT_ASSIGN_IMMUTABLE = "cannot-assign-immutable"
    TYPE_MISMATCH = "type-mismatch"
    OPERATOR_NOT_APPLICABLE = "operator-not-applicable"
    UNWRAPPED_OPTIONAL_REQUIRED = "unwrapped-optional-required"
    # front-end kinds
    UNKNOWN_IDENTIFIER = "unknown-identifier"
    UNKNOWN_TYPE = "unknown-type"
    DUPLICATE_DECLARATION = "duplicate-declaration"

    @classmethod
    def from_code(cls, code: str) -> "DiagnosticKind":
        try:
            return cls(code.strip())
        except ValueError:
            raise ValueError(f"unknown diagnostic kind '{code}'") from None


@dataclass(frozen=True)
class Diagnostic:
    """A local, non-fatal error reported against a source location."""

    kind: DiagnosticKind
    loc: Optional[Located] = None
    message: str = ""
    type: Optional[Type] = None

    @property
    def line(self) -> Optional[int]:
        return self.loc.line if self.loc is not None else None

    def __str__(self) -> str:
        where = f"{self.loc.line}:{self.loc.column}" if self.loc is not None else "?:?"
        text = f"{where}: error[{self.kind.value}]"
        if self.message:
            text += f": {self.message}"
        return text


class DiagnosticError(Exception):
    """Base for errors that become a Diagnostic once a location is known."""

    def __init__(self, kind: DiagnosticKind, message: str = "", ty: Optional[Type] = None) -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message
        self.type = ty

    def at(self, loc: Optional[Located]) -> Diagnostic:
        return Diagnostic(kind=self.kind, loc=loc, message=self.message, type=self.type)
