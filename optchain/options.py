from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

STRICT_ASSIGN_ENV = "OPTCHAIN_STRICT_ASSIGN"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class CheckOptions:
    # Accept `S` where `S?` is expected in a plain `=`; off means exact type equality.
    optional_injection: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CheckOptions":
        env = os.environ if environ is None else environ
        strict = env.get(STRICT_ASSIGN_ENV, "").strip().lower() in _TRUTHY
        return cls(optional_injection=not strict)
