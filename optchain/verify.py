"""
Diagnostic verification for annotated fixture programs.

A source line may carry one or more `// expected-error{{kind}}` comments,
optionally with a line offset (`expected-error@+1{{kind}}`). Verification
checks the program and compares the reported (line, kind) pairs against the
annotations as a multiset; messages are not compared.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional

from .checker import CheckedProgram, check_source
from .diagnostics import Diagnostic, DiagnosticKind
from .options import CheckOptions

logger = logging.getLogger(__name__)

_EXPECTATION_RE = re.compile(r"expected-error(?:@([+-]\d+))?\{\{([^}]*)\}\}")


@dataclass(frozen=True)
class Expectation:
    line: int
    kind: DiagnosticKind


@dataclass
class VerifyResult:
    program: CheckedProgram
    missing: List[Expectation] = field(default_factory=list)
    unexpected: List[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.unexpected

    def describe(self) -> List[str]:
        lines = [f"{e.line}: missing expected error[{e.kind.value}]" for e in self.missing]
        lines.extend(f"{d}: unexpected" for d in self.unexpected)
        return lines


def collect_expectations(source: str) -> List[Expectation]:
    expectations: List[Expectation] = []
    for lineno, text in enumerate(source.splitlines(), start=1):
        for match in _EXPECTATION_RE.finditer(text):
            offset = int(match.group(1)) if match.group(1) else 0
            expectations.append(Expectation(line=lineno + offset, kind=DiagnosticKind.from_code(match.group(2))))
    return expectations


def verify_source(source: str, options: Optional[CheckOptions] = None) -> VerifyResult:
    checked = check_source(source, options)
    expected = Counter(collect_expectations(source))
    remaining = expected.copy()
    unexpected: List[Diagnostic] = []
    for diag in checked.diagnostics:
        key = Expectation(line=diag.line, kind=diag.kind)
        if remaining[key] > 0:
            remaining[key] -= 1
        else:
            unexpected.append(diag)
    missing = sorted(remaining.elements(), key=lambda e: (e.line, e.kind.value))
    logger.debug(
        "verified %d expectation(s): %d missing, %d unexpected",
        sum(expected.values()),
        len(missing),
        len(unexpected),
    )
    return VerifyResult(program=checked, missing=missing, unexpected=unexpected)
