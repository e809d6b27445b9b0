from __future__ import annotations

from pathlib import Path

import pytest

from optchain.diagnostics import DiagnosticKind
from optchain.options import CheckOptions
from optchain.verify import Expectation, collect_expectations, verify_source

PROGRAMS = Path(__file__).with_name("programs")


@pytest.mark.parametrize("path", sorted(PROGRAMS.glob("*.chain")), ids=lambda p: p.stem)
def test_program_verifies(path):
    result = verify_source(path.read_text())
    assert result.ok, "\n".join(result.describe())


def test_fixture_expectation_count():
    source = (PROGRAMS / "optional_chain_lvalues.chain").read_text()
    expectations = collect_expectations(source)
    assert len(expectations) == 11
    assert sum(e.kind is DiagnosticKind.CANNOT_ASSIGN_IMMUTABLE for e in expectations) == 6


def test_collect_expectations_with_offsets():
    source = "// expected-error@+1{{type-mismatch}}\nx = 1 // expected-error{{unknown-identifier}} expected-error{{unknown-identifier}}\n"
    assert collect_expectations(source) == [
        Expectation(2, DiagnosticKind.TYPE_MISMATCH),
        Expectation(2, DiagnosticKind.UNKNOWN_IDENTIFIER),
        Expectation(2, DiagnosticKind.UNKNOWN_IDENTIFIER),
    ]


def test_unknown_kind_in_annotation():
    with pytest.raises(ValueError):
        collect_expectations("x = 1 // expected-error{{no-such-kind}}")


def test_missing_and_unexpected_are_reported():
    source = "let a: Int = 0\na = 1\nvar b: Int = 0 // expected-error{{type-mismatch}}\n"
    result = verify_source(source)
    assert not result.ok
    assert result.missing == [Expectation(3, DiagnosticKind.TYPE_MISMATCH)]
    assert [d.kind for d in result.unexpected] == [DiagnosticKind.CANNOT_ASSIGN_IMMUTABLE]
    assert len(result.describe()) == 2


def test_fixture_under_strict_assignment():
    source = (PROGRAMS / "optional_chain_lvalues.chain").read_text()
    result = verify_source(source, CheckOptions(optional_injection=False))
    assert result.missing == []
    assert [(d.line, d.kind) for d in result.unexpected] == [
        (source.splitlines().index("mutT?.mutS = S()") + 1, DiagnosticKind.TYPE_MISMATCH)
    ]
