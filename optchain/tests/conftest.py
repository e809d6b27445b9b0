from __future__ import annotations

import pytest

from optchain.symbols import Member, Method, Subscript, SymbolTable, build_aggregate
from optchain.types import INT, Type, wrap

S = Type("S")
T = Type("T")
GRID = Type("Grid")


@pytest.fixture
def symbols() -> SymbolTable:
    """The S / T pair from the optional-chain fixture, plus a subscripted Grid."""
    s = build_aggregate(
        "S",
        {"x": Member("x", INT, True), "y": Member("y", INT, False)},
        {"mutateS": Method("mutateS", requires_mutable_receiver=True), "getX": Method("getX", return_type=INT)},
    )
    t = build_aggregate(
        "T",
        {"mutS": Member("mutS", wrap(S), True), "immS": Member("immS", wrap(S), False)},
        {"mutateT": Method("mutateT", requires_mutable_receiver=True)},
    )
    grid = build_aggregate(
        "Grid",
        {"row": Member("row", wrap(GRID), True)},
        {"put": Method("put", params=(INT, wrap(INT)), requires_mutable_receiver=True)},
        subscript=Subscript(params=(INT,), element_type=INT, settable=True),
    )
    return SymbolTable({"S": s, "T": t, "Grid": grid})
