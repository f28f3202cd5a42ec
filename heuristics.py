# heuristics.py
# Column choosers for the search engine

from __future__ import annotations

from typing import Callable, Iterable, Optional

from matrix import Column

ColumnChooser = Callable[[Iterable[Column]], Optional[Column]]


def min_remaining_values(columns: Iterable[Column]) -> Column | None:
    """Smallest live column; ties go to the smallest element identifier."""
    best: Column | None = None
    for column in columns:
        if column.covered:
            continue
        if best is None or (column.size, column.element) < (best.size, best.element):
            best = column
    return best


def first_uncovered(columns: Iterable[Column]) -> Column | None:
    # No heuristic: leftmost live column.
    for column in columns:
        if not column.covered:
            return column
    return None


HEURISTICS: dict[str, ColumnChooser] = {
    "mrv": min_remaining_values,
    "first": first_uncovered,
}
