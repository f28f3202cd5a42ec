# solver.py
# Build a matrix from (label, elements) pairs, solve it, check covers

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Hashable, Iterable, Sequence

from dlx import SearchEngine, SearchResult
from heuristics import ColumnChooser, min_remaining_values
from matrix import ConstraintMatrix

logger = logging.getLogger(__name__)

Row = tuple[Any, Sequence[Hashable]]


def build_exact_cover(
    rows: Iterable[Row],
    elements: Iterable[Hashable] | None = None,
) -> ConstraintMatrix:
    matrix = ConstraintMatrix(elements)
    for label, row_elements in rows:
        matrix.add_row(label, row_elements)
    logger.debug("Built %r", matrix)
    return matrix


def solve_exact_cover(
    rows: Iterable[Row],
    elements: Iterable[Hashable] | None = None,
    choose_column: ColumnChooser = min_remaining_values,
) -> SearchResult:
    matrix = build_exact_cover(rows, elements)
    return SearchEngine(matrix, choose_column).solve()


def verify_cover(
    rows: Sequence[Row],
    chosen_rows: Iterable[int],
    elements: Iterable[Hashable] | None = None,
) -> bool:
    """True if the chosen row numbers cover the universe exactly once."""
    if elements is None:
        universe = {element for _, row_elements in rows for element in row_elements}
    else:
        universe = set(elements)

    counts: Counter = Counter()
    for row in chosen_rows:
        counts.update(rows[row][1])

    if any(count != 1 for count in counts.values()):
        return False
    return set(counts) == universe
