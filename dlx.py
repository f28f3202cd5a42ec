# dlx.py
# Algorithm X (Dancing Links) search over a ConstraintMatrix

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterator

from heuristics import ColumnChooser, min_remaining_values
from matrix import ConstraintMatrix

logger = logging.getLogger(__name__)


@dataclass
class SearchStats:
    rows_tried: int = 0
    backtracks: int = 0
    dead_ends: int = 0
    max_depth: int = 0


@dataclass
class SearchResult:
    solved: bool
    labels: list[Any] = field(default_factory=list)
    rows: list[int] = field(default_factory=list)  # row numbers, in selection order
    stats: SearchStats = field(default_factory=SearchStats)

    def __bool__(self) -> bool:
        return self.solved


class _ChoiceFrame:
    def __init__(self, element: Hashable, candidates: list[int]):
        self.element = element
        self.candidates = candidates
        self.next = 0
        self.current: int | None = None
        self.unlinked: list[int] = []
        self.flagged: list[Hashable] = []


def _exhaust(steps: Iterator[Any]) -> Any:
    while True:
        try:
            next(steps)
        except StopIteration as stop:
            return stop.value


class SearchEngine:
    """
    Depth-first exact cover search.

    Each level of the search is a choice frame on an explicit stack rather
    than a Python call, so deep covers cannot exhaust the interpreter stack.
    The unlink/relink order is the same as the recursive formulation: a
    candidate's cascade is unlinked in collection order and relinked in
    reverse before the next candidate of the same frame is tried.
    """

    def __init__(self, matrix: ConstraintMatrix, choose_column: ColumnChooser = min_remaining_values):
        if matrix.covered_nodes or any(c.covered for c in matrix.columns.values()):
            raise RuntimeError("Matrix is still held by an unfinished search")
        self.matrix = matrix
        self.choose_column = choose_column
        self.solution: list[Any] = []
        self.chosen_rows: list[int] = []
        self.stats = SearchStats()
        self._frames: list[_ChoiceFrame] = []

    def is_solved(self) -> bool:
        m = self.matrix
        return (
            m.covered_nodes == len(m.nodes) - m.num_columns
            and all(column.covered for column in m.columns.values())
        )

    def solve(self) -> SearchResult:
        self._start()
        solved = _exhaust(self._search(trace=False))
        result = self._result(solved)
        logger.debug(
            "Search finished: solved=%s rows_tried=%d backtracks=%d dead_ends=%d max_depth=%d",
            solved,
            self.stats.rows_tried,
            self.stats.backtracks,
            self.stats.dead_ends,
            self.stats.max_depth,
        )
        return result

    def solve_steps(self):
        """
        Generator that yields events describing the solving process.
        Events are dicts with 'type', 'data', 'state' (labels chosen so far)
        and 'rows' (their row numbers).
        """
        self._start()
        yield self._event(
            "INIT",
            {
                "message": "Starting search...",
                "columns": self.matrix.num_columns,
                "rows": self.matrix.num_rows,
            },
        )
        solved = yield from self._search(trace=True)
        if not solved:
            yield self._event("FAILURE", {"reason": "Every branch was exhausted; no exact cover exists."})

    def reset(self) -> None:
        """Undo every open choice, restoring the matrix to its pre-search links."""
        while self._frames:
            frame = self._frames.pop()
            if frame.current is not None:
                self._undo(frame)

    def _start(self) -> None:
        self.reset()
        self.matrix.sealed = True
        self.stats = SearchStats()

    def _result(self, solved: bool) -> SearchResult:
        if not solved:
            return SearchResult(False, stats=self.stats)
        return SearchResult(True, list(self.solution), list(self.chosen_rows), self.stats)

    def _search(self, trace: bool):
        frames = self._frames
        while True:
            if self.is_solved():
                if trace:
                    yield self._event("SOLUTION", {"solution": list(self.solution)})
                return True

            column = self.choose_column(self.matrix.live_columns())
            if column is not None and trace:
                candidates = [{"name": c.element, "size": c.size} for c in self.matrix.live_columns()]
                yield self._event(
                    "CHOOSE_COL",
                    {
                        "chosen": column.element,
                        "size": column.size,
                        "candidates": candidates,
                        "reason": f"Column {column.element!r} has {column.size} option(s) left.",
                    },
                )

            if column is not None and column.size > 0:
                frames.append(_ChoiceFrame(column.element, self.matrix.column_nodes(column.element)))
            else:
                # Nothing left can satisfy this element.
                self.stats.dead_ends += 1
                if trace:
                    element = column.element if column is not None else None
                    yield self._event(
                        "BACKTRACK",
                        {"col": element, "reason": f"Column {element!r} has no options left."},
                    )

            while frames:
                frame = frames[-1]
                if frame.current is not None:
                    row = self.matrix.nodes[frame.current].row
                    label = self.solution[-1]
                    self._undo(frame)
                    self.stats.backtracks += 1
                    if trace:
                        yield self._event("UNSELECT_ROW", {"row": row, "label": label, "col": frame.element})

                if frame.next < len(frame.candidates):
                    self._select(frame)
                    if trace:
                        node = self.matrix.nodes[frame.current]
                        yield self._event(
                            "SELECT_ROW",
                            {
                                "row": node.row,
                                "label": node.label,
                                "col": frame.element,
                                "unlinked": len(frame.unlinked),
                            },
                        )
                    break

                frames.pop()
                if trace:
                    yield self._event(
                        "BACKTRACK",
                        {"col": frame.element, "reason": "Tried all options for this column, going back."},
                    )
            else:
                return False

    def _select(self, frame: _ChoiceFrame) -> None:
        matrix = self.matrix
        index = frame.candidates[frame.next]
        frame.next += 1
        frame.current = index

        node = matrix.nodes[index]
        self.solution.append(node.label)
        self.chosen_rows.append(node.row)

        row = matrix.row_nodes(index)
        frame.flagged = [matrix.nodes[i].element for i in row]
        for element in frame.flagged:
            matrix.columns[element].covered = True

        frame.unlinked = self._nodes_to_cover(row)
        for i in frame.unlinked:
            self._cover_node(i)

        self.stats.rows_tried += 1
        self.stats.max_depth = max(self.stats.max_depth, len(self._frames))

    def _undo(self, frame: _ChoiceFrame) -> None:
        for i in reversed(frame.unlinked):
            self._uncover_node(i)
        for element in frame.flagged:
            self.matrix.columns[element].covered = False
        self.solution.pop()
        self.chosen_rows.pop()
        frame.current = None
        frame.unlinked = []
        frame.flagged = []

    def _nodes_to_cover(self, row: list[int]) -> list[int]:
        # The chosen row plus every row clashing with it; a row reached
        # through several shared columns is collected once.
        seen: dict[int, None] = {}
        for index in row:
            for other in self.matrix.vertical_chain(index):
                for node in self.matrix.row_nodes(other):
                    seen.setdefault(node)
        return list(seen)

    def _cover_node(self, index: int) -> None:
        nodes = self.matrix.nodes
        node = nodes[index]
        self.matrix.columns[node.element].size -= 1
        nodes[node.up].down = node.down
        nodes[node.down].up = node.up
        nodes[node.left].right = node.right
        nodes[node.right].left = node.left

    def _uncover_node(self, index: int) -> None:
        nodes = self.matrix.nodes
        node = nodes[index]
        self.matrix.columns[node.element].size += 1
        nodes[node.up].down = index
        nodes[node.down].up = index
        nodes[node.left].right = index
        nodes[node.right].left = index

    def _event(self, event_type: str, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "type": event_type,
            "data": data,
            "state": list(self.solution),
            "rows": list(self.chosen_rows),
        }
