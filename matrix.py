# matrix.py
# Sparse options x elements matrix stored as index-linked circular chains

from __future__ import annotations

from typing import Any, Hashable, Iterable, Iterator, Sequence


def _shape(element: Hashable) -> Any:
    if isinstance(element, tuple):
        return tuple(_shape(e) for e in element)
    return type(element)


def _orderable(a: Hashable, b: Hashable) -> bool:
    # Tuples compare item by item, so every position has to order
    if isinstance(a, tuple) and isinstance(b, tuple):
        return all(_orderable(x, y) for x, y in zip(a, b))
    try:
        a < b
        b < a
    except TypeError:
        return False
    return True


class Column:
    def __init__(self, element: Hashable, header: int):
        self.element = element
        self.header = header  # index of the header node
        self.size = 0
        self.covered = False

    def __repr__(self) -> str:
        flag = " covered" if self.covered else ""
        return f"Column({self.element!r}, size={self.size}{flag})"


class Node:
    def __init__(self, index: int, element: Hashable, label: Any = None, row: int = -1):
        self.label = label
        self.element = element
        self.row = row
        self.is_header = row < 0
        self.up = index
        self.down = index
        self.left = index
        self.right = index


class ConstraintMatrix:
    """
    Builds the toroidal structure one option at a time.

    Nodes live in a flat list and refer to each other by index, so covering
    a node only rewrites its neighbours and the node keeps its own links for
    the later restore. Headers sit in the same list but never join a row.
    """

    def __init__(self, elements: Iterable[Hashable] | None = None):
        self.nodes: list[Node] = []
        self.columns: dict[Hashable, Column] = {}
        self.rows: list[tuple[Any, tuple[Hashable, ...]]] = []
        self.sealed = False
        self.declared = elements is not None
        # One identifier per shape, to check that new ones order against them
        self._samples: dict[Any, Hashable] = {}

        if elements is not None:
            elements = list(elements)
            if len(set(elements)) != len(elements):
                dup = next(e for i, e in enumerate(elements) if e in elements[:i])
                raise ValueError(f"Element {dup!r} declared twice")
            self._add_columns(elements)

    @property
    def num_rows(self) -> int:
        return len(self.rows)

    @property
    def num_columns(self) -> int:
        return len(self.columns)

    @property
    def num_nodes(self) -> int:
        """Data nodes only."""
        return len(self.nodes) - len(self.columns)

    @property
    def covered_nodes(self) -> int:
        return self.num_nodes - sum(column.size for column in self.columns.values())

    def add_row(self, label: Any, elements: Sequence[Hashable]) -> None:
        if self.sealed:
            raise RuntimeError("Cannot add rows once a search has started")

        elements = tuple(elements)
        if not elements:
            raise ValueError(f"Row {label!r} has no elements")
        if len(set(elements)) != len(elements):
            raise ValueError(f"Row {label!r} lists an element more than once: {elements!r}")

        new = [element for element in elements if element not in self.columns]
        if new and self.declared:
            raise ValueError(f"Row {label!r} references undeclared element {new[0]!r}")
        self._add_columns(new)

        row = len(self.rows)
        first = len(self.nodes)
        count = len(elements)

        for i, element in enumerate(elements):
            index = first + i
            node = Node(index, element, label=label, row=row)
            node.left = first + (i - 1) % count
            node.right = first + (i + 1) % count
            self.nodes.append(node)
            self._append_to_column(self.columns[element], index)

        self.rows.append((label, elements))

    def _add_columns(self, elements: list[Hashable]) -> None:
        # The column heuristic breaks ties by comparing identifiers, so every
        # identifier must order against every other. Checked before any
        # column is created so a rejected row leaves the matrix untouched.
        samples = dict(self._samples)
        for element in elements:
            shape = _shape(element)
            if shape in samples:
                continue
            for other in (element, *samples.values()):
                if not _orderable(element, other):
                    raise ValueError(f"Element {element!r} cannot be ordered against element {other!r}")
            samples[shape] = element

        self._samples = samples
        for element in elements:
            self._add_column(element)

    def _add_column(self, element: Hashable) -> None:
        header = len(self.nodes)
        self.nodes.append(Node(header, element))
        self.columns[element] = Column(element, header)

    def _append_to_column(self, column: Column, index: int) -> None:
        # Insert at bottom (just above the header)
        nodes = self.nodes
        node = nodes[index]
        last = nodes[column.header].up

        node.up = last
        node.down = column.header
        nodes[last].down = index
        nodes[column.header].up = index
        column.size += 1

    def _walk(self, start: int, direction: str) -> Iterator[int]:
        nodes = self.nodes
        index = start
        while True:
            if not nodes[index].is_header:
                yield index
            index = getattr(nodes[index], direction)
            if index == start:
                return

    def column_nodes(self, element: Hashable) -> list[int]:
        """Live data nodes of a column, top to bottom."""
        return list(self._walk(self.columns[element].header, "down"))

    def vertical_chain(self, index: int) -> list[int]:
        """Live data nodes sharing a column with `index`, starting at it."""
        return list(self._walk(index, "down"))

    def row_nodes(self, index: int) -> list[int]:
        """The row containing `index`, in row order starting at it."""
        return list(self._walk(index, "right"))

    def live_columns(self) -> Iterator[Column]:
        return (column for column in self.columns.values() if not column.covered)

    def link_state(self) -> tuple:
        links = tuple((n.up, n.down, n.left, n.right) for n in self.nodes)
        columns = tuple((c.size, c.covered) for c in self.columns.values())
        return links, columns

    def __repr__(self) -> str:
        return (
            f"ConstraintMatrix(rows={self.num_rows}, columns={self.num_columns}, "
            f"nodes={self.num_nodes})"
        )
