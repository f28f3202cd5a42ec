# problems.py
# Exact cover problems: option model, JSON loading, built-in samples

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Hashable, Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Option:
    label: Any
    elements: tuple[Hashable, ...]  # elements this option covers, in row order


@dataclass
class ExactCoverProblem:
    name: str
    options: list[Option]
    elements: tuple[Hashable, ...] | None = None  # declared universe, if any

    def rows(self) -> Iterator[tuple[Any, tuple[Hashable, ...]]]:
        for option in self.options:
            yield option.label, option.elements

    def universe(self) -> tuple[Hashable, ...]:
        if self.elements is not None:
            return self.elements
        seen: dict[Hashable, None] = {}
        for option in self.options:
            for element in option.elements:
                seen.setdefault(element)
        return tuple(seen)

    def option_for(self, row: int) -> Option:
        return self.options[row]


def _identifier(value: Any) -> Hashable:
    # JSON has no tuples; [r, c] style identifiers become hashable.
    if isinstance(value, list):
        return tuple(_identifier(v) for v in value)
    if isinstance(value, dict):
        raise ValueError(f"Objects cannot be used as identifiers: {value!r}")
    return value


def _parse_options(name: str, raw: Any) -> list[Option]:
    if isinstance(raw, dict):
        pairs = list(raw.items())
    elif isinstance(raw, list):
        pairs = []
        for entry in raw:
            if not isinstance(entry, dict) or "label" not in entry or "elements" not in entry:
                raise ValueError(f"{name}: each option needs 'label' and 'elements', got {entry!r}")
            pairs.append((entry["label"], entry["elements"]))
    else:
        raise ValueError(f"{name}: 'options' must be an object or a list")

    options = []
    for label, elements in pairs:
        if not isinstance(elements, list):
            raise ValueError(f"{name}: elements of option {label!r} must be a list")
        options.append(Option(_identifier(label), tuple(_identifier(e) for e in elements)))
    return options


def problem_from_dict(doc: dict[str, Any], default_name: str = "problem") -> ExactCoverProblem:
    if not isinstance(doc, dict):
        raise ValueError(f"{default_name}: top level must be an object")
    name = str(doc.get("name", default_name))
    if "options" not in doc:
        raise ValueError(f"{name}: missing 'options'")

    options = _parse_options(name, doc["options"])
    elements = None
    if doc.get("elements") is not None:
        if not isinstance(doc["elements"], list):
            raise ValueError(f"{name}: 'elements' must be a list")
        elements = tuple(_identifier(e) for e in doc["elements"])

    return ExactCoverProblem(name=name, options=options, elements=elements)


def load_problem(path: str | Path) -> ExactCoverProblem:
    path = Path(path)
    try:
        doc = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path.name}: invalid JSON ({exc})") from exc

    problem = problem_from_dict(doc, default_name=path.stem)
    logger.debug("Loaded %s: %d options", problem.name, len(problem.options))
    return problem


def knuth_example() -> ExactCoverProblem:
    """The 7-element example from Knuth's Dancing Links paper; the cover is B, D, F."""
    return ExactCoverProblem(
        name="knuth",
        options=[
            Option("A", (1, 4, 7)),
            Option("B", (1, 4)),
            Option("C", (4, 5, 7)),
            Option("D", (3, 5, 6)),
            Option("E", (2, 3, 6, 7)),
            Option("F", (2, 7)),
        ],
        elements=(1, 2, 3, 4, 5, 6, 7),
    )


def unsat_example() -> ExactCoverProblem:
    return ExactCoverProblem(
        name="unsat",
        options=[Option("X", (1,)), Option("Y", (1,))],
        elements=(1, 2),
    )


BUILTIN_PROBLEMS: dict[str, Callable[[], ExactCoverProblem]] = {
    "knuth": knuth_example,
    "unsat": unsat_example,
}
