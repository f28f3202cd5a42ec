import itertools
import random

import pytest

from dlx import SearchEngine, SearchResult
from heuristics import first_uncovered
from matrix import ConstraintMatrix
from solver import verify_cover

KNUTH_TRACE = [
    ("INIT", None),
    ("CHOOSE_COL", 1),
    ("SELECT_ROW", "A"),
    ("CHOOSE_COL", 2),
    ("BACKTRACK", 2),
    ("UNSELECT_ROW", "A"),
    ("SELECT_ROW", "B"),
    ("CHOOSE_COL", 5),
    ("SELECT_ROW", "D"),
    ("CHOOSE_COL", 2),
    ("SELECT_ROW", "F"),
    ("SOLUTION", None),
]


def _summary(event):
    data = event["data"]
    if event["type"] == "CHOOSE_COL":
        return event["type"], data["chosen"]
    if event["type"] == "BACKTRACK":
        return event["type"], data["col"]
    if event["type"] in ("SELECT_ROW", "UNSELECT_ROW"):
        return event["type"], data["label"]
    return event["type"], None


def _matrix(rows, elements=None):
    matrix = ConstraintMatrix(elements)
    for label, row_elements in rows:
        matrix.add_row(label, row_elements)
    return matrix


def _brute_force_has_cover(rows, universe):
    for size in range(1, len(rows) + 1):
        for combo in itertools.combinations(rows, size):
            covered = [e for _, elements in combo for e in elements]
            if len(covered) == len(set(covered)) and set(covered) == universe:
                return True
    return False


class TestKnuthExample:
    def test_finds_b_d_f(self, knuth_matrix, knuth_rows):
        result = SearchEngine(knuth_matrix).solve()

        assert result.solved
        assert result.labels == ["B", "D", "F"]
        assert result.rows == [1, 3, 5]
        assert verify_cover(knuth_rows, result.rows)

    def test_stats(self, knuth_matrix):
        stats = SearchEngine(knuth_matrix).solve().stats

        assert stats.rows_tried == 4
        assert stats.backtracks == 1
        assert stats.dead_ends == 1
        assert stats.max_depth == 3

    def test_solved_matrix_has_everything_unlinked(self, knuth_matrix):
        engine = SearchEngine(knuth_matrix)
        engine.solve()

        assert engine.is_solved()
        assert knuth_matrix.covered_nodes == knuth_matrix.num_nodes
        assert all(c.size == 0 for c in knuth_matrix.columns.values())

    def test_other_heuristic_gives_same_cover(self, knuth_matrix):
        result = SearchEngine(knuth_matrix, first_uncovered).solve()

        assert result.labels == ["B", "F", "D"]
        assert sorted(result.labels) == ["B", "D", "F"]


class TestUnsatisfiable:
    def test_failure_is_a_value(self):
        matrix = _matrix([("X", [1]), ("Y", [1])], elements=[1, 2])
        result = SearchEngine(matrix).solve()

        assert isinstance(result, SearchResult)
        assert not result
        assert result.labels == []
        assert result.rows == []

    def test_overlapping_rows_only(self):
        matrix = _matrix([("a", [1, 2]), ("b", [2, 3]), ("c", [1, 3])])

        assert not SearchEngine(matrix).solve().solved

    def test_failed_search_restores_links(self):
        matrix = _matrix([("a", [1, 2]), ("b", [2, 3]), ("c", [1, 3]), ("d", [1, 2, 4])])
        before = matrix.link_state()

        engine = SearchEngine(matrix)
        first = engine.solve()
        assert matrix.link_state() == before

        second = engine.solve()
        assert first == second
        assert not second.solved


class TestBoundaries:
    def test_zero_columns_is_solved(self):
        result = SearchEngine(ConstraintMatrix()).solve()

        assert result.solved
        assert result.labels == []

    def test_declared_column_without_rows(self):
        matrix = _matrix([("A", [1])], elements=[1, 2])
        result = SearchEngine(matrix).solve()

        assert not result.solved
        assert result.stats.rows_tried == 0
        assert result.stats.dead_ends == 1

    def test_single_row_covering_everything(self):
        matrix = _matrix([("all", [1, 2, 3])])

        assert SearchEngine(matrix).solve().labels == ["all"]

    def test_deep_cover_does_not_recurse(self):
        # More levels than the default interpreter recursion limit.
        n = 1200
        matrix = _matrix([(i, [i]) for i in range(n)])
        result = SearchEngine(matrix).solve()

        assert result.solved
        assert result.labels == list(range(n))
        assert result.stats.max_depth == n


class TestRestoration:
    def test_cover_then_uncover_node_is_identity(self, knuth_matrix):
        engine = SearchEngine(knuth_matrix)
        before = knuth_matrix.link_state()

        for index in range(knuth_matrix.num_columns, len(knuth_matrix.nodes)):
            engine._cover_node(index)
            assert knuth_matrix.link_state() != before
            engine._uncover_node(index)
            assert knuth_matrix.link_state() == before

    def test_reverse_order_restores_a_whole_cascade(self, knuth_matrix):
        engine = SearchEngine(knuth_matrix)
        before = knuth_matrix.link_state()
        a1 = knuth_matrix.column_nodes(1)[0]

        cascade = engine._nodes_to_cover(knuth_matrix.row_nodes(a1))
        for index in cascade:
            engine._cover_node(index)
        for index in reversed(cascade):
            engine._uncover_node(index)

        assert knuth_matrix.link_state() == before

    def test_cascade_collects_clashing_rows_once(self, knuth_matrix):
        engine = SearchEngine(knuth_matrix)
        a1 = knuth_matrix.column_nodes(1)[0]

        cascade = engine._nodes_to_cover(knuth_matrix.row_nodes(a1))
        labels = {knuth_matrix.nodes[i].label for i in cascade}

        assert len(cascade) == len(set(cascade))
        # A clashes with every row except D
        assert labels == {"A", "B", "C", "E", "F"}
        assert len(cascade) == 14

    def test_reset_after_success_restores_links(self, knuth_matrix):
        before = knuth_matrix.link_state()
        engine = SearchEngine(knuth_matrix)
        engine.solve()
        assert knuth_matrix.link_state() != before

        engine.reset()

        assert knuth_matrix.link_state() == before
        assert engine.solution == []

    def test_repeated_solve_is_identical(self, knuth_matrix):
        engine = SearchEngine(knuth_matrix)

        assert engine.solve() == engine.solve()

    def test_engine_refuses_matrix_mid_search(self, knuth_matrix):
        SearchEngine(knuth_matrix).solve()

        with pytest.raises(RuntimeError):
            SearchEngine(knuth_matrix)


class TestDeterminism:
    def test_independent_runs_agree(self, knuth_rows):
        first = SearchEngine(_matrix(knuth_rows)).solve()
        second = SearchEngine(_matrix(knuth_rows)).solve()

        assert first.labels == second.labels
        assert first.stats == second.stats

    def test_ties_break_on_smallest_element(self):
        # Both columns have one row; "a" sorts first.
        matrix = _matrix([("second", ["b"]), ("first", ["a"])])

        assert SearchEngine(matrix).solve().labels == ["first", "second"]


class TestAgainstBruteForce:
    @pytest.mark.parametrize("seed", range(25))
    def test_random_problems(self, seed):
        rng = random.Random(seed)
        universe = set(range(8))
        rows = []
        for i in range(rng.randint(3, 12)):
            elements = rng.sample(sorted(universe), rng.randint(1, 4))
            rows.append((f"r{i}", elements))

        matrix = _matrix(rows, elements=sorted(universe))
        before = matrix.link_state()
        result = SearchEngine(matrix).solve()

        assert result.solved == _brute_force_has_cover(rows, universe)
        if result.solved:
            assert verify_cover(rows, result.rows, universe)
        else:
            assert matrix.link_state() == before


class TestSolveSteps:
    def test_knuth_trace(self, knuth_matrix):
        events = list(SearchEngine(knuth_matrix).solve_steps())

        assert [_summary(e) for e in events] == KNUTH_TRACE
        assert events[-1]["state"] == ["B", "D", "F"]
        assert events[-1]["rows"] == [1, 3, 5]

    def test_first_choice_details(self, knuth_matrix):
        events = list(SearchEngine(knuth_matrix).solve_steps())
        choose = events[1]["data"]

        assert choose["size"] == 2
        assert {"name": 7, "size": 4} in choose["candidates"]

    def test_unsat_trace_ends_in_failure(self):
        matrix = _matrix([("X", [1]), ("Y", [1])], elements=[1, 2])
        events = list(SearchEngine(matrix).solve_steps())

        assert [e["type"] for e in events] == ["INIT", "CHOOSE_COL", "BACKTRACK", "FAILURE"]
        assert events[1]["data"]["chosen"] == 2

    def test_abandoned_trace_can_be_reset(self, knuth_matrix):
        before = knuth_matrix.link_state()
        engine = SearchEngine(knuth_matrix)

        steps = engine.solve_steps()
        for event in steps:
            if event["type"] == "SELECT_ROW":
                break
        assert knuth_matrix.link_state() != before

        engine.reset()
        assert knuth_matrix.link_state() == before

    def test_trace_and_solve_agree(self, knuth_rows):
        traced = list(SearchEngine(_matrix(knuth_rows)).solve_steps())
        result = SearchEngine(_matrix(knuth_rows)).solve()

        assert traced[-1]["data"]["solution"] == result.labels
