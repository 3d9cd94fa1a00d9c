"""Tests for Bradley-Terry strength estimation."""

import pytest

from aniranker.engine.matrix import ComparisonMatrix
from aniranker.engine.solver import fit_bradley_terry, mm_step


def _matrix(decisions: list[tuple[int, int]]) -> ComparisonMatrix:
    matrix = ComparisonMatrix()
    for winner_id, loser_id in decisions:
        matrix.record(winner_id, loser_id)
    return matrix


class TestMMStep:
    """Tests for a single MM update."""

    def test_even_record_keeps_strengths(self) -> None:
        matrix = _matrix([(1, 2), (2, 1)])

        updated = mm_step({1: 1.0, 2: 1.0}, matrix.wins_by_item(), matrix.opponents())

        assert updated == {1: 1.0, 2: 1.0}

    def test_winless_item_hits_floor(self) -> None:
        matrix = _matrix([(1, 2)])

        updated = mm_step({1: 1.0, 2: 1.0}, matrix.wins_by_item(), matrix.opponents())

        assert updated[1] == pytest.approx(2.0)
        assert updated[2] == 0.01

    def test_uncompared_item_is_untouched(self) -> None:
        matrix = _matrix([(1, 2)])

        updated = mm_step({1: 1.0, 2: 1.0, 3: 0.4}, matrix.wins_by_item(), matrix.opponents())

        assert updated[3] == 0.4

    def test_does_not_mutate_input(self) -> None:
        matrix = _matrix([(1, 2)])
        strengths = {1: 1.0, 2: 1.0}

        mm_step(strengths, matrix.wins_by_item(), matrix.opponents())

        assert strengths == {1: 1.0, 2: 1.0}


class TestFitBradleyTerry:
    """Tests for fit_bradley_terry."""

    def test_empty_matrix_returns_start(self) -> None:
        result = fit_bradley_terry({1: 1.0, 2: 3.0}, ComparisonMatrix())

        assert result.strengths == {1: 1.0, 2: 3.0}
        assert result.iterations == 0
        assert result.converged is True

    def test_converges_to_win_ratio(self) -> None:
        # 3 wins to 1 gives s1 / s2 = 3 at the maximum-likelihood point
        matrix = _matrix([(1, 2), (1, 2), (1, 2), (2, 1)])

        result = fit_bradley_terry({1: 1.0, 2: 1.0}, matrix, max_iterations=200, tolerance=1e-9)

        assert result.converged is True
        assert result.strengths[1] / result.strengths[2] == pytest.approx(3.0, rel=1e-4)

    def test_cycle_is_a_fixed_point(self) -> None:
        matrix = _matrix([(1, 2), (2, 3), (3, 1)])

        result = fit_bradley_terry({1: 1.0, 2: 1.0, 3: 1.0}, matrix)

        assert result.strengths == {1: 1.0, 2: 1.0, 3: 1.0}
        assert result.iterations == 1

    def test_respects_iteration_budget(self) -> None:
        matrix = _matrix([(1, 2)] * 10)

        result = fit_bradley_terry({1: 1.0, 2: 1.0}, matrix, max_iterations=15, tolerance=1e-3)

        assert result.iterations == 15
        assert result.converged is False

    def test_floor_applies_to_start(self) -> None:
        result = fit_bradley_terry({1: 0.0001}, ComparisonMatrix(), floor=0.01)

        assert result.strengths == {1: 0.01}

    def test_same_input_same_output(self) -> None:
        matrix = _matrix([(1, 2), (2, 3), (1, 3), (3, 2)])

        first = fit_bradley_terry({1: 1.0, 2: 1.0, 3: 1.0}, matrix)
        second = fit_bradley_terry({1: 1.0, 2: 1.0, 3: 1.0}, matrix)

        assert first == second
