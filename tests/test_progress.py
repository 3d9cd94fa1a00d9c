"""Tests for progress and accuracy estimates."""

import pytest

from aniranker.common.models import Item
from aniranker.engine.progress import (
    calculate_accuracy,
    calculate_balance,
    calculate_coverage,
    calculate_progress,
)


def _items(*comparisons: int) -> list[Item]:
    return [
        Item(id=i, title=f"Item {i}", comparisons=c, wins=c)
        for i, c in enumerate(comparisons, start=1)
    ]


class TestProgress:
    @pytest.mark.parametrize(
        ("done", "total", "expected"),
        [(0, 55, 0), (11, 55, 20), (1, 8, 13), (55, 55, 100), (60, 55, 100), (3, 0, 0)],
    )
    def test_percentage(self, done: int, total: int, expected: int) -> None:
        assert calculate_progress(done, total) == expected


class TestAccuracy:
    def test_zero_before_first_comparison(self) -> None:
        assert calculate_accuracy(_items(0, 0, 0), 0) == 0

    def test_empty_list(self) -> None:
        assert calculate_accuracy([], 4) == 0

    def test_coverage_is_capped(self) -> None:
        # Ideal for three items is ceil(2 * 3) = 6 comparisons each
        assert calculate_coverage(_items(3, 3, 3)) == pytest.approx(50.0)
        assert calculate_coverage(_items(12, 12, 12)) == 100.0

    def test_balance(self) -> None:
        assert calculate_balance(_items(2, 4)) == pytest.approx(50.0)
        assert calculate_balance(_items(0, 0)) == 0.0

    def test_weighted_blend(self) -> None:
        # coverage 50, balance 100 -> 0.7 * 50 + 0.3 * 100 = 65
        assert calculate_accuracy(_items(3, 3, 3), 4) == 65

    def test_unbalanced_session(self) -> None:
        # coverage (6 / 3) / 6 = 33.3, balance 0 -> 23.3
        assert calculate_accuracy(_items(6, 0, 0), 6) == 23
