"""Tests for the comparison matrix."""

from aniranker.common.models import MatrixEntry, PairRecord
from aniranker.engine.matrix import ComparisonMatrix


class TestComparisonMatrix:
    """Tests for ComparisonMatrix."""

    def test_record_updates_both_directions(self) -> None:
        matrix = ComparisonMatrix()

        matrix.record(1, 2)

        assert matrix.lookup(1, 2) == PairRecord(wins=1, total=1)
        assert matrix.lookup(2, 1) == PairRecord(wins=0, total=1)

    def test_totals_stay_shared(self) -> None:
        matrix = ComparisonMatrix()

        matrix.record(1, 2)
        matrix.record(2, 1)
        matrix.record(2, 1)

        forward = matrix.lookup(1, 2)
        backward = matrix.lookup(2, 1)
        assert forward.total == backward.total == 3
        assert forward.wins + backward.wins == 3

    def test_unrecord_takes_back_one_win(self) -> None:
        matrix = ComparisonMatrix()
        matrix.record(1, 2)
        matrix.record(1, 2)
        matrix.record(2, 1)

        matrix.unrecord(1, 2)

        assert matrix.lookup(1, 2) == PairRecord(wins=1, total=2)
        assert matrix.lookup(2, 1) == PairRecord(wins=1, total=2)

    def test_unrecord_last_comparison_removes_cells(self) -> None:
        matrix = ComparisonMatrix()
        matrix.record(1, 2)

        matrix.unrecord(1, 2)

        assert matrix == ComparisonMatrix()
        assert len(matrix) == 0

    def test_unrecord_without_matching_win_is_noop(self) -> None:
        matrix = ComparisonMatrix()
        matrix.record(2, 1)

        matrix.unrecord(1, 2)
        matrix.unrecord(3, 4)

        assert matrix.lookup(2, 1) == PairRecord(wins=1, total=1)

    def test_lookup_missing_pair_is_zero(self) -> None:
        assert ComparisonMatrix().lookup(4, 5) == PairRecord(wins=0, total=0)

    def test_wins_by_item(self) -> None:
        matrix = ComparisonMatrix()
        matrix.record(1, 2)
        matrix.record(1, 3)
        matrix.record(3, 2)

        assert matrix.wins_by_item() == {1: 2, 2: 0, 3: 1}

    def test_opponents_use_pair_totals(self) -> None:
        matrix = ComparisonMatrix()
        matrix.record(1, 2)
        matrix.record(2, 1)
        matrix.record(1, 3)

        opponents = matrix.opponents()

        assert sorted(opponents[1]) == [(2, 2), (3, 1)]
        assert opponents[3] == [(1, 1)]

    def test_copy_is_independent(self) -> None:
        matrix = ComparisonMatrix()
        matrix.record(1, 2)

        clone = matrix.copy()
        clone.record(1, 2)

        assert matrix.lookup(1, 2).wins == 1
        assert clone.lookup(1, 2).wins == 2

    def test_entries_round_trip(self) -> None:
        matrix = ComparisonMatrix()
        matrix.record(3, 1)
        matrix.record(2, 3)

        entries = matrix.to_entries()

        assert entries[0] == MatrixEntry(first_id=1, second_id=3, wins=0, total=1)
        assert ComparisonMatrix.from_entries(entries) == matrix

    def test_item_ids_and_len(self) -> None:
        matrix = ComparisonMatrix()
        matrix.record(7, 8)

        assert matrix.item_ids() == {7, 8}
        assert len(matrix) == 2
        assert set(matrix) == {(7, 8), (8, 7)}
