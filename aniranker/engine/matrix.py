"""Sparse directional win/total tallies over compared item pairs.

For every ordered pair ``(i, j)`` the matrix stores how often ``i`` beat
``j`` and how often the two were compared in either direction. Both
directions are kept as independent cells that always share ``total``.
"""

from collections.abc import Iterator

from aniranker.common.models import MatrixEntry, PairRecord

_EMPTY = PairRecord()


class ComparisonMatrix:
    """Accumulates pairwise outcomes. No eviction; size grows with distinct pairs."""

    def __init__(self, cells: dict[tuple[int, int], PairRecord] | None = None) -> None:
        self._cells: dict[tuple[int, int], PairRecord] = dict(cells or {})

    def record(self, winner_id: int, loser_id: int) -> None:
        """Count one win of ``winner_id`` over ``loser_id``."""
        forward = self._cells.get((winner_id, loser_id), _EMPTY)
        backward = self._cells.get((loser_id, winner_id), _EMPTY)
        self._cells[(winner_id, loser_id)] = PairRecord(
            wins=forward.wins + 1, total=forward.total + 1
        )
        self._cells[(loser_id, winner_id)] = PairRecord(
            wins=backward.wins, total=backward.total + 1
        )

    def unrecord(self, winner_id: int, loser_id: int) -> None:
        """Take back one win of ``winner_id`` over ``loser_id``.

        Cells whose total drops to zero are removed, so recording and then
        unrecording leaves the matrix exactly as it was. Unknown pairs are
        ignored.
        """
        forward = self._cells.get((winner_id, loser_id))
        backward = self._cells.get((loser_id, winner_id))
        if forward is None or backward is None or forward.wins == 0:
            return
        if forward.total == 1:
            del self._cells[(winner_id, loser_id)]
            del self._cells[(loser_id, winner_id)]
            return
        self._cells[(winner_id, loser_id)] = PairRecord(
            wins=forward.wins - 1, total=forward.total - 1
        )
        self._cells[(loser_id, winner_id)] = PairRecord(
            wins=backward.wins, total=backward.total - 1
        )

    def lookup(self, first_id: int, second_id: int) -> PairRecord:
        """Return the tally for ``(first_id, second_id)``, or a zero entry."""
        return self._cells.get((first_id, second_id), _EMPTY)

    def wins_by_item(self) -> dict[int, int]:
        """Total wins of every item that appears in the matrix."""
        wins: dict[int, int] = {}
        for (first_id, _), cell in self._cells.items():
            wins[first_id] = wins.get(first_id, 0) + cell.wins
        return wins

    def opponents(self) -> dict[int, list[tuple[int, int]]]:
        """Map each item to ``(opponent_id, comparison_count)`` pairs.

        The comparison count between i and j is ``wins(i, j) + wins(j, i)``,
        which equals the shared ``total``.
        """
        result: dict[int, list[tuple[int, int]]] = {}
        for (first_id, second_id), cell in self._cells.items():
            if cell.total > 0:
                result.setdefault(first_id, []).append((second_id, cell.total))
        return result

    def item_ids(self) -> set[int]:
        ids: set[int] = set()
        for first_id, second_id in self._cells:
            ids.add(first_id)
            ids.add(second_id)
        return ids

    def copy(self) -> "ComparisonMatrix":
        return ComparisonMatrix(self._cells)

    def as_dict(self) -> dict[tuple[int, int], PairRecord]:
        """Shallow copy of the cells; PairRecord values are immutable."""
        return dict(self._cells)

    def to_entries(self) -> list[MatrixEntry]:
        return [
            MatrixEntry(first_id=first_id, second_id=second_id, wins=cell.wins, total=cell.total)
            for (first_id, second_id), cell in sorted(self._cells.items())
        ]

    @classmethod
    def from_entries(cls, entries: list[MatrixEntry]) -> "ComparisonMatrix":
        return cls(
            {
                (entry.first_id, entry.second_id): PairRecord(wins=entry.wins, total=entry.total)
                for entry in entries
            }
        )

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[tuple[int, int]]:
        return iter(self._cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ComparisonMatrix):
            return NotImplemented
        return self._cells == other._cells
