"""Item store: the ranked entries of one session, owned by the engine.

Items are pydantic models treated as values. Every update swaps in a new
Item so snapshots taken earlier can share the old objects safely.
"""

from collections.abc import Iterable

from aniranker.common.models import Item


class ItemStore:
    def __init__(self, items: Iterable[Item] = ()) -> None:
        self.replace(items)

    def replace(self, items: Iterable[Item]) -> None:
        self._items: list[Item] = list(items)
        self._positions: dict[int, int] = {item.id: i for i, item in enumerate(self._items)}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._positions

    def get(self, item_id: int) -> Item | None:
        position = self._positions.get(item_id)
        if position is None:
            return None
        return self._items[position]

    def position(self, item_id: int) -> int | None:
        return self._positions.get(item_id)

    def ids(self) -> list[int]:
        return [item.id for item in self._items]

    def as_list(self) -> list[Item]:
        """The live list; callers inside the engine must not mutate its items."""
        return self._items

    def snapshot(self) -> tuple[Item, ...]:
        return tuple(self._items)

    def copies(self) -> list[Item]:
        return [item.model_copy() for item in self._items]

    def record_outcome(self, winner_id: int, loser_id: int) -> None:
        """Bump comparison, win and loss tallies for one resolved comparison."""
        winner_position = self._positions[winner_id]
        loser_position = self._positions[loser_id]
        winner = self._items[winner_position]
        loser = self._items[loser_position]
        self._items[winner_position] = winner.model_copy(
            update={"comparisons": winner.comparisons + 1, "wins": winner.wins + 1}
        )
        self._items[loser_position] = loser.model_copy(
            update={"comparisons": loser.comparisons + 1, "losses": loser.losses + 1}
        )

    def strengths(self) -> dict[int, float]:
        return {item.id: item.strength for item in self._items}

    def apply_strengths(self, strengths: dict[int, float]) -> None:
        for position, item in enumerate(self._items):
            value = strengths.get(item.id)
            if value is not None and value != item.strength:
                self._items[position] = item.model_copy(update={"strength": value})
