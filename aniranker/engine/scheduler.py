"""Balanced match scheduling for pairwise comparison sessions.

The schedule is built in rounds. Each round shuffles the slot space, stably
sorts it by how many matches each slot already has, and pairs neighbours.
With ``k = comparisons_per_item(n)`` rounds an even list gives every item
exactly ``k`` matches. An odd list sits one slot out per round, so when
``k`` exceeds ``n`` some slots fall to ``k - 2``; a short top-up pass then
pairs the least-scheduled slots until none is below ``k - 1``. Every item
ends up with ``k - 1`` to ``k`` matches, within ``k`` give or take one.

Once the prebuilt schedule runs out, pairs are drawn at random from the
least-compared half of the list.
"""

import math
import random

from aniranker.common.models import Item, Match


def comparisons_per_item(n: int, multiplier: float = 3.0) -> int:
    """Number of scheduling rounds: ``ceil(log2(n + 1) * multiplier)``.

    Example:
        >>> comparisons_per_item(2)
        5
        >>> comparisons_per_item(10)
        11
    """
    if n <= 0:
        return 0
    return math.ceil(math.log2(n + 1) * multiplier)


def target_comparisons(
    n: int,
    schedule_length: int,
    reduction_factor: float = 1.0,
    multiplier: float = 2.0,
) -> int:
    """How many comparisons a session asks of the user.

    ``min(schedule_length, ceil(ceil(n * log2(n + 1) * multiplier) * reduction_factor))``

    Example:
        >>> target_comparisons(10, 55)
        55
        >>> target_comparisons(10, 55, reduction_factor=0.6)
        42
    """
    if n < 2:
        return 0
    base = math.ceil(n * math.log2(n + 1) * multiplier)
    return min(schedule_length, math.ceil(base * reduction_factor))


class MatchScheduler:
    """Builds a balanced match plan and serves it one pair at a time.

    Matches index *slots*; ``slots[s]`` is the position of the item in the
    engine's item list. The slot permutation is drawn once per schedule so
    presentation is not tied to import order.
    """

    def __init__(self, rng: random.Random | None = None, rounds_multiplier: float = 3.0):
        self._rng = rng or random.Random()
        self._rounds_multiplier = rounds_multiplier
        self.schedule: list[Match] = []
        self.slots: list[int] = []
        self.cursor = 0

    def build_schedule(self, n: int, seed_order: list[int] | None = None) -> list[Match]:
        """Build and install a fresh schedule for ``n`` items.

        Args:
            n: Number of items
            seed_order: Optional item indices ordered by prior strength. On
                even rounds it breaks ties between equally-scheduled slots so
                items with similar prior ratings meet each other.

        Returns:
            The installed list of matches (cursor reset to 0)
        """
        self.slots = list(range(n))
        self._rng.shuffle(self.slots)
        self.cursor = 0

        seed_rank: list[int] | None = None
        if seed_order is not None and n > 0:
            position = {item_index: rank for rank, item_index in enumerate(seed_order)}
            seed_rank = [position.get(item_index, n) for item_index in self.slots]

        counts = [0] * n
        matches: list[Match] = []

        rounds = comparisons_per_item(n, self._rounds_multiplier)
        for round_number in range(rounds):
            order = list(range(n))
            self._rng.shuffle(order)
            if seed_rank is not None and round_number % 2 == 0:
                order.sort(key=lambda s: (counts[s], seed_rank[s]))
            else:
                order.sort(key=lambda s: counts[s])

            for k in range(0, n - 1, 2):
                left, right = order[k], order[k + 1]
                matches.append(Match(left_index=left, right_index=right))
                counts[left] += 1
                counts[right] += 1

        if n >= 2:
            matches.extend(self._top_up(counts, rounds - 1))

        self._rng.shuffle(matches)
        self.schedule = matches
        return matches

    def _top_up(self, counts: list[int], minimum: int) -> list[Match]:
        """Pair the least-scheduled slots until every slot has ``minimum`` matches."""
        extra: list[Match] = []
        while min(counts) < minimum:
            order = list(range(len(counts)))
            self._rng.shuffle(order)
            order.sort(key=lambda s: counts[s])
            left, right = order[0], order[1]
            extra.append(Match(left_index=left, right_index=right))
            counts[left] += 1
            counts[right] += 1
        return extra

    def restore(self, schedule: list[Match], slots: list[int], cursor: int) -> None:
        self.schedule = list(schedule)
        self.slots = list(slots)
        self.cursor = cursor

    def clear(self) -> None:
        self.schedule = []
        self.slots = []
        self.cursor = 0

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.schedule)

    def scheduled_counts(self) -> dict[int, int]:
        """Number of scheduled matches per item index."""
        counts = {item_index: 0 for item_index in self.slots}
        for match in self.schedule:
            counts[self.slots[match.left_index]] += 1
            counts[self.slots[match.right_index]] += 1
        return counts

    def next_pair(self, items: list[Item]) -> tuple[Item, Item] | None:
        """Serve the next scheduled pair, or a least-compared random pair.

        Returns:
            Two distinct items, or None when fewer than two items exist
        """
        if len(items) < 2:
            return None

        if self.cursor < len(self.schedule):
            match = self.schedule[self.cursor]
            self.cursor += 1
            pair = self._resolve(match, items)
            if pair is not None:
                return pair

        return self.random_pair(items)

    def _resolve(self, match: Match, items: list[Item]) -> tuple[Item, Item] | None:
        try:
            left = items[self.slots[match.left_index]]
            right = items[self.slots[match.right_index]]
        except IndexError:
            return None
        return left, right

    def random_pair(self, items: list[Item]) -> tuple[Item, Item] | None:
        """Draw two distinct items from the least-compared half of the list."""
        if len(items) < 2:
            return None

        by_comparisons = sorted(items, key=lambda item: item.comparisons)
        pool = by_comparisons[: max(2, math.ceil(len(items) / 2))]

        first = self._rng.randrange(len(pool))
        second = self._rng.randrange(len(pool))
        while second == first and len(pool) > 1:
            second = self._rng.randrange(len(pool))

        return pool[first], pool[second]

    def upcoming_item_indices(self, count: int) -> list[int]:
        """Distinct item indices appearing in the next scheduled matches."""
        result: list[int] = []
        seen: set[int] = set()
        for match in self.schedule[self.cursor :]:
            if len(result) >= count:
                break
            for slot in (match.left_index, match.right_index):
                if slot >= len(self.slots):
                    continue
                item_index = self.slots[slot]
                if item_index not in seen and len(result) < count:
                    seen.add(item_index)
                    result.append(item_index)
        return result
