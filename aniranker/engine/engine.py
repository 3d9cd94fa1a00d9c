"""Pairwise comparison ranking engine.

The engine turns a bounded series of "which do you prefer" answers into a
consistent 1-10 rating for every item of a personal list.

Session flow:
    1. ``initialize`` builds the item store and a balanced match schedule
    2. callers read ``get_current_pair`` and answer with ``record_comparison``
       (or ``skip``); every answer lands in the comparison matrix, the item
       tallies and the undo history
    3. every few answers a short Bradley-Terry solve refreshes live strengths
    4. ``calculate_final_ratings`` runs the full solve and normalizes the
       result to display ratings

Unknown ids, empty lists and undo/redo past either end are no-ops rather
than errors. A serialized session that does not fit the items it is
restored onto resets the engine instead of being partially applied.

Dependencies:
    - aniranker.engine.scheduler: match plan and fallback pairing
    - aniranker.engine.matrix: directional win/total tallies
    - aniranker.engine.solver: Bradley-Terry MM fit
    - aniranker.engine.normalizer: strength to rating conversion
    - aniranker.engine.history: undo/redo snapshots
    - aniranker.engine.progress: progress and accuracy estimates
"""

import math
import random
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from aniranker.common.config import RankingConfig
from aniranker.common.logging import get_logger
from aniranker.common.models import (
    EngineState,
    HistoryEntry,
    Item,
    ItemSeed,
    SessionState,
    StateListener,
)
from aniranker.engine.errors import InvalidStateError
from aniranker.engine.history import HistoryManager
from aniranker.engine.matrix import ComparisonMatrix
from aniranker.engine.normalizer import DisplayMode, normalize_ratings
from aniranker.engine.progress import calculate_accuracy, calculate_progress
from aniranker.engine.scheduler import MatchScheduler, target_comparisons
from aniranker.engine.solver import fit_bradley_terry
from aniranker.engine.store import ItemStore

logger = get_logger("engine.engine")


class RankingEngine:
    """Single-session, synchronous ranking engine.

    The engine exclusively owns its item store, comparison matrix and
    history. Callers get copies and change state only through the methods
    below. Subscribers registered with ``subscribe`` receive a fresh
    EngineState after every mutating call.
    """

    def __init__(self, config: RankingConfig | None = None, rng: random.Random | None = None):
        """Initialize an empty engine.

        Args:
            config: Engine tunables (defaults when None)
            rng: Random source for scheduling (seed it for reproducible sessions)
        """
        self._config = config or RankingConfig()
        self._rng = rng or random.Random()
        self._scheduler = MatchScheduler(self._rng, self._config.schedule_rounds_multiplier)
        self._history = HistoryManager()
        self._listeners: list[StateListener] = []
        self._clear()

    def _clear(self) -> None:
        self._store = ItemStore()
        self._matrix = ComparisonMatrix()
        self._scheduler.clear()
        self._history.clear()
        self._baseline: dict[int, float] = {}
        self._current_pair: tuple[int, int] | None = None
        self._comparisons_done = 0
        self._total_comparisons = 0
        self._is_complete = False
        self._use_existing_ratings = False

    @property
    def config(self) -> RankingConfig:
        return self._config

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def initialize(
        self,
        items: Iterable[ItemSeed | Item | Mapping[str, Any]],
        use_existing_ratings: bool = False,
    ) -> None:
        """Start a new session over ``items``.

        Args:
            items: Seeds from the list parser (Item instances and plain
                mappings are accepted too; their tallies are discarded)
            use_existing_ratings: Seed strengths from prior ratings, shorten
                the session when most items carry one, and bias pairing
                toward items with similar prior ratings
        """
        self._clear()
        self._use_existing_ratings = use_existing_ratings

        fresh: list[Item] = []
        seen: set[int] = set()
        for raw in items:
            item = self._fresh_item(raw, use_existing_ratings)
            if item.id in seen:
                logger.warning("Duplicate item id ignored", metadata={"item_id": item.id})
                continue
            seen.add(item.id)
            fresh.append(item)

        self._store.replace(fresh)
        self._baseline = self._store.strengths()

        n = len(fresh)
        seeded = [item for item in fresh if self._has_prior(item)] if use_existing_ratings else []
        coverage = len(seeded) / n if n else 0.0
        reduction = (
            self._config.seeded_reduction_factor
            if seeded and coverage >= self._config.seeded_coverage_threshold
            else 1.0
        )

        seed_order: list[int] | None = None
        if seeded and self._config.seeded_pairing_bias:
            seed_order = sorted(range(n), key=lambda i: fresh[i].strength, reverse=True)

        schedule = self._scheduler.build_schedule(n, seed_order)
        self._total_comparisons = target_comparisons(
            n,
            len(schedule),
            reduction_factor=reduction,
            multiplier=self._config.target_comparisons_multiplier,
        )
        self._is_complete = n < 2 or self._total_comparisons == 0
        self._current_pair = None if self._is_complete else self._draw_pair()

        self._history.seed(self._snapshot())

        logger.info(
            "Ranking session initialized",
            metadata={
                "items": n,
                "schedule_length": len(schedule),
                "total_comparisons": self._total_comparisons,
                "seeded_items": len(seeded),
                "reduction_factor": reduction,
            },
        )
        self._notify()

    def reset(self) -> None:
        """Discard items, matrix, schedule and history."""
        self._clear()
        logger.info("Ranking session reset")
        self._notify()

    def _has_prior(self, item: Item) -> bool:
        return item.prior_rating is not None and item.prior_rating > 0

    def _fresh_item(self, raw: ItemSeed | Item | Mapping[str, Any], seeded: bool) -> Item:
        if isinstance(raw, (ItemSeed, Item)):
            data = raw.model_dump()
        else:
            data = dict(raw)
        seed = ItemSeed.model_validate(
            {key: data[key] for key in ItemSeed.model_fields if key in data}
        )
        strength = 1.0
        if seeded and seed.prior_rating is not None and seed.prior_rating > 0:
            strength = math.exp(
                (seed.prior_rating - self._config.prior_rating_center)
                / self._config.prior_rating_scale
            )
        return Item(
            id=seed.id,
            title=seed.title,
            strength=strength,
            prior_rating=seed.prior_rating,
            image_url=seed.image_url,
            media_type=seed.media_type,
        )

    # ------------------------------------------------------------------
    # Comparisons
    # ------------------------------------------------------------------

    def record_comparison(self, winner_id: int, loser_id: int) -> None:
        """Resolve one comparison in favour of ``winner_id``.

        Ids not present in the current list (or a self-comparison) are
        ignored: nothing changes and no history entry is pushed.
        """
        if winner_id == loser_id or winner_id not in self._store or loser_id not in self._store:
            logger.debug(
                "Comparison ignored: invalid reference",
                metadata={"winner_id": winner_id, "loser_id": loser_id},
            )
            return

        self._matrix.record(winner_id, loser_id)
        self._store.record_outcome(winner_id, loser_id)
        self._comparisons_done += 1

        if self._comparisons_done % self._config.incremental_interval == 0:
            self._incremental_solve()

        self._is_complete = self._comparisons_done >= self._total_comparisons
        self._current_pair = None if self._is_complete else self._draw_pair()

        self._history.push(self._snapshot(resolved=(winner_id, loser_id)))
        self._notify()

    def skip(self) -> None:
        """Serve a different pair without recording anything."""
        if self._is_complete or len(self._store) < 2:
            return
        self._current_pair = self._draw_pair()
        self._notify()

    def _draw_pair(self) -> tuple[int, int] | None:
        pair = self._scheduler.next_pair(self._store.as_list())
        if pair is None:
            return None
        return pair[0].id, pair[1].id

    def _incremental_solve(self) -> None:
        result = fit_bradley_terry(
            self._store.strengths(),
            self._matrix,
            max_iterations=self._config.incremental_max_iterations,
            tolerance=self._config.incremental_tolerance,
            floor=self._config.strength_floor,
        )
        self._store.apply_strengths(result.strengths)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _snapshot(self, resolved: tuple[int, int] | None = None) -> HistoryEntry:
        # Fields come straight from engine state; skip re-validating every item
        return HistoryEntry.model_construct(
            items=self._store.snapshot(),
            current_pair=self._current_pair,
            comparisons_done=self._comparisons_done,
            scheduler_cursor=self._scheduler.cursor,
            resolved=resolved,
        )

    def _apply_snapshot(self, entry: HistoryEntry) -> None:
        self._store.replace(entry.items)
        self._scheduler.cursor = entry.scheduler_cursor
        self._comparisons_done = entry.comparisons_done
        self._current_pair = entry.current_pair

    def undo(self) -> None:
        """Rewind to the previous comparison; no-op at the root."""
        undone = self._history.current
        entry = self._history.undo()
        if entry is None:
            return
        if undone is not None and undone.resolved is not None:
            self._matrix.unrecord(*undone.resolved)
        self._apply_snapshot(entry)
        self._is_complete = False
        if self._current_pair is None:
            self._current_pair = self._draw_pair()
        self._notify()

    def redo(self) -> None:
        """Re-apply an undone comparison; no-op at the top."""
        entry = self._history.redo()
        if entry is None:
            return
        if entry.resolved is not None:
            self._matrix.record(*entry.resolved)
        self._apply_snapshot(entry)
        self._is_complete = self._comparisons_done >= self._total_comparisons
        if self._is_complete:
            self._current_pair = None
        elif self._current_pair is None:
            self._current_pair = self._draw_pair()
        self._notify()

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def items(self) -> list[Item]:
        return self._store.copies()

    @property
    def comparison_matrix(self) -> ComparisonMatrix:
        return self._matrix.copy()

    @property
    def state(self) -> EngineState:
        return EngineState.model_construct(
            current_pair=self.get_current_pair(),
            comparisons_done=self._comparisons_done,
            total_comparisons=self._total_comparisons,
            is_complete=self._is_complete,
            comparison_matrix=self._matrix.as_dict(),
            can_undo=self._history.can_undo,
            can_redo=self._history.can_redo,
        )

    def get_current_pair(self) -> tuple[Item, Item] | None:
        if self._current_pair is None:
            return None
        left = self._store.get(self._current_pair[0])
        right = self._store.get(self._current_pair[1])
        if left is None or right is None:
            return None
        return left.model_copy(), right.model_copy()

    def get_progress(self) -> int:
        return calculate_progress(self._comparisons_done, self._total_comparisons)

    def get_accuracy(self) -> int:
        return calculate_accuracy(
            self._store.as_list(),
            self._comparisons_done,
            self._config.schedule_rounds_multiplier,
        )

    def get_live_ratings(self, display_mode: DisplayMode = "zscore") -> list[Item]:
        """Ratings from the latest incremental strengths, without solving.

        May lag behind the last few comparisons; use calculate_final_ratings
        for anything that leaves the session.
        """
        return normalize_ratings(self._store.copies(), self._config, display_mode)

    def calculate_final_ratings(self, display_mode: DisplayMode = "zscore") -> list[Item]:
        """Run the full Bradley-Terry solve and return rated copies, best first.

        The solve always starts from the session's baseline strengths, so the
        result depends only on the recorded comparisons. The item store is not
        modified.
        """
        if len(self._store) == 0:
            return []

        starting = {
            item_id: self._baseline.get(item_id, 1.0) for item_id in self._store.ids()
        }
        result = fit_bradley_terry(
            starting,
            self._matrix,
            max_iterations=self._config.final_max_iterations,
            tolerance=self._config.final_tolerance,
            floor=self._config.strength_floor,
        )

        logger.info(
            "Final ratings calculated",
            metadata={
                "items": len(self._store),
                "comparisons": self._comparisons_done,
                "iterations": result.iterations,
                "converged": result.converged,
            },
        )

        fitted = [
            item.model_copy(update={"strength": result.strengths[item.id]})
            for item in self._store.as_list()
        ]
        return normalize_ratings(fitted, self._config, display_mode)

    def get_upcoming_candidates(self, count: int) -> list[Item]:
        """Items likely to be shown next, for image prefetching.

        The current pair comes first, then items from the upcoming scheduled
        matches, then the least-compared items.
        """
        if count <= 0 or len(self._store) == 0:
            return []

        ordered_ids: list[int] = []
        if self._current_pair is not None:
            ordered_ids.extend(self._current_pair)

        items = self._store.as_list()
        for item_index in self._scheduler.upcoming_item_indices(count):
            if item_index < len(items):
                ordered_ids.append(items[item_index].id)

        for item in sorted(items, key=lambda item: item.comparisons):
            ordered_ids.append(item.id)

        result: list[Item] = []
        seen: set[int] = set()
        for item_id in ordered_ids:
            if item_id in seen:
                continue
            seen.add(item_id)
            item = self._store.get(item_id)
            if item is not None:
                result.append(item.model_copy())
            if len(result) >= count:
                break
        return result

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize_state(self) -> dict[str, Any]:
        """Export the session as a JSON-compatible mapping.

        Items are not included; the persistence layer stores them beside the
        blob and hands both back to ``restore_state``.
        """
        state = SessionState(
            comparisons_done=self._comparisons_done,
            total_comparisons=self._total_comparisons,
            is_complete=self._is_complete,
            current_pair=self._current_pair,
            matrix=self._matrix.to_entries(),
            schedule=self._scheduler.schedule,
            slots=self._scheduler.slots,
            cursor=self._scheduler.cursor,
            baseline_strengths=self._baseline,
            use_existing_ratings=self._use_existing_ratings,
        )
        return state.model_dump(mode="json")

    def restore_state(
        self,
        items: Iterable[Item | Mapping[str, Any]],
        state: SessionState | Mapping[str, Any],
    ) -> None:
        """Resume a serialized session over ``items``.

        Items added since the state was saved are welcome: the schedule is
        rebuilt around them. Anything else that does not fit (bad shape,
        unknown ids, fewer items than the saved schedule) resets the engine
        to the empty state.
        """
        try:
            self._restore(items, state)
        except (ValidationError, InvalidStateError, TypeError, ValueError) as e:
            logger.warning(
                "Discarding unusable session state",
                metadata={"error_type": type(e).__name__, "error": str(e)},
            )
            self._clear()
        self._notify()

    def _restore(
        self,
        items: Iterable[Item | Mapping[str, Any]],
        state: SessionState | Mapping[str, Any],
    ) -> None:
        parsed = state if isinstance(state, SessionState) else SessionState.model_validate(state)
        restored = [
            item.model_copy() if isinstance(item, Item) else Item.model_validate(item)
            for item in items
        ]

        ids = [item.id for item in restored]
        id_set = set(ids)
        if len(id_set) != len(ids):
            raise InvalidStateError("duplicate item ids")
        if not self._matrix_ids(parsed) <= id_set:
            raise InvalidStateError("matrix references items that are not in the list")
        if not set(parsed.baseline_strengths) <= id_set:
            raise InvalidStateError("baseline strengths reference unknown items")
        if parsed.current_pair is not None and not set(parsed.current_pair) <= id_set:
            raise InvalidStateError("current pair references unknown items")

        n = len(restored)
        stored_slots = len(parsed.slots)
        if stored_slots > n:
            raise InvalidStateError(f"state was saved for {stored_slots} items, got {n}")
        if sorted(parsed.slots) != list(range(stored_slots)):
            raise InvalidStateError("slot permutation is malformed")
        for match in parsed.schedule:
            if max(match.left_index, match.right_index) >= stored_slots:
                raise InvalidStateError("schedule references unknown slots")

        self._clear()
        self._use_existing_ratings = parsed.use_existing_ratings
        self._store.replace(restored)
        self._matrix = ComparisonMatrix.from_entries(parsed.matrix)
        self._baseline = {item_id: parsed.baseline_strengths.get(item_id, 1.0) for item_id in ids}
        self._comparisons_done = parsed.comparisons_done

        if stored_slots == n:
            self._scheduler.restore(parsed.schedule, parsed.slots, parsed.cursor)
            self._total_comparisons = parsed.total_comparisons
            self._is_complete = parsed.is_complete
            self._current_pair = None if self._is_complete else parsed.current_pair
        else:
            schedule = self._scheduler.build_schedule(n)
            self._total_comparisons = max(
                parsed.total_comparisons,
                target_comparisons(
                    n, len(schedule), multiplier=self._config.target_comparisons_multiplier
                ),
            )
            self._is_complete = n < 2 or self._comparisons_done >= self._total_comparisons
            self._current_pair = None
            logger.info(
                "Schedule rebuilt for extended list",
                metadata={"previous_items": stored_slots, "items": n},
            )

        if not self._is_complete and self._current_pair is None:
            self._current_pair = self._draw_pair()

        self._history.seed(self._snapshot())

    @staticmethod
    def _matrix_ids(state: SessionState) -> set[int]:
        ids: set[int] = set()
        for entry in state.matrix:
            ids.add(entry.first_id)
            ids.add(entry.second_id)
        return ids

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` for state snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)
