"""Session service coordinating the engine with import, export and saving.

The engine only knows ids and comparisons. This service adds what an
interactive front end needs around it: starting from a parsed MAL export,
answering "left" or "right" for the pair on screen, saving after every
action, resuming a saved session and exporting the final scores.

Dependencies:
    - aniranker.engine: RankingEngine
    - aniranker.ranker.progress_store: ProgressStore
    - aniranker.importer.mal_parser: ParsedList and MAL exporters
"""

from typing import Literal

from aniranker.common.logging import get_logger, new_session_id, set_session_id
from aniranker.common.models import Item, MediaType, RankingProgress
from aniranker.engine.engine import RankingEngine
from aniranker.engine.errors import InsufficientItemsError
from aniranker.engine.normalizer import DisplayMode
from aniranker.importer.mal_parser import ParsedList, export_mal_json, export_mal_xml
from aniranker.ranker.progress_store import ProgressStore

logger = get_logger("ranker.session_service")

Side = Literal["left", "right"]


class SessionService:
    """Runs one ranking session and keeps its saved copy current."""

    def __init__(self, engine: RankingEngine, store: ProgressStore) -> None:
        self._engine = engine
        self._store = store
        self._original_xml = ""
        self._media_type: MediaType = "anime"
        self._ranked: list[Item] | None = None

    @property
    def engine(self) -> RankingEngine:
        return self._engine

    @property
    def media_type(self) -> MediaType:
        return self._media_type

    @property
    def ranked_items(self) -> list[Item] | None:
        return self._ranked

    def start(self, parsed: ParsedList, use_existing_ratings: bool = False) -> None:
        """Begin a new session from a parsed list, replacing any saved one.

        Raises:
            InsufficientItemsError: If the list has fewer than two entries
        """
        if len(parsed.items) < 2:
            raise InsufficientItemsError(
                f"At least 2 entries are needed to rank, found {len(parsed.items)}",
                item_count=len(parsed.items),
            )

        set_session_id(new_session_id())
        self._original_xml = parsed.original_xml
        self._media_type = parsed.media_type
        self._ranked = None
        self._engine.initialize(parsed.items, use_existing_ratings=use_existing_ratings)
        self.save()

    def resume(self) -> bool:
        """Restore the saved session, if any.

        Returns:
            True when a session with items was restored
        """
        progress = self._store.load()
        if progress is None:
            return False

        self._engine.restore_state(progress.items, progress.session_state)
        if not self._engine.items:
            logger.warning("Saved session could not be restored; starting over")
            self._store.clear()
            return False

        set_session_id(new_session_id())
        self._original_xml = progress.original_xml
        self._media_type = progress.media_type
        self._ranked = progress.ranked_items
        logger.info(
            "Session resumed",
            metadata={
                "items": len(progress.items),
                "comparisons_done": self._engine.state.comparisons_done,
            },
        )
        return True

    def choose(self, side: Side) -> bool:
        """Record the on-screen pair with ``side`` as the preferred entry.

        Returns:
            False when there is no pair to answer
        """
        pair = self._engine.get_current_pair()
        if pair is None:
            return False
        left, right = pair
        winner, loser = (left, right) if side == "left" else (right, left)
        self._engine.record_comparison(winner.id, loser.id)
        self._ranked = None
        self.save()
        return True

    def skip(self) -> None:
        self._engine.skip()
        self.save()

    def undo(self) -> None:
        self._engine.undo()
        self._ranked = None
        self.save()

    def redo(self) -> None:
        self._engine.redo()
        self._ranked = None
        self.save()

    def finish(self, display_mode: DisplayMode = "zscore") -> list[Item]:
        """Compute final ratings and save them with the session."""
        self._ranked = self._engine.calculate_final_ratings(display_mode)
        self.save()
        return self._ranked

    def export_xml(self) -> str:
        ranked = self._ranked or self._engine.calculate_final_ratings()
        return export_mal_xml(self._original_xml, ranked, self._media_type)

    def export_json(self) -> str:
        ranked = self._ranked or self._engine.calculate_final_ratings()
        return export_mal_json(ranked)

    def save(self) -> None:
        state = self._engine.state
        progress = RankingProgress(
            items=self._engine.items,
            original_xml=self._original_xml,
            media_type=self._media_type,
            session_state=self._engine.serialize_state(),
            view_state="results" if state.is_complete and self._ranked else "comparing",
            ranked_items=self._ranked,
        )
        self._store.save(progress)

    def discard(self) -> None:
        """Forget the session, both in memory and on disk."""
        self._engine.reset()
        self._store.clear()
        self._ranked = None
        set_session_id(None)
