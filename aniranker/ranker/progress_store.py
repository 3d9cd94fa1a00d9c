"""Progress store for saving and resuming ranking sessions.

A session is saved as one JSON document: the items, the original MAL
export (needed to write scores back), the engine blob and where the user
was. Saved progress expires after ``max_age_days``; expired or unreadable
files are treated as absent.

Dependencies:
    - aniranker.common.persistence: atomic JSON read/write under a file lock
"""

from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from aniranker.common.logging import get_logger
from aniranker.common.models import RankingProgress
from aniranker.common.persistence import delete_file, read_json, write_json

logger = get_logger("ranker.progress_store")


class ProgressStore:
    """Persists one in-flight ranking session on disk."""

    def __init__(self, path: Path | str | None = None, max_age_days: float = 7.0):
        """Initialize ProgressStore.

        Args:
            path: Path to the progress file (default: data/progress.json)
            max_age_days: Age after which saved progress is discarded
        """
        self._path = Path(path) if path is not None else Path("data/progress.json")
        self._max_age = timedelta(days=max_age_days)

    @property
    def path(self) -> Path:
        return self._path

    def save(self, progress: RankingProgress) -> None:
        """Write ``progress`` stamped with the current time.

        Write failures are logged and swallowed; losing a save must not end
        the ranking session.
        """
        stamped = progress.model_copy(update={"timestamp": datetime.now(tz=UTC)})
        try:
            write_json(self._path, stamped)
        except OSError as e:
            logger.warning(
                "Failed to save progress", metadata={"path": str(self._path), "error": str(e)}
            )

    def load(self, now: datetime | None = None) -> RankingProgress | None:
        """Load saved progress if present, readable and not expired.

        Args:
            now: Reference time for the expiry check (defaults to current UTC time)

        Returns:
            The saved RankingProgress, or None
        """
        try:
            progress = read_json(self._path, RankingProgress)
        except FileNotFoundError:
            return None
        except (OSError, ValidationError, ValueError) as e:
            logger.warning(
                "Failed to load progress", metadata={"path": str(self._path), "error": str(e)}
            )
            return None

        now = now or datetime.now(tz=UTC)
        timestamp = progress.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)

        if now - timestamp > self._max_age:
            logger.info("Saved progress expired", metadata={"saved_at": timestamp.isoformat()})
            self.clear()
            return None

        return progress

    def clear(self) -> None:
        delete_file(self._path)

    def has_progress(self) -> bool:
        return self._path.exists()
