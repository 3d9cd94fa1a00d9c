"""Structured JSON-lines logging for aniranker.

Every entry is one JSON object per line with a timestamp, level, logger
name and message, plus the current session id (when a ranking session is
active) and an optional metadata mapping.
"""

import json
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from filelock import FileLock

DEFAULT_LOG_PATH = Path("data/logs/aniranker.jsonl")

_LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40}

_session_id: ContextVar[str | None] = ContextVar("session_id", default=None)


def new_session_id() -> str:
    """Generate an identifier for a ranking session.

    Returns:
        UUID4 string, or an ISO8601 timestamp if no entropy source is available

    Example:
        >>> sid = new_session_id()
        >>> isinstance(sid, str) and len(sid) > 0
        True
    """
    try:
        return str(uuid.uuid4())
    except OSError:
        return datetime.now(tz=UTC).isoformat()


def set_session_id(session_id: str | None) -> None:
    """Bind a session id to the current context (None clears it).

    Example:
        >>> set_session_id("abc123")
        >>> get_session_id()
        'abc123'
        >>> set_session_id(None)
        >>> get_session_id() is None
        True
    """
    _session_id.set(session_id)


def get_session_id() -> str | None:
    return _session_id.get()


class JSONLogger:
    """Logger that appends JSON lines to a file under a file lock."""

    def __init__(
        self,
        name: str,
        log_path: str | Path = DEFAULT_LOG_PATH,
        min_level: str = "debug",
    ):
        self.name = name
        self.min_level = min_level
        self.log_path = log_path

    @property
    def log_path(self) -> Path:
        """Get the log file path."""
        return self._log_path

    @log_path.setter
    def log_path(self, value: str | Path) -> None:
        """Set the log file path, creating its parent directory."""
        self._log_path = Path(value)
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock_path = self._log_path.with_suffix(self._log_path.suffix + ".lock")

    def _serialize_value(self, value: Any) -> Any:
        """Convert non-serializable values to a JSON-friendly form."""
        if isinstance(value, (str, int, float, bool, type(None))):
            return value
        if isinstance(value, (list, tuple, set)):
            return [self._serialize_value(v) for v in value]
        if isinstance(value, dict):
            return {str(k): self._serialize_value(v) for k, v in value.items()}
        return str(value)

    def _log(self, level: str, message: str, metadata: dict[str, Any] | None = None) -> None:
        if _LEVELS[level] < _LEVELS.get(self.min_level, 10):
            return

        entry: dict[str, Any] = {
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "level": level,
            "logger": self.name,
            "message": message,
        }

        session_id = get_session_id()
        if session_id:
            entry["session_id"] = session_id

        if metadata:
            entry["metadata"] = self._serialize_value(metadata)

        json_line = json.dumps(entry, ensure_ascii=False)

        with FileLock(self._lock_path):
            with self._log_path.open("a", encoding="utf-8") as f:
                f.write(json_line + "\n")

    def debug(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._log("debug", message, metadata)

    def info(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._log("info", message, metadata)

    def warning(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._log("warning", message, metadata)

    def error(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._log("error", message, metadata)


_loggers: dict[str, JSONLogger] = {}
_log_path: Path = DEFAULT_LOG_PATH
_min_level: str = "debug"


def configure_logging(log_path: str | Path, min_level: str = "debug") -> None:
    """Point every logger (existing and future) at a new log file.

    Args:
        log_path: Destination JSONL file
        min_level: Entries below this level are dropped
    """
    global _log_path, _min_level
    _log_path = Path(log_path)
    _min_level = min_level
    for logger in _loggers.values():
        logger.log_path = _log_path
        logger.min_level = min_level


def get_logger(name: str) -> JSONLogger:
    """Get or create a logger with the given name.

    Args:
        name: Logger name (typically the module name, e.g. "engine.solver")

    Returns:
        JSONLogger instance
    """
    if name not in _loggers:
        _loggers[name] = JSONLogger(name, _log_path, _min_level)
    return _loggers[name]
