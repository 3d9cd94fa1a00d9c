"""Undo/redo history over the comparison sequence.

The history is a linear log of snapshots plus a pointer. Recording a new
comparison after undoing discards the redoable branch, as in any editor.
Skips are never recorded.
"""

from aniranker.common.models import HistoryEntry


class HistoryManager:
    """Snapshot stack with a pointer (``-1`` when empty)."""

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []
        self._pointer: int = -1

    def seed(self, entry: HistoryEntry) -> None:
        """Start a fresh history whose root is ``entry``."""
        self._entries = [entry]
        self._pointer = 0

    def push(self, entry: HistoryEntry) -> None:
        """Drop any redoable entries, append ``entry`` and move onto it."""
        del self._entries[self._pointer + 1 :]
        self._entries.append(entry)
        self._pointer = len(self._entries) - 1

    def undo(self) -> HistoryEntry | None:
        """Step back one entry.

        Returns:
            The snapshot to restore, or None when already at the root
        """
        if not self.can_undo:
            return None
        self._pointer -= 1
        return self._entries[self._pointer]

    def redo(self) -> HistoryEntry | None:
        """Step forward one entry.

        Returns:
            The snapshot to restore, or None when already at the top
        """
        if not self.can_redo:
            return None
        self._pointer += 1
        return self._entries[self._pointer]

    def clear(self) -> None:
        self._entries = []
        self._pointer = -1

    @property
    def can_undo(self) -> bool:
        return self._pointer > 0

    @property
    def can_redo(self) -> bool:
        return self._pointer < len(self._entries) - 1

    @property
    def pointer(self) -> int:
        return self._pointer

    @property
    def current(self) -> HistoryEntry | None:
        if self._pointer < 0:
            return None
        return self._entries[self._pointer]

    def __len__(self) -> int:
        return len(self._entries)
