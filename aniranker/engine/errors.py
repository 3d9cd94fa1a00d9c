"""Exception classes for the ranking engine.

Expected edge cases (unknown ids, empty lists, undo past the root) are
handled as no-ops by the engine and never raise.
"""


class RankingError(Exception):
    """Base exception for ranking engine errors."""

    pass


class InvalidStateError(RankingError):
    """Raised when a serialized session does not fit the items it is restored onto."""

    pass


class InsufficientItemsError(RankingError):
    """Raised when a session cannot start because fewer than two items were supplied."""

    def __init__(self, message: str, item_count: int = 0) -> None:
        self.item_count = item_count
        super().__init__(message)
