from datetime import UTC, datetime
from functools import partial
from typing import Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Helper for timezone-aware timestamps
_utc_now = partial(datetime.now, tz=UTC)

STRENGTH_FLOOR = 0.01

MediaType = Literal["anime", "manga"]


class ItemSeed(BaseModel):
    """An entry handed to the engine by the list parser."""

    id: int
    title: str
    prior_rating: float | None = None
    image_url: str | None = None
    media_type: MediaType = "anime"


class Item(BaseModel):
    """A ranked entry together with its fitted strength and tallies.

    ``strength`` is a Bradley-Terry parameter; only ratios between items
    are meaningful. It never drops below ``STRENGTH_FLOOR``.
    """

    id: int
    title: str
    strength: float = 1.0
    comparisons: int = 0
    wins: int = 0
    losses: int = 0
    rating: float | None = None
    prior_rating: float | None = None
    image_url: str | None = None
    media_type: MediaType = "anime"

    @field_validator("strength")
    @classmethod
    def floor_strength(cls, v: float) -> float:
        """Clamp strength to the floor; NaN collapses to the floor too."""
        if not v >= STRENGTH_FLOOR:
            return STRENGTH_FLOOR
        return v

    @field_validator("comparisons", "wins", "losses")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("counts must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_tallies(self) -> "Item":
        if self.wins + self.losses != self.comparisons:
            raise ValueError("wins + losses must equal comparisons")
        return self


class PairRecord(BaseModel):
    """Directional tally: how often the first id beat the second, out of ``total``."""

    model_config = ConfigDict(frozen=True)

    wins: int = 0
    total: int = 0


class Match(BaseModel):
    """A scheduled pairing of two slots in the shuffled index space."""

    model_config = ConfigDict(frozen=True)

    left_index: int
    right_index: int


class HistoryEntry(BaseModel):
    """Immutable snapshot pushed after each resolved comparison.

    The comparison matrix is not copied: ``resolved`` names the comparison
    that produced the entry, and undo/redo replay it against the live matrix.
    The root entry of a session has no ``resolved`` comparison.
    """

    model_config = ConfigDict(frozen=True)

    items: tuple[Item, ...]
    current_pair: tuple[int, int] | None
    comparisons_done: int
    scheduler_cursor: int
    resolved: tuple[int, int] | None = None


class EngineState(BaseModel):
    """Read-only copy of the engine's externally observable state."""

    model_config = ConfigDict(frozen=True)

    current_pair: tuple[Item, Item] | None = None
    comparisons_done: int = 0
    total_comparisons: int = 0
    is_complete: bool = False
    comparison_matrix: dict[tuple[int, int], PairRecord] = Field(default_factory=dict)
    can_undo: bool = False
    can_redo: bool = False


class MatrixEntry(BaseModel):
    """Serialized form of one directional matrix cell."""

    first_id: int
    second_id: int
    wins: int
    total: int

    @model_validator(mode="after")
    def validate_counts(self) -> "MatrixEntry":
        if self.wins < 0 or self.total < self.wins:
            raise ValueError("matrix entry requires 0 <= wins <= total")
        return self


class SessionState(BaseModel):
    """The engine blob handed to the persistence collaborator."""

    model_config = ConfigDict(extra="forbid")

    version: Literal[1] = 1
    comparisons_done: int
    total_comparisons: int
    is_complete: bool
    current_pair: tuple[int, int] | None = None
    matrix: list[MatrixEntry] = Field(default_factory=list)
    schedule: list[Match] = Field(default_factory=list)
    slots: list[int] = Field(default_factory=list)
    cursor: int = 0
    baseline_strengths: dict[int, float] = Field(default_factory=dict)
    use_existing_ratings: bool = False

    @model_validator(mode="after")
    def validate_counters(self) -> "SessionState":
        if self.comparisons_done < 0 or self.total_comparisons < 0:
            raise ValueError("counters must be >= 0")
        if not 0 <= self.cursor <= len(self.schedule):
            raise ValueError("cursor out of range of the schedule")
        return self


class RankingProgress(BaseModel):
    """Everything the CLI needs to resume a session later."""

    items: list[Item]
    original_xml: str = ""
    media_type: MediaType = "anime"
    session_state: dict = Field(default_factory=dict)
    view_state: Literal["comparing", "results"] = "comparing"
    ranked_items: list[Item] | None = None
    timestamp: datetime = Field(default_factory=_utc_now)


class StateListener(Protocol):
    """Callback invoked with a fresh snapshot after every engine mutation.

    Example:
        >>> def on_change(state: EngineState) -> None:
        ...     print(f"{state.comparisons_done}/{state.total_comparisons}")
        >>>
        >>> unsubscribe = engine.subscribe(on_change)
    """

    def __call__(self, state: EngineState) -> None: ...
