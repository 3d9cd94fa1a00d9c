import logging

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


class RankingConfig(BaseModel):
    """Tunables of the pairwise ranking engine.

    The seeding heuristics (reduction factor, coverage threshold and the
    alternating-round pairing bias) are empirical and kept adjustable.
    """

    schedule_rounds_multiplier: float = 3.0
    target_comparisons_multiplier: float = 2.0

    seeded_reduction_factor: float = 0.6
    seeded_coverage_threshold: float = 0.7
    seeded_pairing_bias: bool = True
    prior_rating_center: float = 7.0
    prior_rating_scale: float = 2.0

    incremental_interval: int = 5
    incremental_max_iterations: int = 15
    incremental_tolerance: float = 1e-3
    final_max_iterations: int = 50
    final_tolerance: float = 1e-5
    strength_floor: float = 0.01

    target_mean: float = 7.0
    target_stddev: float = 1.5
    min_rating: float = 1.0
    max_rating: float = 10.0

    beta_alpha: float = 7.0
    beta_beta: float = 3.0
    quantile_tolerance: float = 1e-4
    quantile_max_steps: int = 50

    @field_validator(
        "schedule_rounds_multiplier",
        "target_comparisons_multiplier",
        "prior_rating_scale",
        "incremental_tolerance",
        "final_tolerance",
        "strength_floor",
        "target_stddev",
        "beta_alpha",
        "beta_beta",
        "quantile_tolerance",
    )
    @classmethod
    def validate_positive(cls, v) -> float:
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator(
        "incremental_interval",
        "incremental_max_iterations",
        "final_max_iterations",
        "quantile_max_steps",
    )
    @classmethod
    def validate_positive_int(cls, v) -> int:
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator("seeded_reduction_factor", "seeded_coverage_threshold")
    @classmethod
    def validate_fraction(cls, v) -> float:
        """Validate fractions lie in (0, 1]."""
        if not 0 < v <= 1:
            raise ValueError("value must be in (0, 1]")
        return v

    @model_validator(mode="after")
    def validate_rating_bounds(self) -> "RankingConfig":
        if self.min_rating >= self.max_rating:
            raise ValueError("min_rating must be below max_rating")
        if not self.min_rating <= self.target_mean <= self.max_rating:
            raise ValueError("target_mean must lie within the rating bounds")
        return self


class JikanConfig(BaseModel):
    base_url: str = "https://api.jikan.moe/v4"
    rate_limit_delay_seconds: float = 0.4
    timeout_seconds: float = 10.0
    max_retries: int = 2

    @field_validator("rate_limit_delay_seconds")
    @classmethod
    def validate_delay(cls, v) -> float:
        if v < 0:
            raise ValueError("rate_limit_delay_seconds must be >= 0")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v) -> int:
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v


class StorageConfig(BaseModel):
    progress_path: str = "data/progress.json"
    max_age_days: float = 7.0

    @field_validator("max_age_days")
    @classmethod
    def validate_max_age_days(cls, v) -> float:
        """Validate max_age_days is positive."""
        if v <= 0:
            raise ValueError("max_age_days must be greater than 0")
        return v


class Settings(BaseSettings):
    log_path: str = "data/logs/aniranker.jsonl"
    log_level: str = "info"
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    jikan: JikanConfig = Field(default_factory=JikanConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    model_config = SettingsConfigDict(
        env_prefix="ANIRANKER_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v) -> str:
        """Normalize log_level, falling back to "info" when unknown."""
        default_level = "info"
        if v is None:
            return default_level
        level = str(v).strip().lower()
        if level not in {"debug", "info", "warning", "error"}:
            logger.warning(f"Invalid log_level value: {v}. Using default: {default_level}")
            return default_level
        return level
