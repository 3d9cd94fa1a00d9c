"""Conversion of fitted strengths into bounded 1-10 display ratings.

Default (z-score) mode:
    Log-strengths are standardized against the population mean and standard
    deviation of the list, then mapped to ``target_mean + z * target_stddev``,
    clamped to the rating bounds and rounded to one decimal. When every item
    has the same strength (or there is a single item) all ratings equal the
    target mean.

Distribution mode:
    An order-preserving re-skin. The rank order from the default mode is laid
    onto quantiles of a Beta(alpha, beta) distribution scaled to [0, 10], so
    the ratings look like a typical hand-scored list (mean near 7, skewed
    toward the top). Values are then stretched so the best item reaches 10.
"""

import math
import statistics
from typing import Literal

from aniranker.common.config import RankingConfig
from aniranker.common.models import Item
from aniranker.engine.special import beta_quantile

DisplayMode = Literal["zscore", "distribution"]

# Spreads this small are float noise around identical strengths
_STD_EPSILON = 1e-12


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero instead of to even.

    Example:
        >>> round_half_up(7.25, 1)
        7.3
        >>> round_half_up(2.5)
        3.0
    """
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def _is_valid_strength(value: float) -> bool:
    return value > 0 and math.isfinite(value)


def zscore_ratings(items: list[Item], config: RankingConfig | None = None) -> dict[int, float]:
    """Map each item id to its z-score rating.

    Args:
        items: Items with fitted strengths
        config: Rating targets and bounds (defaults when None)

    Returns:
        Dictionary of item id to rating in [min_rating, max_rating]

    Example:
        >>> zscore_ratings([Item(id=1, title="Solo")])
        {1: 7.0}
    """
    config = config or RankingConfig()
    logs = {
        item.id: math.log(item.strength) for item in items if _is_valid_strength(item.strength)
    }

    values = list(logs.values())
    mean_log = statistics.fmean(values) if values else 0.0
    std_log = statistics.pstdev(values, mu=mean_log) if len(values) > 1 else 0.0

    ratings: dict[int, float] = {}
    for item in items:
        log_strength = logs.get(item.id)
        if log_strength is None or std_log < _STD_EPSILON:
            z = 0.0
        else:
            z = (log_strength - mean_log) / std_log
        rating = config.target_mean + z * config.target_stddev
        rating = min(config.max_rating, max(config.min_rating, rating))
        ratings[item.id] = round_half_up(rating, 1)
    return ratings


def _rank_groups(ordered: list[Item], ratings: dict[int, float]) -> list[tuple[int, int]]:
    """Split a rating-sorted list into [start, end) runs of equal rating."""
    groups: list[tuple[int, int]] = []
    start = 0
    for position in range(1, len(ordered) + 1):
        if (
            position == len(ordered)
            or ratings[ordered[position].id] != ratings[ordered[start].id]
        ):
            groups.append((start, position))
            start = position
    return groups


def distribution_ratings(
    ordered: list[Item],
    ratings: dict[int, float],
    config: RankingConfig | None = None,
) -> dict[int, float]:
    """Re-map a rating-sorted list onto Beta quantiles without changing its order.

    Args:
        ordered: Items sorted descending by ``ratings``
        ratings: z-score ratings used to detect ties (tied items share a value)
        config: Beta shape, quantile precision and rating bounds

    Returns:
        Dictionary of item id to display rating
    """
    config = config or RankingConfig()
    n = len(ordered)
    if n == 0:
        return {}

    raw: dict[int, float] = {}
    for start, end in _rank_groups(ordered, ratings):
        p = 1.0 - (start + end) / (2.0 * n)
        value = 10.0 * beta_quantile(
            p,
            config.beta_alpha,
            config.beta_beta,
            tolerance=config.quantile_tolerance,
            max_steps=config.quantile_max_steps,
        )
        for item in ordered[start:end]:
            raw[item.id] = value

    top = max(raw.values())
    if 0 < top < 10.0:
        scale = 10.0 / top
        raw = {item_id: value * scale for item_id, value in raw.items()}

    return {
        item_id: round_half_up(min(config.max_rating, max(config.min_rating, value)), 1)
        for item_id, value in raw.items()
    }


def normalize_ratings(
    items: list[Item],
    config: RankingConfig | None = None,
    display_mode: DisplayMode = "zscore",
) -> list[Item]:
    """Attach ratings to copies of ``items`` and sort them best first.

    Ties keep the incoming order, so equal inputs always give equal outputs.
    """
    config = config or RankingConfig()
    if not items:
        return []

    ratings = zscore_ratings(items, config)
    ordered = sorted(items, key=lambda item: ratings[item.id], reverse=True)

    if display_mode == "distribution":
        ratings = distribution_ratings(ordered, ratings, config)

    return [item.model_copy(update={"rating": ratings[item.id]}) for item in ordered]
