"""Completion and ranking-confidence estimates for a comparison session.

Progress is the share of the target comparisons already answered.

Accuracy is a heuristic confidence score in [0, 100]:
    accuracy = 0.7 * coverage + 0.3 * balance

    Where:
    - coverage: average comparisons per item relative to the ideal
      ``ceil(log2(n + 1) * 3)``, capped at 100
    - balance: 100 * fewest comparisons / most comparisons over all items
"""

from aniranker.common.models import Item
from aniranker.engine.normalizer import round_half_up
from aniranker.engine.scheduler import comparisons_per_item

COVERAGE_WEIGHT = 0.7
BALANCE_WEIGHT = 0.3


def calculate_progress(comparisons_done: int, total_comparisons: int) -> int:
    """Percentage of target comparisons completed, 0-100.

    Example:
        >>> calculate_progress(5, 20)
        25
        >>> calculate_progress(3, 0)
        0
    """
    if total_comparisons <= 0:
        return 0
    percentage = int(round_half_up(comparisons_done / total_comparisons * 100))
    return max(0, min(100, percentage))


def calculate_coverage(items: list[Item], rounds_multiplier: float = 3.0) -> float:
    if not items:
        return 0.0
    ideal = comparisons_per_item(len(items), rounds_multiplier)
    if ideal <= 0:
        return 0.0
    average = sum(item.comparisons for item in items) / len(items)
    return min(100.0, average / ideal * 100)


def calculate_balance(items: list[Item]) -> float:
    if not items:
        return 0.0
    counts = [item.comparisons for item in items]
    most = max(counts)
    if most == 0:
        return 0.0
    return 100 * min(counts) / most


def calculate_accuracy(
    items: list[Item], comparisons_done: int, rounds_multiplier: float = 3.0
) -> int:
    """Blend of coverage and balance, 0 before the first comparison.

    Args:
        items: Current items with their comparison tallies
        comparisons_done: Comparisons resolved in the session so far
        rounds_multiplier: Multiplier used for the ideal per-item count

    Returns:
        Integer confidence score between 0 and 100
    """
    if comparisons_done <= 0 or not items:
        return 0
    coverage = calculate_coverage(items, rounds_multiplier)
    balance = calculate_balance(items)
    return int(round_half_up(COVERAGE_WEIGHT * coverage + BALANCE_WEIGHT * balance))
