"""Bradley-Terry strength estimation from pairwise comparison counts.

This module fits Bradley-Terry strengths to the tallies accumulated in a
ComparisonMatrix.

Bradley-Terry model:
    Every item i has a latent positive strength s_i and

        P(i beats j) = s_i / (s_i + s_j)

    The maximum-likelihood strengths are found with the minorization-
    maximization (MM) fixed-point iteration

        s_i <- W_i / sum_{j != i} n_ij / (s_i + s_j)

    Where:
    - W_i: total wins of item i against every opponent it has faced
    - n_ij: number of comparisons between i and j (both directions)

    The fixed point is unique only up to a global positive scale factor.
    Nothing here renormalizes the scale; callers compare log-strengths.

Two budgets are used by the engine:
    - incremental: a few warm-started iterations for live previews
    - final: a longer, tighter solve before any ratings leave the engine
"""

import math
from dataclasses import dataclass

from aniranker.engine.matrix import ComparisonMatrix

DEFAULT_FLOOR = 0.01


@dataclass(frozen=True)
class SolverResult:
    strengths: dict[int, float]
    iterations: int
    converged: bool
    max_change: float


def mm_step(
    strengths: dict[int, float],
    wins: dict[int, int],
    opponents: dict[int, list[tuple[int, int]]],
    floor: float = DEFAULT_FLOOR,
) -> dict[int, float]:
    """Apply one simultaneous MM update to every item.

    Items without comparisons, and items whose denominator is zero, keep
    their current strength.
    """
    updated = dict(strengths)
    for item_id, current in strengths.items():
        faced = opponents.get(item_id)
        if not faced:
            continue

        denominator = 0.0
        for opponent_id, count in faced:
            opponent = strengths.get(opponent_id)
            if opponent is None:
                continue
            denominator += count / (current + opponent)

        if denominator <= 0 or not math.isfinite(denominator):
            continue

        value = wins.get(item_id, 0) / denominator
        updated[item_id] = value if value >= floor else floor
    return updated


def fit_bradley_terry(
    strengths: dict[int, float],
    matrix: ComparisonMatrix,
    max_iterations: int = 50,
    tolerance: float = 1e-5,
    floor: float = DEFAULT_FLOOR,
) -> SolverResult:
    """Iterate the MM update until the largest per-item change drops below tolerance.

    Args:
        strengths: Starting strengths keyed by item id (not mutated)
        matrix: Accumulated pairwise tallies
        max_iterations: Iteration budget
        tolerance: Convergence threshold on max |s_new - s_old|
        floor: Lower clamp applied to every updated strength

    Returns:
        SolverResult with the fitted strengths and convergence details

    Example:
        >>> m = ComparisonMatrix()
        >>> for _ in range(3):
        ...     m.record(1, 2)
        >>> m.record(2, 1)
        >>> result = fit_bradley_terry({1: 1.0, 2: 1.0}, m)
        >>> result.strengths[1] > result.strengths[2]
        True

    Negative case:
        >>> fit_bradley_terry({1: 1.0}, ComparisonMatrix()).strengths
        {1: 1.0}
    """
    current = {item_id: max(value, floor) for item_id, value in strengths.items()}
    wins = matrix.wins_by_item()
    opponents = matrix.opponents()

    if not opponents:
        return SolverResult(strengths=current, iterations=0, converged=True, max_change=0.0)

    max_change = 0.0
    for iteration in range(1, max_iterations + 1):
        updated = mm_step(current, wins, opponents, floor)
        max_change = max(
            (abs(updated[item_id] - current[item_id]) for item_id in current), default=0.0
        )
        current = updated
        if max_change < tolerance:
            return SolverResult(
                strengths=current, iterations=iteration, converged=True, max_change=max_change
            )

    return SolverResult(
        strengths=current, iterations=max_iterations, converged=False, max_change=max_change
    )
