"""Beta distribution helpers for the distributional rating display.

The regularized incomplete beta function I_x(a, b) is evaluated with its
continued-fraction expansion (modified Lentz method); the log-gamma terms
of the prefactor come from ``math.lgamma``. The quantile is found by
bisection, which only needs the CDF to be monotonic.
"""

import math

_FPMIN = 1e-300
_CF_EPS = 3e-14
_CF_MAX_TERMS = 300


def _beta_continued_fraction(x: float, a: float, b: float) -> float:
    qab = a + b
    qap = a + 1.0
    qam = a - 1.0

    c = 1.0
    d = 1.0 - qab * x / qap
    if abs(d) < _FPMIN:
        d = _FPMIN
    d = 1.0 / d
    h = d

    for m in range(1, _CF_MAX_TERMS + 1):
        m2 = 2 * m

        # even step
        aa = m * (b - m) * x / ((qam + m2) * (a + m2))
        d = 1.0 + aa * d
        if abs(d) < _FPMIN:
            d = _FPMIN
        c = 1.0 + aa / c
        if abs(c) < _FPMIN:
            c = _FPMIN
        d = 1.0 / d
        h *= d * c

        # odd step
        aa = -(a + m) * (qab + m) * x / ((a + m2) * (qap + m2))
        d = 1.0 + aa * d
        if abs(d) < _FPMIN:
            d = _FPMIN
        c = 1.0 + aa / c
        if abs(c) < _FPMIN:
            c = _FPMIN
        d = 1.0 / d
        delta = d * c
        h *= delta

        if abs(delta - 1.0) < _CF_EPS:
            break

    return h


def regularized_incomplete_beta(x: float, a: float, b: float) -> float:
    """Compute I_x(a, b), the CDF of Beta(a, b) at ``x``.

    Example:
        >>> round(regularized_incomplete_beta(0.5, 2.0, 2.0), 6)
        0.5
        >>> regularized_incomplete_beta(0.0, 7.0, 3.0)
        0.0
    """
    if a <= 0 or b <= 0:
        raise ValueError("shape parameters must be positive")
    if x <= 0.0:
        return 0.0
    if x >= 1.0:
        return 1.0

    log_front = (
        math.lgamma(a + b)
        - math.lgamma(a)
        - math.lgamma(b)
        + a * math.log(x)
        + b * math.log1p(-x)
    )
    front = math.exp(log_front)

    # The continued fraction converges fast for x < (a + 1) / (a + b + 2);
    # otherwise use the symmetry I_x(a, b) = 1 - I_{1-x}(b, a).
    if x < (a + 1.0) / (a + b + 2.0):
        return front * _beta_continued_fraction(x, a, b) / a
    return 1.0 - front * _beta_continued_fraction(1.0 - x, b, a) / b


def beta_quantile(
    p: float,
    a: float,
    b: float,
    tolerance: float = 1e-4,
    max_steps: int = 50,
) -> float:
    """Invert the Beta(a, b) CDF by bisection on [0, 1].

    Stops when the bracket is narrower than ``tolerance`` or the CDF at the
    midpoint is within ``tolerance`` of ``p``, or after ``max_steps``.

    Example:
        >>> abs(beta_quantile(0.5, 2.0, 2.0) - 0.5) < 1e-4
        True
    """
    if p <= 0.0:
        return 0.0
    if p >= 1.0:
        return 1.0

    low, high = 0.0, 1.0
    mid = 0.5
    for _ in range(max_steps):
        mid = (low + high) / 2.0
        cdf = regularized_incomplete_beta(mid, a, b)
        if abs(cdf - p) < tolerance or (high - low) / 2.0 < tolerance:
            break
        if cdf < p:
            low = mid
        else:
            high = mid
    return mid
