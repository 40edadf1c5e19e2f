"""Statistical functions for benchmark comparison.

Provides sample summaries, IQR outlier rejection, the Mann-Whitney U
test and Welch's t-test, all in pure Python.

The U test is the default for comparing revisions: benchmark timings are
rarely normally distributed and the test only assumes the two samples
can be ranked. For small tie-free samples its exact null distribution is
computed; otherwise a normal approximation with tie correction is used.

References:
    Mann, H. B. & Whitney, D. R. (1947). "On a Test of Whether one of
        Two Random Variables is Stochastically Larger than the Other."
        Annals of Mathematical Statistics 18(1): 50-60.
    Welch, B. L. (1947). "The generalization of 'Student's' problem
        when several different population variances are involved."
        Biometrika 34(1-2): 28-35.
"""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from typing import Sequence

_NAN = float("nan")


def _clamp_p(p: float) -> float:
    return min(max(p, 0.0), 1.0)


# ---------------------------------------------------------------------------
# Sample summary
# ---------------------------------------------------------------------------


@dataclass
class Summary:
    """Location and spread of one sample."""

    n: int
    mean: float
    median: float
    stdev: float
    min: float
    max: float
    q1: float
    q3: float

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1


def _quantile(ordered: Sequence[float], p: float) -> float:
    """Linearly interpolated *p*-quantile of the ascending sample *ordered*."""
    if not ordered:
        return _NAN
    pos = (len(ordered) - 1) * p
    lo = int(pos)
    hi = min(lo + 1, len(ordered) - 1)
    return ordered[lo] + (ordered[hi] - ordered[lo]) * (pos - lo)


def describe(values: Sequence[float]) -> Summary:
    """Summarise *values*.

    An empty sample yields NaN everywhere; a single value has a standard
    deviation of 0.
    """
    n = len(values)
    if n == 0:
        return Summary(0, _NAN, _NAN, _NAN, _NAN, _NAN, _NAN, _NAN)

    ordered = sorted(values)
    return Summary(
        n=n,
        mean=statistics.fmean(ordered),
        median=_quantile(ordered, 0.5),
        stdev=statistics.stdev(ordered) if n > 1 else 0.0,
        min=ordered[0],
        max=ordered[-1],
        q1=_quantile(ordered, 0.25),
        q3=_quantile(ordered, 0.75),
    )


# ---------------------------------------------------------------------------
# Outlier rejection
# ---------------------------------------------------------------------------


def _fences(values: Sequence[float], factor: float) -> tuple[float, float]:
    ordered = sorted(values)
    q1 = _quantile(ordered, 0.25)
    q3 = _quantile(ordered, 0.75)
    reach = factor * (q3 - q1)
    return q1 - reach, q3 + reach


def detect_outliers(values: Sequence[float], *, factor: float = 1.5) -> list[bool]:
    """Flag the values outside Tukey's fences ``[Q1 - k*IQR, Q3 + k*IQR]``.

    Samples of fewer than four values are never flagged. The flags line
    up with *values*, not with its sorted order.
    """
    if len(values) < 4:
        return [False] * len(values)
    low, high = _fences(values, factor)
    return [not low <= v <= high for v in values]


def remove_outliers(values: Sequence[float], *, factor: float = 1.5) -> list[float]:
    """Return *values* without IQR outliers, preserving order."""
    flags = detect_outliers(values, factor=factor)
    return [v for v, outlier in zip(values, flags) if not outlier]


# ---------------------------------------------------------------------------
# Mann-Whitney U test
# ---------------------------------------------------------------------------

# Largest per-sample size for which the exact U distribution is used.
_EXACT_MAX_N = 25


@dataclass
class UTestResult:
    """Result of a two-sided Mann-Whitney U test."""

    u_statistic: float
    p_value: float
    exact: bool


def _rank(values: Sequence[float]) -> tuple[list[float], list[int]]:
    """Average ranks (1-based) of *values* and the sizes of tie groups."""
    order = sorted(range(len(values)), key=lambda i: values[i])
    ranks = [0.0] * len(values)
    ties: list[int] = []
    i = 0
    while i < len(order):
        j = i
        while j + 1 < len(order) and values[order[j + 1]] == values[order[i]]:
            j += 1
        avg = (i + j) / 2 + 1
        for k in range(i, j + 1):
            ranks[order[k]] = avg
        if j > i:
            ties.append(j - i + 1)
        i = j + 1
    return ranks, ties


def _u_distribution(m: int, n: int) -> list[int]:
    """Frequencies of U = 0..m*n under the null hypothesis, without ties.

    These are the coefficients of the Gaussian binomial coefficient
    ``[m+n choose m]_q = prod_{i=1..m} (1 - q^(n+i)) / (1 - q^i)``.
    """
    size = m * n + m + 1
    coeffs = [0] * size
    coeffs[0] = 1
    for i in range(1, m + 1):
        shift = n + i
        for k in range(size - 1, shift - 1, -1):
            coeffs[k] -= coeffs[k - shift]
        for k in range(i, size):
            coeffs[k] += coeffs[k - i]
    return coeffs[: m * n + 1]


def mann_whitney_u(
    sample_a: Sequence[float],
    sample_b: Sequence[float],
) -> UTestResult:
    """Two-sided Mann-Whitney U test of *sample_a* against *sample_b*.

    Returns a NaN p-value if either sample is empty, and p = 1.0 when
    every observation is identical.
    """
    m, n = len(sample_a), len(sample_b)
    if m == 0 or n == 0:
        return UTestResult(u_statistic=_NAN, p_value=_NAN, exact=False)

    combined = list(sample_a) + list(sample_b)
    ranks, ties = _rank(combined)
    r1 = sum(ranks[:m])
    u = r1 - m * (m + 1) / 2

    if not ties and m <= _EXACT_MAX_N and n <= _EXACT_MAX_N:
        dist = _u_distribution(m, n)
        total = sum(dist)
        k = int(round(u))
        lower = sum(dist[: k + 1]) / total
        upper = sum(dist[k:]) / total
        p = _clamp_p(2.0 * min(lower, upper))
        return UTestResult(u_statistic=u, p_value=p, exact=True)

    total_n = m + n
    mu = m * n / 2.0
    tie_term = sum(t**3 - t for t in ties) / (total_n * (total_n - 1))
    variance = m * n / 12.0 * ((total_n + 1) - tie_term)
    if variance <= 0:
        return UTestResult(u_statistic=u, p_value=1.0, exact=False)

    # Continuity correction.
    z = max(abs(u - mu) - 0.5, 0.0) / math.sqrt(variance)
    p = math.erfc(z / math.sqrt(2.0))
    return UTestResult(u_statistic=u, p_value=_clamp_p(p), exact=False)


# ---------------------------------------------------------------------------
# Welch's t-test
# ---------------------------------------------------------------------------


@dataclass
class TTestResult:
    """Result of a two-sided Welch's t-test."""

    t_statistic: float
    degrees_of_freedom: float
    p_value: float


def welch_ttest(sample_a: Sequence[float], sample_b: Sequence[float]) -> TTestResult:
    """Welch's unequal-variances t-test of *sample_a* against *sample_b*.

    Each sample needs at least two values; otherwise every field is NaN.
    """
    na, nb = len(sample_a), len(sample_b)
    if na < 2 or nb < 2:
        return TTestResult(_NAN, _NAN, _NAN)

    mean_a = statistics.fmean(sample_a)
    mean_b = statistics.fmean(sample_b)
    # Squared standard errors of the two means.
    sq_a = statistics.variance(sample_a, mean_a) / na
    sq_b = statistics.variance(sample_b, mean_b) / nb
    sq = sq_a + sq_b

    if sq == 0:
        if mean_a == mean_b:
            return TTestResult(0.0, math.inf, 1.0)
        return TTestResult(math.copysign(math.inf, mean_a - mean_b), 0.0, 0.0)

    t = (mean_a - mean_b) / math.sqrt(sq)
    # Welch-Satterthwaite approximation.
    dof = sq * sq / (sq_a * sq_a / (na - 1) + sq_b * sq_b / (nb - 1))
    return TTestResult(t_statistic=t, degrees_of_freedom=dof, p_value=_t_sf2(abs(t), dof))


def _t_sf2(t: float, dof: float) -> float:
    """P(|T| >= t) for Student's t with *dof* degrees of freedom."""
    if math.isnan(t) or math.isnan(dof) or dof <= 0:
        return _NAN
    if math.isinf(t):
        return 0.0
    if math.isinf(dof):
        return math.erfc(t / math.sqrt(2.0))
    return _clamp_p(_betainc(dof / 2.0, 0.5, dof / (dof + t * t)))


# ---------------------------------------------------------------------------
# Regularized incomplete beta function
# ---------------------------------------------------------------------------

_CF_MAX_TERMS = 300
_CF_EPS = 3e-16
_CF_FLOOR = 1e-300


def _nonzero(v: float) -> float:
    return v if abs(v) >= _CF_FLOOR else _CF_FLOOR


def _betacf(a: float, b: float, x: float) -> float:
    """Continued fraction for I_x(a, b), by the modified Lentz method.

    See Numerical Recipes, section 6.4.
    """
    c = 1.0
    d = 1.0 / _nonzero(1.0 - (a + b) * x / (a + 1.0))
    h = d
    for m in range(1, _CF_MAX_TERMS + 1):
        m2 = 2 * m
        for coeff in (
            m * (b - m) * x / ((a + m2 - 1.0) * (a + m2)),
            -(a + m) * (a + b + m) * x / ((a + m2) * (a + m2 + 1.0)),
        ):
            d = 1.0 / _nonzero(1.0 + coeff * d)
            c = _nonzero(1.0 + coeff / c)
            step = c * d
            h *= step
        if abs(step - 1.0) < _CF_EPS:
            break
    return h


def _betainc(a: float, b: float, x: float) -> float:
    """Regularized incomplete beta function I_x(a, b); NaN outside [0, 1]."""
    if not 0.0 <= x <= 1.0:
        return _NAN
    if x in (0.0, 1.0):
        return x
    log_front = (
        math.lgamma(a + b) - math.lgamma(a) - math.lgamma(b)
        + a * math.log(x)
        + b * math.log1p(-x)
    )
    front = math.exp(log_front)
    # The fraction converges quickly only below (a+1)/(a+b+2).
    if x < (a + 1.0) / (a + b + 2.0):
        return front * _betacf(a, b, x) / a
    return 1.0 - front * _betacf(b, a, 1.0 - x) / b
