"""
Numeric Primitives for Renewcast

Leaf-level statistics shared by the atmospheric engine and the forecast
analytics:

1. Value coercion (missing / non-numeric / NaN -> None)
2. Summary statistics (population stdev, nearest-rank percentiles)
3. Pearson correlation with a Student-t significance approximation
4. Simple linear regression (OLS) with slope significance
5. Z-score severity bucketing for anomaly flags

The Student-t CDF below is a deliberate approximation: a normal CDF for
df > 30 and a closed-form tail expression below that. Reported p-values
depend on it, so it must not be swapped for an exact distribution.
"""

import math
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Degrees of freedom above which the t distribution is treated as normal
NORMAL_APPROX_DF = 30


def coerce_value(value: Any) -> Optional[float]:
    """Return value as a finite float, or None when missing or non-numeric."""
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if not isinstance(value, (int, float, np.integer, np.floating)):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


def to_array(values: Iterable[Any]) -> np.ndarray:
    """Convert a sequence with gaps into a float array with NaN for gaps."""
    coerced = [coerce_value(v) for v in values]
    return np.array([np.nan if v is None else v for v in coerced], dtype=float)


@dataclass(frozen=True)
class Summary:
    """Raw summary statistics over the valid values of a series."""
    mean: float
    median: float
    std_dev: float
    minimum: float
    maximum: float
    p25: float
    p75: float
    p95: float
    count: int
    missing_count: int


def nearest_rank(sorted_values: np.ndarray, p: float) -> float:
    """Nearest-rank percentile: index ceil(p/100 * n) - 1, clamped at 0."""
    index = math.ceil((p / 100.0) * len(sorted_values)) - 1
    return float(sorted_values[max(0, index)])


def summarize(values: Sequence[Any]) -> Summary:
    """
    Compute summary statistics, ignoring missing values.

    Zero valid values yields an all-zero summary with missing_count equal
    to the input length.
    """
    data = to_array(values)
    valid = data[~np.isnan(data)]
    missing = len(data) - len(valid)

    if len(valid) == 0:
        return Summary(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0, missing)

    ordered = np.sort(valid)
    mean = float(np.mean(valid))
    std_dev = float(np.std(valid))  # population (ddof=0)

    return Summary(
        mean=mean,
        median=float(ordered[len(ordered) // 2]),
        std_dev=std_dev,
        minimum=float(ordered[0]),
        maximum=float(ordered[-1]),
        p25=nearest_rank(ordered, 25),
        p75=nearest_rank(ordered, 75),
        p95=nearest_rank(ordered, 95),
        count=int(len(valid)),
        missing_count=int(missing),
    )


def normal_cdf(z: float) -> float:
    """Standard normal CDF (Abramowitz-Stegun polynomial approximation)."""
    t = 1.0 / (1.0 + 0.2316419 * abs(z))
    d = 0.3989423 * math.exp(-z * z / 2.0)
    prob = d * t * (0.3193815 + t * (-0.3565638 + t * (1.781478 + t * (-1.821256 + t * 1.330274))))
    return 1.0 - prob if z > 0 else prob


def student_t_cdf(t: float, df: float) -> float:
    """Approximate Student-t CDF used for two-sided p-values."""
    if df > NORMAL_APPROX_DF:
        return normal_cdf(t)
    x = df / (df + t * t)
    return 1.0 - 0.5 * math.pow(x, df / 2.0)


def two_sided_p_value(t_stat: float, df: float) -> float:
    """p = 2 * (1 - T_cdf(|t|, df)); non-finite results collapse to 1.0."""
    if math.isnan(t_stat):
        return 1.0
    if math.isinf(t_stat):
        # Perfect fit: the approximation tends to p = 0
        return 0.0
    p = 2.0 * (1.0 - student_t_cdf(abs(t_stat), df))
    return p if math.isfinite(p) else 1.0


def paired_values(x: Sequence[Any], y: Sequence[Any]) -> Tuple[np.ndarray, np.ndarray]:
    """Drop every index where either series is missing."""
    n = min(len(x), len(y))
    xs = to_array(list(x)[:n])
    ys = to_array(list(y)[:n])
    mask = ~(np.isnan(xs) | np.isnan(ys))
    return xs[mask], ys[mask]


def pearson_correlation(x: Sequence[Any], y: Sequence[Any]) -> Tuple[float, float]:
    """
    Pearson r and two-sided p-value over pairwise-complete observations.

    Fewer than 3 pairs returns (0.0, 1.0). A zero-variance series returns
    r = 0.0 rather than NaN.
    """
    xs, ys = paired_values(x, y)
    n = len(xs)
    if n < 3:
        return 0.0, 1.0

    dx = xs - xs.mean()
    dy = ys - ys.mean()
    denominator = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denominator == 0.0:
        logger.debug(f"[pearson_correlation] Zero variance across {n} pairs, reporting r=0")
        return 0.0, 1.0

    r = float(np.sum(dx * dy)) / denominator
    # Rounding can push |r| marginally past 1
    r = max(-1.0, min(1.0, r))

    if abs(r) == 1.0:
        return r, 0.0

    t_stat = r * math.sqrt((n - 2) / (1.0 - r * r))
    return r, two_sided_p_value(t_stat, n - 2)


@dataclass(frozen=True)
class Regression:
    """Ordinary least squares fit of y on x."""
    slope: float
    intercept: float
    r_squared: float
    p_value: float
    n: int


DEGENERATE_REGRESSION = Regression(slope=0.0, intercept=0.0, r_squared=0.0, p_value=1.0, n=0)


def _finite_or(value: float, default: float) -> float:
    return value if math.isfinite(value) else default


def linear_regression(x: Sequence[Any], y: Sequence[Any]) -> Regression:
    """
    Fit y = slope * x + intercept over pairwise-complete points.

    Fewer than 3 points returns the degenerate regression (p = 1).
    """
    xs, ys = paired_values(x, y)
    n = len(xs)
    if n < 3:
        return DEGENERATE_REGRESSION

    sum_x = float(np.sum(xs))
    sum_y = float(np.sum(ys))
    sum_xy = float(np.sum(xs * ys))
    sum_xx = float(np.sum(xs * xs))

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0.0:
        logger.debug(f"[linear_regression] All {n} x values identical, no slope")
        return Regression(0.0, 0.0, 0.0, 1.0, n)

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    mean_y = sum_y / n
    ss_total = float(np.sum((ys - mean_y) ** 2))
    residuals = ys - (slope * xs + intercept)
    ss_residual = float(np.sum(residuals ** 2))
    r_squared = 1.0 - ss_residual / ss_total if ss_total > 0 else float('nan')

    sxx = sum_xx - sum_x * sum_x / n
    se_slope = math.sqrt(ss_residual / (n - 2)) / math.sqrt(sxx) if sxx > 0 else float('nan')
    if se_slope == 0.0:
        t_stat = math.copysign(math.inf, slope) if slope != 0 else float('nan')
    else:
        t_stat = slope / se_slope

    return Regression(
        slope=_finite_or(slope, 0.0),
        intercept=_finite_or(intercept, 0.0),
        r_squared=_finite_or(r_squared, 0.0),
        p_value=two_sided_p_value(t_stat, n - 2),
        n=n,
    )


# (sigma lower bound, label) checked from most to least severe.
# Bounds are strict: exactly 5.0 sigma is "high", not "extreme".
SEVERITY_BANDS: List[Tuple[float, str]] = [
    (5.0, "extreme"),
    (4.0, "high"),
    (3.5, "medium"),
]


def severity_label(deviation: float) -> str:
    """Bucket a sigma deviation: >5 extreme, >4 high, >3.5 medium, else low."""
    for bound, label in SEVERITY_BANDS:
        if deviation > bound:
            return label
    return "low"


def z_scores(values: Sequence[Any], mean: float, std_dev: float) -> np.ndarray:
    """Absolute z-scores; NaN where a value is missing or std_dev is zero."""
    data = to_array(values)
    if std_dev == 0:
        return np.full(len(data), np.nan)
    return np.abs(data - mean) / std_dev
