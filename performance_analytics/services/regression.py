"""
Regression Engine Service

Least-squares trend fitting for chart series with gaps.

Algorithm Overview:
    The series index is x and the value is y; indices whose value is missing
    (None or NaN) are left out of the fit but still receive a predicted value,
    so a continuous trend line can be drawn across gaps and to both edges.

    Linear:      y = a + b*x
    Log-linear:  y = a * e^(b*x), fitted as ln(y) = ln(a) + b*x on y > 0.
                 R² is measured on the original scale so the two fits are
                 comparable.

Guards:
    - Fewer than MIN_VALID_POINTS usable points -> None
    - Sum of squared x deviations below DEGENERATE_X_VARIANCE -> None
    - A series with zero variance in y reports R² = 0

Best-fit selection (get_best_regression):
    Fits below the R² threshold are discarded; if both remain the higher R²
    wins, with ties going to log-linear.

Dependencies:
    - numpy==2.1.3: vectorised sums and predictions
"""

import logging
import math
from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np

from performance_analytics.models.enums import RegressionType
from performance_analytics.models.schemas import RegressionResult


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# A trend needs at least three points; two points always fit perfectly.
MIN_VALID_POINTS: int = 3

# Below this the x values are effectively identical and the slope is undefined.
DEGENERATE_X_VARIANCE: float = 1e-10

DEFAULT_R_SQUARED_THRESHOLD: float = 0.5


# =============================================================================
# Helpers
# =============================================================================


def _is_valid(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, (int, float, np.integer, np.floating)):
        return False
    return not math.isnan(float(value))


def _prediction_length(values: Sequence[Optional[float]], total_points: Optional[int]) -> int:
    if total_points is None:
        return len(values)
    if total_points < len(values):
        raise ValueError(
            f"total_points ({total_points}) is shorter than the series ({len(values)})"
        )
    return total_points


def _r_squared(y: np.ndarray, predicted: np.ndarray) -> float:
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    if ss_tot <= 0:
        return 0.0
    ss_res = float(np.sum((y - predicted) ** 2))
    return 1.0 - ss_res / ss_tot


def _fit_line(x: np.ndarray, y: np.ndarray) -> Optional[Tuple[float, float]]:
    """Ordinary least squares for y = intercept + slope * x."""
    x_mean = x.mean()
    sxx = float(np.sum((x - x_mean) ** 2))
    if abs(sxx) < DEGENERATE_X_VARIANCE:
        return None
    slope = float(np.sum((x - x_mean) * (y - y.mean()))) / sxx
    intercept = float(y.mean()) - slope * float(x_mean)
    return intercept, slope


# =============================================================================
# Fits
# =============================================================================


def linear_regression(
    values: Sequence[Optional[float]],
    total_points: Optional[int] = None,
) -> Optional[RegressionResult]:
    """
    Fit y = a + b*x over the non-missing values.

    Args:
        values: Series values by index; None/NaN marks a gap.
        total_points: Length of the predicted sequence. Defaults to
            len(values); must not be shorter than it.

    Returns:
        RegressionResult, or None with fewer than three valid points or
        degenerate x.

    Raises:
        ValueError: If total_points < len(values).

    Example:
        >>> fit = linear_regression([1, 2, 3, 4, 5])
        >>> round(fit.slope, 6), round(fit.intercept, 6), round(fit.rSquared, 6)
        (1.0, 1.0, 1.0)
    """
    length = _prediction_length(values, total_points)
    pairs = [(i, float(v)) for i, v in enumerate(values) if _is_valid(v)]
    if len(pairs) < MIN_VALID_POINTS:
        return None

    x = np.array([p[0] for p in pairs], dtype=np.float64)
    y = np.array([p[1] for p in pairs], dtype=np.float64)

    fitted = _fit_line(x, y)
    if fitted is None:
        return None
    intercept, slope = fitted

    r_squared = _r_squared(y, intercept + slope * x)
    predicted = intercept + slope * np.arange(length, dtype=np.float64)

    return RegressionResult(
        type=RegressionType.LINEAR,
        slope=slope,
        intercept=intercept,
        rSquared=r_squared,
        predictedValues=predicted.tolist(),
        validPointCount=len(pairs),
    )


def log_linear_regression(
    values: Sequence[Optional[float]],
    total_points: Optional[int] = None,
) -> Optional[RegressionResult]:
    """
    Fit y = a * e^(b*x) over the strictly positive values.

    `intercept` reports a (not ln a) and `slope` reports b. R² is computed
    against the original y values.
    """
    length = _prediction_length(values, total_points)
    pairs = [(i, float(v)) for i, v in enumerate(values) if _is_valid(v) and float(v) > 0]
    if len(pairs) < MIN_VALID_POINTS:
        return None

    x = np.array([p[0] for p in pairs], dtype=np.float64)
    y = np.array([p[1] for p in pairs], dtype=np.float64)

    fitted = _fit_line(x, np.log(y))
    if fitted is None:
        return None
    ln_a, b = fitted
    a = math.exp(ln_a)

    r_squared = _r_squared(y, a * np.exp(b * x))
    predicted = a * np.exp(b * np.arange(length, dtype=np.float64))

    return RegressionResult(
        type=RegressionType.LOG_LINEAR,
        slope=b,
        intercept=a,
        rSquared=r_squared,
        predictedValues=predicted.tolist(),
        validPointCount=len(pairs),
    )


# =============================================================================
# Best Fit Selection
# =============================================================================


def get_best_regression(
    values: Sequence[Optional[float]],
    threshold: float = DEFAULT_R_SQUARED_THRESHOLD,
    total_points: Optional[int] = None,
) -> Optional[RegressionResult]:
    """
    Return the better of the linear and log-linear fits that meets `threshold`.

    Raises:
        ValueError: If threshold is outside [0, 1] or total_points is
            shorter than the series.
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"R² threshold must be within [0, 1], got {threshold}")

    candidates = [
        fit
        for fit in (
            log_linear_regression(values, total_points),
            linear_regression(values, total_points),
        )
        if fit is not None and fit.rSquared >= threshold
    ]
    if not candidates:
        return None

    # max() keeps the first of equal keys, so log-linear wins ties
    best = max(candidates, key=lambda fit: fit.rSquared)
    logger.debug(f"Selected {best.type.value} fit with R²={best.rSquared:.4f}")
    return best


def calculate_series_regression(
    chart_data: Sequence[Mapping[str, Any]],
    series_key: str,
    threshold: float = DEFAULT_R_SQUARED_THRESHOLD,
) -> Optional[RegressionResult]:
    """
    Fit a trend to one key of merged chart rows.

    Rows without a numeric value for `series_key` are gaps.
    """
    if len(chart_data) < MIN_VALID_POINTS:
        return None

    values = [
        row.get(series_key) if _is_valid(row.get(series_key)) else None
        for row in chart_data
    ]
    return get_best_regression(values, threshold)
