"""
Decimation Engine Service

Largest-Triangle-Three-Buckets (LTTB) downsampling for chart series.

Algorithm Overview:
    Given N points and a target M (3 <= M < N):
    1. Keep the first and last points
    2. Split the N-2 interior points into M-2 buckets of size (N-2)/(M-2)
    3. From each bucket keep the point forming the largest triangle with the
       previously kept point and the average of the next bucket

    The magnitude (y) of a multi-attribute point is its first numeric
    attribute other than the date key. The selected indices are then applied
    to the whole point, so every series sharing the time axis is reduced to
    the same index set.

    If N <= M or M < 3 the input is returned unchanged (as a new list).

Reference:
    Steinarsson, "Downsampling Time Series for Visual Representation" (2013)
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar

from performance_analytics.core.config import get_settings


logger = logging.getLogger(__name__)

T = TypeVar('T')

# LTTB needs the two fixed endpoints plus at least one bucket
MIN_TARGET_POINTS: int = 3


def _numeric(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return float(value)


def point_magnitude(point: Mapping[str, Any], date_key: str = 'date') -> Optional[float]:
    """First numeric, non-NaN attribute of a point other than the date key."""
    for key, value in point.items():
        if key == date_key:
            continue
        magnitude = _numeric(value)
        if magnitude is not None:
            return magnitude
    return None


def lttb_indices(values: Sequence[Optional[float]], target_points: int) -> List[int]:
    """
    Indices LTTB keeps for a series of magnitudes.

    None entries are never selected from a bucket unless the whole bucket is
    None, in which case the bucket's first index is kept.

    Returns:
        Sorted indices; all indices when no reduction applies.
    """
    length = len(values)
    if length <= target_points or target_points < MIN_TARGET_POINTS:
        return list(range(length))

    bucket_size = (length - 2) / (target_points - 2)
    selected = [0]
    previous = 0

    for bucket in range(target_points - 2):
        start = math.floor(bucket * bucket_size) + 1
        end = math.floor((bucket + 1) * bucket_size) + 1

        next_start = end
        next_end = min(math.floor((bucket + 2) * bucket_size) + 1, length)
        next_values = [values[j] for j in range(next_start, next_end) if values[j] is not None]
        avg_x = (next_start + next_end - 1) / 2.0
        prev_y = values[previous] if values[previous] is not None else 0.0
        avg_y = sum(next_values) / len(next_values) if next_values else prev_y

        best_index = start
        best_area = -1.0
        for j in range(start, end):
            y = values[j]
            if y is None:
                continue
            area = abs((previous - avg_x) * (y - prev_y) - (previous - j) * (avg_y - prev_y))
            if area > best_area:
                best_area = area
                best_index = j

        selected.append(best_index)
        previous = best_index

    selected.append(length - 1)
    return selected


def decimate_chart_data(
    points: Sequence[Dict[str, Any]],
    target_points: Optional[int] = None,
    date_key: str = 'date',
) -> List[Dict[str, Any]]:
    """
    Downsample merged chart rows with LTTB.

    Args:
        points: Chart rows, each with `date_key` and numeric series values.
        target_points: Output size. Defaults to settings.chart_target_points.
        date_key: Attribute holding the x-axis label.

    Returns:
        The selected rows in their original order. The first and last rows
        are always present and unchanged.
    """
    if target_points is None:
        target_points = get_settings().chart_target_points

    magnitudes = [point_magnitude(point, date_key) for point in points]
    indices = lttb_indices(magnitudes, target_points)

    if len(indices) < len(points):
        logger.debug(f"Decimated {len(points)} chart points to {len(indices)}")
    return [points[i] for i in indices]


def decimate_series(
    dates: Sequence[T],
    series: Mapping[str, Sequence[Optional[float]]],
    target_points: int,
) -> Tuple[List[T], Dict[str, List[Optional[float]]]]:
    """
    Decimate parallel series that share one time axis.

    Indices are chosen from the first series and applied to every series.

    Raises:
        ValueError: If a series length differs from len(dates).
    """
    for name, values in series.items():
        if len(values) != len(dates):
            raise ValueError(
                f"Series '{name}' has {len(values)} values for {len(dates)} dates"
            )

    if not series:
        return list(dates), {}

    driver = next(iter(series.values()))
    indices = lttb_indices(
        [_numeric(v) if v is not None else None for v in driver],
        target_points,
    )
    return (
        [dates[i] for i in indices],
        {name: [values[i] for i in indices] for name, values in series.items()},
    )


def uniform_sample(items: Sequence[T], target_points: int) -> List[T]:
    """Evenly spaced sample that keeps both endpoints."""
    if len(items) <= target_points:
        return list(items)
    if target_points <= 0:
        return []
    if target_points == 1:
        return [items[0]]

    step = (len(items) - 1) / (target_points - 1)
    return [items[round(i * step)] for i in range(target_points)]
