"""
Chart Series Service

Metric dispatch over the closed MetricKind set, and merging of time series
into the flat per-date rows consumed by charting and decimation.

Every MetricKind belongs to exactly one family:
    - PERCENT: numerator / denominator * 100 from the day's counts
    - COUNT: the raw daily count

The dispatch tables below must cover every MetricKind; the module refuses to
import otherwise.

Merged rows look like:
    {'date': '2024-03-05', 'Jane Smith_tq': 50.0, 'dept_tq': 42.1, ...}
"""

from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from performance_analytics.models.enums import MetricFamily, MetricKind
from performance_analytics.models.schemas import (
    DailyAgentMetrics,
    GroupDailyPoint,
    TimeSeriesData,
)
from performance_analytics.services.aggregation import agent_key, safe_rate
from performance_analytics.services.temporal import in_range


DailyCounts = Union[DailyAgentMetrics, GroupDailyPoint]

# (numerator attribute, denominator attribute)
PERCENT_METRICS: Dict[MetricKind, Tuple[str, str]] = {
    MetricKind.TQ: ('quotes', 'trips'),
    MetricKind.TP: ('passthroughs', 'trips'),
    MetricKind.PQ: ('quotes', 'passthroughs'),
    MetricKind.HP: ('hotPasses', 'passthroughs'),
    MetricKind.NC: ('nonConverted', 'trips'),
    MetricKind.BK: ('bookings', 'trips'),
}

COUNT_METRICS: Dict[MetricKind, str] = {
    MetricKind.TRIPS: 'trips',
    MetricKind.QUOTES: 'quotes',
    MetricKind.PASSTHROUGHS: 'passthroughs',
    MetricKind.BOOKINGS: 'bookings',
}

_uncovered = set(MetricKind) - set(PERCENT_METRICS) - set(COUNT_METRICS)
if _uncovered:
    raise RuntimeError(f"MetricKind values without dispatch: {sorted(k.value for k in _uncovered)}")

SERIES_PREFIX_DEPARTMENT = 'dept'
SERIES_PREFIX_SENIOR = 'senior'
SERIES_PREFIX_NON_SENIOR = 'nonsenior'


def metric_value(kind: MetricKind, counts: Optional[DailyCounts]) -> float:
    """Value of one metric for one day's counts; 0.0 when there are no counts."""
    if counts is None:
        return 0.0

    if kind.family == MetricFamily.PERCENT:
        numerator, denominator = PERCENT_METRICS[kind]
        return safe_rate(getattr(counts, numerator), getattr(counts, denominator))
    if kind.family == MetricFamily.COUNT:
        return float(getattr(counts, COUNT_METRICS[kind]))

    raise ValueError(f"Unsupported metric family: {kind.family}")


def series_key(owner: str, kind: MetricKind) -> str:
    """Column name of one series in merged chart rows."""
    return f"{owner}_{kind.value}"


def chart_dates(
    time_series: TimeSeriesData,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[date]:
    """Sorted union of every agent and department date inside the range."""
    days = {m.date for agent in time_series.agents for m in agent.dailyMetrics}
    days.update(point.date for point in time_series.departmentDaily)
    return sorted(day for day in days if in_range(day, start_date, end_date))


def merge_series_for_chart(
    time_series: TimeSeriesData,
    agents: Iterable[str],
    metrics: Sequence[MetricKind],
    show_department: bool = True,
    show_senior: bool = False,
    show_non_senior: bool = False,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Flatten selected agent and group series into one row per date.

    Agent names are matched case-insensitively; unknown agents are ignored.
    An agent without counts on a date contributes 0. Group series are only
    written for dates present in that group's daily list.
    """
    by_agent = {
        agent_key(series.agentName): (series.agentName, {m.date: m for m in series.dailyMetrics})
        for series in time_series.agents
    }
    selected = [by_agent[agent_key(name)] for name in agents if agent_key(name) in by_agent]

    groups: List[Tuple[str, Dict[date, GroupDailyPoint]]] = []
    if show_department:
        groups.append((SERIES_PREFIX_DEPARTMENT, {p.date: p for p in time_series.departmentDaily}))
    if show_senior:
        groups.append((SERIES_PREFIX_SENIOR, {p.date: p for p in time_series.seniorDaily}))
    if show_non_senior:
        groups.append((SERIES_PREFIX_NON_SENIOR, {p.date: p for p in time_series.nonSeniorDaily}))

    rows: List[Dict[str, Any]] = []
    for day in chart_dates(time_series, start_date, end_date):
        row: Dict[str, Any] = {'date': day.isoformat()}
        for name, lookup in selected:
            counts = lookup.get(day)
            for kind in metrics:
                row[series_key(name, kind)] = metric_value(kind, counts)
        for prefix, lookup in groups:
            point = lookup.get(day)
            if point is None:
                continue
            for kind in metrics:
                row[series_key(prefix, kind)] = metric_value(kind, point)
        rows.append(row)

    return rows
