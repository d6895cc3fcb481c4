"""
Personal Records Service

Tracks each agent's personal bests from aggregated daily series.

Record kinds:
    - Volume (trips, quotes, passthroughs): best day, week, month, quarter
    - Rate (T>Q, T>P, P>Q): best month and quarter

Rules:
    - Only completed periods count: a period whose last day is before `today`
    - Weeks run Monday to Sunday
    - Volumes must be > 0; rates must be within (0, 200] (anything above is
      a data error such as quotes counted without their trips)
    - If the stored record's period appears again, its value is refreshed
      from the new data first, since later uploads are more complete
    - A candidate replaces the stored record only when strictly higher

update_records returns a new AllRecords; the stored one is never modified.
Persisting records between runs is the caller's job.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from performance_analytics.models.enums import MetricKind, RecordPeriod
from performance_analytics.models.schemas import (
    AgentRecords,
    AgentTimeSeries,
    AllRecords,
    RecordEntry,
    RecordsResult,
    RecordUpdate,
    TimeSeriesData,
)
from performance_analytics.services.aggregation import agent_key, safe_rate
from performance_analytics.services.temporal import (
    month_end,
    month_start,
    quarter_end,
    quarter_start,
    week_start,
)


logger = logging.getLogger(__name__)


VOLUME_METRICS: Tuple[MetricKind, ...] = (MetricKind.TRIPS, MetricKind.QUOTES, MetricKind.PASSTHROUGHS)
RATE_METRICS: Tuple[MetricKind, ...] = (MetricKind.TQ, MetricKind.TP, MetricKind.PQ)

VOLUME_PERIODS: Tuple[RecordPeriod, ...] = (
    RecordPeriod.DAY,
    RecordPeriod.WEEK,
    RecordPeriod.MONTH,
    RecordPeriod.QUARTER,
)
RATE_PERIODS: Tuple[RecordPeriod, ...] = (RecordPeriod.MONTH, RecordPeriod.QUARTER)

# Rates above this are treated as data errors
MAX_PLAUSIBLE_RATE: float = 200.0


PERIOD_BOUNDS: Dict[RecordPeriod, Callable[[date], Tuple[date, date]]] = {
    RecordPeriod.DAY: lambda d: (d, d),
    RecordPeriod.WEEK: lambda d: (week_start(d), week_start(d) + timedelta(days=6)),
    RecordPeriod.MONTH: lambda d: (month_start(d), month_end(d)),
    RecordPeriod.QUARTER: lambda d: (quarter_start(d), quarter_end(d)),
}


@dataclass
class PeriodTotals:
    start: date
    end: date
    trips: int = 0
    quotes: int = 0
    passthroughs: int = 0

    def value(self, metric: MetricKind) -> float:
        if metric == MetricKind.TRIPS:
            return float(self.trips)
        if metric == MetricKind.QUOTES:
            return float(self.quotes)
        if metric == MetricKind.PASSTHROUGHS:
            return float(self.passthroughs)
        if metric == MetricKind.TQ:
            return safe_rate(self.quotes, self.trips)
        if metric == MetricKind.TP:
            return safe_rate(self.passthroughs, self.trips)
        if metric == MetricKind.PQ:
            return safe_rate(self.quotes, self.passthroughs)
        raise ValueError(f"No personal record for metric '{metric.value}'")


def aggregate_periods(
    series: AgentTimeSeries,
    period: RecordPeriod,
    today: date,
) -> List[PeriodTotals]:
    """Totals per completed period, in chronological order."""
    bounds = PERIOD_BOUNDS[period]
    periods: Dict[Tuple[date, date], PeriodTotals] = {}
    for metrics in series.dailyMetrics:
        start, end = bounds(metrics.date)
        if end >= today:
            continue
        totals = periods.setdefault((start, end), PeriodTotals(start=start, end=end))
        totals.trips += metrics.trips
        totals.quotes += metrics.quotes
        totals.passthroughs += metrics.passthroughs
    return [periods[key] for key in sorted(periods)]


def _is_candidate(metric: MetricKind, value: float) -> bool:
    if metric in RATE_METRICS:
        return 0 < value <= MAX_PLAUSIBLE_RATE
    return value > 0


def _resolve_record(
    current: Optional[RecordEntry],
    candidates: List[PeriodTotals],
    metric: MetricKind,
    today: date,
) -> Optional[RecordEntry]:
    """Refresh the stored period if present, then keep the strictly higher best."""
    best = current
    if current is not None:
        for totals in candidates:
            if (totals.start, totals.end) == (current.periodStart, current.periodEnd):
                value = totals.value(metric)
                if value != current.value and _is_candidate(metric, value):
                    best = RecordEntry(value=value, periodStart=totals.start, periodEnd=totals.end, setAt=today)
                break

    for totals in candidates:
        value = totals.value(metric)
        if not _is_candidate(metric, value):
            continue
        if best is None or value > best.value:
            best = RecordEntry(value=value, periodStart=totals.start, periodEnd=totals.end, setAt=today)
    return best


def _find_existing(existing: AllRecords, name: str) -> Optional[AgentRecords]:
    if name in existing.agents:
        return existing.agents[name]
    key = agent_key(name)
    for stored_name, records in existing.agents.items():
        if agent_key(stored_name) == key:
            return records
    return None


def update_records(
    time_series: TimeSeriesData,
    existing: Optional[AllRecords] = None,
    today: Optional[date] = None,
) -> RecordsResult:
    """
    Fold a new time series into the stored personal records.

    Args:
        time_series: Aggregated per-agent daily series.
        existing: Previously stored records, or None to start fresh.
        today: Reference date; periods ending on or after it are ignored.

    Returns:
        RecordsResult with the new records and one RecordUpdate per
        (agent, metric, period) whose record changed.
    """
    if existing is None:
        existing = AllRecords()
    if today is None:
        today = date.today()

    agents: Dict[str, AgentRecords] = dict(existing.agents)
    updates: List[RecordUpdate] = []

    for series in time_series.agents:
        stored = _find_existing(existing, series.agentName)
        stored_name = stored.agentName if stored is not None else series.agentName
        records: Dict[MetricKind, Dict[RecordPeriod, RecordEntry]] = {
            metric: dict(periods) for metric, periods in (stored.records.items() if stored else [])
        }

        plan = [(metric, VOLUME_PERIODS) for metric in VOLUME_METRICS]
        plan += [(metric, RATE_PERIODS) for metric in RATE_METRICS]
        period_cache: Dict[RecordPeriod, List[PeriodTotals]] = {}

        for metric, periods in plan:
            for period in periods:
                if period not in period_cache:
                    period_cache[period] = aggregate_periods(series, period, today)
                current = records.get(metric, {}).get(period)
                resolved = _resolve_record(current, period_cache[period], metric, today)
                if resolved is None or resolved is current:
                    continue

                records.setdefault(metric, {})[period] = resolved
                updates.append(RecordUpdate(
                    agentName=stored_name,
                    metric=metric,
                    period=period,
                    previousValue=current.value if current is not None else None,
                    newValue=resolved.value,
                    periodStart=resolved.periodStart,
                    periodEnd=resolved.periodEnd,
                ))

        agents[stored_name] = AgentRecords(agentName=stored_name, records=records)

    if updates:
        logger.info(f"{len(updates)} personal records updated across {len(time_series.agents)} agents")

    return RecordsResult(
        records=AllRecords(agents=agents, lastUpdated=today),
        updates=updates,
    )
