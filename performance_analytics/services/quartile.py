"""
Quartile Cohort Analyzer Service

Splits agents into top and bottom quartiles by aggregate hot-pass rate and
compares the two cohorts' daily T>Q.

Algorithm:
    1. Total each agent's counts over the dates in range
    2. Keep agents with at least `min_passthroughs` passthroughs; fewer than
       four qualifying agents gives no result
    3. Sort by hot passes / passthroughs descending (ties by name)
    4. Cohort size = max(1, floor(N / 4)); top = first, bottom = last
    5. Per date: sum quotes and trips over the cohort members that were
       active (trips > 0) that day, and divide once

The daily rate is volume-weighted: a member with 40 trips weighs four times a
member with 10.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Set, Tuple

from performance_analytics.models.schemas import (
    AgentTimeSeries,
    DailyAgentMetrics,
    DateRange,
    QuartileAgent,
    QuartileAnalysis,
    QuartileDailyPoint,
    TimeSeriesData,
)
from performance_analytics.services.aggregation import safe_rate
from performance_analytics.services.temporal import in_range


logger = logging.getLogger(__name__)


DEFAULT_MIN_PASSTHROUGHS: int = 10

# Quartiles are meaningless below this many agents
MIN_QUALIFYING_AGENTS: int = 4


def _agent_totals(series: AgentTimeSeries, days: Set[date]) -> QuartileAgent:
    trips = passthroughs = quotes = hot_passes = bookings = 0
    for metrics in series.dailyMetrics:
        if metrics.date not in days:
            continue
        trips += metrics.trips
        passthroughs += metrics.passthroughs
        quotes += metrics.quotes
        hot_passes += metrics.hotPasses
        bookings += metrics.bookings

    return QuartileAgent(
        agentName=series.agentName,
        aggregateHotPassRate=safe_rate(hot_passes, passthroughs),
        totalTrips=trips,
        totalPassthroughs=passthroughs,
        totalQuotes=quotes,
        totalHotPasses=hot_passes,
        totalBookings=bookings,
    )


def cohort_size(agent_count: int) -> int:
    """max(1, floor(agent_count / 4))."""
    return max(1, agent_count // 4)


def _weighted_tq(
    members: Sequence[Dict[date, DailyAgentMetrics]],
    day: date,
) -> Tuple[float, int]:
    trips = quotes = active = 0
    for lookup in members:
        metrics = lookup.get(day)
        if metrics is None or metrics.trips <= 0:
            continue
        trips += metrics.trips
        quotes += metrics.quotes
        active += 1
    return safe_rate(quotes, trips), active


def calculate_quartile_analysis(
    time_series: TimeSeriesData,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    min_passthroughs: int = DEFAULT_MIN_PASSTHROUGHS,
) -> Optional[QuartileAnalysis]:
    """
    Compare daily weighted T>Q between the top and bottom hot-pass quartiles.

    Args:
        time_series: Aggregated per-agent daily series.
        start_date: Inclusive range start, or None.
        end_date: Inclusive range end, or None.
        min_passthroughs: Passthroughs an agent needs in range to qualify.

    Returns:
        QuartileAnalysis, or None with fewer than four qualifying agents.

    Raises:
        ValueError: If min_passthroughs is negative or start_date > end_date.

    Example:
        With 8 qualifying agents both cohorts hold 2 agents; with 3 the
        result is None.
    """
    if min_passthroughs < 0:
        raise ValueError(f"min_passthroughs must be non-negative, got {min_passthroughs}")
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValueError(f"start_date {start_date} is after end_date {end_date}")

    days = sorted({
        m.date
        for series in time_series.agents
        for m in series.dailyMetrics
        if in_range(m.date, start_date, end_date)
    })
    day_set = set(days)

    qualifying = [
        totals
        for totals in (_agent_totals(series, day_set) for series in time_series.agents)
        if totals.totalPassthroughs >= min_passthroughs
    ]
    if len(qualifying) < MIN_QUALIFYING_AGENTS:
        logger.info(
            f"Quartile analysis skipped: {len(qualifying)} agents with >= {min_passthroughs} passthroughs"
        )
        return None

    qualifying.sort(key=lambda a: (-a.aggregateHotPassRate, a.agentName.lower()))
    size = cohort_size(len(qualifying))
    top = qualifying[:size]
    bottom = qualifying[-size:]

    lookups = {
        series.agentName: {m.date: m for m in series.dailyMetrics}
        for series in time_series.agents
    }
    top_members = [lookups[a.agentName] for a in top]
    bottom_members = [lookups[a.agentName] for a in bottom]

    comparison: List[QuartileDailyPoint] = []
    for day in days:
        top_tq, top_active = _weighted_tq(top_members, day)
        bottom_tq, bottom_active = _weighted_tq(bottom_members, day)
        comparison.append(QuartileDailyPoint(
            date=day,
            topQuartileTQ=top_tq,
            bottomQuartileTQ=bottom_tq,
            topQuartileAgentCount=top_active,
            bottomQuartileAgentCount=bottom_active,
        ))

    return QuartileAnalysis(
        topQuartileAgents=top,
        bottomQuartileAgents=bottom,
        dailyComparison=comparison,
        dateRange=DateRange(
            start=days[0] if days else start_date,
            end=days[-1] if days else end_date,
        ),
    )
