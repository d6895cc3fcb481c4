"""
Segment Performance Analyzer Service

Department-level conversion performance per category of one partition
dimension, and per-agent deviations from it.

Dimensions:
    - region: the trip's destination value
    - repeat_new: "Repeat" (repeat/returning/existing) or "New"
    - b2b_b2c: "B2B" (value contains b2b, or is "business") or "B2C"

Processing Flow (analyze_segment_performance):
    1. Restrict trips to the timeframe window (by created date)
    2. Drop excluded categories (case-insensitive substring match)
    3. Count trips, passthroughs, quotes and hot passes per category. Quotes
       and hot passes use their own category column when they have one,
       otherwise they are linked to a trip by trip name
    4. Keep categories with at least `min_category_trips` trips
    5. Rank:
       - top: tpRate >= overall, by tpRate * log10(trips + 1)
       - bottom: tpRate < overall, by trips * |tpRate - overall|
       - hot-pass top/bottom: same shapes over passthrough volume, for
         categories with at least `min_category_passthroughs` passthroughs

Agent deviations (analyze_agent_deviations):
    deviation   = agent tpRate - department tpRate (same category)
    impactScore = |deviation| * sqrt(category trips / total trips) * 100

    Positive deviations land in aboveAverage, negative in belowAverage and
    zero in neither.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from performance_analytics.models.enums import (
    LogicalField,
    RecommendationKind,
    SegmentDimension,
    SegmentTimeframe,
)
from performance_analytics.models.schemas import (
    AgentRecommendation,
    AgentSegmentAnalysis,
    CategoryDeviation,
    CategoryPerformance,
    DateRange,
    RawRecord,
    SegmentPerformance,
)
from performance_analytics.services.aggregation import (
    agent_key,
    attribute_rows,
    has_passthrough,
    is_b2b_client,
    is_repeat_client,
    safe_rate,
)
from performance_analytics.services.columns import cell, find_agent_column, resolve_field
from performance_analytics.services.recommendations import (
    classify_priority,
    potential_gain,
    recommendation_reason,
)
from performance_analytics.services.temporal import in_range, parse_date_value, timeframe_bounds


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_MIN_CATEGORY_TRIPS: int = 10
DEFAULT_MIN_AGENT_CATEGORY_TRIPS: int = 5
DEFAULT_MIN_CATEGORY_PASSTHROUGHS: int = 5

# Length of each ranked list
RANKED_CATEGORY_COUNT: int = 5

# Focus areas suggested per agent
AGENT_RECOMMENDATION_COUNT: int = 3

DIMENSION_FIELDS: Dict[SegmentDimension, LogicalField] = {
    SegmentDimension.REGION: LogicalField.DESTINATION,
    SegmentDimension.REPEAT_NEW: LogicalField.REPEAT_NEW,
    SegmentDimension.B2B_B2C: LogicalField.B2B_B2C,
}


# =============================================================================
# Category Labelling
# =============================================================================


def category_label(dimension: SegmentDimension, value: str) -> Optional[str]:
    """Category a raw cell value belongs to; None for blank values."""
    text = value.strip()
    if not text:
        return None
    if dimension == SegmentDimension.REPEAT_NEW:
        return 'Repeat' if is_repeat_client(text) else 'New'
    if dimension == SegmentDimension.B2B_B2C:
        return 'B2B' if is_b2b_client(text) else 'B2C'
    return text


def is_excluded(category: str, excluded: Iterable[str]) -> bool:
    lowered = category.lower()
    return any(term.strip() and term.strip().lower() in lowered for term in excluded)


@dataclass
class _CategoryCounts:
    trips: int = 0
    passthroughs: int = 0
    quotes: int = 0
    hot_passes: int = 0


@dataclass
class _TripRow:
    row: RawRecord
    category: str


# =============================================================================
# Windowing
# =============================================================================


def _row_in_window(
    row: RawRecord,
    date_column: Optional[str],
    start: Optional[date],
    end: Optional[date],
) -> bool:
    raw = cell(row, date_column)
    if not raw:
        return start is None and end is None
    day = parse_date_value(raw)
    if day is None:
        return False
    return in_range(day, start, end)


def _window_trips(
    trip_rows: Sequence[RawRecord],
    dimension: SegmentDimension,
    start: Optional[date],
    end: Optional[date],
    excluded: Sequence[str],
) -> Optional[List[_TripRow]]:
    category_column = resolve_field(trip_rows, DIMENSION_FIELDS[dimension])
    if category_column is None:
        logger.warning(f"No {dimension.value} column in trips; segment analysis unavailable")
        return None
    date_column = resolve_field(trip_rows, LogicalField.CREATED_DATE)

    selected: List[_TripRow] = []
    for row in trip_rows:
        category = category_label(dimension, cell(row, category_column))
        if category is None or is_excluded(category, excluded):
            continue
        if not _row_in_window(row, date_column, start, end):
            continue
        selected.append(_TripRow(row=row, category=category))
    return selected


def _count_linked(
    rows: Sequence[RawRecord],
    dimension: SegmentDimension,
    date_field: LogicalField,
    trip_categories: Dict[str, str],
    start: Optional[date],
    end: Optional[date],
    excluded: Sequence[str],
) -> Dict[str, int]:
    """Count quote or hot-pass rows per category, by own column or trip link."""
    counts: Dict[str, int] = defaultdict(int)
    if not rows:
        return counts

    own_column = resolve_field(rows, DIMENSION_FIELDS[dimension])
    trip_name_column = resolve_field(rows, LogicalField.TRIP_NAME)
    date_column = resolve_field(rows, date_field)

    for row in rows:
        if not _row_in_window(row, date_column, start, end):
            continue
        category: Optional[str] = None
        if own_column is not None:
            category = category_label(dimension, cell(row, own_column))
        if category is None and trip_name_column is not None:
            category = trip_categories.get(cell(row, trip_name_column).lower())
        if category is None or is_excluded(category, excluded):
            continue
        counts[category] += 1
    return counts


# =============================================================================
# Department Performance
# =============================================================================


def _category_performance(name: str, counts: _CategoryCounts) -> CategoryPerformance:
    return CategoryPerformance(
        category=name,
        trips=counts.trips,
        passthroughs=counts.passthroughs,
        quotes=counts.quotes,
        hotPasses=counts.hot_passes,
        tpRate=safe_rate(counts.passthroughs, counts.trips),
        pqRate=safe_rate(counts.quotes, counts.passthroughs),
        tqRate=safe_rate(counts.quotes, counts.trips),
        hotPassRate=safe_rate(counts.hot_passes, counts.passthroughs),
    )


def _rank(
    categories: Sequence[CategoryPerformance],
    include: Callable[[CategoryPerformance], bool],
    score: Callable[[CategoryPerformance], float],
) -> List[CategoryPerformance]:
    chosen = [c for c in categories if include(c)]
    chosen.sort(key=lambda c: (-score(c), c.category))
    return chosen[:RANKED_CATEGORY_COUNT]


def analyze_segment_performance(
    trip_rows: Sequence[RawRecord],
    quote_rows: Sequence[RawRecord] = (),
    hot_pass_rows: Sequence[RawRecord] = (),
    dimension: SegmentDimension = SegmentDimension.REGION,
    timeframe: SegmentTimeframe = SegmentTimeframe.ALL,
    excluded_categories: Sequence[str] = (),
    today: Optional[date] = None,
    min_category_trips: int = DEFAULT_MIN_CATEGORY_TRIPS,
    min_category_passthroughs: int = DEFAULT_MIN_CATEGORY_PASSTHROUGHS,
) -> Optional[SegmentPerformance]:
    """
    Analyze department performance per category of `dimension`.

    Args:
        trip_rows: Trip records.
        quote_rows: Quote records, for P>Q and T>Q.
        hot_pass_rows: Hot-pass records, for hot-pass rates.
        dimension: Partition dimension.
        timeframe: Named calendar window relative to `today`.
        excluded_categories: Substrings of category values to leave out.
        today: Reference date for the timeframe (defaults to date.today()).
        min_category_trips: Categories with fewer trips are dropped.
        min_category_passthroughs: Minimum passthroughs for hot-pass rankings.

    Returns:
        SegmentPerformance, or None when there are no trips or the dimension
        column cannot be resolved.

    Raises:
        ValueError: If a threshold is negative.
    """
    if min_category_trips < 0 or min_category_passthroughs < 0:
        raise ValueError("Category thresholds must be non-negative")
    if not trip_rows:
        return None

    start, end = timeframe_bounds(timeframe, today)
    trips = _window_trips(trip_rows, dimension, start, end, excluded_categories)
    if trips is None:
        return None

    counts: Dict[str, _CategoryCounts] = defaultdict(_CategoryCounts)
    trip_categories: Dict[str, str] = {}
    passthrough_column = resolve_field(trip_rows, LogicalField.PASSTHROUGH_DATE)
    trip_name_column = resolve_field(trip_rows, LogicalField.TRIP_NAME)

    for trip in trips:
        entry = counts[trip.category]
        entry.trips += 1
        if has_passthrough(trip.row, passthrough_column):
            entry.passthroughs += 1
        name = cell(trip.row, trip_name_column).lower()
        if name:
            trip_categories[name] = trip.category

    for category, value in _count_linked(
        quote_rows, dimension, LogicalField.QUOTE_SENT_DATE, trip_categories, start, end, excluded_categories
    ).items():
        counts[category].quotes += value
    for category, value in _count_linked(
        hot_pass_rows, dimension, LogicalField.HOT_PASS_DATE, trip_categories, start, end, excluded_categories
    ).items():
        counts[category].hot_passes += value

    total = _CategoryCounts(
        trips=sum(c.trips for c in counts.values()),
        passthroughs=sum(c.passthroughs for c in counts.values()),
        quotes=sum(c.quotes for c in counts.values()),
        hot_passes=sum(c.hot_passes for c in counts.values()),
    )
    overall = _category_performance('overall', total)

    qualified = [
        _category_performance(name, value)
        for name, value in counts.items()
        if value.trips >= min_category_trips
    ]
    qualified.sort(key=lambda c: (-c.trips, c.category))
    hot_pass_eligible = [c for c in qualified if c.passthroughs >= min_category_passthroughs]

    logger.info(
        f"Segment {dimension.value}/{timeframe.value}: {len(counts)} categories, "
        f"{len(qualified)} at or above {min_category_trips} trips"
    )

    return SegmentPerformance(
        dimension=dimension,
        timeframe=timeframe,
        dateRange=DateRange(start=start, end=end),
        totalTrips=total.trips,
        totalPassthroughs=total.passthroughs,
        totalQuotes=total.quotes,
        totalHotPasses=total.hot_passes,
        overallTpRate=overall.tpRate,
        overallPqRate=overall.pqRate,
        overallTqRate=overall.tqRate,
        overallHotPassRate=overall.hotPassRate,
        allCategories=qualified,
        topCategories=_rank(
            qualified,
            lambda c: c.tpRate >= overall.tpRate,
            lambda c: c.tpRate * math.log10(c.trips + 1),
        ),
        bottomCategories=_rank(
            qualified,
            lambda c: c.tpRate < overall.tpRate,
            lambda c: c.trips * abs(c.tpRate - overall.tpRate),
        ),
        topHotPassCategories=_rank(
            hot_pass_eligible,
            lambda c: c.hotPassRate >= overall.hotPassRate,
            lambda c: c.hotPassRate * math.log10(c.passthroughs + 1),
        ),
        bottomHotPassCategories=_rank(
            hot_pass_eligible,
            lambda c: c.hotPassRate < overall.hotPassRate,
            lambda c: c.passthroughs * abs(c.hotPassRate - overall.hotPassRate),
        ),
    )


# =============================================================================
# Agent Deviations
# =============================================================================


def category_impact_score(deviation: float, category_trips: int, total_trips: int) -> float:
    """|deviation| * sqrt(category share of department trips) * 100."""
    if total_trips <= 0:
        return 0.0
    return abs(deviation) * math.sqrt(category_trips / total_trips) * 100.0


def _agent_recommendations(below: Sequence[CategoryDeviation]) -> List[AgentRecommendation]:
    recommendations: List[AgentRecommendation] = []
    for deviation in below[:AGENT_RECOMMENDATION_COUNT]:
        gain = potential_gain(deviation.agentTrips, deviation.agentPassthroughs, deviation.departmentTpRate)
        recommendations.append(AgentRecommendation(
            category=deviation.category,
            agentTpRate=deviation.agentTpRate,
            departmentTpRate=deviation.departmentTpRate,
            agentTrips=deviation.agentTrips,
            departmentTrips=deviation.departmentTrips,
            deviation=deviation.deviation,
            impactScore=deviation.impactScore,
            potentialGain=gain,
            priority=classify_priority(RecommendationKind.TP, gain, deviation.agentTrips),
            reason=recommendation_reason(
                RecommendationKind.TP,
                deviation.category,
                deviation.agentTrips,
                deviation.deviation,
                gain,
            ),
        ))
    return recommendations


def analyze_agent_deviations(
    trip_rows: Sequence[RawRecord],
    performance: SegmentPerformance,
    min_agent_trips: int = DEFAULT_MIN_AGENT_CATEGORY_TRIPS,
    agent_name: Optional[str] = None,
) -> List[AgentSegmentAnalysis]:
    """
    Compare every agent's per-category T>P against the department.

    The window, dimension and category set come from `performance`; only
    categories in performance.allCategories are compared.

    Args:
        trip_rows: The same trip records the performance was built from.
        performance: Department analysis from analyze_segment_performance.
        min_agent_trips: Agent trips needed in a category before it is compared.
        agent_name: Restrict the result to one agent (case-insensitive).

    Returns:
        One AgentSegmentAnalysis per agent with trips in the window, sorted
        by agent name.
    """
    if min_agent_trips < 0:
        raise ValueError(f"min_agent_trips must be non-negative, got {min_agent_trips}")
    if not trip_rows:
        return []

    department = {c.category: c for c in performance.allCategories}
    category_column = resolve_field(trip_rows, DIMENSION_FIELDS[performance.dimension])
    if category_column is None or not department:
        return []
    date_column = resolve_field(trip_rows, LogicalField.CREATED_DATE)
    passthrough_column = resolve_field(trip_rows, LogicalField.PASSTHROUGH_DATE)
    start, end = performance.dateRange.start, performance.dateRange.end
    wanted = agent_key(agent_name) if agent_name else None

    names: Dict[str, str] = {}
    per_agent: Dict[str, Dict[str, _CategoryCounts]] = defaultdict(lambda: defaultdict(_CategoryCounts))

    for agent, row in attribute_rows(trip_rows, find_agent_column(trip_rows[0])):
        key = agent_key(agent)
        if wanted is not None and key != wanted:
            continue
        category = category_label(performance.dimension, cell(row, category_column))
        if category not in department:
            continue
        if not _row_in_window(row, date_column, start, end):
            continue
        names.setdefault(key, agent)
        entry = per_agent[key][category]
        entry.trips += 1
        if has_passthrough(row, passthrough_column):
            entry.passthroughs += 1

    results: List[AgentSegmentAnalysis] = []
    for key, categories in per_agent.items():
        deviations: List[CategoryDeviation] = []
        for category, counts in categories.items():
            if counts.trips < min_agent_trips:
                continue
            reference = department[category]
            agent_rate = safe_rate(counts.passthroughs, counts.trips)
            deviation = agent_rate - reference.tpRate
            deviations.append(CategoryDeviation(
                category=category,
                agentTrips=counts.trips,
                agentPassthroughs=counts.passthroughs,
                agentTpRate=agent_rate,
                departmentTpRate=reference.tpRate,
                departmentTrips=reference.trips,
                deviation=deviation,
                impactScore=category_impact_score(deviation, reference.trips, performance.totalTrips),
            ))

        deviations.sort(key=lambda d: (-d.impactScore, d.category))
        above = [d for d in deviations if d.deviation > 0]
        below = [d for d in deviations if d.deviation < 0]
        total_trips = sum(c.trips for c in categories.values())
        total_passthroughs = sum(c.passthroughs for c in categories.values())

        results.append(AgentSegmentAnalysis(
            agentName=names[key],
            totalTrips=total_trips,
            totalPassthroughs=total_passthroughs,
            overallTpRate=safe_rate(total_passthroughs, total_trips),
            deviations=deviations,
            aboveAverage=above,
            belowAverage=below,
            recommendations=_agent_recommendations(below),
        ))

    return sorted(results, key=lambda r: r.agentName.lower())
