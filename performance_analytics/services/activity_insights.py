"""
Activity Insights Service

Timing, lead-quality and booking-linkage insights over a raw dataset
snapshot.

Analyses:
    - Passthroughs by weekday: count, share, and average per occurring date
    - Passthroughs by time-of-day bucket: suppressed (empty) when every
      timestamp is midnight, i.e. the export carries dates only
    - Top non-validated reasons across the department (top 10)
    - Non-validated reasons per lead owner (top 3 each), attributed with the
      carry-forward fold used by aggregation
    - Booking linkage: a hot pass is booked when its trip name appears in the
      bookings collection; results are bucketed by the hot pass's weekday

Reason values that are blank, purely numeric or a single character are
treated as spreadsheet noise and ignored.
"""

import logging
import re
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence, Set

from performance_analytics.models.enums import LogicalField
from performance_analytics.models.schemas import (
    ActivityInsights,
    AgentNonValidated,
    BookingCorrelation,
    DayAnalysis,
    NonValidatedReason,
    RawDatasets,
    RawRecord,
    TimeSlotAnalysis,
)
from performance_analytics.services.aggregation import attribute_rows, safe_rate
from performance_analytics.services.columns import (
    COLUMN_CANDIDATES,
    cell,
    find_column,
    resolve_field,
)
from performance_analytics.services.temporal import (
    DAY_NAMES,
    TIME_OF_DAY_BUCKETS,
    has_time_of_day,
    parse_timestamp,
)


logger = logging.getLogger(__name__)


TOP_REASON_COUNT: int = 10
TOP_AGENT_REASON_COUNT: int = 3

# Passthrough timestamps: passthrough date first, creation date as fallback
PASSTHROUGH_TIMESTAMP_CANDIDATES = (
    'passthrough to sales date',
    'passthrough date',
    'created date',
    'date',
)

# Hot passes are bucketed by when the enquiry was created; the hot pass date
# is the fallback for exports without a creation column
HOT_PASS_CREATED_CANDIDATES = (
    'created date',
    'enquiry date',
    'trip created',
)

_DIGITS = re.compile(r'^\d+$')


def is_meaningful_reason(reason: str) -> bool:
    text = reason.strip()
    return len(text) > 1 and not _DIGITS.match(text)


# =============================================================================
# Passthrough Timing
# =============================================================================


def analyze_passthroughs_by_day(passthroughs: Sequence[RawRecord]) -> List[DayAnalysis]:
    """Passthrough counts per weekday, busiest first."""
    if not passthroughs:
        return []
    column = find_column(passthroughs[0], PASSTHROUGH_TIMESTAMP_CANDIDATES)
    if column is None:
        return []

    counts: Counter = Counter()
    occurrences: Dict[str, Set] = defaultdict(set)
    for row in passthroughs:
        index = parse_timestamp(cell(row, column))
        if index is None:
            continue
        counts[index.dayOfWeek] += 1
        occurrences[index.dayOfWeek].add(index.date)

    total = sum(counts.values())
    days = [
        DayAnalysis(
            day=day,
            count=counts[day],
            percentage=safe_rate(counts[day], total),
            avgPerDay=counts[day] / len(occurrences[day]) if occurrences[day] else 0.0,
        )
        for day in DAY_NAMES
    ]
    # Stable sort keeps Monday..Sunday order among equal counts
    return sorted(days, key=lambda d: -d.count)


def analyze_passthroughs_by_time(passthroughs: Sequence[RawRecord]) -> List[TimeSlotAnalysis]:
    """Passthrough counts per time-of-day bucket; [] without genuine time data."""
    if not passthroughs:
        return []
    column = find_column(passthroughs[0], PASSTHROUGH_TIMESTAMP_CANDIDATES)
    if column is None:
        return []

    indices = [parse_timestamp(cell(row, column)) for row in passthroughs]
    if not has_time_of_day(indices):
        logger.debug("Passthrough timestamps carry no time of day; skipping time buckets")
        return []

    counts = Counter(index.timeSlot for index in indices if index is not None)
    total = sum(counts.values())
    slots = [
        TimeSlotAnalysis(
            timeSlot=name,
            count=counts[name],
            percentage=safe_rate(counts[name], total),
        )
        for name, _, _ in TIME_OF_DAY_BUCKETS
    ]
    return sorted(slots, key=lambda s: -s.count)


# =============================================================================
# Non-Validated Reasons
# =============================================================================


def _reason_column(rows: Sequence[RawRecord]) -> Optional[str]:
    return resolve_field(rows, LogicalField.NON_VALIDATED_REASON)


def _ranked_reasons(counts: Counter, limit: int) -> List[NonValidatedReason]:
    total = sum(counts.values())
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [
        NonValidatedReason(reason=reason, count=count, percentage=safe_rate(count, total))
        for reason, count in ranked[:limit]
    ]


def count_non_validated_reasons(non_converted: Sequence[RawRecord]) -> Counter:
    """Occurrences of each meaningful non-validated reason."""
    column = _reason_column(non_converted)
    if column is None:
        return Counter()
    return Counter(
        cell(row, column)
        for row in non_converted
        if is_meaningful_reason(cell(row, column))
    )


def analyze_non_validated_reasons(non_converted: Sequence[RawRecord]) -> List[NonValidatedReason]:
    """Department-wide top non-validated reasons."""
    return _ranked_reasons(count_non_validated_reasons(non_converted), TOP_REASON_COUNT)


def analyze_non_validated_by_agent(non_converted: Sequence[RawRecord]) -> List[AgentNonValidated]:
    """Top reasons per lead owner, agents with the most non-validated leads first."""
    if not non_converted:
        return []
    owner_column = find_column(non_converted[0], COLUMN_CANDIDATES[LogicalField.LEAD_OWNER])
    reason_column = _reason_column(non_converted)
    if owner_column is None or reason_column is None:
        return []

    per_agent: Dict[str, Counter] = defaultdict(Counter)
    for agent, row in attribute_rows(non_converted, owner_column):
        reason = cell(row, reason_column)
        if is_meaningful_reason(reason):
            per_agent[agent][reason] += 1

    results = [
        AgentNonValidated(
            agentName=agent,
            total=sum(reasons.values()),
            topReasons=_ranked_reasons(reasons, TOP_AGENT_REASON_COUNT),
        )
        for agent, reasons in per_agent.items()
    ]
    return sorted(results, key=lambda a: (-a.total, a.agentName))


# =============================================================================
# Booking Linkage
# =============================================================================


def _trip_names(rows: Sequence[RawRecord]) -> Optional[Set[str]]:
    column = resolve_field(rows, LogicalField.TRIP_NAME)
    if column is None:
        return None
    return {cell(row, column).lower() for row in rows if cell(row, column)}


def analyze_booking_correlations(
    hot_passes: Sequence[RawRecord],
    bookings: Sequence[RawRecord],
) -> List[BookingCorrelation]:
    """
    Booking rate of hot passes by the weekday their enquiry was created.

    Falls back to the hot pass date when the export has no creation column;
    the description names whichever date was used.

    Returns [] when either collection is empty or lacks a trip name column,
    or when hot passes have no usable date.
    """
    if not hot_passes or not bookings:
        return []

    booked_names = _trip_names(bookings)
    trip_column = resolve_field(hot_passes, LogicalField.TRIP_NAME)
    date_column = find_column(hot_passes[0], HOT_PASS_CREATED_CANDIDATES)
    event = "created"
    if date_column is None:
        date_column = resolve_field(hot_passes, LogicalField.HOT_PASS_DATE)
        event = "hot-passed"
    if booked_names is None or trip_column is None or date_column is None:
        logger.warning("Booking linkage unavailable: trip name or hot pass date column missing")
        return []

    totals: Counter = Counter()
    booked: Counter = Counter()
    for row in hot_passes:
        name = cell(row, trip_column).lower()
        index = parse_timestamp(cell(row, date_column))
        if not name or index is None:
            continue
        totals[index.dayOfWeek] += 1
        if name in booked_names:
            booked[index.dayOfWeek] += 1

    correlations = [
        BookingCorrelation(
            factor=f"Enquiries on {day}",
            bookedCount=booked[day],
            notBookedCount=totals[day] - booked[day],
            bookingRate=safe_rate(booked[day], totals[day]),
            description=f"{booked[day]} of {totals[day]} hot passes {event} on {day} booked",
        )
        for day in DAY_NAMES
        if totals[day] > 0
    ]
    return sorted(correlations, key=lambda c: -c.bookingRate)


# =============================================================================
# Combined Insights
# =============================================================================


def generate_activity_insights(datasets: RawDatasets) -> ActivityInsights:
    """Run every activity analysis over one dataset snapshot."""
    by_day = analyze_passthroughs_by_day(datasets.passthroughs)
    by_time = analyze_passthroughs_by_time(datasets.passthroughs)
    reason_counts = count_non_validated_reasons(datasets.nonConverted)
    top_reasons = _ranked_reasons(reason_counts, TOP_REASON_COUNT)
    correlations = analyze_booking_correlations(datasets.hotPass, datasets.bookings)

    return ActivityInsights(
        passthroughsByDay=by_day,
        passthroughsByTime=by_time,
        bestPassthroughDay=by_day[0].day if by_day and by_day[0].count > 0 else None,
        bestPassthroughTime=by_time[0].timeSlot if by_time else None,
        topNonValidatedReasons=top_reasons,
        agentNonValidated=analyze_non_validated_by_agent(datasets.nonConverted),
        bookingCorrelations=correlations,
        hasTimeData=bool(by_time),
        hasNonValidatedReasons=bool(top_reasons),
        hasBookingData=bool(datasets.bookings),
        totalPassthroughs=len(datasets.passthroughs),
        totalNonValidated=sum(reason_counts.values()),
        totalBookings=len(datasets.bookings),
        totalHotPass=len(datasets.hotPass),
    )
