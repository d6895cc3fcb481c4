"""
Metrics Aggregator Service

Turns raw activity records into per-agent totals, per-agent daily counts and
group (department / senior / non-senior) daily aggregates.

Processing Flow:
    1. Resolve the agent and date column of each dataset (columns service)
    2. Attribute every row to an agent with a carry-forward fold: a blank
       agent cell inherits the last non-blank agent above it (grouped
       exports only print the agent name once per group)
    3. Count rows per agent and per agent/date, optionally inside an
       inclusive [start_date, end_date] window
    4. Non-converted leads are dated by their ORIGINAL trip's creation date,
       looked up by trip name, since their own timestamp records a later
       lifecycle event
    5. Build AgentMetrics (totals + derived rates) and TimeSeriesData

Rate Rules:
    - Every rate is a percentage and is 0.0 when its denominator is 0
    - Group rates are sum(numerator) / sum(denominator) * 100 over the group's
      members for the day, never a mean of member rates

Data-quality problems (unresolved columns, unparseable dates) never raise:
they are logged and produce empty counts or skipped rows.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from performance_analytics.models.enums import DatasetKind, LogicalField, SegmentDimension
from performance_analytics.models.schemas import (
    AgentMetrics,
    AgentTimeSeries,
    AggregationResult,
    ColumnResolution,
    DailyAgentMetrics,
    DateRange,
    GroupDailyPoint,
    RawDatasets,
    RawRecord,
    TimeSeriesData,
)
from performance_analytics.services.columns import (
    COLUMN_CANDIDATES,
    cell,
    find_agent_column,
    find_column,
    is_numeric_value,
    resolve_field,
)
from performance_analytics.services.temporal import in_range, parse_date_value


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Date fields tried (in order) for each dataset's per-day bucketing
DATASET_DATE_FIELDS: Dict[DatasetKind, Tuple[LogicalField, ...]] = {
    DatasetKind.TRIPS: (LogicalField.CREATED_DATE,),
    DatasetKind.QUOTES: (LogicalField.QUOTE_SENT_DATE,),
    DatasetKind.PASSTHROUGHS: (LogicalField.PASSTHROUGH_DATE, LogicalField.CREATED_DATE),
    DatasetKind.HOT_PASS: (LogicalField.HOT_PASS_DATE,),
    DatasetKind.BOOKINGS: (LogicalField.BOOKING_DATE,),
    DatasetKind.QUOTES_STARTED: (LogicalField.CREATED_DATE,),
}

REPEAT_CLIENT_VALUES = frozenset({'repeat', 'returning', 'existing'})


# =============================================================================
# Count Containers
# =============================================================================


@dataclass
class CountResult:
    """
    Row counts for one dataset.

    Attributes:
        total: agent -> row count inside the window.
        by_date: agent -> {date -> row count}. Rows without a usable date are
            only present in `total`.
    """
    total: Dict[str, int] = field(default_factory=dict)
    by_date: Dict[str, Dict[date, int]] = field(default_factory=dict)

    def add(self, agent: str, day: Optional[date]) -> None:
        self.total[agent] = self.total.get(agent, 0) + 1
        if day is not None:
            per_day = self.by_date.setdefault(agent, {})
            per_day[day] = per_day.get(day, 0) + 1


@dataclass(frozen=True)
class RateSet:
    """Derived conversion rates (percentages) for one set of counts."""
    tq: float = 0.0
    tp: float = 0.0
    pq: float = 0.0
    hp: float = 0.0
    nc: float = 0.0
    bk: float = 0.0


# =============================================================================
# Helpers
# =============================================================================


def safe_rate(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, or 0.0 when the denominator is 0."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100.0


def agent_key(name: str) -> str:
    """Case-insensitive identity used to match an agent across datasets."""
    return name.strip().lower()


def is_repeat_client(value: str) -> bool:
    return value.strip().lower() in REPEAT_CLIENT_VALUES


def is_b2b_client(value: str) -> bool:
    lowered = value.strip().lower()
    return 'b2b' in lowered or lowered == 'business'


def has_passthrough(row: Mapping[str, str], passthrough_column: Optional[str]) -> bool:
    """A trip counts as passed through when its passthrough date is non-blank."""
    return bool(cell(row, passthrough_column))


def resolve_date_column(rows: Sequence[RawRecord], kind: DatasetKind) -> Optional[str]:
    """First resolvable date column for a dataset kind."""
    for logical in DATASET_DATE_FIELDS.get(kind, ()):
        column = resolve_field(rows, logical)
        if column is not None:
            return column
    return None


# =============================================================================
# Carry-Forward Attribution
# =============================================================================


def advance_agent(current: Optional[str], value: str) -> Optional[str]:
    """
    One step of the carry-forward fold.

    A non-blank, non-numeric value becomes the current agent; anything else
    leaves the current agent in place.
    """
    candidate = value.strip()
    if not candidate or is_numeric_value(candidate):
        return current
    return candidate


def attribute_rows(
    rows: Iterable[RawRecord],
    agent_column: Optional[str],
) -> Iterator[Tuple[str, RawRecord]]:
    """
    Yield (agent, row) pairs, scanning rows top to bottom.

    Rows that appear before any valid agent value are dropped.
    """
    if agent_column is None:
        return
    current: Optional[str] = None
    for row in rows:
        current = advance_agent(current, cell(row, agent_column))
        if current is not None:
            yield current, row


# =============================================================================
# Counting
# =============================================================================


def count_by_agent(
    rows: Sequence[RawRecord],
    agent_column: Optional[str],
    date_column: Optional[str],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    row_filter: Optional[Callable[[RawRecord], bool]] = None,
) -> CountResult:
    """
    Count rows per agent and per agent/date.

    Args:
        rows: Dataset rows in file order.
        agent_column: Resolved agent column; None yields an empty result.
        date_column: Resolved date column; None means rows are only totalled
            and, with a window active, skipped.
        start_date: Inclusive lower bound, or None.
        end_date: Inclusive upper bound, or None.
        row_filter: Optional predicate; rows failing it are not counted but
            still advance the carry-forward agent.

    Returns:
        CountResult with totals and per-date counts.
    """
    result = CountResult()
    windowed = start_date is not None or end_date is not None
    skipped = 0

    for agent, row in attribute_rows(rows, agent_column):
        if row_filter is not None and not row_filter(row):
            continue

        raw_date = cell(row, date_column)
        day: Optional[date] = None
        if raw_date:
            day = parse_date_value(raw_date)
            if day is None:
                skipped += 1
                continue

        if windowed and (day is None or not in_range(day, start_date, end_date)):
            continue

        result.add(agent, day)

    if skipped:
        logger.debug(f"Skipped {skipped} rows with unparseable dates in column '{date_column}'")

    return result


def build_trip_date_map(
    trip_rows: Sequence[RawRecord],
    trip_name_column: Optional[str],
    date_column: Optional[str],
) -> Dict[str, date]:
    """Map lower-cased trip name -> trip creation date."""
    trip_dates: Dict[str, date] = {}
    if trip_name_column is None or date_column is None:
        return trip_dates

    for row in trip_rows:
        name = cell(row, trip_name_column).lower()
        if not name:
            continue
        day = parse_date_value(cell(row, date_column))
        if day is not None:
            trip_dates[name] = day
    return trip_dates


def count_non_converted(
    rows: Sequence[RawRecord],
    trip_date_map: Mapping[str, date],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> CountResult:
    """
    Count non-converted leads per lead owner, dated by the originating trip.

    Only rows carrying a non-validated reason are counted. A row whose trip
    cannot be found in `trip_date_map` has no date: it is counted in totals
    when no window is active and skipped otherwise.
    """
    result = CountResult()
    if not rows:
        return result

    owner_column = find_column(rows[0], COLUMN_CANDIDATES[LogicalField.LEAD_OWNER])
    reason_column = find_column(rows[0], COLUMN_CANDIDATES[LogicalField.NON_VALIDATED_REASON])
    trip_name_column = find_column(rows[0], COLUMN_CANDIDATES[LogicalField.TRIP_NAME])

    if owner_column is None or reason_column is None:
        logger.warning(
            f"Non-converted columns unresolved (owner={owner_column}, reason={reason_column})"
        )
        return result

    windowed = start_date is not None or end_date is not None

    for agent, row in attribute_rows(rows, owner_column):
        if not cell(row, reason_column):
            continue

        trip_name = cell(row, trip_name_column).lower()
        day = trip_date_map.get(trip_name) if trip_name else None

        if windowed and (day is None or not in_range(day, start_date, end_date)):
            continue

        result.add(agent, day)

    return result


def count_segment_by_agent(
    trip_rows: Sequence[RawRecord],
    agent_column: Optional[str],
    date_column: Optional[str],
    segment_field: LogicalField,
    predicate: Callable[[str], bool],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[Dict[str, int], Dict[str, int]]:
    """
    Count segment trips and segment passthroughs per agent.

    Returns:
        (segment_trips, segment_passthroughs); both empty when the segment
        column cannot be resolved.
    """
    segment_column = resolve_field(trip_rows, segment_field)
    if segment_column is None:
        return {}, {}
    passthrough_column = resolve_field(trip_rows, LogicalField.PASSTHROUGH_DATE)

    def in_segment(row: RawRecord) -> bool:
        return predicate(cell(row, segment_column))

    def passed_through(row: RawRecord) -> bool:
        return in_segment(row) and has_passthrough(row, passthrough_column)

    trips = count_by_agent(trip_rows, agent_column, date_column, start_date, end_date, in_segment)
    passthroughs = count_by_agent(
        trip_rows, agent_column, date_column, start_date, end_date, passed_through
    )
    return trips.total, passthroughs.total


# =============================================================================
# Rates and Agent Metrics
# =============================================================================


def calculate_rates(
    trips: int,
    quotes: int,
    passthroughs: int,
    hot_passes: int,
    bookings: int = 0,
    non_converted: int = 0,
) -> RateSet:
    """Derived rates for one set of counts; each is 0.0 on a zero denominator."""
    return RateSet(
        tq=safe_rate(quotes, trips),
        tp=safe_rate(passthroughs, trips),
        pq=safe_rate(quotes, passthroughs),
        hp=safe_rate(hot_passes, passthroughs),
        nc=safe_rate(non_converted, trips),
        bk=safe_rate(bookings, trips),
    )


def _normalized_totals(counts: Mapping[str, int]) -> Dict[str, int]:
    merged: Dict[str, int] = defaultdict(int)
    for name, value in counts.items():
        merged[agent_key(name)] += value
    return dict(merged)


def _display_names(*count_maps: Mapping[str, object]) -> Dict[str, str]:
    """agent_key -> first spelling seen, scanning maps in order."""
    names: Dict[str, str] = {}
    for counts in count_maps:
        for name in counts:
            names.setdefault(agent_key(name), name.strip())
    return names


def calculate_agent_metrics(
    trips: CountResult,
    quotes: CountResult,
    passthroughs: CountResult,
    hot_passes: CountResult,
    bookings: CountResult,
    non_converted: CountResult,
    repeat: Optional[Tuple[Dict[str, int], Dict[str, int]]] = None,
    b2b: Optional[Tuple[Dict[str, int], Dict[str, int]]] = None,
    quotes_started: Optional[Dict[str, int]] = None,
) -> List[AgentMetrics]:
    """
    Build per-agent period summaries, sorted by agent name.

    Agents are matched case-insensitively across datasets; the display name
    is the first spelling seen (trips first).
    """
    if repeat is None:
        repeat = ({}, {})
    if b2b is None:
        b2b = ({}, {})

    names = _display_names(
        trips.total,
        quotes.total,
        passthroughs.total,
        hot_passes.total,
        bookings.total,
        non_converted.total,
    )

    trip_totals = _normalized_totals(trips.total)
    quote_totals = _normalized_totals(quotes.total)
    passthrough_totals = _normalized_totals(passthroughs.total)
    hot_pass_totals = _normalized_totals(hot_passes.total)
    booking_totals = _normalized_totals(bookings.total)
    non_converted_totals = _normalized_totals(non_converted.total)
    repeat_trips = _normalized_totals(repeat[0])
    repeat_passthroughs = _normalized_totals(repeat[1])
    b2b_trips = _normalized_totals(b2b[0])
    b2b_passthroughs = _normalized_totals(b2b[1])
    started_totals = _normalized_totals(quotes_started or {})

    metrics: List[AgentMetrics] = []
    for key, name in names.items():
        agent_trips = trip_totals.get(key, 0)
        agent_quotes = quote_totals.get(key, 0)
        agent_passthroughs = passthrough_totals.get(key, 0)
        agent_hot_passes = hot_pass_totals.get(key, 0)
        agent_bookings = booking_totals.get(key, 0)
        agent_non_converted = non_converted_totals.get(key, 0)
        rates = calculate_rates(
            agent_trips,
            agent_quotes,
            agent_passthroughs,
            agent_hot_passes,
            agent_bookings,
            agent_non_converted,
        )
        agent_repeat_trips = repeat_trips.get(key, 0)
        agent_repeat_passthroughs = repeat_passthroughs.get(key, 0)
        agent_b2b_trips = b2b_trips.get(key, 0)
        agent_b2b_passthroughs = b2b_passthroughs.get(key, 0)
        agent_started = started_totals.get(key, 0)

        metrics.append(AgentMetrics(
            agentName=name,
            trips=agent_trips,
            quotes=agent_quotes,
            passthroughs=agent_passthroughs,
            hotPasses=agent_hot_passes,
            bookings=agent_bookings,
            nonConvertedLeads=agent_non_converted,
            quotesFromTrips=rates.tq,
            passthroughsFromTrips=rates.tp,
            quotesFromPassthroughs=rates.pq,
            hotPassRate=rates.hp,
            nonConvertedRate=rates.nc,
            bookingRate=rates.bk,
            repeatTrips=agent_repeat_trips,
            repeatPassthroughs=agent_repeat_passthroughs,
            repeatTpRate=safe_rate(agent_repeat_passthroughs, agent_repeat_trips),
            b2bTrips=agent_b2b_trips,
            b2bPassthroughs=agent_b2b_passthroughs,
            b2bTpRate=safe_rate(agent_b2b_passthroughs, agent_b2b_trips),
            quotesStarted=agent_started,
            potentialTQ=safe_rate(agent_quotes + agent_started, agent_trips),
        ))

    return sorted(metrics, key=lambda m: m.agentName.lower())


# =============================================================================
# Time Series
# =============================================================================


def _normalized_by_date(by_date: Mapping[str, Mapping[date, int]]) -> Dict[str, Dict[date, int]]:
    merged: Dict[str, Dict[date, int]] = {}
    for name, per_day in by_date.items():
        target = merged.setdefault(agent_key(name), {})
        for day, value in per_day.items():
            target[day] = target.get(day, 0) + value
    return merged


def aggregate_group_daily(
    agents: Sequence[AgentTimeSeries],
    dates: Sequence[date],
) -> List[GroupDailyPoint]:
    """
    Sum member counts per date, then divide once for each rate.

    For A(trips=10, quotes=5) and B(trips=20, quotes=4) the group T>Q is
    9 / 30 = 30%, not the 35% mean of the two member rates.
    """
    lookups = [{m.date: m for m in agent.dailyMetrics} for agent in agents]
    points: List[GroupDailyPoint] = []

    for day in dates:
        trips = quotes = passthroughs = hot_passes = bookings = non_converted = 0
        for lookup in lookups:
            metrics = lookup.get(day)
            if metrics is None:
                continue
            trips += metrics.trips
            quotes += metrics.quotes
            passthroughs += metrics.passthroughs
            hot_passes += metrics.hotPasses
            bookings += metrics.bookings
            non_converted += metrics.nonConverted

        rates = calculate_rates(trips, quotes, passthroughs, hot_passes, bookings, non_converted)
        points.append(GroupDailyPoint(
            date=day,
            tq=rates.tq,
            tp=rates.tp,
            pq=rates.pq,
            hp=rates.hp,
            nc=rates.nc,
            bk=rates.bk,
            trips=trips,
            quotes=quotes,
            passthroughs=passthroughs,
            hotPasses=hot_passes,
            bookings=bookings,
            nonConverted=non_converted,
        ))

    return points


def build_time_series(
    trips: CountResult,
    quotes: CountResult,
    passthroughs: CountResult,
    hot_passes: CountResult,
    bookings: CountResult,
    non_converted: CountResult,
    seniors: Iterable[str] = (),
) -> TimeSeriesData:
    """
    Build per-agent daily series plus department/senior/non-senior aggregates.

    Every agent gets an entry for every date in the union of dates seen in
    any dataset, with zero counts where it had no activity.
    """
    sources = [trips, quotes, passthroughs, hot_passes, bookings, non_converted]
    names = _display_names(*(source.by_date for source in sources))
    normalized = [_normalized_by_date(source.by_date) for source in sources]

    all_dates = sorted({day for per_agent in normalized for days in per_agent.values() for day in days})
    empty: Dict[date, int] = {}

    agents: List[AgentTimeSeries] = []
    for key, name in names.items():
        trip_days, quote_days, pt_days, hp_days, booking_days, nc_days = (
            source.get(key, empty) for source in normalized
        )
        daily = [
            DailyAgentMetrics(
                date=day,
                trips=trip_days.get(day, 0),
                quotes=quote_days.get(day, 0),
                passthroughs=pt_days.get(day, 0),
                hotPasses=hp_days.get(day, 0),
                bookings=booking_days.get(day, 0),
                nonConverted=nc_days.get(day, 0),
            )
            for day in all_dates
        ]
        agents.append(AgentTimeSeries(agentName=name, dailyMetrics=daily))

    agents.sort(key=lambda a: a.agentName.lower())
    senior_keys = {agent_key(name) for name in seniors}
    senior_agents = [a for a in agents if agent_key(a.agentName) in senior_keys]
    other_agents = [a for a in agents if agent_key(a.agentName) not in senior_keys]

    return TimeSeriesData(
        dateRange=DateRange(
            start=all_dates[0] if all_dates else None,
            end=all_dates[-1] if all_dates else None,
        ),
        agents=agents,
        departmentDaily=aggregate_group_daily(agents, all_dates),
        seniorDaily=aggregate_group_daily(senior_agents, all_dates),
        nonSeniorDaily=aggregate_group_daily(other_agents, all_dates),
    )


def segment_daily_rates(
    trip_rows: Sequence[RawRecord],
    dimension: SegmentDimension,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[GroupDailyPoint]:
    """
    Daily T>P for repeat-client or B2B trips across the whole department.

    Only trips, passthroughs and tp are populated. Returns [] when the
    segment or date column cannot be resolved.

    Raises:
        ValueError: For SegmentDimension.REGION, which has no single segment.
    """
    if dimension == SegmentDimension.REPEAT_NEW:
        segment_field, predicate = LogicalField.REPEAT_NEW, is_repeat_client
    elif dimension == SegmentDimension.B2B_B2C:
        segment_field, predicate = LogicalField.B2B_B2C, is_b2b_client
    else:
        raise ValueError(f"Daily segment rates are not defined for dimension '{dimension.value}'")

    segment_column = resolve_field(trip_rows, segment_field)
    date_column = resolve_field(trip_rows, LogicalField.CREATED_DATE)
    if segment_column is None or date_column is None:
        logger.warning(f"Segment daily rates unavailable: {dimension.value} or created date column missing")
        return []
    passthrough_column = resolve_field(trip_rows, LogicalField.PASSTHROUGH_DATE)

    daily: Dict[date, List[int]] = {}
    for row in trip_rows:
        if not predicate(cell(row, segment_column)):
            continue
        day = parse_date_value(cell(row, date_column))
        if day is None or not in_range(day, start_date, end_date):
            continue
        stats = daily.setdefault(day, [0, 0])
        stats[0] += 1
        if has_passthrough(row, passthrough_column):
            stats[1] += 1

    return [
        GroupDailyPoint(
            date=day,
            tp=safe_rate(daily[day][1], daily[day][0]),
            trips=daily[day][0],
            passthroughs=daily[day][1],
        )
        for day in sorted(daily)
    ]


# =============================================================================
# Orchestration
# =============================================================================


def _count_dataset(
    kind: DatasetKind,
    rows: Sequence[RawRecord],
    start_date: Optional[date],
    end_date: Optional[date],
    resolutions: List[ColumnResolution],
) -> Tuple[CountResult, Optional[str], Optional[str]]:
    if not rows:
        return CountResult(), None, None

    agent_column = find_agent_column(rows[0])
    date_column = resolve_date_column(rows, kind)
    resolutions.append(ColumnResolution(
        dataset=kind.value,
        agentColumn=agent_column,
        dateColumn=date_column,
    ))

    if agent_column is None:
        logger.warning(f"No agent column found in {kind.value} dataset; counts will be empty")
        return CountResult(), None, date_column
    if date_column is None:
        logger.warning(f"No date column found in {kind.value} dataset; daily series will be empty")

    return count_by_agent(rows, agent_column, date_column, start_date, end_date), agent_column, date_column


def run_aggregation(
    datasets: RawDatasets,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    seniors: Iterable[str] = (),
) -> AggregationResult:
    """
    Run the full aggregation over one raw dataset snapshot.

    Args:
        datasets: Raw record collections.
        start_date: Inclusive window start, or None.
        end_date: Inclusive window end, or None.
        seniors: Agent names forming the senior group (case-insensitive).

    Returns:
        AggregationResult with agent metrics, time series and the column
        resolutions that were used.

    Raises:
        ValueError: If start_date is after end_date.
    """
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValueError(f"start_date {start_date} is after end_date {end_date}")

    resolutions: List[ColumnResolution] = []

    trips, trip_agent_column, trip_date_column = _count_dataset(
        DatasetKind.TRIPS, datasets.trips, start_date, end_date, resolutions
    )
    quotes, _, _ = _count_dataset(DatasetKind.QUOTES, datasets.quotes, start_date, end_date, resolutions)
    passthroughs, _, _ = _count_dataset(
        DatasetKind.PASSTHROUGHS, datasets.passthroughs, start_date, end_date, resolutions
    )
    hot_passes, _, _ = _count_dataset(DatasetKind.HOT_PASS, datasets.hotPass, start_date, end_date, resolutions)
    bookings, _, _ = _count_dataset(DatasetKind.BOOKINGS, datasets.bookings, start_date, end_date, resolutions)
    started, _, _ = _count_dataset(
        DatasetKind.QUOTES_STARTED, datasets.quotesStarted, start_date, end_date, resolutions
    )

    trip_date_map = build_trip_date_map(
        datasets.trips,
        resolve_field(datasets.trips, LogicalField.TRIP_NAME),
        trip_date_column,
    )
    non_converted = count_non_converted(datasets.nonConverted, trip_date_map, start_date, end_date)

    repeat = count_segment_by_agent(
        datasets.trips, trip_agent_column, trip_date_column,
        LogicalField.REPEAT_NEW, is_repeat_client, start_date, end_date,
    )
    b2b = count_segment_by_agent(
        datasets.trips, trip_agent_column, trip_date_column,
        LogicalField.B2B_B2C, is_b2b_client, start_date, end_date,
    )

    agent_metrics = calculate_agent_metrics(
        trips, quotes, passthroughs, hot_passes, bookings, non_converted,
        repeat=repeat, b2b=b2b, quotes_started=started.total,
    )
    time_series = build_time_series(
        trips, quotes, passthroughs, hot_passes, bookings, non_converted, seniors
    )

    logger.info(
        f"Aggregated {len(agent_metrics)} agents over {len(time_series.departmentDaily)} dates "
        f"(window {start_date} to {end_date})"
    )

    return AggregationResult(
        agentMetrics=agent_metrics,
        timeSeries=time_series,
        columns=resolutions,
    )
