"""
Enumeration definitions for the performance analytics engine.

All enums inherit from both `str` and `Enum` to ensure JSON serialization
compatibility with Pydantic models, so request and response payloads carry the
plain string value.

Groups:
- Dataset and logical field identifiers used by the column resolver
- Metric kinds (percent vs count families) used by chart series dispatch
- Segment dimensions, timeframes, recommendation kinds and priorities
- Regression fit types and personal record periods
"""

from enum import Enum


class DatasetKind(str, Enum):
    """
    Raw record collections accepted by the engine.

    Each collection is a list of row objects (lower-cased header -> string
    value) produced by an upstream spreadsheet parser.
    """
    TRIPS = "trips"
    QUOTES = "quotes"
    PASSTHROUGHS = "passthroughs"
    HOT_PASS = "hotPass"
    BOOKINGS = "bookings"
    NON_CONVERTED = "nonConverted"
    QUOTES_STARTED = "quotesStarted"


class LogicalField(str, Enum):
    """
    Logical fields resolved by fuzzy header matching.

    The same logical field can appear under different header spellings
    across uploads, so every lookup goes through a candidate list keyed by
    one of these values.
    """
    AGENT = "agent"
    LEAD_OWNER = "lead_owner"
    CREATED_DATE = "created_date"
    PASSTHROUGH_DATE = "passthrough_date"
    QUOTE_SENT_DATE = "quote_sent_date"
    HOT_PASS_DATE = "hot_pass_date"
    BOOKING_DATE = "booking_date"
    DESTINATION = "destination"
    REPEAT_NEW = "repeat_new"
    B2B_B2C = "b2b_b2c"
    NON_VALIDATED_REASON = "non_validated_reason"
    TRIP_NAME = "trip_name"


class MetricFamily(str, Enum):
    """
    Metric families.

    - PERCENT: a ratio of two counts expressed as a percentage
    - COUNT: a raw count summed over the period
    """
    PERCENT = "percent"
    COUNT = "count"


class MetricKind(str, Enum):
    """
    Closed set of chartable metrics.

    Percent metrics:
    - tq: trips -> quotes (T>Q)
    - tp: trips -> passthroughs (T>P)
    - pq: passthroughs -> quotes (P>Q)
    - hp: passthroughs -> hot passes (Hot-Pass rate)
    - nc: trips -> non-converted
    - bk: trips -> bookings

    Count metrics: trips, quotes, passthroughs, bookings.
    """
    TQ = "tq"
    TP = "tp"
    PQ = "pq"
    HP = "hp"
    NC = "nc"
    BK = "bk"
    TRIPS = "trips"
    QUOTES = "quotes"
    PASSTHROUGHS = "passthroughs"
    BOOKINGS = "bookings"

    @property
    def family(self) -> MetricFamily:
        if self in (
            MetricKind.TRIPS,
            MetricKind.QUOTES,
            MetricKind.PASSTHROUGHS,
            MetricKind.BOOKINGS,
        ):
            return MetricFamily.COUNT
        return MetricFamily.PERCENT


class RegressionType(str, Enum):
    """Fitted regression form."""
    LINEAR = "linear"
    LOG_LINEAR = "log-linear"


class SegmentDimension(str, Enum):
    """
    Partition dimensions for segment performance analysis.

    - region: trip destination
    - repeat_new: repeat vs new client
    - b2b_b2c: business vs consumer client
    """
    REGION = "region"
    REPEAT_NEW = "repeat_new"
    B2B_B2C = "b2b_b2c"


class SegmentTimeframe(str, Enum):
    """
    Named calendar timeframes for segment analysis.

    Boundaries are computed relative to a reference "today" by
    services.temporal.timeframe_bounds.
    """
    LAST_WEEK = "lastWeek"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    THIS_QUARTER = "thisQuarter"
    LAST_QUARTER = "lastQuarter"
    LAST_YEAR = "lastYear"
    ALL = "all"


class RecommendationKind(str, Enum):
    """
    Recommendation families.

    - tp: trips -> passthroughs gaps (volume = trips, gain = passthroughs)
    - pq: passthroughs -> quotes gaps (volume = passthroughs, gain = quotes)
    """
    TP = "tp"
    PQ = "pq"


class Priority(str, Enum):
    """Priority tier of an improvement recommendation."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecordPeriod(str, Enum):
    """Period granularity for personal best records."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
