"""
Temporal Indexer Service

Parses the date and timestamp strings found in uploaded activity exports and
maps them onto the calendar units the analyses group by: calendar date,
weekday name and a named time-of-day bucket. Also computes the exact calendar
boundaries of the named segment timeframes.

Accepted inputs:
    - Spreadsheet serial day numbers (1000 < n < 100000, epoch 1899-12-30);
      the fractional part carries the time of day. Other plain numbers are
      rejected.
    - Any text pd.to_datetime understands, month-first: 2024-03-05T14:30:00Z,
      3/5/2024 2:30 PM, 2024/03/05, 5 Mar 2024, Mar 5, 2024 2:30:15 PM

Anything else yields None and the caller skips the row.

Time-of-day buckets are fixed configuration (TIME_OF_DAY_BUCKETS), never
inferred from data. A dataset whose timestamps are all exactly midnight has
no genuine time information (has_time_of_day returns False) and time-of-day
analysis is suppressed for it.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from performance_analytics.models.enums import SegmentTimeframe


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Spreadsheet serial dates count days from this epoch (the 1900 leap-year bug
# is absorbed by starting on Dec 30 rather than Dec 31).
SPREADSHEET_EPOCH: datetime = datetime(1899, 12, 30)

# Numbers outside this open interval are not treated as serial dates
# (1000 ~ 1902-09, 100000 ~ 2173-10).
SERIAL_DATE_MIN: float = 1000
SERIAL_DATE_MAX: float = 100000

DAY_NAMES: Tuple[str, ...] = (
    'Monday',
    'Tuesday',
    'Wednesday',
    'Thursday',
    'Friday',
    'Saturday',
    'Sunday',
)

# Ordered (name, start_hour, end_hour) partition of the 24-hour day.
# End is exclusive. A bucket whose start is after its end wraps midnight.
TIME_OF_DAY_BUCKETS: Tuple[Tuple[str, int, int], ...] = (
    ('Early Morning (6-9am)', 6, 9),
    ('Morning (9am-12pm)', 9, 12),
    ('Afternoon (12-3pm)', 12, 15),
    ('Late Afternoon (3-6pm)', 15, 18),
    ('Evening (6-9pm)', 18, 21),
    ('Night (9pm-6am)', 21, 6),
)

_SERIAL_PATTERN = re.compile(r'^\d+(\.\d+)?$')
_WHITESPACE = re.compile(r'\s+')
_DIGIT = re.compile(r'\d')


# =============================================================================
# Parsed Timestamp
# =============================================================================


@dataclass(frozen=True)
class TemporalIndex:
    """
    A parsed timestamp reduced to the units used for grouping.

    Attributes:
        date: Calendar date.
        dayOfWeek: Weekday name (Monday..Sunday).
        hour: Hour of day, 0-23.
        minute: Minute of hour, 0-59.
        timeSlot: Name of the TIME_OF_DAY_BUCKETS bucket containing `hour`.
    """
    date: date
    dayOfWeek: str
    hour: int
    minute: int
    timeSlot: str

    @property
    def is_midnight(self) -> bool:
        return self.hour == 0 and self.minute == 0


def time_slot_for_hour(hour: int) -> str:
    """Return the bucket name for an hour of day (0-23)."""
    if not 0 <= hour <= 23:
        raise ValueError(f"hour must be in 0..23, got {hour}")

    for name, start, end in TIME_OF_DAY_BUCKETS:
        if start < end:
            if start <= hour < end:
                return name
        elif hour >= start or hour < end:
            return name

    # Unreachable while the buckets cover the whole day
    raise ValueError(f"no time-of-day bucket covers hour {hour}")


# =============================================================================
# Parsing
# =============================================================================


def _parse_serial(text: str) -> Optional[datetime]:
    serial = float(text)
    if not SERIAL_DATE_MIN < serial < SERIAL_DATE_MAX:
        return None
    # Round to the second so 0.5625 lands on 13:30:00 rather than 13:29:59
    return SPREADSHEET_EPOCH + timedelta(seconds=round(serial * 86400))


def _parse_text(text: str) -> Optional[datetime]:
    # Word-only cells ("now", "today") are never dates in an export
    if not _DIGIT.search(text):
        return None
    parsed = pd.to_datetime(text, errors='coerce')
    if pd.isna(parsed):
        return None
    # Offset-aware timestamps keep their wall-clock time
    if parsed.tzinfo is not None:
        parsed = parsed.tz_localize(None)
    return parsed.to_pydatetime()


def parse_datetime_value(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a raw cell into a naive datetime.

    Plain numbers are only read as spreadsheet serials; everything else goes
    through pandas. Returns None for blank or unrecognised input.
    """
    if value is None:
        return None
    text = _WHITESPACE.sub(' ', str(value)).strip()
    if not text:
        return None

    if _SERIAL_PATTERN.match(text):
        return _parse_serial(text)
    return _parse_text(text)


def parse_date_value(value: Optional[str]) -> Optional[date]:
    """Parse a raw cell into a calendar date, or None if unparseable."""
    parsed = parse_datetime_value(value)
    if parsed is None:
        return None
    return parsed.date()


def parse_timestamp(value: Optional[str]) -> Optional[TemporalIndex]:
    """
    Parse a raw cell into a TemporalIndex.

    Example:
        >>> index = parse_timestamp('3/5/2024 2:30 PM')
        >>> index.dayOfWeek, index.timeSlot
        ('Tuesday', 'Afternoon (12-3pm)')
    """
    parsed = parse_datetime_value(value)
    if parsed is None:
        return None
    return TemporalIndex(
        date=parsed.date(),
        dayOfWeek=DAY_NAMES[parsed.weekday()],
        hour=parsed.hour,
        minute=parsed.minute,
        timeSlot=time_slot_for_hour(parsed.hour),
    )


def has_time_of_day(indices: Iterable[Optional[TemporalIndex]]) -> bool:
    """True if at least one parsed timestamp is not exactly midnight."""
    return any(index is not None and not index.is_midnight for index in indices)


# =============================================================================
# Ranges and Timeframes
# =============================================================================


def in_range(day: date, start: Optional[date], end: Optional[date]) -> bool:
    """Inclusive range check; a None bound is unbounded on that side."""
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def _month_end(year: int, month: int) -> date:
    if month == 12:
        return date(year, 12, 31)
    return date(year, month + 1, 1) - timedelta(days=1)


def quarter_start(day: date) -> date:
    """First day of the calendar quarter containing `day`."""
    return date(day.year, 3 * ((day.month - 1) // 3) + 1, 1)


def quarter_end(day: date) -> date:
    """Last day of the calendar quarter containing `day`."""
    start = quarter_start(day)
    return _month_end(start.year, start.month + 2)


def week_start(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return _month_end(day.year, day.month)


def timeframe_bounds(
    timeframe: SegmentTimeframe,
    today: Optional[date] = None,
) -> Tuple[Optional[date], Optional[date]]:
    """
    Inclusive (start, end) bounds of a named timeframe relative to `today`.

    - lastWeek: Monday to Sunday of the previous calendar week
    - thisMonth: 1st of the current month to today
    - lastMonth: 1st to last day of the previous month
    - thisQuarter: first day of the current quarter to today
    - lastQuarter: first to last day of the previous quarter
    - lastYear: Jan 1 to Dec 31 of the previous year
    - all: (None, None)
    """
    if today is None:
        today = date.today()

    if timeframe == SegmentTimeframe.ALL:
        return None, None

    if timeframe == SegmentTimeframe.LAST_WEEK:
        start = week_start(today) - timedelta(days=7)
        return start, start + timedelta(days=6)

    if timeframe == SegmentTimeframe.THIS_MONTH:
        return month_start(today), today

    if timeframe == SegmentTimeframe.LAST_MONTH:
        previous = month_start(today) - timedelta(days=1)
        return month_start(previous), previous

    if timeframe == SegmentTimeframe.THIS_QUARTER:
        return quarter_start(today), today

    if timeframe == SegmentTimeframe.LAST_QUARTER:
        previous = quarter_start(today) - timedelta(days=1)
        return quarter_start(previous), previous

    if timeframe == SegmentTimeframe.LAST_YEAR:
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)

    raise ValueError(f"Unsupported timeframe: {timeframe}")


def date_span(start: date, end: date) -> List[date]:
    """Every date from start to end inclusive; empty if start > end."""
    if start > end:
        return []
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]
