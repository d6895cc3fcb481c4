"""
Pytest Configuration and Shared Fixtures for Performance Analytics Tests.

This module provides fixtures and configuration for all tests, supporting:
- Async test execution with pytest-asyncio (endpoint functions are awaited
  directly)
- Raw record builders matching real CRM export headers (trips, quotes,
  passthroughs, hot passes, bookings, non-converted leads)
- Time series fixtures for quartile, chart series and personal record tests
- A Settings fixture with default thresholds

Dependencies:
- pytest
- pytest-asyncio
- pandas (ingestion tests)
"""

from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

import pytest

from performance_analytics.core.config import Settings, get_settings
from performance_analytics.models import (
    AgentTimeSeries,
    DailyAgentMetrics,
    RawDatasets,
    RawRecord,
    TimeSeriesData,
)
from performance_analytics.services.aggregation import aggregate_group_daily


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Configure custom pytest markers for test organization.

    Custom markers defined:
    - slow: Marks tests as slow (deselect with -m "not slow")
    - property: Marks tests asserting a documented invariant of the engine

    Args:
        config: Pytest configuration object
    """
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )
    config.addinivalue_line(
        'markers',
        'property: marks tests asserting a documented engine invariant'
    )


# ============================================================
# RAW RECORD BUILDERS
# ============================================================

def trip_row(
    owner: str,
    created: str,
    trip_name: str = '',
    destination: str = 'Peru',
    passthrough: str = '',
    repeat: str = 'New',
    b2b: str = 'B2C',
) -> RawRecord:
    """
    Build a trips-report row with the headers of the standard export.

    Args:
        owner: GTT Owner cell (blank for grouped continuation rows)
        created: Created Date cell
        trip_name: Trip Name cell
        destination: Destination cell
        passthrough: Passthrough To Sales Date cell (blank = no passthrough)
        repeat: Repeat/New cell
        b2b: B2B/B2C cell
    """
    return {
        'gtt owner': owner,
        'trip name': trip_name,
        'created date': created,
        'destination': destination,
        'passthrough to sales date': passthrough,
        'repeat/new': repeat,
        'b2b/b2c': b2b,
    }


def region_trips(
    owner: str,
    destination: str,
    trips: int,
    passthroughs: int,
    created: str = '2024-03-04',
    prefix: Optional[str] = None,
) -> List[RawRecord]:
    """`trips` rows for one owner and destination, the first `passthroughs` passed through."""
    prefix = prefix or f"{owner}-{destination}"
    return [
        trip_row(
            owner,
            created,
            trip_name=f"{prefix}-{i}",
            destination=destination,
            passthrough=created if i < passthroughs else '',
        )
        for i in range(trips)
    ]


def quote_row(owner: str, sent: str, trip_name: str = '') -> RawRecord:
    return {'gtt owner': owner, 'trip name': trip_name, 'quote first sent': sent}


def passthrough_row(owner: str, when: str, trip_name: str = '') -> RawRecord:
    return {'gtt owner': owner, 'trip name': trip_name, 'passthrough to sales date': when}


def hot_pass_row(owner: str, when: str, trip_name: str = '') -> RawRecord:
    return {'gtt owner': owner, 'trip name': trip_name, 'hot pass date': when}


def booking_row(owner: str, when: str, trip_name: str = '') -> RawRecord:
    return {'gtt owner': owner, 'trip name': trip_name, 'booking date': when}


def non_converted_row(owner: str, reason: str, trip_name: str = '') -> RawRecord:
    return {'lead owner': owner, 'trip name': trip_name, 'non validated reason': reason}


# ============================================================
# TIME SERIES BUILDERS
# ============================================================

def daily(
    day: date,
    trips: int = 0,
    quotes: int = 0,
    passthroughs: int = 0,
    hot_passes: int = 0,
    bookings: int = 0,
) -> DailyAgentMetrics:
    return DailyAgentMetrics(
        date=day,
        trips=trips,
        quotes=quotes,
        passthroughs=passthroughs,
        hotPasses=hot_passes,
        bookings=bookings,
    )


def build_series(agents: Dict[str, Sequence[DailyAgentMetrics]]) -> TimeSeriesData:
    """
    Assemble a TimeSeriesData from per-agent daily metrics.

    Department aggregates are computed with the production group aggregator
    so fixtures stay consistent with aggregation output.
    """
    series = [
        AgentTimeSeries(agentName=name, dailyMetrics=sorted(metrics, key=lambda m: m.date))
        for name, metrics in agents.items()
    ]
    dates = sorted({m.date for s in series for m in s.dailyMetrics})
    return TimeSeriesData(
        agents=series,
        departmentDaily=aggregate_group_daily(series, dates),
    )


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the process environment cache."""
    get_settings.cache_clear()
    return Settings()


@pytest.fixture
def grouped_trip_rows() -> List[RawRecord]:
    """
    Trips as exported by a grouped report: the owner is printed once.

    Alice owns 4 trips (2 passed through), Bob owns 2 trips (1 passed through).
    """
    return [
        trip_row('Alice Smith', '2024-03-04', 'T1', passthrough='2024-03-05'),
        trip_row('', '2024-03-04', 'T2'),
        trip_row('', '2024-03-05', 'T3', passthrough='2024-03-06'),
        trip_row('', '2024-03-05', 'T4'),
        trip_row('Bob Jones', '2024-03-04', 'T5', passthrough='2024-03-04'),
        trip_row('', '2024-03-05', 'T6'),
    ]


@pytest.fixture
def sample_datasets(grouped_trip_rows: List[RawRecord]) -> RawDatasets:
    """A small but complete dataset snapshot for two agents over two days."""
    return RawDatasets(
        trips=grouped_trip_rows,
        quotes=[
            quote_row('Alice Smith', '2024-03-04', 'T1'),
            quote_row('alice smith', '2024-03-05', 'T3'),
            quote_row('Bob Jones', '2024-03-05', 'T5'),
        ],
        passthroughs=[
            passthrough_row('Alice Smith', '2024-03-05', 'T1'),
            passthrough_row('', '2024-03-06', 'T3'),
            passthrough_row('Bob Jones', '2024-03-04', 'T5'),
        ],
        hotPass=[
            hot_pass_row('Alice Smith', '2024-03-05', 'T1'),
        ],
        bookings=[
            booking_row('Alice Smith', '2024-03-06', 'T1'),
        ],
        nonConverted=[
            non_converted_row('Bob Jones', 'Price too high', 'T6'),
            non_converted_row('', 'No response', 'T2'),
        ],
    )


@pytest.fixture
def quartile_series() -> TimeSeriesData:
    """
    Eight agents with 20 passthroughs each and distinct hot-pass rates.

    Agent k (k = 1..8) has k hot passes, so Agent 8 ranks first and Agent 1
    last. Every agent has one active day with trips = 10 * k and quotes = k.
    """
    day = date(2024, 3, 4)
    return build_series({
        f"Agent {k}": [daily(day, trips=10 * k, quotes=k, passthroughs=20, hot_passes=k)]
        for k in range(1, 9)
    })


@pytest.fixture
def record_series() -> TimeSeriesData:
    """
    One agent across three weeks of March 2024 plus one day of April.

    Mondays: Mar 4, Mar 11, Mar 18. Mar 12 is the best day (9 trips).
    """
    start = date(2024, 3, 4)
    trips_by_offset = {0: 3, 1: 2, 7: 4, 8: 9, 14: 1}
    metrics = [
        daily(start + timedelta(days=offset), trips=trips, quotes=trips, passthroughs=1)
        for offset, trips in trips_by_offset.items()
    ]
    metrics.append(daily(date(2024, 4, 2), trips=20, quotes=5, passthroughs=2))
    return build_series({'Alice Smith': metrics})
