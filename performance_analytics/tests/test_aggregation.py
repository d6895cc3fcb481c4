"""
Test suite for the metrics aggregator.

The tests verify:
1. Carry-forward agent attribution over grouped exports
2. Windowed per-agent counting and unparseable-date handling
3. Non-converted leads dated by their originating trip
4. Zero-denominator rates and case-insensitive agent merging
5. Group rates computed as sum(numerator) / sum(denominator)
6. The full run_aggregation pipeline on a small snapshot
"""

from datetime import date
from typing import List

import pytest

from performance_analytics.models import (
    AgentTimeSeries,
    DailyAgentMetrics,
    RawDatasets,
    RawRecord,
    SegmentDimension,
)
from performance_analytics.services.aggregation import (
    CountResult,
    advance_agent,
    aggregate_group_daily,
    attribute_rows,
    build_trip_date_map,
    calculate_agent_metrics,
    calculate_rates,
    count_by_agent,
    count_non_converted,
    run_aggregation,
    safe_rate,
    segment_daily_rates,
)
from performance_analytics.tests.conftest import non_converted_row, trip_row


# =============================================================================
# AGENT ATTRIBUTION
# =============================================================================


class TestCarryForward:
    """Test the carry-forward fold used for grouped exports."""

    @pytest.mark.property
    def test_blank_agent_inherits_previous(self, grouped_trip_rows: List[RawRecord]) -> None:
        """A blank agent cell belongs to the nearest non-blank agent above it."""
        agents = [agent for agent, _ in attribute_rows(grouped_trip_rows, 'gtt owner')]
        assert agents == [
            'Alice Smith', 'Alice Smith', 'Alice Smith', 'Alice Smith',
            'Bob Jones', 'Bob Jones',
        ]

    def test_rows_before_first_agent_are_dropped(self) -> None:
        rows = [{'agent': ''}, {'agent': 'Alice'}, {'agent': ''}]
        assert [agent for agent, _ in attribute_rows(rows, 'agent')] == ['Alice', 'Alice']

    def test_numeric_agent_value_is_treated_as_blank(self) -> None:
        """Subtotal counts printed in the agent column do not start a new agent."""
        assert advance_agent('Alice', '12') == 'Alice'
        assert advance_agent('Alice', '  ') == 'Alice'
        assert advance_agent('Alice', 'Bob') == 'Bob'
        assert advance_agent(None, '') is None

    def test_missing_agent_column_yields_nothing(self, grouped_trip_rows: List[RawRecord]) -> None:
        assert list(attribute_rows(grouped_trip_rows, None)) == []


# =============================================================================
# COUNTING
# =============================================================================


class TestCountByAgent:

    def test_totals_and_daily_counts(self, grouped_trip_rows: List[RawRecord]) -> None:
        result = count_by_agent(grouped_trip_rows, 'gtt owner', 'created date')
        assert result.total == {'Alice Smith': 4, 'Bob Jones': 2}
        assert result.by_date['Alice Smith'] == {date(2024, 3, 4): 2, date(2024, 3, 5): 2}

    def test_inclusive_window(self, grouped_trip_rows: List[RawRecord]) -> None:
        day = date(2024, 3, 4)
        result = count_by_agent(grouped_trip_rows, 'gtt owner', 'created date', day, day)
        assert result.total == {'Alice Smith': 2, 'Bob Jones': 1}

    def test_unparseable_dates_are_skipped(self) -> None:
        rows = [
            trip_row('Alice', '2024-03-04'),
            trip_row('Alice', 'sometime'),
        ]
        result = count_by_agent(rows, 'gtt owner', 'created date')
        assert result.total == {'Alice': 1}

    def test_undated_rows_only_counted_without_window(self) -> None:
        rows = [trip_row('Alice', '2024-03-04'), trip_row('Alice', '')]
        assert count_by_agent(rows, 'gtt owner', 'created date').total == {'Alice': 2}
        windowed = count_by_agent(rows, 'gtt owner', 'created date', date(2024, 3, 1), None)
        assert windowed.total == {'Alice': 1}

    def test_row_filter_keeps_attribution(self) -> None:
        """Filtered-out rows still advance the carry-forward agent."""
        rows = [
            trip_row('Alice', '2024-03-04', repeat='New'),
            trip_row('', '2024-03-04', repeat='Repeat'),
        ]
        result = count_by_agent(
            rows, 'gtt owner', 'created date',
            row_filter=lambda row: row['repeat/new'] == 'Repeat',
        )
        assert result.total == {'Alice': 1}


class TestNonConverted:

    def test_dated_by_originating_trip(self) -> None:
        trips = [trip_row('Alice', '2024-03-01', 'T1'), trip_row('Alice', '2024-03-10', 'T2')]
        trip_dates = build_trip_date_map(trips, 'trip name', 'created date')
        rows = [
            non_converted_row('Bob', 'Price', 'T1'),
            non_converted_row('', 'Timing', 'T2'),
            non_converted_row('', '', 'T2'),
        ]

        result = count_non_converted(rows, trip_dates)
        assert result.total == {'Bob': 2}
        assert result.by_date['Bob'] == {date(2024, 3, 1): 1, date(2024, 3, 10): 1}

        windowed = count_non_converted(rows, trip_dates, date(2024, 3, 5), date(2024, 3, 31))
        assert windowed.total == {'Bob': 1}

    def test_unknown_trip_skipped_in_window(self) -> None:
        rows = [non_converted_row('Bob', 'Price', 'Unknown trip')]
        assert count_non_converted(rows, {}).total == {'Bob': 1}
        assert count_non_converted(rows, {}, date(2024, 1, 1), None).total == {}

    def test_missing_reason_column(self) -> None:
        rows = [{'lead owner': 'Bob', 'trip name': 'T1'}]
        assert count_non_converted(rows, {}).total == {}


# =============================================================================
# RATES
# =============================================================================


class TestRates:

    @pytest.mark.property
    def test_zero_denominators_give_zero(self) -> None:
        rates = calculate_rates(trips=0, quotes=5, passthroughs=0, hot_passes=3)
        assert (rates.tq, rates.tp, rates.pq, rates.hp, rates.nc, rates.bk) == (0, 0, 0, 0, 0, 0)

    def test_rate_values(self) -> None:
        rates = calculate_rates(trips=40, quotes=18, passthroughs=12, hot_passes=3, bookings=2, non_converted=9)
        assert rates.tq == pytest.approx(45.0)
        assert rates.tp == pytest.approx(30.0)
        assert rates.pq == pytest.approx(150.0)
        assert rates.hp == pytest.approx(25.0)
        assert rates.bk == pytest.approx(5.0)
        assert rates.nc == pytest.approx(22.5)

    def test_safe_rate(self) -> None:
        assert safe_rate(1, 4) == 25.0
        assert safe_rate(1, 0) == 0.0

    def test_agent_metrics_merge_case_insensitively(self) -> None:
        trips = CountResult(total={'Alice Smith': 4})
        quotes = CountResult(total={'Alice Smith': 1, 'alice smith ': 1})
        empty = CountResult()

        metrics = calculate_agent_metrics(trips, quotes, empty, empty, empty, empty)
        assert len(metrics) == 1
        assert metrics[0].agentName == 'Alice Smith'
        assert metrics[0].quotes == 2
        assert metrics[0].quotesFromTrips == pytest.approx(50.0)

    @pytest.mark.property
    def test_agent_without_trips_has_zero_rates(self) -> None:
        empty = CountResult()
        quotes = CountResult(total={'Carol': 3})
        metrics = calculate_agent_metrics(empty, quotes, empty, empty, empty, empty)
        assert metrics[0].quotesFromTrips == 0.0
        assert metrics[0].passthroughsFromTrips == 0.0
        assert metrics[0].potentialTQ == 0.0

    def test_segment_counts_optional(self) -> None:
        """Omitted repeat/B2B counts read as zero and never leak between calls."""
        trips = CountResult(total={'Alice': 10})
        empty = CountResult()

        with_segments = calculate_agent_metrics(
            trips, empty, empty, empty, empty, empty,
            repeat=({'Alice': 4}, {'Alice': 2}),
        )
        assert with_segments[0].repeatTrips == 4
        assert with_segments[0].repeatTpRate == pytest.approx(50.0)

        [alice] = calculate_agent_metrics(trips, empty, empty, empty, empty, empty)
        assert (alice.repeatTrips, alice.b2bTrips, alice.repeatTpRate) == (0, 0, 0.0)


class TestGroupAggregation:

    @pytest.mark.property
    def test_group_rate_is_ratio_of_sums(self) -> None:
        """A(10 trips, 5 quotes) + B(20 trips, 4 quotes) gives 30%, not 35%."""
        day = date(2024, 3, 4)
        agents = [
            AgentTimeSeries(agentName='A', dailyMetrics=[DailyAgentMetrics(date=day, trips=10, quotes=5)]),
            AgentTimeSeries(agentName='B', dailyMetrics=[DailyAgentMetrics(date=day, trips=20, quotes=4)]),
        ]
        [point] = aggregate_group_daily(agents, [day])
        assert point.trips == 30
        assert point.quotes == 9
        assert point.tq == pytest.approx(30.0)

    def test_missing_member_day_contributes_nothing(self) -> None:
        day, other = date(2024, 3, 4), date(2024, 3, 5)
        agents = [
            AgentTimeSeries(agentName='A', dailyMetrics=[DailyAgentMetrics(date=day, trips=10, quotes=5)]),
        ]
        points = aggregate_group_daily(agents, [day, other])
        assert points[1].trips == 0
        assert points[1].tq == 0.0


# =============================================================================
# FULL PIPELINE
# =============================================================================


class TestRunAggregation:

    def test_agent_metrics(self, sample_datasets: RawDatasets) -> None:
        result = run_aggregation(sample_datasets)
        by_name = {m.agentName: m for m in result.agentMetrics}

        assert list(by_name) == ['Alice Smith', 'Bob Jones']
        alice, bob = by_name['Alice Smith'], by_name['Bob Jones']

        assert (alice.trips, alice.quotes, alice.passthroughs) == (4, 2, 2)
        assert (alice.hotPasses, alice.bookings) == (1, 1)
        assert alice.quotesFromTrips == pytest.approx(50.0)
        assert alice.quotesFromPassthroughs == pytest.approx(100.0)
        assert alice.hotPassRate == pytest.approx(50.0)
        assert alice.bookingRate == pytest.approx(25.0)

        assert bob.nonConvertedLeads == 2
        assert bob.nonConvertedRate == pytest.approx(100.0)

    def test_time_series(self, sample_datasets: RawDatasets) -> None:
        series = run_aggregation(sample_datasets).timeSeries

        assert series.dateRange.start == date(2024, 3, 4)
        assert series.dateRange.end == date(2024, 3, 6)
        assert [p.date for p in series.departmentDaily] == [
            date(2024, 3, 4), date(2024, 3, 5), date(2024, 3, 6),
        ]
        first = series.departmentDaily[0]
        assert (first.trips, first.quotes) == (3, 1)
        assert first.tq == pytest.approx(100 / 3)

        # Every agent has an entry for every date
        for agent in series.agents:
            assert len(agent.dailyMetrics) == 3

    def test_senior_split(self, sample_datasets: RawDatasets) -> None:
        series = run_aggregation(sample_datasets, seniors=['alice smith']).timeSeries
        assert series.seniorDaily[0].trips == 2
        assert series.nonSeniorDaily[0].trips == 1

    def test_window(self, sample_datasets: RawDatasets) -> None:
        day = date(2024, 3, 4)
        result = run_aggregation(sample_datasets, start_date=day, end_date=day)
        by_name = {m.agentName: m for m in result.agentMetrics}
        assert by_name['Alice Smith'].trips == 2
        assert by_name['Bob Jones'].trips == 1
        assert by_name['Bob Jones'].nonConvertedLeads == 1

    def test_column_resolutions_reported(self, sample_datasets: RawDatasets) -> None:
        columns = {c.dataset: c for c in run_aggregation(sample_datasets).columns}
        assert columns['trips'].agentColumn == 'gtt owner'
        assert columns['trips'].dateColumn == 'created date'
        assert columns['quotes'].dateColumn == 'quote first sent'
        assert columns['passthroughs'].dateColumn == 'passthrough to sales date'

    def test_start_after_end_raises(self, sample_datasets: RawDatasets) -> None:
        with pytest.raises(ValueError):
            run_aggregation(sample_datasets, start_date=date(2024, 3, 5), end_date=date(2024, 3, 4))

    def test_empty_datasets(self) -> None:
        result = run_aggregation(RawDatasets())
        assert result.agentMetrics == []
        assert result.timeSeries.departmentDaily == []

    def test_owner_name_is_not_a_trip_name(self) -> None:
        """Without a trip-name column, leads cannot be dated and drop out of a window."""
        datasets = RawDatasets(
            trips=[{'owner name': 'Jane Smith', 'created date': '2024-03-20'}],
            nonConverted=[{
                'lead owner': 'Jane Smith',
                'account name': 'jane smith',
                'non validated reason': 'Price too high',
            }],
        )
        result = run_aggregation(datasets, start_date=date(2024, 3, 15), end_date=date(2024, 3, 31))
        [jane] = result.agentMetrics
        assert jane.trips == 1
        assert jane.nonConvertedLeads == 0

    def test_unresolved_agent_column(self) -> None:
        result = run_aggregation(RawDatasets(trips=[{'created date': '2024-03-04'}]))
        assert result.agentMetrics == []
        assert result.columns[0].agentColumn is None


class TestSegmentDailyRates:

    def test_repeat_client_daily_tp(self) -> None:
        rows = [
            trip_row('Alice', '2024-03-04', repeat='Repeat', passthrough='2024-03-04'),
            trip_row('Alice', '2024-03-04', repeat='Repeat'),
            trip_row('Bob', '2024-03-04', repeat='New', passthrough='2024-03-04'),
        ]
        [point] = segment_daily_rates(rows, SegmentDimension.REPEAT_NEW)
        assert (point.trips, point.passthroughs) == (2, 1)
        assert point.tp == pytest.approx(50.0)

    def test_b2b_segment(self) -> None:
        rows = [
            trip_row('Alice', '2024-03-04', b2b='B2B', passthrough='2024-03-04'),
            trip_row('Alice', '2024-03-04', b2b='B2C'),
        ]
        [point] = segment_daily_rates(rows, SegmentDimension.B2B_B2C)
        assert point.tp == pytest.approx(100.0)

    def test_region_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            segment_daily_rates([trip_row('Alice', '2024-03-04')], SegmentDimension.REGION)

    def test_missing_segment_column(self) -> None:
        assert segment_daily_rates([{'gtt owner': 'A', 'created date': '2024-03-04'}], SegmentDimension.B2B_B2C) == []
