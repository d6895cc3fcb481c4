"""
Tests for activity insights: passthrough timing, non-validated reasons and
booking linkage.
"""

import pytest

from performance_analytics.models import RawDatasets
from performance_analytics.services.activity_insights import (
    analyze_booking_correlations,
    analyze_non_validated_by_agent,
    analyze_non_validated_reasons,
    analyze_passthroughs_by_day,
    analyze_passthroughs_by_time,
    generate_activity_insights,
    is_meaningful_reason,
)
from performance_analytics.services.temporal import DAY_NAMES
from performance_analytics.tests.conftest import (
    booking_row,
    hot_pass_row,
    non_converted_row,
    passthrough_row,
)


class TestPassthroughTiming:

    def test_by_day_lists_every_weekday(self, sample_datasets: RawDatasets) -> None:
        days = analyze_passthroughs_by_day(sample_datasets.passthroughs)
        assert len(days) == 7
        assert {d.day for d in days} == set(DAY_NAMES)
        # Ties keep calendar order
        assert [d.day for d in days[:3]] == ['Monday', 'Tuesday', 'Wednesday']
        assert days[0].percentage == pytest.approx(100 / 3)
        assert days[-1].count == 0

    def test_average_per_occurring_date(self) -> None:
        rows = [
            passthrough_row('A', '2024-03-04'),
            passthrough_row('A', '2024-03-04'),
            passthrough_row('A', '2024-03-11'),
        ]
        monday = analyze_passthroughs_by_day(rows)[0]
        assert (monday.day, monday.count) == ('Monday', 3)
        assert monday.avgPerDay == pytest.approx(1.5)

    def test_by_time_empty_for_date_only_exports(self, sample_datasets: RawDatasets) -> None:
        assert analyze_passthroughs_by_time(sample_datasets.passthroughs) == []

    def test_by_time_buckets(self) -> None:
        rows = [
            passthrough_row('A', '2024-03-04 10:30'),
            passthrough_row('A', '2024-03-04 11:00'),
            passthrough_row('A', '2024-03-05 22:15'),
        ]
        slots = analyze_passthroughs_by_time(rows)
        assert slots[0].timeSlot == 'Morning (9am-12pm)'
        assert slots[0].count == 2
        assert {s.timeSlot: s.count for s in slots}['Night (9pm-6am)'] == 1

    def test_no_date_column(self) -> None:
        assert analyze_passthroughs_by_day([{'gtt owner': 'A'}]) == []
        assert analyze_passthroughs_by_time([]) == []


class TestNonValidatedReasons:

    @pytest.mark.parametrize('reason, expected', [
        ('Price too high', True),
        ('  x ', False),
        ('42', False),
        ('', False),
    ])
    def test_meaningful_reason(self, reason: str, expected: bool) -> None:
        assert is_meaningful_reason(reason) is expected

    def test_department_reasons_ranked(self) -> None:
        rows = [
            non_converted_row('A', 'No response'),
            non_converted_row('A', 'Price too high'),
            non_converted_row('B', 'No response'),
            non_converted_row('B', '7'),
            non_converted_row('B', '-'),
        ]
        reasons = analyze_non_validated_reasons(rows)
        assert [(r.reason, r.count) for r in reasons] == [('No response', 2), ('Price too high', 1)]
        assert reasons[0].percentage == pytest.approx(200 / 3)

    def test_per_agent_uses_carry_forward(self, sample_datasets: RawDatasets) -> None:
        [bob] = analyze_non_validated_by_agent(sample_datasets.nonConverted)
        assert bob.agentName == 'Bob Jones'
        assert bob.total == 2
        assert {r.reason for r in bob.topReasons} == {'Price too high', 'No response'}

    def test_per_agent_keeps_top_three(self) -> None:
        rows = [non_converted_row('A', reason) for reason in ['r1', 'r1', 'r2', 'r3', 'r4']]
        [agent] = analyze_non_validated_by_agent(rows)
        assert agent.total == 5
        assert [r.reason for r in agent.topReasons] == ['r1', 'r2', 'r3']


class TestBookingLinkage:

    def test_linked_by_trip_name(self) -> None:
        hot_passes = [
            hot_pass_row('A', '2024-03-05', 'T1'),
            hot_pass_row('A', '2024-03-05', 'T2'),
            hot_pass_row('A', '2024-03-06', 'T3'),
        ]
        bookings = [booking_row('A', '2024-03-20', 't1'), booking_row('A', '2024-03-21', 'T3')]
        correlations = analyze_booking_correlations(hot_passes, bookings)

        by_factor = {c.factor: c for c in correlations}
        assert by_factor['Enquiries on Wednesday'].bookingRate == pytest.approx(100.0)
        tuesday = by_factor['Enquiries on Tuesday']
        assert (tuesday.bookedCount, tuesday.notBookedCount) == (1, 1)
        assert correlations[0].factor == 'Enquiries on Wednesday'

    def test_bucketed_by_created_date(self) -> None:
        """Creation date wins over the hot pass date when both are exported."""
        hot_passes = [
            {**hot_pass_row('A', '2024-03-05', 'T1'), 'created date': '2024-03-04'},
            {**hot_pass_row('A', '2024-03-05', 'T2'), 'created date': '2024-03-04'},
        ]
        bookings = [booking_row('A', '2024-03-20', 'T1')]

        [correlation] = analyze_booking_correlations(hot_passes, bookings)
        assert correlation.factor == 'Enquiries on Monday'
        assert correlation.description == '1 of 2 hot passes created on Monday booked'

    def test_falls_back_to_hot_pass_date(self) -> None:
        hot_passes = [hot_pass_row('A', '2024-03-05', 'T1')]
        [correlation] = analyze_booking_correlations(hot_passes, [booking_row('A', '2024-03-20', 'T1')])
        assert correlation.factor == 'Enquiries on Tuesday'
        assert correlation.description == '1 of 1 hot passes hot-passed on Tuesday booked'

    def test_empty_bookings(self) -> None:
        assert analyze_booking_correlations([hot_pass_row('A', '2024-03-05', 'T1')], []) == []

    def test_missing_trip_name_column(self) -> None:
        hot_passes = [{'gtt owner': 'A', 'hot pass date': '2024-03-05'}]
        assert analyze_booking_correlations(hot_passes, [booking_row('A', '2024-03-06', 'T1')]) == []


class TestActivityInsights:

    def test_combined(self, sample_datasets: RawDatasets) -> None:
        insights = generate_activity_insights(sample_datasets)

        assert insights.bestPassthroughDay == 'Monday'
        assert insights.bestPassthroughTime is None
        assert not insights.hasTimeData
        assert insights.hasNonValidatedReasons
        assert insights.hasBookingData
        assert (
            insights.totalPassthroughs,
            insights.totalNonValidated,
            insights.totalBookings,
            insights.totalHotPass,
        ) == (3, 2, 1, 1)
        [correlation] = insights.bookingCorrelations
        assert correlation.factor == 'Enquiries on Tuesday'
        assert correlation.bookingRate == pytest.approx(100.0)

    def test_empty_snapshot(self) -> None:
        insights = generate_activity_insights(RawDatasets())
        assert insights.passthroughsByDay == []
        assert insights.bestPassthroughDay is None
        assert not insights.hasBookingData
        assert insights.totalPassthroughs == 0
