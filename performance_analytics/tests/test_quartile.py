"""
Test suite for the quartile cohort analyzer.

The tests verify:
1. Cohort sizing and hot-pass ranking
2. The minimum agent count and passthrough qualification
3. Volume-weighted daily T>Q over active cohort members only
"""

from datetime import date

import pytest

from performance_analytics.models import TimeSeriesData
from performance_analytics.services.quartile import calculate_quartile_analysis, cohort_size
from performance_analytics.tests.conftest import build_series, daily


DAY_1 = date(2024, 3, 4)
DAY_2 = date(2024, 3, 5)


class TestCohorts:

    @pytest.mark.parametrize('agents, expected', [(1, 1), (4, 1), (7, 1), (8, 2), (13, 3)])
    def test_cohort_size(self, agents: int, expected: int) -> None:
        assert cohort_size(agents) == expected

    @pytest.mark.property
    def test_eight_agents_give_cohorts_of_two(self, quartile_series: TimeSeriesData) -> None:
        result = calculate_quartile_analysis(quartile_series)
        assert result is not None
        assert [a.agentName for a in result.topQuartileAgents] == ['Agent 8', 'Agent 7']
        assert [a.agentName for a in result.bottomQuartileAgents] == ['Agent 2', 'Agent 1']
        assert result.topQuartileAgents[0].aggregateHotPassRate == pytest.approx(40.0)

    @pytest.mark.property
    def test_fewer_than_four_agents(self) -> None:
        series = build_series({
            f"Agent {k}": [daily(DAY_1, trips=10, quotes=1, passthroughs=20, hot_passes=k)]
            for k in range(1, 4)
        })
        assert calculate_quartile_analysis(series) is None

    def test_passthrough_threshold(self, quartile_series: TimeSeriesData) -> None:
        assert calculate_quartile_analysis(quartile_series, min_passthroughs=21) is None
        assert calculate_quartile_analysis(quartile_series, min_passthroughs=20) is not None

    def test_date_range(self, quartile_series: TimeSeriesData) -> None:
        result = calculate_quartile_analysis(quartile_series)
        assert result.dateRange.start == DAY_1
        assert result.dateRange.end == DAY_1


class TestDailyComparison:

    def test_identical_rates(self, quartile_series: TimeSeriesData) -> None:
        """Every agent converts 10% of trips, so both cohorts read 10%."""
        [point] = calculate_quartile_analysis(quartile_series).dailyComparison
        assert point.topQuartileTQ == pytest.approx((8 + 7) / (80 + 70) * 100)
        assert point.topQuartileTQ == pytest.approx(point.bottomQuartileTQ)
        assert point.topQuartileAgentCount == 2

    def test_volume_weighted_and_active_only(self) -> None:
        agents = {
            f"Agent {k}": [daily(DAY_1, trips=10, quotes=1, passthroughs=20, hot_passes=k)]
            for k in range(1, 7)
        }
        agents['Agent 7'] = [
            daily(DAY_1, trips=10, quotes=0, passthroughs=20, hot_passes=7),
            daily(DAY_2, trips=10, quotes=5),
        ]
        agents['Agent 8'] = [
            daily(DAY_1, trips=40, quotes=20, passthroughs=20, hot_passes=8),
            daily(DAY_2),
        ]
        result = calculate_quartile_analysis(build_series(agents))
        first, second = result.dailyComparison

        # 20 / 50, not the mean of 50% and 0%
        assert first.topQuartileTQ == pytest.approx(40.0)
        # Agent 8 has no trips on day 2 and is left out
        assert second.topQuartileTQ == pytest.approx(50.0)
        assert second.topQuartileAgentCount == 1
        assert second.bottomQuartileAgentCount == 0
        assert second.bottomQuartileTQ == 0.0

    def test_window_limits_totals(self) -> None:
        agents = {
            f"Agent {k}": [
                daily(DAY_1, trips=10, quotes=1, passthroughs=10, hot_passes=k),
                daily(DAY_2, trips=10, quotes=1, passthroughs=10),
            ]
            for k in range(1, 5)
        }
        series = build_series(agents)
        assert calculate_quartile_analysis(series, start_date=DAY_2, end_date=DAY_2) is not None
        assert calculate_quartile_analysis(
            series, start_date=DAY_2, end_date=DAY_2, min_passthroughs=11,
        ) is None


class TestValidation:

    def test_negative_threshold(self, quartile_series: TimeSeriesData) -> None:
        with pytest.raises(ValueError):
            calculate_quartile_analysis(quartile_series, min_passthroughs=-1)

    def test_inverted_range(self, quartile_series: TimeSeriesData) -> None:
        with pytest.raises(ValueError):
            calculate_quartile_analysis(quartile_series, start_date=DAY_2, end_date=DAY_1)
