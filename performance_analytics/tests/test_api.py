"""
Tests for the HTTP endpoints.

Endpoint functions are awaited directly with an explicit Settings instance,
so request validation is covered by the models and these tests focus on
default handling and error mapping (ValueError -> 400).
"""

from datetime import date

import pytest
from fastapi import HTTPException

from performance_analytics import __version__
from performance_analytics.api.insights import activity_insights, personal_records
from performance_analytics.api.metrics import aggregate_metrics, segment_daily
from performance_analytics.api.segments import (
    agent_deviations,
    department_recommendations,
    quartiles,
    segment_performance,
)
from performance_analytics.api.trends import chart_series, decimate, fit_trend
from performance_analytics.main import health_check, root
from performance_analytics.models import (
    AgentDeviationRequest,
    AggregationRequest,
    ChartSeriesRequest,
    DecimationRequest,
    MetricKind,
    QuartileRequest,
    RawDatasets,
    RecommendationRequest,
    RecordsRequest,
    RegressionRequest,
    RegressionType,
    SegmentAnalysisRequest,
    SegmentDailyRequest,
    SegmentDimension,
    TimeSeriesData,
)
from performance_analytics.tests.conftest import region_trips


pytestmark = pytest.mark.asyncio


class TestMetricsEndpoints:

    async def test_aggregate(self, sample_datasets: RawDatasets, settings) -> None:
        result = await aggregate_metrics(AggregationRequest(datasets=sample_datasets), settings)
        names = {m.agentName for m in result.agentMetrics}
        assert names == {'Alice Smith', 'Bob Jones'}

    async def test_aggregate_inverted_window(self, sample_datasets: RawDatasets, settings) -> None:
        request = AggregationRequest(
            datasets=sample_datasets,
            startDate=date(2024, 3, 6),
            endDate=date(2024, 3, 4),
        )
        with pytest.raises(HTTPException) as exc_info:
            await aggregate_metrics(request, settings)
        assert exc_info.value.status_code == 400

    async def test_segment_daily_rejects_region(self, sample_datasets: RawDatasets, settings) -> None:
        request = SegmentDailyRequest(trips=sample_datasets.trips, dimension=SegmentDimension.REGION)
        with pytest.raises(HTTPException) as exc_info:
            await segment_daily(request, settings)
        assert exc_info.value.status_code == 400


class TestTrendEndpoints:

    async def test_regression_uses_default_threshold(self, settings) -> None:
        result = await fit_trend(RegressionRequest(values=[1, 2, 3, 4, 5]), settings)
        assert result is not None
        assert result.type == RegressionType.LINEAR

    async def test_regression_short_total_points(self, settings) -> None:
        request = RegressionRequest(values=[1, 2, 3, 4], totalPoints=2)
        with pytest.raises(HTTPException) as exc_info:
            await fit_trend(request, settings)
        assert exc_info.value.status_code == 400

    async def test_decimate_default_target(self, settings) -> None:
        points = [{'date': f"d{i}", 'dept_tq': float(i % 9)} for i in range(400)]
        result = await decimate(DecimationRequest(points=points), settings)
        assert len(result) == settings.chart_target_points

    async def test_chart_series(self, quartile_series: TimeSeriesData, settings) -> None:
        request = ChartSeriesRequest(
            timeSeries=quartile_series,
            agents=['Agent 1'],
            metrics=[MetricKind.TRIPS],
        )
        [row] = await chart_series(request, settings)
        assert row == {'date': '2024-03-04', 'Agent 1_trips': 10, 'dept_trips': 360}


class TestSegmentEndpoints:

    @pytest.fixture
    def trips(self):
        return region_trips('Alice', 'Peru', 12, 6) + region_trips('Bob', 'Peru', 10, 2)

    async def test_performance_defaults(self, trips, settings) -> None:
        result = await segment_performance(SegmentAnalysisRequest(trips=trips), settings)
        assert [c.category for c in result.allCategories] == ['Peru']

    async def test_performance_request_overrides(self, trips, settings) -> None:
        request = SegmentAnalysisRequest(trips=trips, minCategoryTrips=30)
        result = await segment_performance(request, settings)
        assert result.allCategories == []

    async def test_agent_deviations_without_trips(self, settings) -> None:
        assert await agent_deviations(AgentDeviationRequest(trips=[]), settings) == []

    async def test_agent_deviations(self, trips, settings) -> None:
        result = await agent_deviations(AgentDeviationRequest(trips=trips, agentName='bob'), settings)
        [bob] = result
        assert [d.category for d in bob.belowAverage] == ['Peru']

    async def test_recommendations(self, trips, settings) -> None:
        performance = await segment_performance(SegmentAnalysisRequest(trips=trips), settings)
        result = await department_recommendations(RecommendationRequest(performance=performance), settings)
        # A single category sits exactly on the department rate
        assert result == []

    async def test_quartiles(self, quartile_series: TimeSeriesData, settings) -> None:
        result = await quartiles(QuartileRequest(timeSeries=quartile_series), settings)
        assert len(result.topQuartileAgents) == 2

    async def test_quartiles_inverted_range(self, quartile_series: TimeSeriesData, settings) -> None:
        request = QuartileRequest(
            timeSeries=quartile_series,
            startDate=date(2024, 3, 5),
            endDate=date(2024, 3, 4),
        )
        with pytest.raises(HTTPException) as exc_info:
            await quartiles(request, settings)
        assert exc_info.value.status_code == 400


class TestInsightEndpoints:

    async def test_activity(self, sample_datasets: RawDatasets, settings) -> None:
        result = await activity_insights(sample_datasets, settings)
        assert result.totalPassthroughs == 3

    async def test_records(self, record_series: TimeSeriesData, settings) -> None:
        request = RecordsRequest(timeSeries=record_series, today=date(2024, 4, 1))
        result = await personal_records(request, settings)
        assert result.records.lastUpdated == date(2024, 4, 1)
        assert 'Alice Smith' in result.records.agents


class TestServiceEndpoints:

    async def test_health(self) -> None:
        assert await health_check() == {'status': 'healthy'}

    async def test_root(self) -> None:
        info = await root()
        assert info['version'] == __version__
        assert info['docs'] == '/docs'
