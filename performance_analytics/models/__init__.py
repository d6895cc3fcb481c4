"""
Package initialization file for the analytics models.

This module exports all Pydantic schemas and enumerations from schemas.py and
enums.py, so other modules can import data models from
performance_analytics.models directly.

Usage:
    from performance_analytics.models import (
        MetricKind,
        SegmentDimension,
        DailyAgentMetrics,
        RegressionResult,
        # ... etc
    )
"""

# =============================================================================
# Enums
# =============================================================================

from performance_analytics.models.enums import (
    DatasetKind,
    LogicalField,
    MetricFamily,
    MetricKind,
    Priority,
    RecommendationKind,
    RecordPeriod,
    RegressionType,
    SegmentDimension,
    SegmentTimeframe,
)


# =============================================================================
# Schemas
# =============================================================================

from performance_analytics.models.schemas import (
    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------
    RawRecord,
    RawDatasets,
    DateRange,

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------
    DailyAgentMetrics,
    AgentTimeSeries,
    GroupDailyPoint,
    TimeSeriesData,
    AgentMetrics,
    ColumnResolution,
    AggregationResult,
    AggregationRequest,
    SegmentDailyRequest,

    # -------------------------------------------------------------------------
    # Trends
    # -------------------------------------------------------------------------
    RegressionResult,
    RegressionRequest,
    DecimationRequest,
    ChartSeriesRequest,

    # -------------------------------------------------------------------------
    # Segments and recommendations
    # -------------------------------------------------------------------------
    CategoryPerformance,
    SegmentPerformance,
    CategoryDeviation,
    AgentRecommendation,
    AgentSegmentAnalysis,
    ImprovementRecommendation,
    SegmentAnalysisRequest,
    AgentDeviationRequest,
    RecommendationRequest,

    # -------------------------------------------------------------------------
    # Quartiles
    # -------------------------------------------------------------------------
    QuartileAgent,
    QuartileDailyPoint,
    QuartileAnalysis,
    QuartileRequest,

    # -------------------------------------------------------------------------
    # Activity insights
    # -------------------------------------------------------------------------
    DayAnalysis,
    TimeSlotAnalysis,
    NonValidatedReason,
    AgentNonValidated,
    BookingCorrelation,
    ActivityInsights,

    # -------------------------------------------------------------------------
    # Personal records
    # -------------------------------------------------------------------------
    RecordEntry,
    AgentRecords,
    AllRecords,
    RecordUpdate,
    RecordsResult,
    RecordsRequest,
)


__all__ = [
    # Enums
    "DatasetKind",
    "LogicalField",
    "MetricFamily",
    "MetricKind",
    "Priority",
    "RecommendationKind",
    "RecordPeriod",
    "RegressionType",
    "SegmentDimension",
    "SegmentTimeframe",
    # Inputs
    "RawRecord",
    "RawDatasets",
    "DateRange",
    # Aggregation
    "DailyAgentMetrics",
    "AgentTimeSeries",
    "GroupDailyPoint",
    "TimeSeriesData",
    "AgentMetrics",
    "ColumnResolution",
    "AggregationResult",
    "AggregationRequest",
    "SegmentDailyRequest",
    # Trends
    "RegressionResult",
    "RegressionRequest",
    "DecimationRequest",
    "ChartSeriesRequest",
    # Segments
    "CategoryPerformance",
    "SegmentPerformance",
    "CategoryDeviation",
    "AgentRecommendation",
    "AgentSegmentAnalysis",
    "ImprovementRecommendation",
    "SegmentAnalysisRequest",
    "AgentDeviationRequest",
    "RecommendationRequest",
    # Quartiles
    "QuartileAgent",
    "QuartileDailyPoint",
    "QuartileAnalysis",
    "QuartileRequest",
    # Activity insights
    "DayAnalysis",
    "TimeSlotAnalysis",
    "NonValidatedReason",
    "AgentNonValidated",
    "BookingCorrelation",
    "ActivityInsights",
    # Personal records
    "RecordEntry",
    "AgentRecords",
    "AllRecords",
    "RecordUpdate",
    "RecordsResult",
    "RecordsRequest",
]
