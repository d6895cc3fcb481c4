"""
Pydantic request/response models for the performance analytics engine.

This module provides type-safe data validation and serialization for the
engine's data contracts: raw record collections coming in, and aggregated
metrics, time series, regression fits, segment performance, deviations,
recommendations, quartile cohorts, activity insights and personal records
going out.

Output models are frozen: every analysis run builds fresh structures from its
inputs and nothing is mutated in place afterwards.

All models use Pydantic v2 syntax. Field names are camelCase to match the
payloads consumed by the presentation layer.
"""

from datetime import date as DateType
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from performance_analytics.models.enums import (
    MetricKind,
    Priority,
    RecommendationKind,
    RecordPeriod,
    RegressionType,
    SegmentDimension,
    SegmentTimeframe,
)


# A raw record maps a lower-cased column header to its string cell value.
RawRecord = Dict[str, str]


# =============================================================================
# Input Collections
# =============================================================================


class RawDatasets(BaseModel):
    """
    The raw record collections for one analysis run.

    Every collection is optional and defaults to empty; analyses that need a
    missing collection return an empty result instead of failing.
    """
    trips: List[RawRecord] = Field(default_factory=list, description="Trip enquiry rows")
    quotes: List[RawRecord] = Field(default_factory=list, description="Quote sent rows")
    passthroughs: List[RawRecord] = Field(default_factory=list, description="Passthrough rows")
    hotPass: List[RawRecord] = Field(default_factory=list, description="Hot pass rows")
    bookings: List[RawRecord] = Field(default_factory=list, description="Booking rows")
    nonConverted: List[RawRecord] = Field(
        default_factory=list,
        description="Non-converted lead rows (grouped by lead owner)",
    )
    quotesStarted: List[RawRecord] = Field(
        default_factory=list,
        description="Quotes started but not yet sent",
    )


class DateRange(BaseModel):
    """Inclusive date range; a missing bound means unbounded on that side."""
    model_config = ConfigDict(frozen=True)

    start: Optional[DateType] = None
    end: Optional[DateType] = None


# =============================================================================
# Aggregation Models
# =============================================================================


class DailyAgentMetrics(BaseModel):
    """
    Activity counts for one agent on one calendar date.

    Derived rates are never stored here; they are computed on demand from
    the counts.
    """
    model_config = ConfigDict(frozen=True)

    date: DateType
    trips: int = Field(default=0, ge=0)
    quotes: int = Field(default=0, ge=0)
    passthroughs: int = Field(default=0, ge=0)
    hotPasses: int = Field(default=0, ge=0)
    bookings: int = Field(default=0, ge=0)
    nonConverted: int = Field(default=0, ge=0)


class AgentTimeSeries(BaseModel):
    """Date-ordered daily metrics for a single agent."""
    model_config = ConfigDict(frozen=True)

    agentName: str
    dailyMetrics: List[DailyAgentMetrics] = Field(default_factory=list)


class GroupDailyPoint(BaseModel):
    """
    One day of a group aggregate (department, senior, non-senior or segment).

    Counts are summed across members and every rate is
    sum(numerator) / sum(denominator) * 100, never a mean of member rates.
    """
    model_config = ConfigDict(frozen=True)

    date: DateType
    tq: float = Field(default=0.0, description="T>Q %")
    tp: float = Field(default=0.0, description="T>P %")
    pq: float = Field(default=0.0, description="P>Q %")
    hp: float = Field(default=0.0, description="Hot-pass %")
    nc: float = Field(default=0.0, description="Non-converted %")
    bk: float = Field(default=0.0, description="Booking %")
    trips: int = 0
    quotes: int = 0
    passthroughs: int = 0
    hotPasses: int = 0
    bookings: int = 0
    nonConverted: int = 0


class TimeSeriesData(BaseModel):
    """Per-agent daily series plus department/senior/non-senior aggregates."""
    model_config = ConfigDict(frozen=True)

    dateRange: DateRange = Field(default_factory=DateRange)
    agents: List[AgentTimeSeries] = Field(default_factory=list)
    departmentDaily: List[GroupDailyPoint] = Field(default_factory=list)
    seniorDaily: List[GroupDailyPoint] = Field(default_factory=list)
    nonSeniorDaily: List[GroupDailyPoint] = Field(default_factory=list)


class AgentMetrics(BaseModel):
    """
    Period totals and derived conversion rates for one agent.

    All rates are percentages and are 0 when their denominator is 0.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "agentName": "Jane Smith",
                "trips": 40,
                "quotes": 18,
                "passthroughs": 12,
                "hotPasses": 3,
                "bookings": 2,
                "nonConvertedLeads": 9,
                "quotesFromTrips": 45.0,
                "passthroughsFromTrips": 30.0,
                "quotesFromPassthroughs": 150.0,
                "hotPassRate": 25.0,
                "nonConvertedRate": 22.5,
                "bookingRate": 5.0,
            }
        },
    )

    agentName: str
    trips: int = 0
    quotes: int = 0
    passthroughs: int = 0
    hotPasses: int = 0
    bookings: int = 0
    nonConvertedLeads: int = 0
    quotesFromTrips: float = Field(default=0.0, description="T>Q %")
    passthroughsFromTrips: float = Field(default=0.0, description="T>P %")
    quotesFromPassthroughs: float = Field(default=0.0, description="P>Q %")
    hotPassRate: float = Field(default=0.0, description="Hot passes / passthroughs %")
    nonConvertedRate: float = Field(default=0.0, description="Non-converted / trips %")
    bookingRate: float = Field(default=0.0, description="Bookings / trips %")
    repeatTrips: int = 0
    repeatPassthroughs: int = 0
    repeatTpRate: float = 0.0
    b2bTrips: int = 0
    b2bPassthroughs: int = 0
    b2bTpRate: float = 0.0
    quotesStarted: int = 0
    potentialTQ: float = Field(
        default=0.0,
        description="(quotes + quotes started) / trips %",
    )


class ColumnResolution(BaseModel):
    """Which headers were matched for a dataset during aggregation."""
    model_config = ConfigDict(frozen=True)

    dataset: str
    agentColumn: Optional[str] = None
    dateColumn: Optional[str] = None


class AggregationResult(BaseModel):
    """Output of one full aggregation run."""
    model_config = ConfigDict(frozen=True)

    agentMetrics: List[AgentMetrics] = Field(default_factory=list)
    timeSeries: TimeSeriesData = Field(default_factory=TimeSeriesData)
    columns: List[ColumnResolution] = Field(default_factory=list)


class AggregationRequest(BaseModel):
    """Request body for POST /metrics/aggregate."""
    datasets: RawDatasets
    startDate: Optional[DateType] = None
    endDate: Optional[DateType] = None
    seniors: List[str] = Field(default_factory=list, description="Senior agent names")


class SegmentDailyRequest(BaseModel):
    """Request body for POST /metrics/segment-daily."""
    trips: List[RawRecord]
    dimension: SegmentDimension = SegmentDimension.REPEAT_NEW
    startDate: Optional[DateType] = None
    endDate: Optional[DateType] = None


# =============================================================================
# Trend Models
# =============================================================================


class RegressionResult(BaseModel):
    """
    A least-squares trend fit.

    predictedValues covers every index of the original series, including
    indices whose input value was missing. For log-linear fits `intercept`
    holds `a` in y = a * e^(b*x) and `slope` holds `b`.
    """
    model_config = ConfigDict(frozen=True)

    type: RegressionType
    slope: float
    intercept: float
    rSquared: float
    predictedValues: List[float]
    validPointCount: int


class RegressionRequest(BaseModel):
    """Request body for POST /trends/regression."""
    values: List[Optional[float]]
    totalPoints: Optional[int] = Field(default=None, ge=0)
    rSquaredThreshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class DecimationRequest(BaseModel):
    """Request body for POST /trends/decimate."""
    points: List[Dict[str, Any]]
    targetPoints: Optional[int] = Field(default=None, ge=0)
    dateKey: str = "date"


class ChartSeriesRequest(BaseModel):
    """Request body for POST /trends/chart-series."""
    timeSeries: TimeSeriesData
    agents: List[str] = Field(default_factory=list)
    metrics: List[MetricKind] = Field(default_factory=lambda: [MetricKind.TQ])
    showDepartment: bool = True
    showSenior: bool = False
    showNonSenior: bool = False
    startDate: Optional[DateType] = None
    endDate: Optional[DateType] = None
    targetPoints: Optional[int] = Field(default=None, ge=0)


# =============================================================================
# Segment Models
# =============================================================================


class CategoryPerformance(BaseModel):
    """Counts and conversion rates for one category value of a dimension."""
    model_config = ConfigDict(frozen=True)

    category: str
    trips: int = 0
    passthroughs: int = 0
    quotes: int = 0
    hotPasses: int = 0
    tpRate: float = 0.0
    pqRate: float = 0.0
    tqRate: float = 0.0
    hotPassRate: float = 0.0


class SegmentPerformance(BaseModel):
    """
    Department-level performance per category of one dimension.

    allCategories only holds categories at or above the minimum volume
    threshold; below-threshold categories never appear in any ranking.
    """
    model_config = ConfigDict(frozen=True)

    dimension: SegmentDimension
    timeframe: SegmentTimeframe
    dateRange: DateRange = Field(default_factory=DateRange)
    totalTrips: int = 0
    totalPassthroughs: int = 0
    totalQuotes: int = 0
    totalHotPasses: int = 0
    overallTpRate: float = 0.0
    overallPqRate: float = 0.0
    overallTqRate: float = 0.0
    overallHotPassRate: float = 0.0
    allCategories: List[CategoryPerformance] = Field(default_factory=list)
    topCategories: List[CategoryPerformance] = Field(default_factory=list)
    bottomCategories: List[CategoryPerformance] = Field(default_factory=list)
    topHotPassCategories: List[CategoryPerformance] = Field(default_factory=list)
    bottomHotPassCategories: List[CategoryPerformance] = Field(default_factory=list)


class CategoryDeviation(BaseModel):
    """An agent's T>P rate in one category against the department rate."""
    model_config = ConfigDict(frozen=True)

    category: str
    agentTrips: int
    agentPassthroughs: int
    agentTpRate: float
    departmentTpRate: float
    departmentTrips: int
    deviation: float = Field(description="agentTpRate - departmentTpRate, in points")
    impactScore: float


class AgentRecommendation(BaseModel):
    """A per-agent focus area derived from a below-average category."""
    model_config = ConfigDict(frozen=True)

    category: str
    agentTpRate: float
    departmentTpRate: float
    agentTrips: int
    departmentTrips: int
    deviation: float
    impactScore: float
    potentialGain: float
    priority: Priority
    reason: str


class AgentSegmentAnalysis(BaseModel):
    """Category deviations and focus areas for a single agent."""
    model_config = ConfigDict(frozen=True)

    agentName: str
    totalTrips: int = 0
    totalPassthroughs: int = 0
    overallTpRate: float = 0.0
    deviations: List[CategoryDeviation] = Field(default_factory=list)
    aboveAverage: List[CategoryDeviation] = Field(default_factory=list)
    belowAverage: List[CategoryDeviation] = Field(default_factory=list)
    recommendations: List[AgentRecommendation] = Field(default_factory=list)


class ImprovementRecommendation(BaseModel):
    """
    A department-level improvement recommendation for one category.

    `volume` is trips for T>P recommendations and passthroughs for P>Q
    recommendations; `potentialGain` is in the numerator's unit
    (passthroughs or quotes respectively).
    """
    model_config = ConfigDict(frozen=True)

    kind: RecommendationKind
    category: str
    priority: Priority
    rate: float
    departmentAvgRate: float
    deviation: float
    volume: int
    actual: int
    potentialGain: float
    impactScore: float
    reason: str


class SegmentAnalysisRequest(BaseModel):
    """Request body for POST /segments/performance."""
    trips: List[RawRecord]
    quotes: List[RawRecord] = Field(default_factory=list)
    hotPass: List[RawRecord] = Field(default_factory=list)
    dimension: SegmentDimension = SegmentDimension.REGION
    timeframe: SegmentTimeframe = SegmentTimeframe.ALL
    excludedCategories: Optional[List[str]] = None
    today: Optional[DateType] = None
    minCategoryTrips: Optional[int] = Field(default=None, ge=0)


class AgentDeviationRequest(SegmentAnalysisRequest):
    """Request body for POST /segments/agent-deviations."""
    minAgentTrips: Optional[int] = Field(default=None, ge=0)
    agentName: Optional[str] = None


class RecommendationRequest(BaseModel):
    """Request body for POST /segments/recommendations."""
    performance: SegmentPerformance
    kind: RecommendationKind = RecommendationKind.TP
    limit: Optional[int] = Field(default=None, ge=0)


# =============================================================================
# Quartile Models
# =============================================================================


class QuartileAgent(BaseModel):
    """An agent's range totals and aggregate hot-pass rate."""
    model_config = ConfigDict(frozen=True)

    agentName: str
    aggregateHotPassRate: float
    totalTrips: int
    totalPassthroughs: int
    totalQuotes: int
    totalHotPasses: int
    totalBookings: int


class QuartileDailyPoint(BaseModel):
    """Volume-weighted T>Q for the top and bottom cohorts on one date."""
    model_config = ConfigDict(frozen=True)

    date: DateType
    topQuartileTQ: float
    bottomQuartileTQ: float
    topQuartileAgentCount: int
    bottomQuartileAgentCount: int


class QuartileAnalysis(BaseModel):
    """Top and bottom hot-pass quartile cohorts with their daily comparison."""
    model_config = ConfigDict(frozen=True)

    topQuartileAgents: List[QuartileAgent]
    bottomQuartileAgents: List[QuartileAgent]
    dailyComparison: List[QuartileDailyPoint]
    dateRange: DateRange


class QuartileRequest(BaseModel):
    """Request body for POST /segments/quartiles."""
    timeSeries: TimeSeriesData
    startDate: Optional[DateType] = None
    endDate: Optional[DateType] = None
    minPassthroughs: Optional[int] = Field(default=None, ge=0)


# =============================================================================
# Activity Insight Models
# =============================================================================


class DayAnalysis(BaseModel):
    """Passthrough volume on one weekday."""
    model_config = ConfigDict(frozen=True)

    day: str
    count: int
    percentage: float
    avgPerDay: float = Field(description="count / number of distinct dates on that weekday")


class TimeSlotAnalysis(BaseModel):
    """Passthrough volume in one time-of-day bucket."""
    model_config = ConfigDict(frozen=True)

    timeSlot: str
    count: int
    percentage: float


class NonValidatedReason(BaseModel):
    """How often a non-validated reason occurs."""
    model_config = ConfigDict(frozen=True)

    reason: str
    count: int
    percentage: float


class AgentNonValidated(BaseModel):
    """Non-validated totals and top reasons for one agent."""
    model_config = ConfigDict(frozen=True)

    agentName: str
    total: int
    topReasons: List[NonValidatedReason]


class BookingCorrelation(BaseModel):
    """
    Booking outcome of hot passes grouped by a factor.

    A hot pass counts as booked when its trip name appears in the bookings
    collection.
    """
    model_config = ConfigDict(frozen=True)

    factor: str
    bookedCount: int
    notBookedCount: int
    bookingRate: float
    description: str


class ActivityInsights(BaseModel):
    """Timing, lead-quality and booking-linkage insights for a dataset snapshot."""
    model_config = ConfigDict(frozen=True)

    passthroughsByDay: List[DayAnalysis] = Field(default_factory=list)
    passthroughsByTime: List[TimeSlotAnalysis] = Field(default_factory=list)
    bestPassthroughDay: Optional[str] = None
    bestPassthroughTime: Optional[str] = None
    topNonValidatedReasons: List[NonValidatedReason] = Field(default_factory=list)
    agentNonValidated: List[AgentNonValidated] = Field(default_factory=list)
    bookingCorrelations: List[BookingCorrelation] = Field(default_factory=list)
    hasTimeData: bool = False
    hasNonValidatedReasons: bool = False
    hasBookingData: bool = False
    totalPassthroughs: int = 0
    totalNonValidated: int = 0
    totalBookings: int = 0
    totalHotPass: int = 0


# =============================================================================
# Personal Record Models
# =============================================================================


class RecordEntry(BaseModel):
    """A personal best value and the period in which it was achieved."""
    model_config = ConfigDict(frozen=True)

    value: float
    periodStart: DateType
    periodEnd: DateType
    setAt: DateType


class AgentRecords(BaseModel):
    """
    Personal bests for one agent.

    Volume metrics (trips, quotes, passthroughs) hold day/week/month/quarter
    entries; rate metrics (tq, tp, pq) hold month/quarter entries.
    """
    model_config = ConfigDict(frozen=True)

    agentName: str
    records: Dict[MetricKind, Dict[RecordPeriod, RecordEntry]] = Field(default_factory=dict)


class AllRecords(BaseModel):
    """Personal bests for every agent seen so far."""
    model_config = ConfigDict(frozen=True)

    agents: Dict[str, AgentRecords] = Field(default_factory=dict)
    lastUpdated: Optional[DateType] = None


class RecordUpdate(BaseModel):
    """A single new or improved personal best."""
    model_config = ConfigDict(frozen=True)

    agentName: str
    metric: MetricKind
    period: RecordPeriod
    previousValue: Optional[float] = None
    newValue: float
    periodStart: DateType
    periodEnd: DateType


class RecordsResult(BaseModel):
    """Updated personal records plus the list of changes."""
    model_config = ConfigDict(frozen=True)

    records: AllRecords
    updates: List[RecordUpdate] = Field(default_factory=list)


class RecordsRequest(BaseModel):
    """Request body for POST /insights/records."""
    timeSeries: TimeSeriesData
    existing: Optional[AllRecords] = None
    today: Optional[DateType] = None
