"""
Analytics Services Module

This module contains the business logic of the performance analytics engine.
Every service is a pure, stateless function over immutable inputs.

Services:
- columns: Fuzzy header resolution for logical fields
- temporal: Date/time parsing, time-of-day buckets, calendar timeframes
- ingestion: CSV / DataFrame report parsing into raw records
- aggregation: Per-agent counting, rates and daily time series
- regression: Linear and log-linear trend fitting with R² selection
- decimation: LTTB chart downsampling
- series: Metric dispatch and merged chart rows
- segments: Category performance and per-agent deviations
- recommendations: Scored department-level improvement recommendations
- quartile: Top vs bottom hot-pass quartile cohorts
- activity_insights: Passthrough timing, non-validated reasons, booking linkage
- records: Personal best tracking

All services are designed to be consumed by the API layer
(performance_analytics/api/), which supplies defaults from settings.
"""

# =============================================================================
# Column Resolution Exports
# =============================================================================

from performance_analytics.services.columns import (
    COLUMN_CANDIDATES,
    GROUPED_AGENT_KEY,
    find_column,
    resolve_field,
    find_agent_column,
)

# =============================================================================
# Temporal Exports
# =============================================================================

from performance_analytics.services.temporal import (
    TemporalIndex,
    parse_date_value,
    parse_timestamp,
    time_slot_for_hour,
    timeframe_bounds,
)

# =============================================================================
# Ingestion Exports
# Grouped-report parsing with header detection and summary row removal
# =============================================================================

from performance_analytics.services.ingestion import (
    parse_csv,
    parse_grid,
    records_from_dataframe,
    build_datasets,
)

# =============================================================================
# Aggregation Exports
# Carry-forward agent attribution, windowed counting, rates and time series
# =============================================================================

from performance_analytics.services.aggregation import (
    CountResult,
    RateSet,
    safe_rate,
    attribute_rows,
    count_by_agent,
    count_non_converted,
    calculate_rates,
    calculate_agent_metrics,
    aggregate_group_daily,
    build_time_series,
    segment_daily_rates,
    run_aggregation,
)

# =============================================================================
# Trend Exports
# =============================================================================

from performance_analytics.services.regression import (
    linear_regression,
    log_linear_regression,
    get_best_regression,
    calculate_series_regression,
)

from performance_analytics.services.decimation import (
    lttb_indices,
    decimate_chart_data,
    decimate_series,
)

from performance_analytics.services.series import (
    metric_value,
    series_key,
    merge_series_for_chart,
)

# =============================================================================
# Segment Exports
# Category performance, agent deviations, recommendations and quartiles
# =============================================================================

from performance_analytics.services.segments import (
    analyze_segment_performance,
    analyze_agent_deviations,
    category_impact_score,
)

from performance_analytics.services.recommendations import (
    classify_priority,
    recommendation_reason,
    generate_department_recommendations,
)

from performance_analytics.services.quartile import (
    calculate_quartile_analysis,
)

# =============================================================================
# Insight Exports
# =============================================================================

from performance_analytics.services.activity_insights import (
    analyze_passthroughs_by_day,
    analyze_passthroughs_by_time,
    analyze_non_validated_reasons,
    analyze_non_validated_by_agent,
    analyze_booking_correlations,
    generate_activity_insights,
)

from performance_analytics.services.records import (
    update_records,
)


__all__ = [
    # Columns
    "COLUMN_CANDIDATES",
    "GROUPED_AGENT_KEY",
    "find_column",
    "resolve_field",
    "find_agent_column",
    # Temporal
    "TemporalIndex",
    "parse_date_value",
    "parse_timestamp",
    "time_slot_for_hour",
    "timeframe_bounds",
    # Ingestion
    "parse_csv",
    "parse_grid",
    "records_from_dataframe",
    "build_datasets",
    # Aggregation
    "CountResult",
    "RateSet",
    "safe_rate",
    "attribute_rows",
    "count_by_agent",
    "count_non_converted",
    "calculate_rates",
    "calculate_agent_metrics",
    "aggregate_group_daily",
    "build_time_series",
    "segment_daily_rates",
    "run_aggregation",
    # Trends
    "linear_regression",
    "log_linear_regression",
    "get_best_regression",
    "calculate_series_regression",
    "lttb_indices",
    "decimate_chart_data",
    "decimate_series",
    "metric_value",
    "series_key",
    "merge_series_for_chart",
    # Segments
    "analyze_segment_performance",
    "analyze_agent_deviations",
    "category_impact_score",
    "classify_priority",
    "recommendation_reason",
    "generate_department_recommendations",
    "calculate_quartile_analysis",
    # Insights
    "analyze_passthroughs_by_day",
    "analyze_passthroughs_by_time",
    "analyze_non_validated_reasons",
    "analyze_non_validated_by_agent",
    "analyze_booking_correlations",
    "generate_activity_insights",
    "update_records",
]
