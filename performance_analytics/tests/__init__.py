'''
Performance Analytics Test Suite

Test Modules:
-------------
- test_columns.py: Column candidate resolution and value helpers
- test_temporal.py: Timestamp parsing, time-of-day buckets, timeframes
- test_aggregation.py: Agent carry-forward, counting, rates, group series
- test_series.py: Metric dispatch and merged chart rows
- test_regression.py: Linear / log-linear fits and best-fit selection
- test_decimation.py: LTTB downsampling
- test_segments.py: Category performance and agent deviations
- test_recommendations.py: Priority tiers, reason table, impact ordering
- test_quartile.py: Hot-pass quartile cohorts and weighted daily T>Q
- test_activity_insights.py: Passthrough timing, reasons, booking linkage
- test_records.py: Personal records over completed periods
- test_ingestion.py: CSV / DataFrame report parsing
- test_api.py: Endpoint defaults and error mapping

Running Tests:
--------------
    pip install -e .[test]
    pytest -v

Markers:
--------
- property: tests asserting a documented engine invariant
- slow: long-running tests (deselect with -m "not slow")

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
