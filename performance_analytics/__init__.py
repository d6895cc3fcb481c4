"""
Performance Analytics Package.

Analytics engine for sales-activity reports: per-agent conversion metrics,
daily time series, trend fitting, chart decimation, segment performance,
improvement recommendations, quartile cohorts, activity insights and
personal records.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration and dependencies
    - models: Pydantic schemas and enums
    - services: Pure analysis services
"""

__version__ = "1.0.0"
