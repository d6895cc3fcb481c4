"""
API package initialization.

This package contains FastAPI router modules for the performance analytics
service:
- metrics: Aggregation into agent metrics and daily time series
- trends: Regression fits, LTTB decimation and merged chart series
- segments: Category performance, agent deviations, recommendations, quartiles
- insights: Activity insights and personal records
"""

from fastapi import APIRouter

# Import router modules
from performance_analytics.api.metrics import router as metrics_router
from performance_analytics.api.trends import router as trends_router
from performance_analytics.api.segments import router as segments_router
from performance_analytics.api.insights import router as insights_router

# Create main API router
api_router = APIRouter()

# Each sub-router carries its own prefix
api_router.include_router(metrics_router)
api_router.include_router(trends_router)
api_router.include_router(segments_router)
api_router.include_router(insights_router)

# Export all routers for selective imports
__all__ = [
    "api_router",
    "metrics_router",
    "trends_router",
    "segments_router",
    "insights_router",
]
