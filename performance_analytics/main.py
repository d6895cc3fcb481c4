"""
FastAPI application entry point for the Performance Analytics API.

This module configures logging, CORS and the API routers. All analysis is
stateless: every request carries its own raw records or time series, so
there are no connections to open or close during the app lifespan.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from performance_analytics import __version__
from performance_analytics.api import api_router
from performance_analytics.core.config import get_settings

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown.

    Logs the effective analysis defaults on startup.
    """
    logger.info("Performance Analytics API starting")
    logger.info(
        f"Defaults: r_squared_threshold={settings.r_squared_threshold}, "
        f"chart_target_points={settings.chart_target_points}, "
        f"min_region_trips={settings.min_region_trips}"
    )

    yield

    logger.info("Performance Analytics API shutting down")


# Create FastAPI application
app = FastAPI(
    title="Performance Analytics API",
    version=__version__,
    description=(
        "Sales-activity analytics engine. "
        "Provides endpoints for agent aggregation, trend fitting, chart "
        "decimation, segment analysis, recommendations and personal records."
    ),
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers (each carries its own prefix)
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer checks.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": "Performance Analytics API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "performance_analytics.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
