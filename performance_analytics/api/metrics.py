"""
FastAPI router module for aggregation endpoints.

Endpoints:
- POST /metrics/aggregate: Per-agent metrics and daily time series for a
  raw dataset snapshot
- POST /metrics/segment-daily: Department-wide daily T>P for repeat-client
  or B2B trips

Both endpoints are thin wrappers over services.aggregation; contract
violations (e.g. startDate after endDate) surface as HTTP 400.
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from performance_analytics.core.dependencies import SettingsDep
from performance_analytics.models.schemas import (
    AggregationRequest,
    AggregationResult,
    GroupDailyPoint,
    SegmentDailyRequest,
)
from performance_analytics.services.aggregation import run_aggregation, segment_daily_rates


# Configure logging
logger = logging.getLogger(__name__)

# Create router with prefix and tags for OpenAPI documentation
router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.post("/aggregate", response_model=AggregationResult)
async def aggregate_metrics(
    request: AggregationRequest,
    settings: SettingsDep,
) -> AggregationResult:
    """
    Aggregate raw records into agent metrics and time series.

    Args:
        request: Raw datasets, optional inclusive window and senior agents.

    Returns:
        AggregationResult with agent metrics, time series and the columns
        that were resolved for each dataset.

    Raises:
        HTTPException 400: If startDate is after endDate
        HTTPException 500: If aggregation fails unexpectedly
    """
    try:
        return run_aggregation(
            request.datasets,
            start_date=request.startDate,
            end_date=request.endDate,
            seniors=request.seniors,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error aggregating metrics: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error aggregating metrics: {str(e)}",
        )


@router.post("/segment-daily", response_model=List[GroupDailyPoint])
async def segment_daily(
    request: SegmentDailyRequest,
    settings: SettingsDep,
) -> List[GroupDailyPoint]:
    """
    Daily T>P for the repeat-client or B2B segment.

    The region dimension has no single segment and is rejected with 400.
    """
    try:
        return segment_daily_rates(
            request.trips,
            request.dimension,
            start_date=request.startDate,
            end_date=request.endDate,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error computing segment daily rates: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error computing segment daily rates: {str(e)}",
        )
