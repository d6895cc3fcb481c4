"""
FastAPI router module for activity insight and personal record endpoints.

Endpoints:
- POST /insights/activity: Passthrough timing, non-validated reasons and
  hot pass to booking linkage for a raw dataset snapshot
- POST /insights/records: Fold a time series into stored personal records

Records are not persisted here; the caller sends the stored records and
keeps the returned ones.
"""

import logging

from fastapi import APIRouter, HTTPException

from performance_analytics.core.dependencies import SettingsDep
from performance_analytics.models.schemas import (
    ActivityInsights,
    RawDatasets,
    RecordsRequest,
    RecordsResult,
)
from performance_analytics.services.activity_insights import generate_activity_insights
from performance_analytics.services.records import update_records


# Configure logging
logger = logging.getLogger(__name__)

# Create router with prefix and tags for OpenAPI documentation
router = APIRouter(prefix="/insights", tags=["insights"])


@router.post("/activity", response_model=ActivityInsights)
async def activity_insights(
    datasets: RawDatasets,
    settings: SettingsDep,
) -> ActivityInsights:
    """
    Activity insights for one dataset snapshot.

    Missing collections produce empty sections, never an error.

    Raises:
        HTTPException 500: If analysis fails unexpectedly
    """
    try:
        return generate_activity_insights(datasets)
    except Exception as e:
        logger.error(f"Error generating activity insights: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error generating activity insights: {str(e)}",
        )


@router.post("/records", response_model=RecordsResult)
async def personal_records(
    request: RecordsRequest,
    settings: SettingsDep,
) -> RecordsResult:
    """
    Update personal bests from a new time series.

    Only completed periods (ending before `today`) are considered.
    """
    try:
        return update_records(request.timeSeries, existing=request.existing, today=request.today)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating personal records: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error updating personal records: {str(e)}",
        )
