"""
FastAPI router module for trend and chart endpoints.

Endpoints:
- POST /trends/regression: Best linear / log-linear fit for one series
- POST /trends/decimate: LTTB downsampling of chart rows
- POST /trends/chart-series: Merged chart rows for selected agents, groups
  and metrics, decimated to the target point count

Defaults:
- rSquaredThreshold falls back to settings.r_squared_threshold
- targetPoints falls back to settings.chart_target_points
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException

from performance_analytics.core.dependencies import SettingsDep
from performance_analytics.models.schemas import (
    ChartSeriesRequest,
    DecimationRequest,
    RegressionRequest,
    RegressionResult,
)
from performance_analytics.services.decimation import decimate_chart_data
from performance_analytics.services.regression import get_best_regression
from performance_analytics.services.series import merge_series_for_chart


# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trends", tags=["trends"])


@router.post("/regression", response_model=Optional[RegressionResult])
async def fit_trend(
    request: RegressionRequest,
    settings: SettingsDep,
) -> Optional[RegressionResult]:
    """
    Fit a trend line to a series with gaps.

    Returns null when fewer than three usable points exist or neither fit
    reaches the R² threshold.

    Raises:
        HTTPException 400: If totalPoints is shorter than values
    """
    threshold = (
        request.rSquaredThreshold
        if request.rSquaredThreshold is not None
        else settings.r_squared_threshold
    )
    try:
        return get_best_regression(
            request.values,
            threshold=threshold,
            total_points=request.totalPoints,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error fitting trend: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error fitting trend: {str(e)}",
        )


@router.post("/decimate", response_model=List[Dict[str, Any]])
async def decimate(
    request: DecimationRequest,
    settings: SettingsDep,
) -> List[Dict[str, Any]]:
    """Downsample chart rows with LTTB, keeping first and last rows."""
    target = request.targetPoints if request.targetPoints is not None else settings.chart_target_points
    try:
        return decimate_chart_data(request.points, target_points=target, date_key=request.dateKey)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error decimating chart data: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error decimating chart data: {str(e)}",
        )


@router.post("/chart-series", response_model=List[Dict[str, Any]])
async def chart_series(
    request: ChartSeriesRequest,
    settings: SettingsDep,
) -> List[Dict[str, Any]]:
    """
    Build merged chart rows and decimate them.

    Each row has a `date` plus one `<owner>_<metric>` key per selected
    series, where owner is an agent name, dept, senior or nonsenior.
    """
    target = request.targetPoints if request.targetPoints is not None else settings.chart_target_points
    try:
        rows = merge_series_for_chart(
            request.timeSeries,
            agents=request.agents,
            metrics=request.metrics,
            show_department=request.showDepartment,
            show_senior=request.showSenior,
            show_non_senior=request.showNonSenior,
            start_date=request.startDate,
            end_date=request.endDate,
        )
        decimated = decimate_chart_data(rows, target_points=target)
        logger.debug(f"Chart series: {len(rows)} rows decimated to {len(decimated)}")
        return decimated
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error building chart series: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error building chart series: {str(e)}",
        )
