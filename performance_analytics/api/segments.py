"""
FastAPI router module for segment analysis endpoints.

Endpoints:
- POST /segments/performance: Department performance per category
- POST /segments/agent-deviations: Per-agent category T>P deviations
- POST /segments/recommendations: Ranked department recommendations
- POST /segments/quartiles: Top vs bottom hot-pass quartile comparison

Request fields left unset fall back to settings:
- minCategoryTrips -> min_region_trips
- minAgentTrips -> min_agent_region_trips
- excludedCategories -> excluded_categories
- limit -> max_recommendations
- minPassthroughs -> quartile_min_passthroughs
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException

from performance_analytics.core.config import Settings
from performance_analytics.core.dependencies import SettingsDep
from performance_analytics.models.schemas import (
    AgentDeviationRequest,
    AgentSegmentAnalysis,
    ImprovementRecommendation,
    QuartileAnalysis,
    QuartileRequest,
    RecommendationRequest,
    SegmentAnalysisRequest,
    SegmentPerformance,
)
from performance_analytics.services.quartile import calculate_quartile_analysis
from performance_analytics.services.recommendations import generate_department_recommendations
from performance_analytics.services.segments import (
    analyze_agent_deviations,
    analyze_segment_performance,
)


# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/segments", tags=["segments"])


# =============================================================================
# Helper Functions
# =============================================================================


def _performance_for(request: SegmentAnalysisRequest, settings: Settings) -> Optional[SegmentPerformance]:
    """Run segment analysis with request overrides and settings defaults."""
    excluded = (
        request.excludedCategories
        if request.excludedCategories is not None
        else settings.excluded_categories
    )
    min_trips = (
        request.minCategoryTrips
        if request.minCategoryTrips is not None
        else settings.min_region_trips
    )
    return analyze_segment_performance(
        request.trips,
        quote_rows=request.quotes,
        hot_pass_rows=request.hotPass,
        dimension=request.dimension,
        timeframe=request.timeframe,
        excluded_categories=excluded,
        today=request.today,
        min_category_trips=min_trips,
        min_category_passthroughs=settings.min_region_passthroughs,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/performance", response_model=Optional[SegmentPerformance])
async def segment_performance(
    request: SegmentAnalysisRequest,
    settings: SettingsDep,
) -> Optional[SegmentPerformance]:
    """
    Department performance per category of the requested dimension.

    Returns null when there are no trips or the dimension column is missing.
    """
    try:
        return _performance_for(request, settings)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error analyzing segment performance: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error analyzing segment performance: {str(e)}",
        )


@router.post("/agent-deviations", response_model=List[AgentSegmentAnalysis])
async def agent_deviations(
    request: AgentDeviationRequest,
    settings: SettingsDep,
) -> List[AgentSegmentAnalysis]:
    """
    Per-agent category deviations against the department.

    Set agentName to analyze a single agent.
    """
    min_agent_trips = (
        request.minAgentTrips
        if request.minAgentTrips is not None
        else settings.min_agent_region_trips
    )
    try:
        performance = _performance_for(request, settings)
        if performance is None:
            return []
        return analyze_agent_deviations(
            request.trips,
            performance,
            min_agent_trips=min_agent_trips,
            agent_name=request.agentName,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error analyzing agent deviations: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error analyzing agent deviations: {str(e)}",
        )


@router.post("/recommendations", response_model=List[ImprovementRecommendation])
async def department_recommendations(
    request: RecommendationRequest,
    settings: SettingsDep,
) -> List[ImprovementRecommendation]:
    """Highest-impact T>P or P>Q improvement opportunities."""
    limit = request.limit if request.limit is not None else settings.max_recommendations
    try:
        return generate_department_recommendations(
            request.performance,
            kind=request.kind,
            limit=limit,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error generating recommendations: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error generating recommendations: {str(e)}",
        )


@router.post("/quartiles", response_model=Optional[QuartileAnalysis])
async def quartiles(
    request: QuartileRequest,
    settings: SettingsDep,
) -> Optional[QuartileAnalysis]:
    """
    Compare daily T>Q of the top and bottom hot-pass quartiles.

    Returns null with fewer than four qualifying agents.
    """
    min_passthroughs = (
        request.minPassthroughs
        if request.minPassthroughs is not None
        else settings.quartile_min_passthroughs
    )
    try:
        return calculate_quartile_analysis(
            request.timeSeries,
            start_date=request.startDate,
            end_date=request.endDate,
            min_passthroughs=min_passthroughs,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error computing quartile analysis: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error computing quartile analysis: {str(e)}",
        )
