"""
Settings and environment management module for the performance analytics engine.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Sensible defaults for development
- Singleton pattern via @lru_cache for efficient access
- Every analysis threshold in one place; services take explicit parameters
  and the API layer fills them from here

Environment Variables (all prefixed with ANALYTICS_):
- ANALYTICS_LOG_LEVEL: Root logging level (default: INFO)
- ANALYTICS_CORS_ORIGINS: JSON list of allowed browser origins
- ANALYTICS_R_SQUARED_THRESHOLD: Minimum R² for a trend line (default: 0.5)
- ANALYTICS_CHART_TARGET_POINTS: LTTB target point count (default: 150)
- ANALYTICS_MIN_REGION_TRIPS: Minimum trips for a category to be ranked (default: 10)
- ANALYTICS_MIN_AGENT_REGION_TRIPS: Minimum agent trips in a category (default: 5)
- ANALYTICS_MIN_REGION_PASSTHROUGHS: Minimum passthroughs for hot-pass rankings (default: 5)
- ANALYTICS_QUARTILE_MIN_PASSTHROUGHS: Minimum passthroughs for quartile cohorts (default: 10)
- ANALYTICS_EXCLUDED_CATEGORIES: JSON list of category substrings left out of segment analysis
- ANALYTICS_MAX_RECOMMENDATIONS: Recommendations returned per request (default: 6)

Usage:
    from performance_analytics.core.config import get_settings

    settings = get_settings()
    threshold = settings.r_squared_threshold
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The class inherits from pydantic-settings BaseSettings which provides:
    - Automatic loading from environment variables (case-insensitive)
    - Support for .env file loading
    - Type validation and coercion
    - Default values for every setting

    Attributes:
        log_level: Logging level name passed to logging.basicConfig.
        cors_origins: Browser origins allowed by the CORS middleware.
        r_squared_threshold: Minimum R² a regression needs to be drawn.
        chart_target_points: Target point count for LTTB chart decimation.
        min_region_trips: Minimum department trips for a category to be ranked.
        min_agent_region_trips: Minimum agent trips in a category before a
            deviation is computed for it.
        min_region_passthroughs: Minimum passthroughs for hot-pass rankings.
        quartile_min_passthroughs: Minimum passthroughs for an agent to enter
            quartile cohorts.
        excluded_categories: Category substrings excluded from segment analysis.
        max_recommendations: Maximum recommendations returned per request.
    """

    model_config = SettingsConfigDict(
        env_prefix='ANALYTICS_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',  # Ignore extra environment variables not defined in this class
        case_sensitive=False,
    )

    # =========================================================================
    # Service
    # =========================================================================

    log_level: str = 'INFO'

    cors_origins: List[str] = [
        'http://localhost:3000',
        'http://127.0.0.1:3000',
        'http://localhost:5173',
    ]

    # =========================================================================
    # Trend Defaults
    # =========================================================================

    # A fit below this R² is not drawn as a trend line
    r_squared_threshold: float = 0.5

    # Charts with more points than this are decimated with LTTB
    chart_target_points: int = 150

    # =========================================================================
    # Segment Analysis Defaults
    # =========================================================================

    # Department-level category gate. Must stay larger than the agent-level
    # gate below: a category ranked for the department is estimated from
    # every agent's trips, an agent deviation only from one agent's.
    min_region_trips: int = 10

    # Agent-level category gate
    min_agent_region_trips: int = 5

    # Hot-pass rankings use passthroughs as their volume
    min_region_passthroughs: int = 5

    # Categories matched (case-insensitive substring) are left out entirely
    excluded_categories: List[str] = []

    max_recommendations: int = 6

    # =========================================================================
    # Quartile Defaults
    # =========================================================================

    quartile_min_passthroughs: int = 10


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns a cached Settings instance, ensuring that environment variables
    are only loaded once during the application lifecycle.

    Returns:
        Settings: The application settings instance with all configuration values.

    Raises:
        pydantic.ValidationError: If an environment variable has an invalid value.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
