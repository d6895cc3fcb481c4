"""
FastAPI dependency injection module for the performance analytics service.

Provides the reusable FastAPI dependency for configuration access, so endpoint
handlers receive thresholds and defaults without importing the settings module
directly.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- SettingsDep: Type alias for injecting Settings into endpoints

Usage Examples:
    @router.post("/regression")
    async def fit_trend(
        request: RegressionRequest,
        settings: SettingsDep
    ) -> Optional[RegressionResult]:
        threshold = settings.r_squared_threshold
        ...
"""

from typing import Annotated

from fastapi import Depends

from performance_analytics.core.config import Settings, get_settings


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    This is a thin wrapper around get_settings() to enable FastAPI's
    dependency override mechanism for testing:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings

    Returns:
        Settings: The cached Settings instance with all configuration values.
    """
    return get_settings()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]
