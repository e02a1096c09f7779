"""
Centralized configuration using Pydantic BaseSettings.
All tunables of the discovery engine are loaded here from the environment.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Listing Discovery API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: Optional[str] = None  # Overrides the DEBUG-derived level

    # Result cache
    RECOMMENDATION_CACHE_TTL_SEC: int = 600  # 10 minutes

    # Ranking
    CANDIDATE_POOL_MULTIPLIER: int = 5  # Candidates scored per requested item
    FRESHNESS_WINDOW_DAYS: int = 30
    BEHAVIORAL_WEIGHT: float = 0.3

    # Interaction history
    HISTORY_LOOKBACK_DAYS: int = 90
    HISTORY_LIMIT: int = 50

    # Circuit Breakers
    CACHE_BREAKER_FAILURE_THRESHOLD: int = 3
    CACHE_BREAKER_RECOVERY_TIMEOUT_SEC: int = 30
    HISTORY_BREAKER_FAILURE_THRESHOLD: int = 5
    HISTORY_BREAKER_RECOVERY_TIMEOUT_SEC: int = 30

    # Telemetry
    ENABLE_OTEL: bool = False
    ENABLE_PROMETHEUS: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance - singleton pattern."""
    return Settings()
