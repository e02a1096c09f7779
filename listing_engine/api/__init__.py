"""API package - FastAPI routes and dependencies."""
from .dependencies import get_recommendation_service, get_search_service
from .routers import health_router, preferences_router, recommendations_router, search_router

__all__ = [
    "get_recommendation_service",
    "get_search_service",
    "health_router",
    "preferences_router",
    "recommendations_router",
    "search_router",
]
