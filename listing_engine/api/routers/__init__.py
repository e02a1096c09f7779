"""API routers package."""
from .health import router as health_router
from .preferences import router as preferences_router
from .recommendations import router as recommendations_router
from .search import router as search_router

__all__ = [
    "health_router",
    "preferences_router",
    "recommendations_router",
    "search_router",
]
