"""API route modules."""

from routes.health_routes import router as health_router
from routes.streak_routes import router as streak_router

__all__ = [
    "health_router",
    "streak_router",
]
