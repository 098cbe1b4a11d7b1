"""API route modules."""

from routes.health_routes import router as health_router
from routes.users_routes import router as users_router

__all__ = [
    "health_router",
    "users_router",
]
