"""API routes module."""
from periodization.api.routes.coaching import router as coaching_router
from periodization.api.routes.health import router as health_router
from periodization.api.routes.progress import router as progress_router
from periodization.api.routes.subscriptions import router as subscriptions_router
from periodization.api.routes.templates import router as templates_router

__all__ = [
    "coaching_router",
    "health_router",
    "progress_router",
    "subscriptions_router",
    "templates_router",
]
