"""API route handlers."""

from blog_search_api.routes.health import router as health_router
from blog_search_api.routes.search import router as search_router

__all__ = [
    "health_router",
    "search_router",
]
