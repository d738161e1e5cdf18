"""Blog Search REST API.

FastAPI-based REST API for unified search over articles, activities,
users and tags.
"""

from blog_search_api.main import app, create_app

__all__ = ["app", "create_app"]
