"""
API Routes module.

This module contains all FastAPI route handlers organized by resource:
- search: farmer / grant search, autocomplete, suggestions and manual resync
- health: dependency health check
"""

from .search import router as search_router
from .health import router as health_router

__all__ = [
    "search_router",
    "health_router",
]
