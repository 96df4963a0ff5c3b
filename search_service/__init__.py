"""
Farmer Grant Search Service.

A FastAPI microservice serving cached farmer / grant search and autocomplete.

Main components:
- main: FastAPI application factory, lifespan and router registration
- clients: construction of the store, cache and index handles
- sync: command-line resync of the search index
- core: configuration and error kinds
- schemas: Pydantic records and request parameter models
- api: route handlers
- services: query engine, query cache, search index, index synchronizer
"""

from .core.config import DATABASE_URL, REDIS_URL, ELASTICSEARCH_URL, FARMER_INDEX
from .services.query_engine import SearchQueryEngine
from .services.index_sync import IndexSynchronizer

__all__ = [
    "DATABASE_URL",
    "REDIS_URL",
    "ELASTICSEARCH_URL",
    "FARMER_INDEX",
    "SearchQueryEngine",
    "IndexSynchronizer",
]
