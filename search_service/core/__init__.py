"""
Core configuration and shared error types.

This module contains application-wide configuration including:
- Environment variables and their defaults
- Connection URLs for the store, cache and search index
- Error kinds returned by the query engine
"""

from .config import DATABASE_URL, REDIS_URL, ELASTICSEARCH_URL, FARMER_INDEX
from .errors import CacheError, ErrorKind, QueryOutcome, SearchIndexError, StoreError

__all__ = [
    "DATABASE_URL",
    "REDIS_URL",
    "ELASTICSEARCH_URL",
    "FARMER_INDEX",
    "CacheError",
    "ErrorKind",
    "QueryOutcome",
    "SearchIndexError",
    "StoreError",
]
