"""
Services module for the search service.

This module contains the search-serving core and its collaborators:
- primary_store: parameterized reads against the farmers / grants tables
- search_index: Elasticsearch farmer index (bulk upsert, completion)
- query_cache: canonical cache keys and the Redis / in-process caches
- suggestions: index-backed and store-backed suggestion sources
- query_engine: cache-aside search, autocomplete and suggestion queries
- index_sync: full resync of farmers into the search index
"""

from .primary_store import PrimaryStore, farmer_filters, grant_filters
from .search_index import FarmerSearchIndex, BulkReport
from .query_cache import (
    QueryCache,
    RedisQueryCache,
    MemoryQueryCache,
    build_cache_key,
    create_query_cache,
)
from .suggestions import (
    SuggestionSource,
    IndexSuggestionSource,
    StoreSuggestionSource,
    select_suggestion_source,
)
from .query_engine import SearchQueryEngine
from .index_sync import IndexSynchronizer, SyncReport, build_documents

__all__ = [
    "PrimaryStore",
    "farmer_filters",
    "grant_filters",
    "FarmerSearchIndex",
    "BulkReport",
    "QueryCache",
    "RedisQueryCache",
    "MemoryQueryCache",
    "build_cache_key",
    "create_query_cache",
    "SuggestionSource",
    "IndexSuggestionSource",
    "StoreSuggestionSource",
    "select_suggestion_source",
    "SearchQueryEngine",
    "IndexSynchronizer",
    "SyncReport",
    "build_documents",
]
