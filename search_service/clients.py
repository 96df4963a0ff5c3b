"""
Construction and teardown of the store, cache and index client handles.

Handles are created once per process (app lifespan or the sync CLI) and
passed explicitly to the query engine and the index synchronizer.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .core.config import (
    CACHE_BACKEND,
    DATABASE_URL,
    DB_POOL_MAX,
    DB_POOL_MIN,
    ELASTICSEARCH_URL,
    FARMER_INDEX,
    MEMORY_CACHE_MAX_ENTRIES,
    REDIS_URL,
)
from .services.primary_store import PrimaryStore
from .services.query_cache import QueryCache, create_query_cache
from .services.search_index import FarmerSearchIndex


@dataclass
class ServiceClients:
    store: PrimaryStore
    cache: QueryCache
    index: Optional[FarmerSearchIndex]


async def open_index() -> Optional[FarmerSearchIndex]:
    """
    Connect to the search index; None when no ELASTICSEARCH_URL is set.

    An index that cannot be reached yet is still returned; availability is
    re-checked on use.
    """
    if not ELASTICSEARCH_URL:
        return None

    index = FarmerSearchIndex.from_url(ELASTICSEARCH_URL, FARMER_INDEX)
    if not await index.is_available():
        logging.warning("[Startup] Search index unreachable, will retry on use")
    return index


async def open_clients() -> ServiceClients:
    store = PrimaryStore(DATABASE_URL, DB_POOL_MIN, DB_POOL_MAX)
    cache = create_query_cache(CACHE_BACKEND, REDIS_URL, MEMORY_CACHE_MAX_ENTRIES)
    index = await open_index()
    logging.info(
        f"[Startup] Clients ready (cache={cache.name}, index={'on' if index else 'off'})"
    )
    return ServiceClients(store=store, cache=cache, index=index)


async def close_clients(clients: ServiceClients):
    if clients.index is not None:
        await clients.index.close()
    await clients.cache.close()
    clients.store.close()
