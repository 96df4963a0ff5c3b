"""
Search query engine: cache-aside reads over the primary store and search index.

Every path follows the same steps:
  1) validate the recognized parameters and build the cache key
  2) return the cached payload verbatim on a hit
  3) on a miss, query the store (count then page) or the suggestion source
  4) assemble the response, cache it with the path TTL, return it

Store and index failures end the request with a generic failure outcome.
Cache failures never do; the cache reads as empty instead.
"""
import logging
import math
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ValidationError

from ..core.config import (
    MIN_PREFIX_LENGTH,
    SEARCH_CACHE_TTL,
    SUGGESTION_CACHE_TTL,
    SUGGESTION_LIMIT,
)
from ..core.errors import ErrorKind, QueryOutcome, SearchIndexError, StoreError
from ..schemas.queries import (
    AutocompleteQuery,
    FarmerSearchQuery,
    GrantSearchQuery,
    SuggestionQuery,
)
from ..schemas.records import GrantApplicationRecord
from .primary_store import PrimaryStore
from .query_cache import QueryCache, build_cache_key
from .suggestions import StoreSuggestionSource, SuggestionSource

SEARCH_FAILED = "Search failed"
SUGGESTIONS_FAILED = "Failed to get suggestions"

# Fields the legacy suggestions endpoint can look up
LEGACY_SUGGESTION_TYPES = ("location", "crop")

Q = TypeVar("Q", bound=BaseModel)


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"Invalid parameter '{field}': {first['msg']}" if field else first["msg"]


def _grant_records(rows) -> List[Dict[str, Any]]:
    try:
        return [GrantApplicationRecord.model_validate(row).model_dump() for row in rows]
    except ValidationError as e:
        raise StoreError(f"Unreadable grant application row: {e}") from e


def _pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit),
    }


class SearchQueryEngine:
    def __init__(
        self,
        store: PrimaryStore,
        cache: QueryCache,
        suggestions: SuggestionSource,
        store_suggestions: Optional[StoreSuggestionSource] = None,
        search_ttl: int = SEARCH_CACHE_TTL,
        suggestion_ttl: int = SUGGESTION_CACHE_TTL,
        min_prefix_length: int = MIN_PREFIX_LENGTH,
        suggestion_limit: int = SUGGESTION_LIMIT,
    ):
        self.store = store
        self.cache = cache
        self.suggestions = suggestions
        self.store_suggestions = store_suggestions or StoreSuggestionSource(store)
        self.search_ttl = search_ttl
        self.suggestion_ttl = suggestion_ttl
        self.min_prefix_length = min_prefix_length
        self.suggestion_limit = suggestion_limit

    # -------------------------
    # SHARED STEPS
    # -------------------------
    @staticmethod
    def _parse(model: Type[Q], params: Mapping[str, Any]) -> Tuple[Optional[Q], Optional[QueryOutcome]]:
        try:
            return model.model_validate(dict(params)), None
        except ValidationError as e:
            return None, QueryOutcome.failure(ErrorKind.INVALID_REQUEST, _validation_message(e))

    async def _cache_aside(
        self,
        key: str,
        ttl: int,
        compute: Callable[[], Awaitable[Dict[str, Any]]],
        failure_message: str,
    ) -> QueryOutcome:
        cached = await self.cache.get(key)
        if cached is not None:
            return QueryOutcome.success(cached, cached=True)

        try:
            payload = await compute()
        except (StoreError, SearchIndexError) as e:
            logging.error(f"[SearchEngine] {key} failed: {e}", exc_info=True)
            return QueryOutcome.failure(ErrorKind.SOURCE_FAILURE, failure_message)

        payload = jsonable_encoder(payload)
        await self.cache.set(key, payload, ttl)
        return QueryOutcome.success(payload)

    # -------------------------
    # FARMER SEARCH
    # -------------------------
    async def search_farmers(self, params: Mapping[str, Any]) -> QueryOutcome:
        query, invalid = self._parse(FarmerSearchQuery, params)
        if invalid:
            return invalid

        async def compute():
            total = await run_in_threadpool(self.store.count_farmers, query)
            rows = await run_in_threadpool(self.store.find_farmers, query)
            return {
                "success": True,
                "farmers": rows,
                "pagination": _pagination(query.page, query.limit, total),
            }

        key = build_cache_key("search:farmers", query.cache_params())
        return await self._cache_aside(key, self.search_ttl, compute, SEARCH_FAILED)

    # -------------------------
    # GRANT SEARCH
    # -------------------------
    async def search_grants(self, params: Mapping[str, Any]) -> QueryOutcome:
        query, invalid = self._parse(GrantSearchQuery, params)
        if invalid:
            return invalid

        async def compute():
            total = await run_in_threadpool(self.store.count_grants, query)
            rows = await run_in_threadpool(self.store.find_grants, query)
            return {
                "success": True,
                "grants": _grant_records(rows),
                "pagination": _pagination(query.page, query.limit, total),
            }

        key = build_cache_key("search:grants", query.cache_params())
        return await self._cache_aside(key, self.search_ttl, compute, SEARCH_FAILED)

    # -------------------------
    # AUTOCOMPLETE
    # -------------------------
    async def autocomplete(self, params: Mapping[str, Any]) -> QueryOutcome:
        query, invalid = self._parse(AutocompleteQuery, params)
        if invalid:
            return invalid

        if len(query.q) < self.min_prefix_length:
            return QueryOutcome.success({"success": True, "suggestions": []})

        scope = query.scope.value if query.scope else None
        source = await self.suggestions.resolve()

        async def compute():
            suggestions = await source.suggest(query.q, scope, self.suggestion_limit)
            return {"success": True, "suggestions": suggestions}

        # Backends rank differently, so they never share entries
        key = build_cache_key(f"autocomplete:{source.name}", query.cache_params())
        return await self._cache_aside(key, self.suggestion_ttl, compute, SUGGESTIONS_FAILED)

    # -------------------------
    # LEGACY SUGGESTIONS
    # -------------------------
    async def suggest_values(self, params: Mapping[str, Any]) -> QueryOutcome:
        query, invalid = self._parse(SuggestionQuery, params)
        if invalid:
            return invalid

        if len(query.q) < self.min_prefix_length or query.type not in LEGACY_SUGGESTION_TYPES:
            return QueryOutcome.success({"success": True, "suggestions": []})

        async def compute():
            values = await self.store_suggestions.values(query.type, query.q, self.suggestion_limit)
            return {"success": True, "suggestions": values}

        key = build_cache_key("suggestions", query.cache_params())
        return await self._cache_aside(key, self.suggestion_ttl, compute, SUGGESTIONS_FAILED)
