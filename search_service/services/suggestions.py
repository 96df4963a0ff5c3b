import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from .primary_store import PrimaryStore
from .search_index import FarmerSearchIndex

PREFIX_SCORE = 1.0
SUBSTRING_SCORE = 0.5


class SuggestionSource(ABC):
    """Ranked [{text, score}] suggestions for a typed prefix."""

    name = "base"

    @abstractmethod
    async def suggest(self, prefix: str, scope: Optional[str], limit: int) -> List[Dict[str, Any]]:
        ...

    async def resolve(self) -> "SuggestionSource":
        """The source that should answer the current request."""
        return self


# -------------------------
# INDEX-BACKED (completion)
# -------------------------

class IndexSuggestionSource(SuggestionSource):
    name = "index"

    def __init__(self, index: FarmerSearchIndex, fallback: Optional[SuggestionSource] = None):
        self.index = index
        self.fallback = fallback

    async def resolve(self) -> SuggestionSource:
        if self.fallback is not None and not await self.index.is_available():
            return self.fallback
        return self

    async def suggest(self, prefix: str, scope: Optional[str], limit: int) -> List[Dict[str, Any]]:
        return await self.index.search_completion(prefix, field=scope, size=limit)


# -------------------------
# STORE-BACKED (distinct values)
# -------------------------

class StoreSuggestionSource(SuggestionSource):
    name = "store"

    LOOKUPS = {
        "name": "distinct_names",
        "location": "distinct_locations",
        "crop": "distinct_crops",
    }

    def __init__(self, store: PrimaryStore):
        self.store = store

    async def values(self, scope: str, term: str, limit: int) -> List[str]:
        """Distinct stored values of one field containing `term`."""
        lookup = getattr(self.store, self.LOOKUPS[scope])
        return await run_in_threadpool(lookup, term, limit)

    async def suggest(self, prefix: str, scope: Optional[str], limit: int) -> List[Dict[str, Any]]:
        scopes = [scope] if scope else list(self.LOOKUPS)
        wanted = prefix.casefold()

        seen = set()
        ranked = []
        for name in scopes:
            for value in await self.values(name, prefix, limit):
                if not value or value in seen:
                    continue
                seen.add(value)
                score = PREFIX_SCORE if value.casefold().startswith(wanted) else SUBSTRING_SCORE
                ranked.append({"text": value, "score": score})

        ranked.sort(key=lambda s: (-s["score"], s["text"].casefold()))
        return ranked[:limit]


def select_suggestion_source(
    backend: str,
    store: PrimaryStore,
    index: Optional[FarmerSearchIndex],
) -> SuggestionSource:
    """
    Index completion when configured, otherwise the store lookup.

    The index source falls back to the store per request while the index
    cannot be reached.
    """
    store_source = StoreSuggestionSource(store)
    if backend == "index" and index is not None:
        return IndexSuggestionSource(index, fallback=store_source)
    if backend == "index":
        logging.warning("[Suggestions] No search index configured, using store-backed suggestions")
    return store_source
