"""Elasticsearch farmer index.

Holds the denormalized farmer documents written by the index synchronizer
and answers completion (autocomplete) queries against the `suggest` field.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from ..core.config import INDEX_RECHECK_INTERVAL
from ..core.errors import SearchIndexError
from ..schemas.records import SearchDocument

FARMER_MAPPINGS = {
    "properties": {
        "id": {"type": "keyword"},
        "name": {"type": "text", "fields": {"raw": {"type": "keyword"}}},
        "email": {"type": "keyword"},
        "farm_location": {"type": "text", "fields": {"raw": {"type": "keyword"}}},
        "farm_size": {"type": "keyword"},
        "crop_types": {"type": "text", "fields": {"raw": {"type": "keyword"}}},
        "created_at": {"type": "date"},
        "suggest": {"type": "completion"},
    }
}

# Source fields each completion scope is checked against
SCOPE_FIELDS = {
    "name": ("name",),
    "location": ("farm_location",),
    "crop": ("crop_types",),
}

SUGGESTER = "farmer-suggest"


@dataclass
class BulkReport:
    total: int = 0
    indexed: int = 0
    failed: List[Dict[str, Any]] = field(default_factory=list)


def _matches_scope(text: str, source: Dict[str, Any], scope: str) -> bool:
    wanted = text.casefold()
    for name in SCOPE_FIELDS[scope]:
        value = source.get(name)
        values = value if isinstance(value, list) else [value]
        if any(v and str(v).strip().casefold() == wanted for v in values):
            return True
    return False


class FarmerSearchIndex:
    def __init__(
        self,
        client: AsyncElasticsearch,
        index_name: str = "farmers",
        recheck_interval: float = INDEX_RECHECK_INTERVAL,
        clock=time.monotonic,
    ):
        self.client = client
        self.index_name = index_name
        self.recheck_interval = recheck_interval
        self._clock = clock
        self._available: Optional[bool] = None
        self._checked_at: Optional[float] = None

    @classmethod
    def from_url(cls, url: str, index_name: str = "farmers") -> "FarmerSearchIndex":
        return cls(AsyncElasticsearch(url), index_name)

    async def close(self):
        await self.client.close()
        logging.info("[SearchIndex] Client closed")

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def ensure_index(self) -> bool:
        """Create the index with its mapping if missing. Returns True when created."""
        try:
            if await self.client.indices.exists(index=self.index_name):
                return False
            await self.client.indices.create(index=self.index_name, mappings=FARMER_MAPPINGS)
        except (ApiError, TransportError) as e:
            raise SearchIndexError(f"Could not create index {self.index_name}: {e}") from e

        logging.info(f"[SearchIndex] Created index {self.index_name}")
        return True

    async def is_available(self) -> bool:
        """
        Whether the index can be used right now.

        The answer comes from `ensure_index`, so an index that was down at
        startup is created once it comes back. It is reused for
        `recheck_interval` seconds.
        """
        now = self._clock()
        if self._checked_at is not None and now - self._checked_at < self.recheck_interval:
            return self._available

        try:
            await self.ensure_index()
            available = True
        except SearchIndexError as e:
            logging.warning(f"[SearchIndex] Unavailable: {e}")
            available = False

        if available and self._available is False:
            logging.info("[SearchIndex] Available again")
        self._available = available
        self._checked_at = now
        return available

    # -------------------------
    # BULK UPSERT
    # -------------------------
    async def bulk_upsert(self, documents: List[SearchDocument]) -> BulkReport:
        """
        Index every document under its record id in one bulk request.

        Per-document failures are collected in the report; documents that
        succeeded stay indexed.
        """
        report = BulkReport(total=len(documents))
        if not documents:
            return report

        operations: List[Dict[str, Any]] = []
        for doc in documents:
            operations.append({"index": {"_index": self.index_name, "_id": str(doc.id)}})
            operations.append(doc.model_dump(mode="json"))

        try:
            response = await self.client.bulk(operations=operations, refresh="wait_for")
        except (ApiError, TransportError) as e:
            raise SearchIndexError(f"Bulk upsert failed: {e}") from e

        body = getattr(response, "body", response)
        for item in body.get("items", []):
            action = item.get("index", {})
            if action.get("error"):
                report.failed.append({"id": action.get("_id"), "error": action["error"]})
        report.indexed = report.total - len(report.failed)
        return report

    # -------------------------
    # COMPLETION
    # -------------------------
    async def search_completion(
        self,
        prefix: str,
        field: Optional[str] = None,
        size: int = 10,
    ) -> List[Dict[str, Any]]:
        """
        Ranked completion options for `prefix` as [{text, score}].

        With a field scope ("name", "location", "crop") the query is fuzzy and
        only options coming from that field of their document are kept.
        """
        completion: Dict[str, Any] = {
            "field": "suggest",
            "size": size * 3 if field else size,
            # A duplicate kept from another field would be dropped by the scope check
            "skip_duplicates": not field,
        }
        if field:
            completion["fuzzy"] = {"fuzziness": "AUTO"}

        try:
            response = await self.client.search(
                index=self.index_name,
                suggest={SUGGESTER: {"prefix": prefix, "completion": completion}},
                source=["name", "farm_location", "crop_types"],
            )
        except (ApiError, TransportError) as e:
            raise SearchIndexError(f"Completion query failed: {e}") from e

        body = getattr(response, "body", response)
        options: List[Dict[str, Any]] = []
        for entry in body.get("suggest", {}).get(SUGGESTER, []):
            options.extend(entry.get("options", []))

        results = []
        seen = set()
        for option in options:
            text = option.get("text")
            if not text or text in seen:
                continue
            if field and not _matches_scope(text, option.get("_source", {}), field):
                continue
            seen.add(text)
            results.append({"text": text, "score": float(option.get("_score", 0.0))})
        return results[:size]
