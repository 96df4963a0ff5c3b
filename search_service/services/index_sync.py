import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from ..core.errors import SearchIndexError, StoreError
from ..schemas.records import FarmerRecord, SearchDocument
from .primary_store import PrimaryStore, Row
from .search_index import FarmerSearchIndex


@dataclass
class SyncReport:
    total: int = 0
    indexed: int = 0
    failed: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {"total": self.total, "indexed": self.indexed, "failed": self.failed}


def build_documents(rows: List[Row]) -> Tuple[List[SearchDocument], List[Dict[str, Any]]]:
    """One SearchDocument per farmer row, plus the rows that could not be read."""
    documents = []
    rejected = []
    for row in rows:
        try:
            record = FarmerRecord.model_validate(row)
        except ValidationError as e:
            rejected.append({"id": row.get("id"), "error": str(e)})
            continue
        documents.append(SearchDocument.from_record(record))
    return documents, rejected


class IndexSynchronizer:
    """
    Copies every farmer from the primary store into the search index.

    Each run is a full re-scan followed by one bulk upsert keyed by farmer id,
    so re-running on unchanged data leaves the index unchanged. Documents
    that fail are reported, never rolled back. Farmers deleted from the store
    keep their stale documents.
    """

    def __init__(self, store: PrimaryStore, index: FarmerSearchIndex):
        self.store = store
        self.index = index
        self._lock = asyncio.Lock()

    async def resync(self) -> SyncReport:
        async with self._lock:
            logging.info("[IndexSync] Starting farmers sync")
            await self.index.ensure_index()

            rows = await run_in_threadpool(self.store.fetch_all_farmers)
            logging.info(f"[IndexSync] Found {len(rows)} farmers to sync")

            documents, rejected = build_documents(rows)
            bulk = await self.index.bulk_upsert(documents)

            report = SyncReport(
                total=len(rows),
                indexed=bulk.indexed,
                failed=rejected + bulk.failed,
            )
            if report.failed:
                logging.error(
                    f"[IndexSync] {len(report.failed)} of {report.total} farmers failed: "
                    f"{[f['id'] for f in report.failed]}"
                )
            else:
                logging.info(f"[IndexSync] Synced {report.indexed} farmers")
            return report

    async def run_forever(self, interval_seconds: float):
        """Resync every `interval_seconds` until cancelled."""
        while True:
            try:
                await self.resync()
            except (StoreError, SearchIndexError) as e:
                logging.error(f"[IndexSync] Scheduled resync failed: {e}")
            await asyncio.sleep(interval_seconds)
