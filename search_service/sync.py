"""
Run one farmer resync from the command line.

    python -m search_service.sync

Exits 0 when every farmer was indexed, 1 otherwise.
"""
import asyncio
import json
import logging
import sys

from .core.config import DATABASE_URL, DB_POOL_MAX, DB_POOL_MIN, LOG_LEVEL
from .core.errors import SearchIndexError, StoreError
from .clients import open_index
from .services.index_sync import IndexSynchronizer
from .services.primary_store import PrimaryStore


async def run_sync() -> int:
    index = await open_index()
    if index is None:
        logging.error("[IndexSync] Sync failed: no search index configured")
        return 1

    store = None
    try:
        store = PrimaryStore(DATABASE_URL, DB_POOL_MIN, DB_POOL_MAX)
        report = await IndexSynchronizer(store, index).resync()
    except (StoreError, SearchIndexError) as e:
        logging.error(f"[IndexSync] Sync failed: {e}")
        return 1
    finally:
        if store is not None:
            store.close()
        await index.close()

    print(json.dumps(report.to_dict(), indent=2, default=str))
    return 0 if report.ok else 1


def main():
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    sys.exit(asyncio.run(run_sync()))


if __name__ == "__main__":
    main()
