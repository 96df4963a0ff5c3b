import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .api import health_router, search_router
from .clients import ServiceClients, close_clients, open_clients
from .core.config import HOST, LOG_LEVEL, PORT, SUGGESTION_BACKEND, SYNC_INTERVAL_SECONDS
from .services.index_sync import IndexSynchronizer
from .services.query_engine import SearchQueryEngine
from .services.suggestions import select_suggestion_source

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def create_app(
    clients: Optional[ServiceClients] = None,
    suggestion_backend: str = SUGGESTION_BACKEND,
    sync_interval: float = SYNC_INTERVAL_SECONDS,
) -> FastAPI:
    """
    Build the search API.

    Without `clients` the lifespan opens (and later closes) its own handles
    from configuration; handles passed in are left open for the caller.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = clients is None
        active = await open_clients() if owned else clients

        app.state.store = active.store
        app.state.cache = active.cache
        app.state.index = active.index

        suggestions = select_suggestion_source(suggestion_backend, active.store, active.index)
        app.state.engine = SearchQueryEngine(active.store, active.cache, suggestions)
        app.state.synchronizer = (
            IndexSynchronizer(active.store, active.index) if active.index is not None else None
        )

        sync_task = None
        if app.state.synchronizer is not None and sync_interval > 0:
            logging.info(f"[Startup] Scheduled resync every {sync_interval}s")
            sync_task = asyncio.create_task(app.state.synchronizer.run_forever(sync_interval))

        try:
            yield
        finally:
            if sync_task is not None:
                sync_task.cancel()
                try:
                    await sync_task
                except asyncio.CancelledError:
                    pass
                except Exception as e:
                    logging.error(f"[Shutdown] Scheduled resync had stopped: {e}", exc_info=True)
            if owned:
                await close_clients(active)

    app = FastAPI(
        title="Farmer Grant Search API",
        version="1.0",
        description="Cached farmer / grant search and autocomplete over PostgreSQL and Elasticsearch",
        lifespan=lifespan,
    )

    app.include_router(search_router, prefix="/api")
    app.include_router(health_router)

    @app.get("/")
    def root():
        return {"message": "Search API is running 🚀"}

    return app


app = create_app()


# -------- Run the server --------
if __name__ == "__main__":
    import uvicorn
    logging.info(f"Starting Search API on {HOST}:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT)
