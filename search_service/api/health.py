"""
Health check aggregating store, cache and index reachability.
"""
import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ..core.config import HEALTH_CHECK_TIMEOUT, SERVICE_NAME

router = APIRouter()


async def _check(name: str, probe) -> bool:
    try:
        return bool(await asyncio.wait_for(probe(), timeout=HEALTH_CHECK_TIMEOUT))
    except Exception as e:
        logging.error(f"[Health] {name} check failed: {e}")
        return False


@router.get("/health")
async def health(request: Request):
    state = request.app.state

    async def store_probe():
        return await run_in_threadpool(state.store.ping)

    async def index_probe():
        return state.index is not None and await state.index.ping()

    names = ("database", "cache", "search_index")
    results = await asyncio.gather(
        _check("database", store_probe),
        _check("cache", state.cache.ping),
        _check("search_index", index_probe),
    )
    checks = {name: "ok" if ok else "unreachable" for name, ok in zip(names, results)}
    healthy = all(results)

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "checks": checks,
        },
    )
