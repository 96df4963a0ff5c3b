import logging
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..core.errors import QueryOutcome, SearchIndexError, StoreError

router = APIRouter(prefix="/search")


def _respond(outcome: QueryOutcome) -> JSONResponse:
    return JSONResponse(status_code=outcome.status_code, content=outcome.to_body())


@router.get("/farmers")
async def search_farmers(request: Request):
    """
    Search farmers by free text, location, crop type and farm size.

    Results are newest first and paginated with `page` / `limit`.
    """
    outcome = await request.app.state.engine.search_farmers(request.query_params)
    return _respond(outcome)


@router.get("/grants")
async def search_grants(request: Request):
    """Search grant applications joined with the applying farmer."""
    outcome = await request.app.state.engine.search_grants(request.query_params)
    return _respond(outcome)


@router.get("/autocomplete")
async def autocomplete(request: Request):
    """
    Ranked {text, score} completions for `q` (at least 2 characters).

    `type` narrows the completion to name, location or crop.
    """
    outcome = await request.app.state.engine.autocomplete(request.query_params)
    return _respond(outcome)


@router.get("/suggestions")
async def suggestions(request: Request):
    """Distinct stored locations or crops containing `q`."""
    outcome = await request.app.state.engine.suggest_values(request.query_params)
    return _respond(outcome)


# -------------------------
# MANUAL RESYNC
# -------------------------
@router.post("/index/resync")
async def resync_index(request: Request):
    """Re-copy every farmer into the search index and report per-document failures."""
    synchronizer = request.app.state.synchronizer
    if synchronizer is None:
        return JSONResponse(
            status_code=503,
            content={"success": False, "message": "Search index unavailable"},
        )

    try:
        report = await synchronizer.resync()
    except (StoreError, SearchIndexError) as e:
        logging.error(f"[IndexSync] Manual resync failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"success": False, "message": "Resync failed"})

    return {"success": report.ok, "report": report.to_dict()}
