"""
GET /state endpoint serving the current station view to the dashboard.

The snapshot is copied under the store lock and the compatibility view is
built from the copy after the lock is released. Before the first ingest
(and with nothing restored from disk) the endpoint answers 503, which the
UI shows as "waiting for station".

CHANGELOG:
- 2026-10-16: Initial creation (STORY-011)

TODO:
- None
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from meteo_backend.api.deps import Store
from meteo_backend.services.view import build_view

router = APIRouter(tags=["state"])


@router.get("/state")
async def state(store: Store):
    """Return the full current view, or 503 before any state exists."""
    async with store.lock:
        if not store.has_state:
            return JSONResponse(
                status_code=503,
                content={
                    "error": "No state ingested yet",
                    "hint": "ESP32 must POST JSON to /ingest",
                },
            )
        snapshot = store.copy_snapshot()
        received_at_ms = store.received_at_ms
        size = store.bytes

    return build_view(
        snapshot,
        now_ms=store.now_ms(),
        received_at_ms=received_at_ms,
        payload_bytes=size,
    )
