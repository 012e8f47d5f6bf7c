"""
Health check endpoint for the backend.

Provides GET /health with liveness, whether any state has been ingested,
the last ingest time and size, the persistence failure counter and a
compact history summary. No authentication is required.

CHANGELOG:
- 2026-10-16: Add history summary and persist failure counter (STORY-013)
- 2026-10-16: Initial creation (STORY-013)

TODO:
- None
"""

from fastapi import APIRouter

from meteo_backend.api.deps import Store

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(store: Store) -> dict:
    """Return the backend health status.

    Returns:
        dict: ``ok``/``status`` liveness plus ingest metadata and the
        history summary.
    """
    async with store.lock:
        return {
            "ok": True,
            "status": "ok",
            "hasState": store.has_state,
            "receivedAt": store.received_at_ms,
            "bytes": store.bytes,
            "persistFailures": store.persist_failures,
            "history": store.history_summary(),
        }
