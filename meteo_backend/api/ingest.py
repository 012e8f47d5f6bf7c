"""
POST /ingest endpoint for ESP32 telemetry snapshots.

Enforces the request body ceiling, decodes the JSON body, runs the
ingestion pipeline under the store lock and schedules best-effort
persistence once the lock is released. Only malformed input is reported
to the device as a failure; persistence problems never are.

CHANGELOG:
- 2026-10-19: Reject over-nested JSON with 400 instead of 500
- 2026-10-16: Persist after releasing the store lock (STORY-010)
- 2026-10-16: Initial creation (STORY-012)

TODO:
- None
"""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from meteo_backend.api.deps import AppSettings, Gateway, Pipeline, Store
from meteo_backend.persistence import persist_documents, snapshot_documents
from meteo_backend.services.ingestion import IngestError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ingest"])


class IngestResponse(BaseModel):
    """Acknowledgement sent back to the device."""

    ok: bool = True
    stored: bool = True
    bytes: int
    receivedAt: int
    power_state: str
    power_path_state: str


def _bad_request(error: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"ok": False, "error": error})


@router.post("/ingest", response_model=IngestResponse)
async def ingest(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: AppSettings,
    store: Store,
    pipeline: Pipeline,
    gateway: Gateway,
):
    """Ingest one telemetry snapshot.

    Args:
        request: The incoming FastAPI request.
        background_tasks: Used to persist after the response is prepared.
        settings: Backend settings.
        store: The state store.
        pipeline: The ingestion pipeline.
        gateway: The persistence gateway.

    Returns:
        IngestResponse on success, or a 400 JSON body
        ``{"ok": false, "error": ...}`` for malformed input.

    Raises:
        HTTPException: 413 if the body exceeds MAX_REQUEST_BYTES.
        HTTPException: 400 if Content-Length is not an integer.
    """
    max_request_bytes = settings.max_request_bytes

    # Pre-check Content-Length before buffering
    content_length = request.headers.get("content-length")
    if content_length is not None:
        try:
            content_length_int = int(content_length)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail="Invalid Content-Length header.",
            ) from None
        if content_length_int > max_request_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"Request body exceeds limit of {max_request_bytes} bytes.",
            )

    body = await request.body()
    if len(body) > max_request_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Request body exceeds limit of {max_request_bytes} bytes.",
        )

    try:
        payload = json.loads(body)
    except (ValueError, RecursionError):
        # RecursionError: nesting deeper than the decoder can follow
        async with store.lock:
            store.record_event(
                "ingest",
                "Invalid JSON payload",
                level="error",
                detail={"bytes": len(body)},
            )
        logger.warning("Ingest rejected: body is not valid JSON (%d bytes)", len(body))
        return _bad_request("Invalid JSON payload")

    async with store.lock:
        try:
            result = pipeline.ingest(payload, raw_bytes=len(body))
        except IngestError as exc:
            return _bad_request(str(exc))
        docs = snapshot_documents(store)

    if docs is not None:
        background_tasks.add_task(persist_documents, store, gateway, docs)

    return IngestResponse(
        bytes=result.bytes,
        receivedAt=result.received_at_ms,
        power_state=result.power_state,
        power_path_state=result.power_path_state,
    )
