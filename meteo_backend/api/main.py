"""
FastAPI application entry point for the meteostation HW backend.

Builds the state store, ingestion pipeline and persistence gateway in the
application lifespan, restores the persisted history and latest payload at
startup, and flushes them once more at shutdown.

CHANGELOG:
- 2026-10-17: Flush persisted state on shutdown (STORY-010)
- 2026-10-16: Register ingest, state and health routers (STORY-012)
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

import asyncio
import json
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from meteo_backend.api.health import router as health_router
from meteo_backend.api.ingest import router as ingest_router
from meteo_backend.api.state import router as state_router
from meteo_backend.config import Settings
from meteo_backend.persistence import PersistenceGateway, snapshot_documents
from meteo_backend.services.ingestion import IngestionPipeline
from meteo_backend.store import Clock, StateStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class _JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO") -> None:
    """Install a JSON-formatted stderr handler on the root logger.

    Args:
        level: Log level name, e.g. ``"INFO"`` or ``"DEBUG"``.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())


def log_config_summary(settings: Settings) -> None:
    """Log the effective configuration at startup."""
    logger.info(
        "Backend starting with config: data_dir=%s, persist_history=%s, "
        "max_request_bytes=%s, history_tz=%s, max_samples_per_series=%s, "
        "max_days=%s, panel_max_power_w=%s, full_scale_lux=%s, panel_gamma=%s, "
        "lux_noise_floor=%s, supply_voltage_v=%s, baseline_current_ma=%s, "
        "fan_max_current_ma=%s, duty_max=%s, power_deadband_w=%s, "
        "max_integration_step_s=%s",
        settings.data_dir,
        settings.persist_history,
        settings.max_request_bytes,
        settings.history_tz,
        settings.max_samples_per_series,
        settings.max_days,
        settings.panel_max_power_w,
        settings.full_scale_lux,
        settings.panel_gamma,
        settings.lux_noise_floor,
        settings.supply_voltage_v,
        settings.baseline_current_ma,
        settings.fan_max_current_ma,
        settings.duty_max,
        settings.power_deadband_w,
        settings.max_integration_step_s,
    )


# ---------------------------------------------------------------------------
# Boot / shutdown
# ---------------------------------------------------------------------------


def restore_from_disk(
    store: StateStore,
    pipeline: IngestionPipeline,
    gateway: PersistenceGateway,
) -> None:
    """Load history, then replay the latest payload. Cold start is normal."""
    memory = gateway.load_history()
    if memory is not None:
        store.restore_history(memory)

    loaded = gateway.load_latest()
    if loaded is not None:
        pipeline.restore(
            loaded.payload,
            raw_bytes=loaded.bytes,
            received_at_ms=loaded.saved_at_ms,
        )


def create_app(settings: Settings | None = None, clock: Clock | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Backend settings; loaded from the environment when omitted.
        clock: Time source in epoch seconds; ``time.time`` when omitted.

    Returns:
        FastAPI: The configured application.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan: restore state on startup, flush on shutdown."""
        store = StateStore(settings, clock=clock)
        pipeline = IngestionPipeline(store)
        gateway = PersistenceGateway(
            settings.data_dir, persist_history=settings.persist_history
        )

        async with store.lock:
            restore_from_disk(store, pipeline, gateway)

        app.state.settings = settings
        app.state.store = store
        app.state.pipeline = pipeline
        app.state.gateway = gateway

        log_config_summary(settings)
        logger.info("Meteostation backend ready (hasState=%s)", store.has_state)
        yield

        async with store.lock:
            docs = snapshot_documents(store)
        if docs is not None:
            await asyncio.to_thread(
                gateway.save, docs.latest_json, docs.history_json, docs.revision
            )
        logger.info("Meteostation backend shutting down")

    app = FastAPI(
        title="Meteostation HW Backend",
        description="Telemetry ingestion and virtual energy state for the ESP32 station.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.include_router(health_router)
    app.include_router(ingest_router)
    app.include_router(state_router)

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        """Plain-text banner pointing at the real endpoints."""
        return "Meteostation HW backend running. Use /health, /state, POST /ingest"

    return app


app = create_app()


def main() -> None:
    """Synchronous entrypoint: configure logging and serve with uvicorn."""
    settings = Settings()
    configure_logging(settings.log_level)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
