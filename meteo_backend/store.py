"""
Process-wide state store.

Owns the single Snapshot together with everything that mutates it: the
history manager, the energy integrator, the audit event ring and the ingest
metadata. One ``asyncio.Lock`` guards all of it; ingest and read handlers
both hold it for their whole in-memory step and never for disk I/O.

Reads go through :meth:`StateStore.copy_snapshot`, which returns a fresh
JSON-compatible dict so no live reference leaves the store.

CHANGELOG:
- 2026-10-16: Add persist_failures counter (STORY-010)
- 2026-10-14: Inject clock for deterministic day-keys in tests (STORY-006)
- 2026-10-13: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from zoneinfo import ZoneInfo

from meteo_backend.config import Settings
from meteo_backend.engine.estimator import PowerModel
from meteo_backend.engine.history import HistoryManager
from meteo_backend.engine.integrator import EnergyIntegrator
from meteo_backend.models import AuditEvent, Memory, Snapshot

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
"""Returns the current time in epoch seconds."""


class StateStore:
    """Owner of the station snapshot and its lifecycle.

    Args:
        settings: Backend settings (bounds, zone, model constants).
        clock: Time source in epoch seconds. Defaults to ``time.time``.
    """

    def __init__(self, settings: Settings, clock: Clock | None = None) -> None:
        self.settings = settings
        self.clock: Clock = clock or time.time
        self.tz = ZoneInfo(settings.history_tz)
        self.power_model = PowerModel.from_settings(settings)

        self.history = HistoryManager.create(
            self.clock(),
            tz=self.tz,
            max_samples=settings.max_samples_per_series,
            max_days=settings.max_days,
        )
        self.integrator = EnergyIntegrator(max_step_s=settings.max_integration_step_s)
        self.snapshot = Snapshot(memory=self.history.memory)
        self.events: deque[AuditEvent] = deque(maxlen=settings.max_events)

        self.lock = asyncio.Lock()

        self.has_state = False
        self.received_at_ms: int | None = None
        self.bytes = 0
        self.persist_failures = 0
        self.latest_payload: dict | None = None
        self.revision = 0

    # ------------------------------------------------------------------
    # Time helpers
    # ------------------------------------------------------------------

    def now(self) -> float:
        return self.clock()

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def record_event(
        self,
        category: str,
        message: str,
        *,
        level: str = "info",
        detail: dict | None = None,
    ) -> AuditEvent:
        """Append an audit entry to the bounded event ring."""
        event = AuditEvent(
            ts=self.now_ms(),
            category=category,
            message=message,
            level=level,
            detail=detail,
        )
        self.events.append(event)
        return event

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def copy_snapshot(self) -> dict:
        """Return a deep JSON-compatible copy of the snapshot and events."""
        data = self.snapshot.model_dump(mode="json", by_alias=True)
        data["events"] = [e.model_dump(mode="json") for e in self.events]
        return data

    def history_summary(self) -> dict:
        return self.history.summary()

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def export_history(self) -> dict:
        """Return ``{today, days}`` without derived fields such as netWh."""
        data = self.history.memory.model_dump(mode="json", by_alias=True)
        for record in [data["today"], *data["days"]]:
            record["totals"].pop("netWh", None)
        return data

    def restore_history(self, memory: Memory) -> None:
        """Adopt a persisted history and mirror today's totals into energy.

        The integrator baseline is left unset so the first ingest after a
        restore credits no energy for the downtime.
        """
        self.history.replace(memory)
        self.snapshot.memory = self.history.memory
        totals = self.history.today.totals
        self.snapshot.energy.energy_in_wh = totals.in_wh
        self.snapshot.energy.energy_out_wh = totals.out_wh
        self.integrator.reset()
        logger.info(
            "Restored history: today=%s, days=%d",
            self.history.today.key,
            len(self.history.memory.days),
        )
