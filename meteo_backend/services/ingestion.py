"""
Ingestion pipeline for ESP32 telemetry payloads.

Validates one decoded payload, extracts its fields through the declarative
rules in :mod:`meteo_backend.engine.fields`, updates the sticky readings,
rolls the history over on a day change, appends samples, runs the virtual
energy estimator, classifier and integrator, and records an audit event.

Must be called with the store lock held; the pipeline itself does no I/O.

CHANGELOG:
- 2026-10-16: Add restore() for replaying the persisted payload at boot (STORY-010)
- 2026-10-15: Record failure audit events for malformed payloads (STORY-009)
- 2026-10-14: Initial creation (STORY-009)

TODO:
- None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from meteo_backend.engine.classifier import classify_power
from meteo_backend.engine.estimator import estimate_input_power, estimate_output_power
from meteo_backend.engine.fields import extract_fields
from meteo_backend.models import Energy
from meteo_backend.store import StateStore

logger = logging.getLogger(__name__)

_MESSAGES = {
    None: "Waiting for day/night flag",
    True: "Night mode: fan idle, conserving battery",
    False: "Day mode: harvesting light",
}


class IngestError(ValueError):
    """Raised when a payload is malformed and nothing was ingested."""


@dataclass(frozen=True)
class IngestResult:
    """Outcome of a successful ingest.

    Attributes:
        received_at_ms: Ingest time in epoch milliseconds.
        bytes: Size of the raw request body.
        day_changed: Whether this ingest started a new day.
        power_state: Classified power state.
        power_path_state: Classified power path.
        fields: Logical fields found in the payload.
    """

    received_at_ms: int
    bytes: int
    day_changed: bool
    power_state: str
    power_path_state: str
    fields: tuple[str, ...]


class IngestionPipeline:
    """Drives one payload through the energy-state engine.

    Args:
        store: The state store to mutate.
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ingest(self, payload: Any, *, raw_bytes: int) -> IngestResult:
        """Ingest one decoded payload.

        Args:
            payload: Decoded JSON body.
            raw_bytes: Size of the raw body in bytes.

        Returns:
            IngestResult: Summary of what was stored.

        Raises:
            IngestError: If the payload is not an object, carries no
                recognised field, or fails part-way. A failure audit event
                is recorded in every case.
        """
        store = self.store
        now = store.now()
        now_ms = int(now * 1000)

        if not isinstance(payload, dict):
            self._reject(
                "Invalid JSON payload: expected an object",
                {"type": type(payload).__name__, "bytes": raw_bytes},
            )

        try:
            fields = extract_fields(payload)
            if not fields:
                self._reject(
                    "No recognised telemetry fields",
                    {"keys": sorted(str(k) for k in payload)[:20], "bytes": raw_bytes},
                )

            self._apply_fields(fields)

            day_changed = store.history.rollover(now)
            if day_changed:
                store.integrator.reset()
                store.record_event(
                    "history",
                    f"Day rollover to {store.history.today.key}",
                    detail={"daysCount": len(store.history.memory.days)},
                )

            history = store.history
            history.append_sample("temperature", now_ms, fields.get("temperature"))
            history.append_sample("light", now_ms, fields.get("light"))
            history.append_sample("brain_risk", now_ms, fields.get("risk"))

            energy = self._update_energy()
            totals = store.integrator.integrate(
                history.today.totals, energy.in_w, energy.out_w, now
            )
            energy.energy_in_wh = totals.in_wh
            energy.energy_out_wh = totals.out_wh
            history.append_sample("energy_in", now_ms, totals.in_wh)
            history.append_sample("energy_out", now_ms, totals.out_wh)

            store.snapshot.message = _MESSAGES[store.snapshot.environment.is_night]
        except IngestError:
            raise
        except Exception as exc:
            logger.error("Ingest failed part-way", exc_info=True)
            store.record_event(
                "ingest",
                "Ingest failed",
                level="error",
                detail={"error": repr(exc), "bytes": raw_bytes},
            )
            raise IngestError(f"Malformed telemetry payload: {exc}") from exc

        store.has_state = True
        store.received_at_ms = now_ms
        store.bytes = raw_bytes
        store.latest_payload = payload
        store.revision += 1

        result = IngestResult(
            received_at_ms=now_ms,
            bytes=raw_bytes,
            day_changed=day_changed,
            power_state=energy.power_state,
            power_path_state=energy.power_path_state,
            fields=tuple(sorted(fields)),
        )
        store.record_event(
            "ingest",
            "Ingest ok",
            detail={
                "bytes": raw_bytes,
                "fields": list(result.fields),
                "power_state": result.power_state,
            },
        )
        logger.info(
            "Ingest ok: bytes=%d, power_state=%s, in=%.3f W, out=%.3f W",
            raw_bytes,
            energy.power_state,
            energy.in_w,
            energy.out_w,
        )
        return result

    def restore(
        self,
        payload: Any,
        *,
        raw_bytes: int,
        received_at_ms: int | None,
    ) -> bool:
        """Pre-populate readings from the persisted latest payload.

        Applies the sticky readings, instantaneous powers, classification and
        status message. Does not roll history, append samples or integrate
        energy.

        Returns:
            True if the payload was usable.
        """
        if not isinstance(payload, dict):
            logger.warning("Persisted payload is not an object, ignoring it")
            return False
        fields = extract_fields(payload)
        if not fields:
            logger.warning("Persisted payload carries no recognised fields, ignoring it")
            return False

        store = self.store
        self._apply_fields(fields)
        self._update_energy()
        store.snapshot.message = _MESSAGES[store.snapshot.environment.is_night]

        store.has_state = True
        store.received_at_ms = received_at_ms
        store.bytes = raw_bytes
        store.latest_payload = payload
        store.record_event("boot", "Restored latest payload", detail={"bytes": raw_bytes})
        return True

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _reject(self, message: str, detail: dict) -> None:
        logger.warning("Ingest rejected: %s", message)
        self.store.record_event("ingest", message, level="error", detail=detail)
        raise IngestError(message)

    def _apply_fields(self, fields: dict[str, Any]) -> None:
        """Write sticky readings; fields absent from *fields* keep their value."""
        snapshot = self.store.snapshot
        env = snapshot.environment
        device = snapshot.device

        if "temperature" in fields:
            env.temperature = fields["temperature"]
            device.sensors["temperature"] = fields["temperature"]
        if "device_temperature" in fields:
            env.device_temperature = fields["device_temperature"]
        if "humidity" in fields:
            env.humidity = fields["humidity"]
            device.sensors["humidity"] = fields["humidity"]
        if "light" in fields:
            env.light = fields["light"]
            env.light_display = round(fields["light"])
            device.sensors["light"] = fields["light"]
        if "is_night" in fields:
            env.is_night = fields["is_night"]
        if "duty" in fields:
            duty_max = self.store.power_model.duty_max
            device.fan_duty = min(duty_max, max(0.0, fields["duty"]))
            device.fan_on = device.fan_duty > 0

    def _update_energy(self) -> Energy:
        """Estimate instantaneous powers from the sticky readings and classify."""
        store = self.store
        model = store.power_model
        energy = store.snapshot.energy

        energy.in_w = estimate_input_power(store.snapshot.environment.light, model)
        energy.out_w = estimate_output_power(store.snapshot.device.fan_duty, model)
        classification = classify_power(
            energy.in_w, energy.out_w, store.settings.power_deadband_w
        )
        energy.power_state = classification.power_state.value
        energy.power_path_state = classification.power_path_state.value
        return energy
