"""
Read-view compatibility adapter for GET /state.

Older dashboard builds read history from ``history`` while the canonical
location is ``memory``. The adapter aliases one onto the other, attaches
per-series sample counts for diagnostics and stamps the server metadata.
When no usable ``memory`` exists it serves an empty skeleton with every
series present, so consumers never null-check.

The adapter is pure: it shallow-copies its input and never mutates it.

CHANGELOG:
- 2026-10-15: Initial creation (STORY-011)

TODO:
- None
"""

from __future__ import annotations

from typing import Any

LEGACY_SERIES: tuple[str, ...] = (
    "temperature",
    "light",
    "energyIn",
    "energyOut",
    "brainRisk",
)
"""Series keys of a day-record as the UI reads them."""


def empty_today() -> dict[str, Any]:
    """Return an empty day-record skeleton with every series present."""
    today: dict[str, Any] = {"key": None}
    for name in LEGACY_SERIES:
        today[name] = []
    today["totals"] = {}
    return today


def _series_len(record: Any, name: str) -> int:
    if not isinstance(record, dict):
        return 0
    series = record.get(name)
    return len(series) if isinstance(series, list) else 0


def build_view(
    snapshot: dict[str, Any],
    *,
    now_ms: int,
    received_at_ms: int | None,
    payload_bytes: int,
) -> dict[str, Any]:
    """Build the externally served state view.

    Args:
        snapshot: Copied snapshot dict (see ``StateStore.copy_snapshot``).
        now_ms: Current server time in epoch milliseconds.
        received_at_ms: Time of the last ingest, or ``None``.
        payload_bytes: Size of the last ingested payload.

    Returns:
        dict: The snapshot plus ``history``, ``_historyDebug`` and ``_server``.
    """
    view = dict(snapshot)
    memory = view.get("memory")

    if isinstance(memory, dict):
        today = memory.get("today")
        days = memory.get("days")
        days = days if isinstance(days, list) else []
        view["history"] = {
            "today": today if isinstance(today, dict) else empty_today(),
            "days": days,
        }
        view["_historyDebug"] = {
            "dayKey": today.get("key") if isinstance(today, dict) else None,
            "counts": {name: _series_len(today, name) for name in LEGACY_SERIES},
            "daysCount": len(days),
        }
    else:
        view["history"] = {"today": empty_today(), "days": []}
        view["_historyDebug"] = {
            "dayKey": None,
            "counts": {name: 0 for name in LEGACY_SERIES},
            "daysCount": 0,
        }

    view["_server"] = {
        "now": now_ms,
        "receivedAt": received_at_ms,
        "bytes": payload_bytes,
    }
    return view
