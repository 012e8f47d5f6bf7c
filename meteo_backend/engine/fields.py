"""
Declarative field extraction for the several payload shapes the ESP32
firmware has sent over time.

Each logical field has an ordered tuple of key paths. The first path that
resolves to a usable value wins; later paths are not consulted. Numbers are
accepted as int, float or numeric strings and must be finite; booleans are
never numbers.

CHANGELOG:
- 2026-10-15: Add bh1750/bme280 nested shapes from firmware 0.9 (STORY-007)
- 2026-10-13: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from typing import Any

# ---------------------------------------------------------------------------
# Extraction rules: logical field -> ordered key paths
# ---------------------------------------------------------------------------

FIELD_RULES: dict[str, tuple[tuple[str, ...], ...]] = {
    "temperature": (
        ("temperature",),
        ("temp",),
        ("env", "temperature"),
        ("env", "temp"),
        ("environment", "temperature"),
        ("sensors", "temperature"),
        ("bme280", "temperature"),
    ),
    "device_temperature": (
        ("deviceTemperature",),
        ("deviceTemp",),
        ("device", "temperature"),
        ("device", "temp"),
        ("env", "deviceTemperature"),
    ),
    "humidity": (
        ("humidity",),
        ("hum",),
        ("env", "humidity"),
        ("environment", "humidity"),
        ("sensors", "humidity"),
        ("bme280", "humidity"),
    ),
    "light": (
        ("light",),
        ("lux",),
        ("illuminance",),
        ("env", "light"),
        ("env", "lux"),
        ("environment", "light"),
        ("sensors", "light"),
        ("bh1750", "lux"),
    ),
    "duty": (
        ("fanDuty",),
        ("duty",),
        ("fan", "duty"),
        ("device", "fanDuty"),
        ("device", "fan", "duty"),
        ("pwm",),
    ),
    "is_night": (
        ("isNight",),
        ("night",),
        ("env", "isNight"),
        ("environment", "isNight"),
        ("mode",),
    ),
    "risk": (
        ("brainRisk",),
        ("risk",),
        ("brain", "risk"),
    ),
}
"""Ordered key paths per logical field; first usable value wins."""


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------


def parse_finite(value: Any) -> float | None:
    """Return *value* as a finite float, or ``None`` if it is not one."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.strip())
        else:
            return None
    except (ValueError, OverflowError):
        # Integers beyond float range overflow
        return None
    return number if math.isfinite(number) else None


_NIGHT_WORDS = {"night": True, "day": False, "true": True, "false": False}


def parse_flag(value: Any) -> bool | None:
    """Return a day/night flag from a bool, 0/1 or a ``"night"``/``"day"`` word."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        return _NIGHT_WORDS.get(value.strip().lower())
    return None


_PARSERS: dict[str, Callable[[Any], Any]] = {
    "is_night": parse_flag,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _resolve(payload: Mapping[str, Any], path: tuple[str, ...]) -> Any:
    node: Any = payload
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return None
        node = node[key]
    return node


def extract_field(payload: Mapping[str, Any], field: str) -> Any:
    """Return the first usable value for *field*, or ``None``.

    Raises:
        KeyError: If *field* has no extraction rules.
    """
    parser = _PARSERS.get(field, parse_finite)
    for path in FIELD_RULES[field]:
        value = parser(_resolve(payload, path))
        if value is not None:
            return value
    return None


def extract_fields(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Extract every logical field; only fields that resolved are present."""
    fields: dict[str, Any] = {}
    for field in FIELD_RULES:
        value = extract_field(payload, field)
        if value is not None:
            fields[field] = value
    return fields
