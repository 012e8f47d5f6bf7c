"""
Power-path classifier.

Derives the discrete operating state from the two instantaneous virtual
powers. A small deadband keeps near-zero noise from flapping the state.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

from enum import StrEnum
from typing import NamedTuple


class PowerState(StrEnum):
    MIXED = "MIXED"
    CHARGING = "CHARGING"
    DISCHARGING = "DISCHARGING"
    IDLE = "IDLE"


class PowerPathState(StrEnum):
    SOLAR_TO_LOAD = "SOLAR_TO_LOAD"
    SOLAR_TO_BATTERY = "SOLAR_TO_BATTERY"
    BATTERY_TO_LOAD = "BATTERY_TO_LOAD"
    UNKNOWN = "UNKNOWN"


class PowerClassification(NamedTuple):
    power_state: PowerState
    power_path_state: PowerPathState


def classify_power(
    p_in: float,
    p_out: float,
    deadband_w: float = 0.05,
) -> PowerClassification:
    """Classify the power path from input and output power.

    A power counts as active only when strictly greater than *deadband_w*.
    NaN compares false everywhere, so it is treated as inactive.

    Args:
        p_in: Instantaneous input (panel) power in watts.
        p_out: Instantaneous output (load) power in watts.
        deadband_w: Noise threshold in watts.

    Returns:
        PowerClassification: ``(power_state, power_path_state)``.
    """
    has_in = p_in > deadband_w
    has_out = p_out > deadband_w

    if has_in and has_out:
        return PowerClassification(PowerState.MIXED, PowerPathState.SOLAR_TO_LOAD)
    if has_in:
        return PowerClassification(PowerState.CHARGING, PowerPathState.SOLAR_TO_BATTERY)
    if has_out:
        return PowerClassification(
            PowerState.DISCHARGING, PowerPathState.BATTERY_TO_LOAD
        )
    return PowerClassification(PowerState.IDLE, PowerPathState.UNKNOWN)
