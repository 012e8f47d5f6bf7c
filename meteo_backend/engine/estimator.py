"""
Virtual energy estimator.

The station has no current or voltage sensing, so power is inferred from
what it does measure: illuminance on the panel side and the fan duty on the
load side. The model is intentionally simple and only stands in until real
sensing exists.

Both estimators are pure, total functions: any non-finite input or
intermediate result yields 0.0 W.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from meteo_backend.config import Settings


@dataclass(frozen=True)
class PowerModel:
    """Constants of the virtual power model.

    Attributes:
        panel_max_power_w: Panel output at full-scale illuminance (W).
        full_scale_lux: Illuminance treated as full sun.
        gamma: Low-light non-linearity exponent (> 1 flattens low light).
        noise_floor_lux: Illuminance below which input power is zero.
        supply_voltage_v: Assumed load supply voltage (V).
        baseline_current_ma: Always-on controller and sensor draw (mA).
        fan_max_current_ma: Fan draw at full duty (mA).
        duty_max: Duty value meaning full drive.
    """

    panel_max_power_w: float = 2.0
    full_scale_lux: float = 50000.0
    gamma: float = 1.3
    noise_floor_lux: float = 30.0
    supply_voltage_v: float = 5.0
    baseline_current_ma: float = 8.0
    fan_max_current_ma: float = 150.0
    duty_max: float = 255.0

    @classmethod
    def from_settings(cls, settings: Settings) -> PowerModel:
        return cls(
            panel_max_power_w=settings.panel_max_power_w,
            full_scale_lux=settings.full_scale_lux,
            gamma=settings.panel_gamma,
            noise_floor_lux=settings.lux_noise_floor,
            supply_voltage_v=settings.supply_voltage_v,
            baseline_current_ma=settings.baseline_current_ma,
            fan_max_current_ma=settings.fan_max_current_ma,
            duty_max=settings.duty_max,
        )


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def estimate_input_power(lux: float | None, model: PowerModel) -> float:
    """Estimate panel input power from illuminance.

    Args:
        lux: Raw illuminance reading, or ``None`` when not reported.
        model: Power model constants.

    Returns:
        Estimated input power in watts; 0.0 below the noise floor or for
        any non-finite value.
    """
    if not _is_number(lux) or not math.isfinite(lux):
        return 0.0
    if lux < model.noise_floor_lux:
        return 0.0
    try:
        fraction = min(1.0, max(0.0, lux / model.full_scale_lux))
        power = model.panel_max_power_w * fraction**model.gamma
    except (ArithmeticError, ValueError):
        return 0.0
    return _finite_or_zero(power)


def estimate_output_power(duty: float | None, model: PowerModel) -> float:
    """Estimate load power from the fan duty.

    Args:
        duty: Fan duty command, ``0`` (off) to ``model.duty_max`` (full).
            Non-finite or missing duty is treated as 0.
        model: Power model constants.

    Returns:
        Estimated output power in watts, including the baseline draw.
    """
    if not _is_number(duty) or not math.isfinite(duty):
        duty = 0.0
    try:
        clamped = min(model.duty_max, max(0.0, float(duty)))
        current_ma = model.baseline_current_ma + model.fan_max_current_ma * (
            clamped / model.duty_max
        )
        power = model.supply_voltage_v * (current_ma / 1000.0)
    except (ArithmeticError, ValueError):
        return 0.0
    return _finite_or_zero(power)
