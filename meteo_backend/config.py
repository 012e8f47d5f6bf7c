"""
Backend configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Every tunable of the virtual energy model, the history retention bounds and
the transport limits lives here; all of them have defaults so the service
starts with an empty environment.

CHANGELOG:
- 2026-10-14: Add HISTORY_TZ validation against the IANA database (STORY-006)
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Meteostation backend configuration.

    Attributes:
        data_dir: Directory holding latest-state.json and history.json.
        persist_history: Whether history.json is written next to the
            latest snapshot.
        max_request_bytes: Request body ceiling for POST /ingest.
        port: Listening port for uvicorn.
        cors_allow_origins: Comma separated list of allowed origins.
        log_level: Root log level name.
        panel_max_power_w: Panel output at full-scale illuminance.
        full_scale_lux: Illuminance treated as full sun.
        panel_gamma: Exponent modelling panel non-linearity in low light.
        lux_noise_floor: Illuminance below which input power is zero.
        supply_voltage_v: Assumed supply voltage of the load side.
        baseline_current_ma: Always-on controller and sensor draw.
        fan_max_current_ma: Fan draw at full duty.
        duty_max: Fan duty value meaning full drive.
        power_deadband_w: Power below which a path is treated as idle.
        max_integration_step_s: Longest gap credited to a single
            integration step.
        max_samples_per_series: Bound of every per-day sample series.
        max_days: Number of closed day-records retained.
        max_events: Size of the audit event ring.
        history_tz: IANA zone used to derive the day-key.
    """

    data_dir: str = "/data"
    persist_history: bool = True
    max_request_bytes: int = 6 * 1024 * 1024
    port: int = 3000
    cors_allow_origins: str = "*"
    log_level: str = "INFO"

    panel_max_power_w: float = 2.0
    full_scale_lux: float = 50000.0
    panel_gamma: float = 1.3
    lux_noise_floor: float = 30.0
    supply_voltage_v: float = 5.0
    baseline_current_ma: float = 8.0
    fan_max_current_ma: float = 150.0
    duty_max: float = 255.0
    power_deadband_w: float = 0.05
    max_integration_step_s: float = 60.0

    max_samples_per_series: int = 2000
    max_days: int = 14
    max_events: int = 200
    history_tz: str = "UTC"

    @field_validator(
        "panel_max_power_w",
        "full_scale_lux",
        "panel_gamma",
        "lux_noise_floor",
        "supply_voltage_v",
        "duty_max",
        "max_integration_step_s",
    )
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        """Validate that model constants are strictly positive."""
        if not v > 0:
            raise ValueError("value must be > 0")
        return v

    @field_validator("baseline_current_ma", "fan_max_current_ma", "power_deadband_w")
    @classmethod
    def must_be_non_negative(cls, v: float) -> float:
        """Validate that currents and the deadband are non-negative."""
        if v < 0:
            raise ValueError("value must be >= 0")
        return v

    @field_validator("max_samples_per_series", "max_days", "max_events")
    @classmethod
    def bounds_must_be_positive(cls, v: int) -> int:
        """Validate retention bounds are at least 1."""
        if v < 1:
            raise ValueError("retention bounds must be >= 1")
        return v

    @field_validator("port")
    @classmethod
    def port_must_be_valid(cls, v: int) -> int:
        """Validate TCP port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("PORT must be between 1 and 65535")
        return v

    @field_validator("history_tz")
    @classmethod
    def history_tz_must_exist(cls, v: str) -> str:
        """Validate HISTORY_TZ names a zone in the IANA database."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"HISTORY_TZ '{v}' is not a known IANA zone") from None
        return v

    @property
    def cors_origins(self) -> list[str]:
        """Return CORS_ALLOW_ORIGINS split into a list."""
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
