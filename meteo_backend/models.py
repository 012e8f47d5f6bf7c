"""
Pydantic models for the in-memory snapshot of the meteostation.

The JSON shape uses the camelCase keys the dashboard UI has always read
(``energyInWh``, ``memory.today.energyIn`` ...), so every model declares
aliases and is dumped with ``by_alias=True``. Python code uses the
snake_case attribute names.

CHANGELOG:
- 2026-10-15: Split environment and device blocks (STORY-008)
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field

SERIES_NAMES: tuple[str, ...] = (
    "temperature",
    "light",
    "energy_in",
    "energy_out",
    "brain_risk",
)
"""Attribute names of the per-day sample series on DayRecord."""


class _AliasedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SeriesPoint(_AliasedModel):
    """One sample of a per-day series.

    Attributes:
        ts: Sample time in epoch milliseconds.
        value: Finite sample value.
    """

    ts: int
    value: float


class DayTotals(_AliasedModel):
    """Accumulated virtual energy for one day, in watt-hours."""

    in_wh: float = Field(default=0.0, alias="inWh")
    out_wh: float = Field(default=0.0, alias="outWh")

    @computed_field(alias="netWh")  # type: ignore[prop-decorator]
    @property
    def net_wh(self) -> float:
        return self.in_wh - self.out_wh


class DayRecord(_AliasedModel):
    """History bucket for a single calendar day.

    Attributes:
        key: Day-key (ISO date in the configured zone).
        temperature: Temperature samples in degrees Celsius.
        light: Raw illuminance samples in lux.
        energy_in: Running input energy total (Wh) after each ingest.
        energy_out: Running output energy total (Wh) after each ingest.
        brain_risk: Risk score samples reported by the device.
        totals: Energy totals for the day.
    """

    key: str
    temperature: list[SeriesPoint] = Field(default_factory=list)
    light: list[SeriesPoint] = Field(default_factory=list)
    energy_in: list[SeriesPoint] = Field(default_factory=list, alias="energyIn")
    energy_out: list[SeriesPoint] = Field(default_factory=list, alias="energyOut")
    brain_risk: list[SeriesPoint] = Field(default_factory=list, alias="brainRisk")
    totals: DayTotals = Field(default_factory=DayTotals)


class Memory(_AliasedModel):
    """Canonical history: the open day plus closed days, oldest first."""

    today: DayRecord
    days: list[DayRecord] = Field(default_factory=list)


class Environment(_AliasedModel):
    """Sticky environment readings; ``None`` until first observed."""

    temperature: float | None = None
    device_temperature: float | None = Field(default=None, alias="deviceTemperature")
    humidity: float | None = None
    light: float | None = None
    light_display: int | None = Field(default=None, alias="lightDisplay")
    is_night: bool | None = Field(default=None, alias="isNight")


class Device(_AliasedModel):
    """Last-known device readings and the fan actuator flag.

    ``sensors`` mirrors the environment readings under their legacy
    per-sensor names for older UI builds.
    """

    sensors: dict[str, float | None] = Field(
        default_factory=lambda: {"temperature": None, "humidity": None, "light": None}
    )
    fan_duty: float | None = Field(default=None, alias="fanDuty")
    fan_on: bool = Field(default=False, alias="fanOn")


class Energy(_AliasedModel):
    """Instantaneous virtual power, power path and today's energy totals."""

    in_w: float = Field(default=0.0, alias="in")
    out_w: float = Field(default=0.0, alias="out")
    power_state: str = "IDLE"
    power_path_state: str = "UNKNOWN"
    energy_in_wh: float = Field(default=0.0, alias="energyInWh")
    energy_out_wh: float = Field(default=0.0, alias="energyOutWh")

    @computed_field(alias="energyNetWh")  # type: ignore[prop-decorator]
    @property
    def energy_net_wh(self) -> float:
        return self.energy_in_wh - self.energy_out_wh


class AuditEvent(_AliasedModel):
    """Entry of the bounded audit ring."""

    ts: int
    category: str
    message: str
    level: str = "info"
    detail: dict | None = None


class Snapshot(_AliasedModel):
    """Complete current state of the station."""

    environment: Environment = Field(default_factory=Environment)
    device: Device = Field(default_factory=Device)
    energy: Energy = Field(default_factory=Energy)
    memory: Memory
    message: str = "Waiting for telemetry"
