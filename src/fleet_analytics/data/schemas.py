"""Reading model for stored telemetry samples."""

from __future__ import annotations

from datetime import datetime

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.time import parse_instant

# Signal columns in normalized units:
SIGNAL_FIELDS = (
    "speed",  # km/h
    "odometer",  # metres, monotonically increasing except on resets
    "fuel_level",  # percent of tank, 0-100
    "rpm",
    "ignition",  # 0/1
    "voltage",  # volts
    "current",  # amperes, positive while charging
    "temperature",  # ambient, degC
    "coolant_temperature",  # degC
    "dtc_count",
    "tire_pressure",  # psi
)


class Reading(BaseModel):
    """One timestamped telemetry sample from a device.

    Readings are immutable once stored; the engine only reads them. Unknown
    sensor keys are preserved as extras.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    device_id: str = Field(min_length=1, description="Device identifier (IMEI)")
    timestamp: datetime = Field(description="Sample time, always UTC")
    speed: float | None = Field(default=None, ge=0)
    odometer: float | None = Field(default=None)
    fuel_level: float | None = Field(default=None, ge=0, le=100)
    rpm: float | None = Field(default=None, ge=0)
    ignition: int | None = Field(default=None, ge=0, le=1)
    voltage: float | None = Field(default=None)
    current: float | None = Field(default=None)
    temperature: float | None = Field(default=None)
    coolant_temperature: float | None = Field(default=None)
    dtc_count: int | None = Field(default=None, ge=0)
    tire_pressure: float | None = Field(default=None, ge=0)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: object) -> datetime:
        return parse_instant(value).to_pydatetime()

    @field_validator("ignition", mode="before")
    @classmethod
    def _coerce_ignition(cls, value: object) -> object:
        if isinstance(value, bool):
            return int(value)
        return value

    def signals(self) -> dict[str, float | int | None]:
        """Return the known signal values keyed by field name."""

        return {name: getattr(self, name) for name in SIGNAL_FIELDS}

    @property
    def ts(self) -> pd.Timestamp:
        return pd.Timestamp(self.timestamp)


__all__ = ["Reading", "SIGNAL_FIELDS"]
