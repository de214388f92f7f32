"""Typed models for bucketed analytics reports."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..analysis.events import Event
from ..quality.confidence import ConfidenceLevel
from ..utils.calendar import Granularity


class Domain(str, Enum):
    """Analytics domain a bucket summarises."""

    DRIVING = "driving"
    FUEL = "fuel"
    BATTERY = "battery"
    ENGINE = "engine"
    TIRE = "tire"


class DrivingSummary(BaseModel):
    """Distance, time and harsh-driving counts for one period."""

    model_config = ConfigDict(extra="forbid")

    distance_km: float = 0.0
    driving_time_s: float = Field(default=0.0, description="Time spent moving, seconds")
    max_speed_kph: float = 0.0
    average_speed_kph: float = Field(default=0.0, description="Average over moving samples")
    average_rpm: float = Field(default=0.0, description="Average RPM over moving samples")
    speeding_count: int = 0
    speeding_distance_km: float = 0.0
    rapid_accel_count: int = 0
    rapid_decel_count: int = 0
    last_speed_kph: float = 0.0
    is_moving: bool = False


class FuelSummary(BaseModel):
    """Fuel level statistics, refuels and consumption for one period."""

    model_config = ConfigDict(extra="forbid")

    first_level_pct: float = 0.0
    last_level_pct: float = 0.0
    min_level_pct: float = 0.0
    max_level_pct: float = 0.0
    average_level_pct: float = 0.0
    refueled_pct: float = 0.0
    refueled_l: float = 0.0
    consumed_pct: float = 0.0
    consumed_l: float = 0.0
    refuel_count: int = 0
    distance_km: float = 0.0
    efficiency_km_per_l: float = 0.0
    level_status: Optional[str] = Field(default=None, description="Full, Good, Low or Critical")
    average_trip_mileage_km_per_l: float = Field(
        default=0.0, description="Mean mileage of the plausible ignition on->off trips"
    )
    last_trip_mileage_km_per_l: float = 0.0
    last_refuel_at: Optional[datetime] = None
    last_refuel_pct: Optional[float] = None


class BatterySummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start_voltage_v: float = 0.0
    end_voltage_v: float = 0.0
    min_voltage_v: float = 0.0
    max_voltage_v: float = 0.0
    average_voltage_v: float = 0.0
    average_current_a: float = 0.0
    temperature_c: Optional[float] = None
    temperature_status: Optional[str] = None
    state_of_health_pct: float = 0.0
    health: Optional[str] = None
    current_status: Optional[str] = Field(default=None, description="charging, discharging or idle")
    is_charging: bool = False
    estimated_life_h: float = 0.0
    low_voltage_count: int = 0


class EngineSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    average_rpm: float = Field(default=0.0, description="Average over running samples")
    max_rpm: float = 0.0
    engine_on_time_s: float = 0.0
    average_coolant_temperature_c: float = 0.0
    max_coolant_temperature_c: float = 0.0
    overheat_count: int = 0
    active_fault_count: int = 0
    max_fault_count: int = 0
    oil_status: Optional[str] = None
    engine_status: Optional[str] = None


class TireSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    average_pressure_psi: float = 0.0
    min_pressure_psi: float = 0.0
    max_pressure_psi: float = 0.0
    main_pressure_psi: float = Field(default=0.0, description="Most recent pressure in the period")
    pressure_drop_psi: float = 0.0
    distance_km: float = 0.0
    low_pressure_count: int = 0
    trip_count: int = 0
    status: Optional[str] = Field(default=None, description="NO_DATA, LOW, WARNING or NORMAL")


DomainSummary = Union[DrivingSummary, FuelSummary, BatterySummary, EngineSummary, TireSummary]


class Bucket(BaseModel):
    """Aggregated summary of one (device, domain, period)."""

    model_config = ConfigDict(extra="forbid")

    label: str = Field(description="Period label: YYYY-MM-DD, GGGG-Www, YYYY-MM or 'total'")
    device_id: str
    domain: Domain
    summary: DomainSummary
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    confidence_score: int = 0
    confidence_factors: List[str] = Field(default_factory=list)
    reading_count: int = 0
    skipped_count: int = Field(default=0, description="Malformed readings ignored in this period")
    has_data: bool = False


class CombinedReportRow(BaseModel):
    """One period of the combined report. Missing domains are explicit ``null``."""

    label: str
    driving_summary: Optional[Bucket] = None
    fuel_summary: Optional[Bucket] = None
    battery_summary: Optional[Bucket] = None
    engine_summary: Optional[Bucket] = None
    tire_summary: Optional[Bucket] = None


class DomainReport(BaseModel):
    device_id: str
    domain: Domain
    start: datetime
    end: datetime
    granularity: Granularity
    buckets: List[Bucket]


class CombinedReport(BaseModel):
    device_id: str
    start: datetime
    end: datetime
    granularity: Granularity
    rows: List[CombinedReportRow]
    failed_domains: List[Domain] = Field(default_factory=list)


class DrivingEventsReport(BaseModel):
    """Speeding and harsh speed change events with range counts."""

    device_id: str
    start: datetime
    end: datetime
    events: List[Event]
    speeding_count: int = 0
    speeding_distance_km: float = 0.0
    rapid_accel_count: int = 0
    rapid_decel_count: int = 0


class FuelEventsReport(BaseModel):
    """Refuel and consumption events with range totals."""

    device_id: str
    start: datetime
    end: datetime
    events: List[Event]
    refuel_count: int = 0
    total_refueled_pct: float = 0.0
    total_consumed_pct: float = 0.0
    total_refueled_l: float = 0.0
    total_consumed_l: float = 0.0
    net_fuel_change_pct: float = 0.0


__all__ = [
    "BatterySummary",
    "Bucket",
    "CombinedReport",
    "CombinedReportRow",
    "Domain",
    "DomainReport",
    "DomainSummary",
    "DrivingEventsReport",
    "DrivingSummary",
    "EngineSummary",
    "FuelEventsReport",
    "FuelSummary",
    "TireSummary",
]
