"""Per-domain strategies plugged into the generic bucket pipeline.

Each analyzer names the reading fields it needs, reduces the readings and
deltas of one bucket into a summary model and reports the signals the
confidence heuristic cross-checks.
"""

from __future__ import annotations

from typing import ClassVar, Mapping

import numpy as np
import pandas as pd
from pydantic import BaseModel

from ..config import AnalyticsConfig, BatteryThresholds, TireThresholds
from ..quality.confidence import ConfidenceInputs
from ..reporting.schemas import (
    BatterySummary,
    Domain,
    DrivingSummary,
    EngineSummary,
    FuelSummary,
    TireSummary,
)
from .events import classify_motion, daily_fuel_usage, pct_to_litres, trip_mileage


def _series(df: pd.DataFrame, name: str) -> pd.Series:
    if name in df.columns:
        return df[name].dropna()
    return pd.Series(dtype="float64")


def _mean(values: pd.Series) -> float:
    return float(values.mean()) if len(values) else 0.0


def _max(values: pd.Series) -> float:
    return float(values.max()) if len(values) else 0.0


def _min(values: pd.Series) -> float:
    return float(values.min()) if len(values) else 0.0


def _last(values: pd.Series) -> float | None:
    return float(values.iloc[-1]) if len(values) else None


def _distance(deltas: pd.DataFrame) -> float:
    return float(deltas["distance_delta_km"].sum()) if len(deltas) else 0.0


class DomainAnalyzer:
    """Base strategy; subclasses implement :meth:`summarize`."""

    domain: ClassVar[Domain]
    required_fields: ClassVar[tuple[str, ...]] = ()
    summary_model: ClassVar[type[BaseModel]]

    def summarize(
        self, readings: pd.DataFrame, deltas: pd.DataFrame, config: AnalyticsConfig
    ) -> tuple[BaseModel, ConfidenceInputs]:
        raise NotImplementedError

    def empty(self) -> BaseModel:
        return self.summary_model()


class DrivingAnalyzer(DomainAnalyzer):
    domain = Domain.DRIVING
    required_fields = ("speed",)
    summary_model = DrivingSummary

    def summarize(
        self, readings: pd.DataFrame, deltas: pd.DataFrame, config: AnalyticsConfig
    ) -> tuple[BaseModel, ConfidenceInputs]:
        speed = _series(readings, "speed")
        moving = speed > 0
        rpm = readings["rpm"] if "rpm" in readings.columns else pd.Series(np.nan, index=readings.index)

        flags = classify_motion(deltas, config.driving)
        distance = _distance(deltas)
        driving_time = float(deltas.loc[deltas["from_moving"], "elapsed_s"].sum()) if len(deltas) else 0.0
        last_speed = _last(speed) or 0.0

        summary = DrivingSummary(
            distance_km=distance,
            driving_time_s=driving_time,
            max_speed_kph=_max(speed),
            average_speed_kph=_mean(speed[moving]),
            average_rpm=_mean(rpm.loc[moving[moving].index].dropna()),
            speeding_count=int(flags["speeding"].sum()),
            speeding_distance_km=float(deltas.loc[flags["speeding"], "distance_delta_km"].sum()),
            rapid_accel_count=int(flags["rapid_accel"].sum()),
            rapid_decel_count=int(flags["rapid_decel"].sum()),
            last_speed_kph=last_speed,
            is_moving=last_speed > 0,
        )
        inputs = ConfidenceInputs(
            reading_count=len(readings), distance_km=distance, moving_time_s=driving_time
        )
        return summary, inputs


def fuel_level_status(level: float) -> str:
    if level >= 75:
        return "Full"
    if level >= 30:
        return "Good"
    if level >= 10:
        return "Low"
    return "Critical"


class FuelAnalyzer(DomainAnalyzer):
    domain = Domain.FUEL
    required_fields = ("fuel_level",)
    summary_model = FuelSummary

    def summarize(
        self, readings: pd.DataFrame, deltas: pd.DataFrame, config: AnalyticsConfig
    ) -> tuple[BaseModel, ConfidenceInputs]:
        fuel = _series(readings, "fuel_level")
        usage, refuels = daily_fuel_usage(readings, config.fuel)
        trips = trip_mileage(readings, deltas, config.fuel)
        mileage = trips["mileage_km_per_l"]
        last_refuel = refuels.iloc[-1] if len(refuels) else None

        refueled = float(usage["refueled_pct"].sum())
        consumed = float(usage["consumed_pct"].sum())
        consumed_l = pct_to_litres(consumed, config.fuel)
        distance = _distance(deltas)
        last_level = _last(fuel) or 0.0

        summary = FuelSummary(
            first_level_pct=float(fuel.iloc[0]) if len(fuel) else 0.0,
            last_level_pct=last_level,
            min_level_pct=_min(fuel),
            max_level_pct=_max(fuel),
            average_level_pct=_mean(fuel),
            refueled_pct=refueled,
            refueled_l=pct_to_litres(refueled, config.fuel),
            consumed_pct=consumed,
            consumed_l=consumed_l,
            refuel_count=int(usage["refuel_count"].sum()),
            distance_km=distance,
            efficiency_km_per_l=distance / consumed_l if consumed_l > 0 else 0.0,
            level_status=fuel_level_status(last_level) if len(fuel) else None,
            average_trip_mileage_km_per_l=_mean(mileage),
            last_trip_mileage_km_per_l=_last(mileage) or 0.0,
            last_refuel_at=None if last_refuel is None else last_refuel["occurs_at"].to_pydatetime(),
            last_refuel_pct=None if last_refuel is None else float(last_refuel["increase_pct"]),
        )
        inputs = ConfidenceInputs(
            reading_count=len(readings),
            distance_km=distance,
            consumption_pct=consumed,
            refuel_count=int(usage["refuel_count"].max()) if len(usage) else 0,
        )
        return summary, inputs


def state_of_health(voltage: float) -> float:
    """Rough 12 V lead-acid state of health from resting voltage."""

    if voltage >= 13.5:
        return 95.0
    if voltage >= 13.0:
        return 85.0
    if voltage >= 12.6:
        return 75.0
    if voltage >= 12.4:
        return 65.0
    if voltage >= 12.0:
        return 50.0
    return 30.0


def battery_health(voltage: float) -> str:
    if voltage >= 13.5:
        return "Excellent"
    if voltage >= 13.0:
        return "Good"
    if voltage >= 12.4:
        return "Fair"
    return "Poor"


def temperature_status(temperature: float) -> str:
    if temperature > 50:
        return "High Temperature"
    if temperature < -10:
        return "Low Temperature"
    return "Operating Normally"


def current_status(current: float, thresholds: BatteryThresholds) -> str:
    if current > thresholds.charging_current_a:
        return "charging"
    if current < -thresholds.charging_current_a:
        return "discharging"
    return "idle"


def estimated_life_hours(voltage: float, current: float, thresholds: BatteryThresholds) -> float:
    """Hours to full charge while charging, otherwise hours until low voltage."""

    draw = abs(current) if abs(current) > 0.05 else 0.5
    if current > thresholds.charging_current_a:
        needed_ah = max(0.0, (13.6 - voltage) * (thresholds.capacity_ah / 1.2))
        return round(needed_ah / draw, 1)
    # 12.6 V is a fully charged resting battery.
    usable_span = 12.6 - thresholds.low_voltage_v
    if voltage <= thresholds.low_voltage_v or usable_span <= 0:
        return 0.0
    ratio = (voltage - thresholds.low_voltage_v) / usable_span
    return round(ratio * thresholds.capacity_ah * 0.75 / draw, 1)


class BatteryAnalyzer(DomainAnalyzer):
    domain = Domain.BATTERY
    required_fields = ("voltage",)
    summary_model = BatterySummary

    def summarize(
        self, readings: pd.DataFrame, deltas: pd.DataFrame, config: AnalyticsConfig
    ) -> tuple[BaseModel, ConfidenceInputs]:
        thresholds = config.battery
        voltage = _series(readings, "voltage")
        current = _series(readings, "current")
        temperature = _last(_series(readings, "temperature"))
        end_voltage = _last(voltage) or 0.0
        last_current = _last(current) or 0.0

        summary = BatterySummary(
            start_voltage_v=float(voltage.iloc[0]) if len(voltage) else 0.0,
            end_voltage_v=end_voltage,
            min_voltage_v=_min(voltage),
            max_voltage_v=_max(voltage),
            average_voltage_v=_mean(voltage),
            average_current_a=_mean(current),
            temperature_c=temperature,
            temperature_status=None if temperature is None else temperature_status(temperature),
            state_of_health_pct=state_of_health(end_voltage),
            health=battery_health(end_voltage),
            current_status=current_status(last_current, thresholds),
            is_charging=last_current > thresholds.charging_current_a,
            estimated_life_h=estimated_life_hours(end_voltage, last_current, thresholds),
            low_voltage_count=int((voltage < thresholds.low_voltage_v).sum()),
        )
        return summary, ConfidenceInputs(reading_count=len(readings))


def _running(frame: pd.DataFrame, prefix: str = "") -> pd.Series:
    running = pd.Series(False, index=frame.index)
    for name in ("rpm", "ignition"):
        column = f"{prefix}{name}"
        if column in frame.columns:
            threshold = 0 if name == "rpm" else 0.5
            running |= frame[column].fillna(0.0) > threshold
    return running


class EngineAnalyzer(DomainAnalyzer):
    domain = Domain.ENGINE
    required_fields = ("rpm",)
    summary_model = EngineSummary

    def summarize(
        self, readings: pd.DataFrame, deltas: pd.DataFrame, config: AnalyticsConfig
    ) -> tuple[BaseModel, ConfidenceInputs]:
        rpm = _series(readings, "rpm")
        running_rpm = rpm[rpm > 0]
        coolant = _series(readings, "coolant_temperature")
        faults = _series(readings, "dtc_count")
        active_faults = int(_last(faults) or 0)

        on_time = 0.0
        if len(deltas):
            on_time = float(deltas.loc[_running(deltas, prefix="from_"), "elapsed_s"].sum())

        last = readings.iloc[-1]
        engine_on = bool(
            last.get("ignition", 0) == 1 or last.get("rpm", 0) > 0 or last.get("speed", 0) > 0
        )

        summary = EngineSummary(
            average_rpm=_mean(running_rpm),
            max_rpm=_max(rpm),
            engine_on_time_s=on_time,
            average_coolant_temperature_c=_mean(coolant),
            max_coolant_temperature_c=_max(coolant),
            overheat_count=int((coolant > config.engine.overheat_temperature_c).sum()),
            active_fault_count=active_faults,
            max_fault_count=int(_max(faults)),
            oil_status="CHECK_REQUIRED" if active_faults > 0 else "NORMAL",
            engine_status="ON" if engine_on else "OFF",
        )
        return summary, ConfidenceInputs(reading_count=len(readings))


def tire_status(pressure: float, thresholds: TireThresholds) -> str:
    if pressure == 0:
        return "NO_DATA"
    if pressure < thresholds.low_pressure_psi:
        return "LOW"
    if pressure < thresholds.warning_pressure_psi:
        return "WARNING"
    return "NORMAL"


class TireAnalyzer(DomainAnalyzer):
    domain = Domain.TIRE
    required_fields = ("tire_pressure",)
    summary_model = TireSummary

    def summarize(
        self, readings: pd.DataFrame, deltas: pd.DataFrame, config: AnalyticsConfig
    ) -> tuple[BaseModel, ConfidenceInputs]:
        pressure = _series(readings, "tire_pressure")
        main_pressure = _last(pressure) or 0.0

        trips = 0
        ignition = _series(readings, "ignition")
        if len(ignition) > 1:
            trips = int(((ignition.shift(1) == 0) & (ignition == 1)).sum())

        summary = TireSummary(
            average_pressure_psi=_mean(pressure),
            min_pressure_psi=_min(pressure),
            max_pressure_psi=_max(pressure),
            main_pressure_psi=main_pressure,
            pressure_drop_psi=max(0.0, float(pressure.iloc[0]) - main_pressure) if len(pressure) else 0.0,
            distance_km=_distance(deltas),
            low_pressure_count=int((pressure < config.tire.low_pressure_psi).sum()),
            trip_count=trips,
            status=tire_status(main_pressure, config.tire),
        )
        return summary, ConfidenceInputs(reading_count=len(readings))


ANALYZERS: Mapping[Domain, DomainAnalyzer] = {
    analyzer.domain: analyzer
    for analyzer in (
        DrivingAnalyzer(),
        FuelAnalyzer(),
        BatteryAnalyzer(),
        EngineAnalyzer(),
        TireAnalyzer(),
    )
}


def get_analyzer(domain: Domain | str) -> DomainAnalyzer:
    return ANALYZERS[Domain(domain)]


__all__ = [
    "ANALYZERS",
    "BatteryAnalyzer",
    "DomainAnalyzer",
    "DrivingAnalyzer",
    "EngineAnalyzer",
    "FuelAnalyzer",
    "TireAnalyzer",
    "battery_health",
    "fuel_level_status",
    "get_analyzer",
    "state_of_health",
    "tire_status",
]
