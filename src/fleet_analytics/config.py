"""Threshold configuration for the analytics domains."""

from __future__ import annotations

import dataclasses
import functools
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigurationError
from .utils.calendar import Granularity

CONFIG_ENV_VAR = "FLEET_ANALYTICS_CONFIG"


@dataclass(frozen=True)
class DrivingThresholds:
    """Speeding and harsh-driving thresholds."""

    speed_limit_kph: float = 80.0
    rapid_accel_kph: float = 10.0
    rapid_accel_window_s: float = 3.0
    rapid_decel_kph: float = 10.0
    rapid_decel_window_s: float = 3.0


@dataclass(frozen=True)
class FuelThresholds:
    """Refuel detection and jitter rejection constants.

    The defaults are empirically tuned and fleet dependent; override them per
    vehicle type rather than editing them here.
    """

    tank_capacity_l: float = 60.0
    refuel_min_increase_pct: float = 15.0
    refuel_min_interval_s: float = 1800.0
    refuel_large_jump_pct: float = 30.0
    jitter_threshold_pct: float = 5.0
    # ignition on->off trips shorter than this or above this mileage are dropped
    min_trip_distance_km: float = 0.1
    max_trip_mileage_km_per_l: float = 50.0


@dataclass(frozen=True)
class BatteryThresholds:
    low_voltage_v: float = 12.0
    charging_current_a: float = 0.1
    capacity_ah: float = 50.0


@dataclass(frozen=True)
class EngineThresholds:
    overheat_temperature_c: float = 105.0


@dataclass(frozen=True)
class TireThresholds:
    low_pressure_psi: float = 25.0
    warning_pressure_psi: float = 30.0


@dataclass(frozen=True)
class ConfidenceRules:
    """Constants for the data quality heuristic (see :mod:`..quality.confidence`)."""

    min_readings: int = 3
    dense_multiplier: int = 8
    suspicious_consumption_pct: float = 2.0
    max_daily_refuels: int = 3
    max_skipped_fraction: float = 0.1


_SECTIONS: Mapping[str, type] = {
    "driving": DrivingThresholds,
    "fuel": FuelThresholds,
    "battery": BatteryThresholds,
    "engine": EngineThresholds,
    "tire": TireThresholds,
    "confidence": ConfidenceRules,
}


@dataclass(frozen=True)
class AnalyticsConfig:
    """Container for every caller supplied threshold."""

    driving: DrivingThresholds = field(default_factory=DrivingThresholds)
    fuel: FuelThresholds = field(default_factory=FuelThresholds)
    battery: BatteryThresholds = field(default_factory=BatteryThresholds)
    engine: EngineThresholds = field(default_factory=EngineThresholds)
    tire: TireThresholds = field(default_factory=TireThresholds)
    confidence: ConfidenceRules = field(default_factory=ConfidenceRules)
    granularity: Granularity = Granularity.DAILY

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "AnalyticsConfig":
        unknown = set(config) - set(_SECTIONS) - {"granularity"}
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration sections: {sorted(unknown)}. "
                f"Allowed: {sorted(_SECTIONS) + ['granularity']}"
            )

        sections: dict[str, Any] = {}
        for name, section_cls in _SECTIONS.items():
            values = config.get(name) or {}
            if not isinstance(values, Mapping):
                raise ConfigurationError(f"Section '{name}' must be a mapping")
            sections[name] = _build_section(name, section_cls, values)

        granularity = config.get("granularity", Granularity.DAILY)
        try:
            sections["granularity"] = Granularity(granularity)
        except ValueError as exc:
            raise ConfigurationError(f"Unsupported granularity '{granularity}'") from exc

        result = cls(**sections)
        result.validate()
        return result

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` on any non-positive threshold."""

        for name in _SECTIONS:
            section = getattr(self, name)
            for item in dataclasses.fields(section):
                value = getattr(section, item.name)
                if not isinstance(value, (int, float)) or isinstance(value, bool):
                    raise ConfigurationError(f"{name}.{item.name} must be numeric, got {value!r}")
                if value <= 0:
                    raise ConfigurationError(f"{name}.{item.name} must be positive, got {value!r}")
        if self.confidence.max_skipped_fraction > 1:
            raise ConfigurationError("confidence.max_skipped_fraction must not exceed 1")

    def with_overrides(self, overrides: Mapping[str, Mapping[str, Any]]) -> "AnalyticsConfig":
        """Return a copy with per-section overrides applied.

        ``None`` values are ignored so optional request parameters can be
        passed straight through.
        """

        changes: dict[str, Any] = {}
        for name, values in overrides.items():
            if name not in _SECTIONS:
                raise ConfigurationError(f"Unknown configuration section '{name}'")
            present = {key: value for key, value in values.items() if value is not None}
            if not present:
                continue
            changes[name] = _build_section(name, type(getattr(self, name)), present, base=getattr(self, name))
        if not changes:
            return self
        result = dataclasses.replace(self, **changes)
        result.validate()
        return result

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {name: dataclasses.asdict(getattr(self, name)) for name in _SECTIONS}
        payload["granularity"] = self.granularity.value
        return payload


def _build_section(name: str, section_cls: type, values: Mapping[str, Any], *, base: Any = None) -> Any:
    known = {item.name for item in dataclasses.fields(section_cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(f"Unknown keys in '{name}': {sorted(unknown)}")
    if base is not None:
        return dataclasses.replace(base, **values)
    return section_cls(**values)


def _load_mapping_from_file(path: Path) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")

    # JSON is a subset of YAML, so try JSON first for clearer error messages.
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Configuration file '{path}' must contain a mapping")
    return data


def load_config(config: str | Path | Mapping[str, Any] | None = None) -> AnalyticsConfig:
    """Load :class:`AnalyticsConfig` from a mapping or a JSON/YAML file."""

    if config is None:
        return AnalyticsConfig()
    if isinstance(config, Mapping):
        mapping = config
    else:
        path = Path(config)
        if not path.exists():
            raise ConfigurationError(f"Configuration file '{path}' does not exist")
        mapping = _load_mapping_from_file(path)
    return AnalyticsConfig.from_mapping(mapping)


@functools.lru_cache(maxsize=1)
def load_default_config() -> AnalyticsConfig:
    """Load the configuration named by ``FLEET_ANALYTICS_CONFIG`` or the defaults."""

    configured = os.environ.get(CONFIG_ENV_VAR)
    if configured:
        return load_config(configured)
    return AnalyticsConfig()


__all__ = [
    "AnalyticsConfig",
    "BatteryThresholds",
    "CONFIG_ENV_VAR",
    "ConfidenceRules",
    "DrivingThresholds",
    "EngineThresholds",
    "FuelThresholds",
    "TireThresholds",
    "load_config",
    "load_default_config",
]
