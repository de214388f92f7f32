"""Utilities to ingest exported telemetry CSV files into a reading source."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import pandas as pd

from ..utils.time import to_utc_series
from .schemas import SIGNAL_FIELDS
from .source import InMemoryReadingSource

ORDERED = ["device_id", "timestamp", *SIGNAL_FIELDS]

# Column names used by common tracker exports (Teltonika AVL style).
DEFAULT_MAPPING: Mapping[str, str] = {
    "device_id": "imei",
    "timestamp": "ts",
    "speed": "speed",
    "odometer": "total_odometer",
    "fuel_level": "fuel_level",
    "rpm": "engine_rpm",
    "ignition": "ignition",
    "voltage": "external_voltage",
    "current": "battery_current",
    "temperature": "ambient_air_temperature",
    "coolant_temperature": "coolant_temperature",
    "dtc_count": "dtc_count",
    "tire_pressure": "tyre_pressure",
}


def _merge_mapping(mapping: Mapping[str, str] | None) -> dict[str, str]:
    merged = dict(DEFAULT_MAPPING)
    if mapping:
        merged.update(mapping)
    return merged


def _apply_mapping(df: pd.DataFrame, mapping: Mapping[str, str]) -> pd.DataFrame:
    rename: dict[str, str] = {}
    for canonical, raw in mapping.items():
        if raw in df.columns and canonical not in df.columns:
            rename[raw] = canonical
    if rename:
        df = df.rename(columns=rename)
    return df


def _normalize(df: pd.DataFrame, *, device_id: str | None) -> pd.DataFrame:
    if "timestamp" not in df.columns:
        raise ValueError("Telemetry data requires a 'timestamp' column.")

    df = df.copy()
    if device_id is not None:
        df["device_id"] = device_id
    if "device_id" not in df.columns:
        raise ValueError("Telemetry data requires a 'device_id' column or an explicit device_id.")

    df["device_id"] = df["device_id"].astype(str)
    df["timestamp"] = to_utc_series(df["timestamp"])
    df = df.dropna(subset=["timestamp"])
    df = df.sort_values("timestamp", kind="stable").reset_index(drop=True)

    available: list[str] = ["device_id", "timestamp"]
    for column in ORDERED[2:]:
        if column in df.columns:
            df[column] = pd.to_numeric(df[column], errors="coerce")
            available.append(column)

    return df[available].copy()


def read_readings_csv(
    path: str | Path,
    mapping: Mapping[str, str] | None = None,
    *,
    device_id: str | None = None,
) -> pd.DataFrame:
    """Read a CSV export into a normalized reading dataframe.

    Timestamps may be ISO strings or epoch milliseconds. Signal columns are
    coerced to numbers; unparsable cells become missing values.
    """

    df = pd.read_csv(path)
    df = _apply_mapping(df, _merge_mapping(mapping))
    return _normalize(df, device_id=device_id)


def load_readings_csv(
    path: str | Path,
    mapping: Mapping[str, str] | None = None,
    *,
    device_id: str | None = None,
) -> InMemoryReadingSource:
    """Load a CSV export straight into an :class:`InMemoryReadingSource`."""

    return InMemoryReadingSource.from_frame(read_readings_csv(path, mapping, device_id=device_id))


__all__ = ["DEFAULT_MAPPING", "ORDERED", "load_readings_csv", "read_readings_csv"]
