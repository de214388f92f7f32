"""Pairwise deltas between consecutive readings of one device."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from pydantic import ValidationError

from ..data.schemas import SIGNAL_FIELDS, Reading
from ..data.source import RawReading, is_missing
from ..utils.time import parse_instant

_logger = logging.getLogger(__name__)

TIMESTAMP_COL = "timestamp"

# Columns of every delta frame. ``from_<signal>``/``to_<signal>`` columns are
# appended for each signal present in the reading frame.
DELTA_COLUMNS = (
    "from_ts",
    "to_ts",
    "elapsed_s",
    "speed_delta_kph",
    "distance_delta_km",
    "fuel_delta_pct",
    "odometer_reset",
    "from_moving",
)


def _empty_skipped() -> pd.Series:
    return pd.Series([], dtype="datetime64[ns, UTC]")


@dataclass(slots=True)
class ReadingBatch:
    """Validated readings for one device plus the samples that were rejected."""

    frame: pd.DataFrame
    skipped: pd.Series = field(default_factory=_empty_skipped)

    @property
    def skipped_count(self) -> int:
        return int(len(self.skipped))

    @property
    def empty(self) -> bool:
        return self.frame.empty


def _skipped_timestamp(record: RawReading) -> pd.Timestamp:
    raw = getattr(record, "timestamp", None) if isinstance(record, Reading) else record.get("timestamp")
    try:
        return parse_instant(raw)
    except (ValueError, TypeError, OverflowError):
        return pd.NaT


def empty_reading_frame() -> pd.DataFrame:
    frame = pd.DataFrame({col: pd.Series(dtype="float64") for col in SIGNAL_FIELDS})
    frame.insert(0, TIMESTAMP_COL, pd.Series(dtype="datetime64[ns, UTC]"))
    return frame


def frame_from_readings(
    records: Iterable[RawReading],
    required_fields: Sequence[str] = (),
    *,
    device_id: str | None = None,
) -> ReadingBatch:
    """Validate raw readings into a timestamp ordered dataframe.

    A malformed reading (invalid value, unparsable timestamp, another
    device's sample or a missing required field) is skipped and recorded in
    :attr:`ReadingBatch.skipped`; it never aborts the computation.
    """

    rows: list[dict[str, object]] = []
    skipped: list[pd.Timestamp] = []

    for record in records:
        if isinstance(record, Reading):
            reading = record
        else:
            cleaned = {key: value for key, value in record.items() if not is_missing(value)}
            try:
                reading = Reading.model_validate(cleaned)
            except ValidationError as exc:
                _logger.debug("Skipping malformed reading: %s", exc.errors(include_url=False))
                skipped.append(_skipped_timestamp(record))
                continue

        if device_id is not None and reading.device_id != device_id:
            _logger.debug("Skipping reading of device %s while reading %s", reading.device_id, device_id)
            skipped.append(reading.ts)
            continue
        if any(getattr(reading, name) is None for name in required_fields):
            _logger.debug("Skipping reading at %s without %s", reading.ts, list(required_fields))
            skipped.append(reading.ts)
            continue

        row: dict[str, object] = {TIMESTAMP_COL: reading.ts}
        row.update(reading.signals())
        rows.append(row)

    skipped_series = pd.to_datetime(pd.Series(skipped, dtype=object), utc=True) if skipped else _empty_skipped()
    if not rows:
        return ReadingBatch(frame=empty_reading_frame(), skipped=skipped_series)

    frame = pd.DataFrame(rows, columns=[TIMESTAMP_COL, *SIGNAL_FIELDS])
    frame[TIMESTAMP_COL] = pd.to_datetime(frame[TIMESTAMP_COL], utc=True)
    for column in SIGNAL_FIELDS:
        frame[column] = frame[column].astype("float64")
    frame = frame.sort_values(TIMESTAMP_COL, kind="stable").reset_index(drop=True)
    return ReadingBatch(frame=frame, skipped=skipped_series)


def _signal_columns(frame: pd.DataFrame) -> list[str]:
    return [col for col in frame.columns if col not in (TIMESTAMP_COL, "device_id")]


def _empty_delta_frame(signals: Sequence[str]) -> pd.DataFrame:
    columns: dict[str, pd.Series] = {}
    for name in DELTA_COLUMNS:
        if name.endswith("_ts"):
            columns[name] = pd.Series(dtype="datetime64[ns, UTC]")
        elif name in ("odometer_reset", "from_moving"):
            columns[name] = pd.Series(dtype=bool)
        else:
            columns[name] = pd.Series(dtype="float64")
    for signal in signals:
        columns[f"from_{signal}"] = pd.Series(dtype="float64")
        columns[f"to_{signal}"] = pd.Series(dtype="float64")
    return pd.DataFrame(columns)


def _column(df: pd.DataFrame, name: str) -> pd.Series:
    if name in df.columns:
        return pd.to_numeric(df[name], errors="coerce")
    return pd.Series(np.nan, index=df.index, dtype="float64")


def compute_deltas(frame: pd.DataFrame) -> pd.DataFrame:
    """Pair each reading with its predecessor.

    ``N`` readings yield ``N - 1`` deltas indexed like their TO reading.
    Non-positive elapsed time (duplicate or out-of-order timestamps) is
    reported as ``0``. Distance prefers the odometer difference (metres to
    km) clamped at zero, so an odometer reset contributes nothing; without
    an odometer pair it falls back to the trapezoid of the two speeds.
    Missing speed counts as ``0`` for the delta only.
    """

    signals = _signal_columns(frame)
    if len(frame) < 2:
        return _empty_delta_frame(signals)

    df = frame.sort_values(TIMESTAMP_COL, kind="stable")
    ts = pd.to_datetime(df[TIMESTAMP_COL], utc=True)
    prev_ts = ts.shift(1)

    elapsed = (ts - prev_ts).dt.total_seconds()
    elapsed = elapsed.where(elapsed > 0, 0.0)

    speed = _column(df, "speed")
    prev_speed = speed.shift(1)
    speed_delta = speed.fillna(0.0) - prev_speed.fillna(0.0)

    odometer = _column(df, "odometer")
    prev_odometer = odometer.shift(1)
    has_odometer = odometer.notna() & prev_odometer.notna()
    odometer_km = (odometer - prev_odometer) / 1000.0
    trapezoid_km = (speed.fillna(0.0) + prev_speed.fillna(0.0)) / 2.0 * elapsed / 3600.0
    distance = odometer_km.clip(lower=0.0).where(has_odometer, trapezoid_km)
    odometer_reset = has_odometer & (odometer_km < 0)

    fuel = _column(df, "fuel_level")
    fuel_delta = (fuel - fuel.shift(1)).fillna(0.0)

    deltas = pd.DataFrame(
        {
            "from_ts": prev_ts,
            "to_ts": ts,
            "elapsed_s": elapsed,
            "speed_delta_kph": speed_delta,
            "distance_delta_km": distance.fillna(0.0),
            "fuel_delta_pct": fuel_delta,
            "odometer_reset": odometer_reset,
            "from_moving": prev_speed.fillna(0.0) > 0,
        },
        index=df.index,
    )
    for signal in signals:
        values = _column(df, signal)
        deltas[f"from_{signal}"] = values.shift(1)
        deltas[f"to_{signal}"] = values

    deltas = deltas.iloc[1:]

    resets = int(deltas["odometer_reset"].sum())
    if resets:
        _logger.debug("Ignored %d odometer reset(s) in distance accumulation", resets)

    return deltas


__all__ = [
    "DELTA_COLUMNS",
    "ReadingBatch",
    "compute_deltas",
    "empty_reading_frame",
    "frame_from_readings",
]
