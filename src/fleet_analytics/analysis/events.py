"""Threshold based event classification on readings and deltas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from ..config import DrivingThresholds, FuelThresholds
from .noise import filter_fuel_jitter

TIMESTAMP_COL = "timestamp"


class EventType(str, Enum):
    SPEEDING = "speeding"
    RAPID_ACCEL = "rapid_accel"
    RAPID_DECEL = "rapid_decel"
    REFUEL = "refuel"
    CONSUMPTION = "consumption"


class Event(BaseModel):
    """A classified occurrence derived from one delta or one day of fuel data."""

    model_config = ConfigDict(frozen=True)

    type: EventType
    occurs_at: datetime
    magnitude: float = Field(description="Size of the event, in ``unit``")
    unit: str


def classify_motion(deltas: pd.DataFrame, thresholds: DrivingThresholds) -> pd.DataFrame:
    """Flag speeding and harsh speed changes on each delta.

    Returns a frame indexed like ``deltas`` with boolean ``speeding``,
    ``rapid_accel`` and ``rapid_decel`` columns plus ``speeding_excess_kph``.
    """

    if "to_speed" in deltas.columns:
        to_speed = deltas["to_speed"].fillna(0.0)
    else:
        to_speed = pd.Series(0.0, index=deltas.index)
    speed_delta = deltas["speed_delta_kph"]
    elapsed = deltas["elapsed_s"]

    speeding = to_speed > thresholds.speed_limit_kph
    flags = pd.DataFrame(
        {
            "speeding": speeding,
            "speeding_excess_kph": (to_speed - thresholds.speed_limit_kph).where(speeding, 0.0),
            "rapid_accel": (speed_delta > thresholds.rapid_accel_kph)
            & (elapsed <= thresholds.rapid_accel_window_s),
            "rapid_decel": (speed_delta < -thresholds.rapid_decel_kph)
            & (elapsed <= thresholds.rapid_decel_window_s),
        },
        index=deltas.index,
    )
    return flags.astype({"speeding": bool, "rapid_accel": bool, "rapid_decel": bool})


def motion_events(deltas: pd.DataFrame, thresholds: DrivingThresholds) -> list[Event]:
    """Return speeding and harsh-driving events in time order."""

    flags = classify_motion(deltas, thresholds)
    events: list[Event] = []
    for idx in deltas.index:
        occurs_at = deltas.at[idx, "to_ts"].to_pydatetime()
        if flags.at[idx, "speeding"]:
            events.append(
                Event(
                    type=EventType.SPEEDING,
                    occurs_at=occurs_at,
                    magnitude=float(flags.at[idx, "speeding_excess_kph"]),
                    unit="km/h",
                )
            )
        if flags.at[idx, "rapid_accel"]:
            events.append(
                Event(
                    type=EventType.RAPID_ACCEL,
                    occurs_at=occurs_at,
                    magnitude=float(deltas.at[idx, "speed_delta_kph"]),
                    unit="km/h",
                )
            )
        if flags.at[idx, "rapid_decel"]:
            events.append(
                Event(
                    type=EventType.RAPID_DECEL,
                    occurs_at=occurs_at,
                    magnitude=float(-deltas.at[idx, "speed_delta_kph"]),
                    unit="km/h",
                )
            )
    return events


def detect_refuels(readings: pd.DataFrame, thresholds: FuelThresholds) -> pd.DataFrame:
    """Find refuels between consecutive filtered fuel readings.

    ``readings`` must already be jitter filtered and cover a single UTC day.
    An increase counts as a refuel when it reaches ``refuel_min_increase_pct``
    and either enough time passed (``refuel_min_interval_s``) or the jump is
    large on its own (``refuel_large_jump_pct``).
    """

    fuel = readings["fuel_level"]
    ts = pd.to_datetime(readings[TIMESTAMP_COL], utc=True)
    increase = fuel.diff()
    elapsed = ts.diff().dt.total_seconds()

    mask = (increase >= thresholds.refuel_min_increase_pct) & (
        (elapsed >= thresholds.refuel_min_interval_s)
        | (increase >= thresholds.refuel_large_jump_pct)
    )
    return pd.DataFrame(
        {
            "occurs_at": ts[mask],
            "increase_pct": increase[mask].astype("float64"),
            "from_level_pct": fuel.shift(1)[mask].astype("float64"),
            "to_level_pct": fuel[mask].astype("float64"),
        }
    ).reset_index(drop=True)


_USAGE_COLUMNS = (
    "day",
    "first_level_pct",
    "last_level_pct",
    "refueled_pct",
    "consumed_pct",
    "refuel_count",
    "ended_at",
)


def daily_fuel_usage(
    readings: pd.DataFrame, thresholds: FuelThresholds
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Compute refuels and consumption for each UTC day.

    Returns ``(usage, refuels)``. ``usage`` has one row per day with data.
    Consumption is ``max(0, refueled - net)`` on days with a refuel and
    ``max(0, first - last)`` otherwise, where ``net = last - first`` is taken
    over the jitter filtered readings.
    """

    fuel = readings.dropna(subset=["fuel_level"])
    if fuel.empty:
        empty_usage = pd.DataFrame({col: pd.Series(dtype="float64") for col in _USAGE_COLUMNS})
        return empty_usage, detect_refuels(fuel, thresholds)

    days = pd.to_datetime(fuel[TIMESTAMP_COL], utc=True).dt.strftime("%Y-%m-%d")
    rows: list[dict[str, object]] = []
    refuel_frames: list[pd.DataFrame] = []

    for day, day_readings in fuel.groupby(days, sort=True):
        filtered = filter_fuel_jitter(
            day_readings, jitter_threshold_pct=thresholds.jitter_threshold_pct
        )
        refuels = detect_refuels(filtered, thresholds)
        first = float(filtered["fuel_level"].iloc[0])
        last = float(filtered["fuel_level"].iloc[-1])
        refueled = float(refuels["increase_pct"].sum())
        net = last - first
        if len(refuels):
            consumed = max(0.0, refueled - net)
        else:
            consumed = max(0.0, first - last)

        rows.append(
            {
                "day": day,
                "first_level_pct": first,
                "last_level_pct": last,
                "refueled_pct": refueled,
                "consumed_pct": consumed,
                "refuel_count": int(len(refuels)),
                "ended_at": filtered[TIMESTAMP_COL].iloc[-1],
            }
        )
        refuel_frames.append(refuels)

    usage = pd.DataFrame(rows, columns=list(_USAGE_COLUMNS))
    refuels = pd.concat(refuel_frames, ignore_index=True)
    return usage, refuels


def pct_to_litres(pct: float, thresholds: FuelThresholds) -> float:
    return pct / 100.0 * thresholds.tank_capacity_l


_TRIP_COLUMNS = ("started_at", "ended_at", "distance_km", "fuel_used_l", "mileage_km_per_l")


def trip_mileage(
    readings: pd.DataFrame, deltas: pd.DataFrame, thresholds: FuelThresholds
) -> pd.DataFrame:
    """Split ``readings`` into ignition on->off trips and rate each in km/L.

    A trip starts at the first reading with ignition on and ends at the next
    reading with ignition off; a trip still open at the end is not counted.
    Distance is the sum of the deltas inside the trip. Trips not longer than
    ``min_trip_distance_km``, without a fuel drop or with a mileage of
    ``max_trip_mileage_km_per_l`` or more are dropped as implausible.
    """

    empty = pd.DataFrame({col: pd.Series(dtype="float64") for col in _TRIP_COLUMNS})
    if "ignition" not in readings.columns or len(readings) < 2:
        return empty

    ignition = pd.to_numeric(readings["ignition"], errors="coerce")
    fuel = readings["fuel_level"]
    travelled = (
        deltas["distance_delta_km"].reindex(readings.index, fill_value=0.0).fillna(0.0).cumsum()
    )

    rows: list[dict[str, object]] = []
    start = None
    for idx in readings.index:
        if start is None:
            if ignition[idx] == 1:
                start = idx
            continue
        if ignition[idx] != 0:
            continue

        distance = float(travelled[idx] - travelled[start])
        used_l = pct_to_litres(max(0.0, float(fuel[start] - fuel[idx])), thresholds)
        if distance > thresholds.min_trip_distance_km and used_l > 0:
            mileage = distance / used_l
            if mileage < thresholds.max_trip_mileage_km_per_l:
                rows.append(
                    {
                        "started_at": readings.at[start, TIMESTAMP_COL],
                        "ended_at": readings.at[idx, TIMESTAMP_COL],
                        "distance_km": distance,
                        "fuel_used_l": used_l,
                        "mileage_km_per_l": mileage,
                    }
                )
        start = None

    if not rows:
        return empty
    return pd.DataFrame(rows, columns=list(_TRIP_COLUMNS))


def fuel_events(readings: pd.DataFrame, thresholds: FuelThresholds) -> list[Event]:
    """Return refuel events and one consumption event per day, in time order."""

    usage, refuels = daily_fuel_usage(readings, thresholds)
    events = [
        Event(
            type=EventType.REFUEL,
            occurs_at=row.occurs_at.to_pydatetime(),
            magnitude=float(row.increase_pct),
            unit="%",
        )
        for row in refuels.itertuples(index=False)
    ]
    for row in usage.itertuples(index=False):
        if row.consumed_pct <= 0:
            continue
        events.append(
            Event(
                type=EventType.CONSUMPTION,
                occurs_at=pd.Timestamp(row.ended_at).to_pydatetime(),
                magnitude=float(row.consumed_pct),
                unit="%",
            )
        )
    events.sort(key=lambda event: event.occurs_at)
    return events


__all__ = [
    "Event",
    "EventType",
    "classify_motion",
    "daily_fuel_usage",
    "detect_refuels",
    "fuel_events",
    "motion_events",
    "pct_to_litres",
    "trip_mileage",
]
