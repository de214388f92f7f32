"""Generate a demo tracker export for the analytics API.

Serve it with ``FLEET_ANALYTICS_READINGS_CSV=data/samples/fleet_demo.csv``.
"""
from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

DEVICE_IDS = ("356307042441013", "356307042441021")
N_DAYS = 3
START_TIMESTAMP = "2024-01-01T06:00:00Z"
TANK_CAPACITY_L = 60.0

SAMPLES_DIR = Path(__file__).resolve().parents[1] / "data" / "samples"

rng = np.random.default_rng(seed=42)


def generate_timeline() -> pd.DatetimeIndex:
    """Irregular timestamps between 30 s and 3 min apart, 14 h per day."""
    days = []
    for day in range(N_DAYS):
        start = pd.Timestamp(START_TIMESTAMP) + pd.Timedelta(days=day)
        gaps = rng.integers(30, 180, size=600)
        offsets = np.cumsum(gaps)
        offsets = offsets[offsets < 14 * 3600]
        days.append(start + pd.to_timedelta(offsets, unit="s"))
    return days[0].append(days[1:])


def generate_speed_profile(n: int) -> np.ndarray:
    """Trips separated by parked stretches, km/h."""
    speed = np.zeros(n)
    i = 0
    while i < n:
        start = min(n, i + int(rng.integers(10, 40)))
        end = min(n, start + int(rng.integers(20, 80)))
        cruise = rng.uniform(35.0, 95.0)
        speed[start:end] = np.clip(cruise + rng.normal(0, 8.0, size=end - start), 0.0, 130.0)
        i = end
    return np.round(speed, 1)


def generate_fuel(speed: np.ndarray, elapsed_s: np.ndarray) -> np.ndarray:
    """Fuel percentage with gauge jitter and one refuel per device."""
    burn_l = speed * elapsed_s / 3600.0 * 0.08  # ~8 L/100 km
    level = 85.0 - np.cumsum(burn_l) / TANK_CAPACITY_L * 100.0
    refuel_at = len(level) // 2
    level[refuel_at:] += 90.0 - level[refuel_at]
    level += rng.choice([0.0, 0.0, 0.0, 2.0, -2.0], size=len(level))
    return np.round(np.clip(level, 0.0, 100.0), 1)


def generate_device(device_id: str) -> pd.DataFrame:
    index = generate_timeline()
    n = len(index)
    elapsed_s = np.diff(index.asi8 // 1_000_000_000, prepend=index.asi8[0] // 1_000_000_000)
    speed = generate_speed_profile(n)
    moving = speed > 0

    odometer_m = np.cumsum(speed * elapsed_s / 3.6).round()
    # tracker firmware update resets the odometer once
    odometer_m[n * 2 // 3:] -= odometer_m[n * 2 // 3]

    df = pd.DataFrame(
        {
            "imei": device_id,
            "ts": (index.asi8 // 1_000_000).astype(np.int64),
            "speed": speed,
            "total_odometer": odometer_m,
            "fuel_level": generate_fuel(speed, elapsed_s),
            "engine_rpm": np.where(moving, np.round(800.0 + 28.0 * speed + rng.normal(0, 60.0, n)), 0.0),
            "ignition": moving.astype(int),
            "external_voltage": np.round(np.where(moving, 13.8, 12.5) + rng.normal(0, 0.1, n), 2),
            "battery_current": np.round(np.where(moving, 2.5, -0.4) + rng.normal(0, 0.1, n), 2),
            "ambient_air_temperature": np.round(8.0 + rng.normal(0, 1.0, n), 1),
            "coolant_temperature": np.round(np.where(moving, 92.0, 40.0) + rng.normal(0, 3.0, n), 1),
            "dtc_count": np.where(np.arange(n) > n * 0.9, 1, 0),
            "tyre_pressure": np.round(np.linspace(33.0, 28.5, n) + rng.normal(0, 0.2, n), 1),
        }
    )

    # a few corrupted samples the engine has to skip
    corrupt = rng.choice(n, size=3, replace=False)
    df.loc[corrupt, "fuel_level"] = 180.0
    return df


def write_demo_data() -> Path:
    frames = [generate_device(device_id) for device_id in DEVICE_IDS]
    df = pd.concat(frames, ignore_index=True)

    SAMPLES_DIR.mkdir(parents=True, exist_ok=True)
    path = SAMPLES_DIR / "fleet_demo.csv"
    df.to_csv(path, index=False)

    for device_id, frame in zip(DEVICE_IDS, frames):
        print(f"{device_id}: {len(frame)} readings, max speed {frame['speed'].max():.0f} km/h")
    print(f"Wrote: {path}")
    return path


def main() -> None:
    write_demo_data()


if __name__ == "__main__":
    main()
