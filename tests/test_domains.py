from __future__ import annotations

import pandas as pd
import pytest

from fleet_analytics.analysis.buckets import BucketAggregator
from fleet_analytics.analysis.deltas import frame_from_readings
from fleet_analytics.analysis.domains import (
    battery_health,
    fuel_level_status,
    get_analyzer,
    state_of_health,
    tire_status,
)
from fleet_analytics.config import AnalyticsConfig, TireThresholds
from fleet_analytics.quality.confidence import ConfidenceLevel
from fleet_analytics.reporting.schemas import Domain


def _summarize(domain: Domain, rows: list[dict], config: AnalyticsConfig | None = None):
    analyzer = get_analyzer(domain)
    batch = frame_from_readings(
        [{"device_id": "dev-1", **row} for row in rows], analyzer.required_fields
    )
    return BucketAggregator(analyzer, config or AnalyticsConfig()).summarize_range("dev-1", batch)


def _example_fuel_rows(count_per_step: int = 1) -> list[dict]:
    levels = [80.0, 82.0, 35.0, 80.0, 60.0]
    odometers = [0.0, 30_000.0, 60_000.0, 90_000.0, 120_000.0]
    start = pd.Timestamp("2024-03-05T06:00:00Z")
    rows = []
    for i, (level, odometer) in enumerate(zip(levels, odometers)):
        rows.append(
            {
                "timestamp": start + pd.Timedelta(hours=2 * i),
                "fuel_level": level,
                "odometer": odometer,
                "speed": 60.0,
            }
        )
        # steady repeats of the same sample densify the day without changing the trend
        for j in range(1, count_per_step):
            rows.append(
                {
                    "timestamp": start + pd.Timedelta(hours=2 * i, minutes=j),
                    "fuel_level": level,
                    "odometer": odometer,
                    "speed": 60.0,
                }
            )
    return rows


def test_example_fuel_day() -> None:
    bucket = _summarize(Domain.FUEL, _example_fuel_rows())

    summary = bucket.summary
    assert summary.refueled_pct == pytest.approx(45.0)
    assert summary.consumed_pct == pytest.approx(65.0)
    assert summary.consumed_l == pytest.approx(39.0)
    assert summary.refueled_l == pytest.approx(27.0)
    assert summary.distance_km == pytest.approx(120.0)
    assert summary.efficiency_km_per_l == pytest.approx(120.0 / 39.0)
    assert summary.refuel_count == 1
    assert summary.level_status == "Good"
    assert bucket.confidence in (ConfidenceLevel.MEDIUM, ConfidenceLevel.HIGH)


def test_example_fuel_day_dense_sampling_is_not_less_confident() -> None:
    sparse = _summarize(Domain.FUEL, _example_fuel_rows())
    dense = _summarize(Domain.FUEL, _example_fuel_rows(count_per_step=6))

    assert dense.summary.refueled_pct == pytest.approx(45.0)
    assert dense.summary.consumed_pct == pytest.approx(65.0)
    assert dense.confidence_score >= sparse.confidence_score


def test_tank_capacity_drives_volume_conversion() -> None:
    config = AnalyticsConfig.from_mapping({"fuel": {"tank_capacity_l": 100}})

    bucket = _summarize(Domain.FUEL, _example_fuel_rows(), config)

    assert bucket.summary.consumed_l == pytest.approx(65.0)


def test_fuel_summary_reports_trip_mileage_and_last_refuel() -> None:
    start = pd.Timestamp("2024-03-05T06:00:00Z")
    samples = [
        (0, 1, 0.0, 80.0),
        (60, 1, 50_000.0, 75.0),
        (120, 0, 100_000.0, 70.0),  # 100 km on 6 L
        (180, 0, 100_000.0, 70.0),
        (240, 1, 100_000.0, 70.0),
        (300, 0, 100_050.0, 69.9),  # 50 m, too short to rate
        (360, 1, 100_050.0, 69.9),
        (420, 0, 180_050.0, 59.9),  # 80 km on 6 L
        (450, 0, 180_050.0, 59.9),
        (480, 0, 180_050.0, 95.0),
    ]
    rows = [
        {
            "timestamp": start + pd.Timedelta(minutes=minutes),
            "ignition": ignition,
            "odometer": odometer,
            "fuel_level": level,
        }
        for minutes, ignition, odometer, level in samples
    ]

    summary = _summarize(Domain.FUEL, rows).summary

    assert summary.average_trip_mileage_km_per_l == pytest.approx((100.0 / 6 + 80.0 / 6) / 2)
    assert summary.last_trip_mileage_km_per_l == pytest.approx(80.0 / 6)
    assert summary.last_refuel_pct == pytest.approx(35.1)
    assert summary.last_refuel_at == start + pd.Timedelta(minutes=480)


def test_fuel_summary_without_trips_or_refuels() -> None:
    summary = _summarize(Domain.FUEL, _example_fuel_rows()[:2]).summary

    assert summary.average_trip_mileage_km_per_l == 0.0
    assert summary.last_trip_mileage_km_per_l == 0.0
    assert summary.last_refuel_at is None
    assert summary.last_refuel_pct is None


def test_driving_summary_counts_events_and_moving_time() -> None:
    rows = [
        {"timestamp": "2024-01-01T08:00:00Z", "speed": 0.0, "rpm": 800.0},
        {"timestamp": "2024-01-01T08:00:02Z", "speed": 12.0, "rpm": 1500.0},
        {"timestamp": "2024-01-01T08:01:00Z", "speed": 90.0, "rpm": 3000.0},
        {"timestamp": "2024-01-01T08:02:00Z", "speed": 40.0, "rpm": 2000.0},
    ]

    summary = _summarize(Domain.DRIVING, rows).summary

    assert summary.rapid_accel_count == 1
    assert summary.rapid_decel_count == 0
    assert summary.speeding_count == 1
    assert summary.driving_time_s == pytest.approx(118.0)
    assert summary.max_speed_kph == pytest.approx(90.0)
    assert summary.average_speed_kph == pytest.approx((12.0 + 90.0 + 40.0) / 3)
    assert summary.average_rpm == pytest.approx((1500.0 + 3000.0 + 2000.0) / 3)
    assert summary.last_speed_kph == pytest.approx(40.0)
    assert summary.is_moving is True


def test_battery_summary() -> None:
    rows = [
        {"timestamp": "2024-01-01T08:00:00Z", "voltage": 11.8, "current": -1.0, "temperature": 20.0},
        {"timestamp": "2024-01-01T09:00:00Z", "voltage": 12.5, "current": 0.0},
        {"timestamp": "2024-01-01T10:00:00Z", "voltage": 13.6, "current": 2.0, "temperature": 55.0},
    ]

    summary = _summarize(Domain.BATTERY, rows).summary

    assert summary.start_voltage_v == pytest.approx(11.8)
    assert summary.end_voltage_v == pytest.approx(13.6)
    assert summary.average_voltage_v == pytest.approx((11.8 + 12.5 + 13.6) / 3)
    assert summary.low_voltage_count == 1
    assert summary.is_charging is True
    assert summary.current_status == "charging"
    assert summary.state_of_health_pct == 95.0
    assert summary.health == "Excellent"
    assert summary.temperature_c == pytest.approx(55.0)
    assert summary.temperature_status == "High Temperature"
    assert summary.estimated_life_h == 0.0


def test_battery_lookup_tables() -> None:
    assert state_of_health(12.7) == 75.0
    assert state_of_health(11.0) == 30.0
    assert battery_health(12.4) == "Fair"
    assert battery_health(12.3) == "Poor"


def test_engine_summary() -> None:
    rows = [
        {"timestamp": "2024-01-01T08:00:00Z", "rpm": 0.0, "ignition": 0, "coolant_temperature": 20.0},
        {"timestamp": "2024-01-01T08:10:00Z", "rpm": 900.0, "ignition": 1, "coolant_temperature": 90.0},
        {"timestamp": "2024-01-01T08:20:00Z", "rpm": 2100.0, "ignition": 1, "coolant_temperature": 110.0, "dtc_count": 2},
        {"timestamp": "2024-01-01T08:30:00Z", "rpm": 0.0, "ignition": 0, "dtc_count": 1},
    ]

    summary = _summarize(Domain.ENGINE, rows).summary

    assert summary.average_rpm == pytest.approx(1500.0)
    assert summary.max_rpm == pytest.approx(2100.0)
    assert summary.engine_on_time_s == pytest.approx(1200.0)
    assert summary.overheat_count == 1
    assert summary.max_coolant_temperature_c == pytest.approx(110.0)
    assert summary.active_fault_count == 1
    assert summary.max_fault_count == 2
    assert summary.oil_status == "CHECK_REQUIRED"
    assert summary.engine_status == "OFF"


def test_tire_summary_counts_trips() -> None:
    rows = [
        {"timestamp": "2024-01-01T08:00:00Z", "tire_pressure": 32.0, "ignition": 0},
        {"timestamp": "2024-01-01T08:10:00Z", "tire_pressure": 31.0, "ignition": 1, "speed": 40.0},
        {"timestamp": "2024-01-01T09:10:00Z", "tire_pressure": 29.0, "ignition": 0, "speed": 0.0},
        {"timestamp": "2024-01-01T10:00:00Z", "tire_pressure": 24.0, "ignition": 1},
    ]

    summary = _summarize(Domain.TIRE, rows).summary

    assert summary.trip_count == 2
    assert summary.main_pressure_psi == pytest.approx(24.0)
    assert summary.pressure_drop_psi == pytest.approx(8.0)
    assert summary.low_pressure_count == 1
    assert summary.status == "LOW"
    assert summary.distance_km == pytest.approx(20.0 / 6 + 20.0)


def test_status_lookup_tables() -> None:
    thresholds = TireThresholds()
    assert tire_status(0.0, thresholds) == "NO_DATA"
    assert tire_status(28.0, thresholds) == "WARNING"
    assert tire_status(33.0, thresholds) == "NORMAL"
    assert fuel_level_status(80.0) == "Full"
    assert fuel_level_status(12.0) == "Low"
    assert fuel_level_status(5.0) == "Critical"
