from __future__ import annotations

import pandas as pd
import pytest

from fleet_analytics.analysis.buckets import BucketAggregator
from fleet_analytics.analysis.deltas import frame_from_readings
from fleet_analytics.analysis.domains import get_analyzer
from fleet_analytics.config import AnalyticsConfig
from fleet_analytics.quality.confidence import ConfidenceLevel
from fleet_analytics.reporting.schemas import Domain
from fleet_analytics.utils.calendar import Granularity, bucket_labels, label_series


def _driving_batch(rows: list[dict]):
    return frame_from_readings(
        [{"device_id": "dev-1", **row} for row in rows], required_fields=("speed",)
    )


def test_weekly_labels_sort_across_year_boundary() -> None:
    start = pd.Timestamp("2023-12-25T00:00:00Z")
    end = pd.Timestamp("2024-01-10T00:00:00Z")

    labels = bucket_labels(start, end, Granularity.WEEKLY)

    assert labels == ["2023-W52", "2024-W01", "2024-W02"]
    assert labels == sorted(labels)


def test_iso_week_year_differs_from_calendar_year() -> None:
    ts = pd.Series(pd.to_datetime(["2020-12-31T12:00:00Z", "2021-01-03T12:00:00Z"], utc=True))

    assert label_series(ts, "weekly").tolist() == ["2020-W53", "2020-W53"]
    assert label_series(ts, "monthly").tolist() == ["2020-12", "2021-01"]
    assert label_series(ts, "daily").tolist() == ["2020-12-31", "2021-01-03"]


def test_seven_day_range_with_three_days_of_data_is_gap_filled() -> None:
    rows = []
    for day in ("2024-01-01", "2024-01-03", "2024-01-06"):
        rows.append({"timestamp": f"{day}T08:00:00Z", "speed": 0.0, "odometer": 1000.0})
        rows.append({"timestamp": f"{day}T09:00:00Z", "speed": 40.0, "odometer": 21000.0})
    batch = _driving_batch(rows)
    labels = bucket_labels(
        pd.Timestamp("2024-01-01T00:00:00Z"), pd.Timestamp("2024-01-07T00:00:00Z"), "daily"
    )

    buckets = BucketAggregator(get_analyzer(Domain.DRIVING), AnalyticsConfig()).aggregate(
        "dev-1", batch, labels
    )

    assert list(buckets) == labels
    assert len(buckets) == 7
    empty = [bucket for bucket in buckets.values() if not bucket.has_data]
    assert len(empty) == 4
    for bucket in empty:
        assert bucket.confidence is ConfidenceLevel.LOW
        assert bucket.reading_count == 0
        assert bucket.summary.distance_km == 0.0
    assert buckets["2024-01-01"].summary.distance_km == pytest.approx(20.0)


def test_deltas_crossing_buckets_count_towards_the_later_bucket() -> None:
    batch = _driving_batch(
        [
            {"timestamp": "2024-01-01T23:30:00Z", "speed": 60.0, "odometer": 0.0},
            {"timestamp": "2024-01-02T00:30:00Z", "speed": 60.0, "odometer": 60000.0},
            {"timestamp": "2024-01-02T01:30:00Z", "speed": 60.0, "odometer": 120000.0},
        ]
    )
    aggregator = BucketAggregator(get_analyzer("driving"), AnalyticsConfig())

    buckets = aggregator.aggregate("dev-1", batch, ["2024-01-01", "2024-01-02"])
    total = aggregator.summarize_range("dev-1", batch)

    assert buckets["2024-01-01"].summary.distance_km == 0.0
    assert buckets["2024-01-02"].summary.distance_km == pytest.approx(120.0)
    assert sum(b.summary.distance_km for b in buckets.values()) == pytest.approx(
        total.summary.distance_km
    )
    assert total.label == "total"


def test_skipped_readings_attributed_to_their_bucket() -> None:
    batch = _driving_batch(
        [
            {"timestamp": "2024-01-01T08:00:00Z", "speed": 10.0},
            {"timestamp": "2024-01-02T08:00:00Z", "speed": -1.0},
            {"timestamp": "2024-01-02T09:00:00Z"},
        ]
    )

    buckets = BucketAggregator(get_analyzer("driving"), AnalyticsConfig()).aggregate(
        "dev-1", batch, ["2024-01-01", "2024-01-02"]
    )

    assert buckets["2024-01-01"].skipped_count == 0
    assert buckets["2024-01-02"].skipped_count == 2
    assert buckets["2024-01-02"].has_data is False


def test_monthly_granularity_groups_days() -> None:
    batch = _driving_batch(
        [
            {"timestamp": "2024-01-30T08:00:00Z", "speed": 10.0},
            {"timestamp": "2024-01-31T08:00:00Z", "speed": 20.0},
            {"timestamp": "2024-02-01T08:00:00Z", "speed": 30.0},
        ]
    )
    config = AnalyticsConfig(granularity=Granularity.MONTHLY)
    labels = bucket_labels(
        pd.Timestamp("2024-01-15T00:00:00Z"), pd.Timestamp("2024-03-01T00:00:00Z"), Granularity.MONTHLY
    )

    buckets = BucketAggregator(get_analyzer("driving"), config).aggregate("dev-1", batch, labels)

    assert labels == ["2024-01", "2024-02", "2024-03"]
    assert buckets["2024-01"].reading_count == 2
    assert buckets["2024-02"].reading_count == 1
    assert buckets["2024-03"].has_data is False
