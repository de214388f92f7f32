"""Delta computation, noise filtering and event classification.

The bucket aggregator, domain strategies and :class:`AnalyticsEngine` live in
the ``buckets``, ``domains`` and ``engine`` submodules.
"""

from .deltas import ReadingBatch, compute_deltas, frame_from_readings
from .events import (
    Event,
    EventType,
    classify_motion,
    daily_fuel_usage,
    detect_refuels,
    fuel_events,
    motion_events,
    trip_mileage,
)
from .noise import filter_fuel_jitter, jitter_mask

__all__ = [
    "Event",
    "EventType",
    "ReadingBatch",
    "classify_motion",
    "compute_deltas",
    "daily_fuel_usage",
    "detect_refuels",
    "filter_fuel_jitter",
    "frame_from_readings",
    "fuel_events",
    "jitter_mask",
    "motion_events",
    "trip_mileage",
]
