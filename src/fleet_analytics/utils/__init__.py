"""Utility helpers for the application."""

from .calendar import Granularity, bucket_labels, label_series
from .time import parse_instant, resolve_range, to_utc_series

__all__ = [
    "Granularity",
    "bucket_labels",
    "label_series",
    "parse_instant",
    "resolve_range",
    "to_utc_series",
]
