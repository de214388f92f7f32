"""Bucketed analytics over vehicle telemetry readings."""

from .analysis.engine import AnalyticsEngine
from .config import AnalyticsConfig, load_config
from .data import InMemoryReadingSource, Reading, ReadingSource, load_readings_csv
from .exceptions import (
    AnalyticsError,
    ConfigurationError,
    InvalidRangeError,
    UnknownDeviceError,
    UpstreamUnavailableError,
)
from .reporting import Domain
from .utils import Granularity

__all__ = [
    "AnalyticsConfig",
    "AnalyticsEngine",
    "AnalyticsError",
    "ConfigurationError",
    "Domain",
    "Granularity",
    "InMemoryReadingSource",
    "InvalidRangeError",
    "Reading",
    "ReadingSource",
    "UnknownDeviceError",
    "UpstreamUnavailableError",
    "load_config",
    "load_readings_csv",
]
