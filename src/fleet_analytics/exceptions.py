"""Exception hierarchy for the telemetry analytics engine."""

from __future__ import annotations

from typing import Any


class AnalyticsError(Exception):
    """Base exception for analytics failures.

    Every user-visible failure carries the device, range and domain it was
    raised for so that a report can be reproduced.
    """

    def __init__(
        self,
        message: str,
        *,
        device_id: str | None = None,
        start: Any = None,
        end: Any = None,
        domain: str | None = None,
    ) -> None:
        self.device_id = device_id
        self.start = start
        self.end = end
        self.domain = domain
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        """Return the reproduction context as a JSON friendly mapping."""

        return {
            "device_id": self.device_id,
            "start": None if self.start is None else str(self.start),
            "end": None if self.end is None else str(self.end),
            "domain": self.domain,
        }

    def __str__(self) -> str:
        message = super().__str__()
        parts = [f"{key}={value}" for key, value in self.context().items() if value is not None]
        if not parts:
            return message
        return f"{message} ({', '.join(parts)})"


class InvalidRangeError(AnalyticsError):
    """Start after end, or a date that cannot be parsed."""


class UnknownDeviceError(AnalyticsError):
    """No readings have ever been stored for the device."""


class ConfigurationError(AnalyticsError):
    """Invalid threshold or unknown configuration key."""


class UpstreamUnavailableError(AnalyticsError):
    """The reading source failed; the engine does not retry."""


__all__ = [
    "AnalyticsError",
    "ConfigurationError",
    "InvalidRangeError",
    "UnknownDeviceError",
    "UpstreamUnavailableError",
]
