from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

import numpy as np
import pandas as pd

from ..exceptions import InvalidRangeError

_END_OF_DAY = pd.Timedelta(days=1) - pd.Timedelta(milliseconds=1)


def _as_utc(value: pd.Timestamp) -> pd.Timestamp:
    if value.tzinfo is None:
        return value.tz_localize("UTC")
    return value.tz_convert("UTC")


def parse_instant(value: object) -> pd.Timestamp:
    """Parse a single instant into a tz-aware UTC timestamp.

    Numbers are read as epoch milliseconds (the unit telemetry devices
    report), and so are digit-only strings longer than eight characters, as
    they arrive from query parameters. Eight-digit strings stay compact
    ``YYYYMMDD`` dates. Naive values are assumed to be UTC. Raises
    ``ValueError`` for anything that cannot be parsed.
    """

    if value is None or (isinstance(value, (float, np.floating)) and pd.isna(value)):
        raise ValueError("timestamp is missing")
    if isinstance(value, bool):
        raise ValueError(f"unsupported timestamp {value!r}")
    if isinstance(value, str) and value.strip().isdigit() and len(value.strip()) > 8:
        value = int(value.strip())
    if isinstance(value, (int, float, np.integer, np.floating)):
        return pd.Timestamp(int(value), unit="ms", tz="UTC")
    if isinstance(value, (pd.Timestamp, datetime, date, str, np.datetime64)):
        parsed = pd.Timestamp(value)
        if pd.isna(parsed):
            raise ValueError(f"unparsable timestamp {value!r}")
        return _as_utc(parsed)
    raise ValueError(f"unsupported timestamp {value!r}")


def to_utc_series(ts: pd.Series | Iterable[object]) -> pd.Series:
    """
    Robustly convert a pandas Series of timestamps to tz-aware UTC datetimes.
    Accepts:
      - strings with or without trailing 'Z'
      - tz-aware datetimes (converted to UTC)
      - naive datetimes (assumed UTC)
      - integers/floats as epoch milliseconds
    Any unparsable element becomes NaT.
    """

    if not isinstance(ts, pd.Series):
        ts = pd.Series(list(ts), dtype=object)

    if isinstance(ts.dtype, pd.DatetimeTZDtype):
        return ts.dt.tz_convert("UTC")
    if pd.api.types.is_datetime64_dtype(ts):
        return ts.dt.tz_localize("UTC")

    def _one(x: object) -> pd.Timestamp:
        try:
            return parse_instant(x)
        except (ValueError, TypeError, OverflowError):
            return pd.NaT

    return pd.to_datetime(ts.map(_one), utc=True)


def resolve_range(
    start: object,
    end: object,
    *,
    device_id: str | None = None,
    domain: str | None = None,
) -> tuple[pd.Timestamp, pd.Timestamp]:
    """Normalise a requested range to whole UTC days.

    ``start`` is moved to 00:00:00.000 of its day and ``end`` to
    23:59:59.999 of its day.
    """

    try:
        start_ts = parse_instant(start)
        end_ts = parse_instant(end)
    except (ValueError, TypeError, OverflowError) as exc:
        raise InvalidRangeError(
            f"Invalid date: {exc}", device_id=device_id, start=start, end=end, domain=domain
        ) from exc

    if start_ts > end_ts:
        raise InvalidRangeError(
            "Start date cannot be after end date",
            device_id=device_id,
            start=start_ts,
            end=end_ts,
            domain=domain,
        )

    return start_ts.floor("D"), end_ts.floor("D") + _END_OF_DAY


__all__ = ["parse_instant", "resolve_range", "to_utc_series"]
