"""UTC calendar bucket labels."""

from __future__ import annotations

from enum import Enum

import pandas as pd


class Granularity(str, Enum):
    """Calendar period used to bucket readings."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def label_series(ts: pd.Series, granularity: Granularity | str) -> pd.Series:
    """Map UTC timestamps to bucket labels.

    Daily labels are ``YYYY-MM-DD`` and monthly labels ``YYYY-MM``. Weekly
    labels use the ISO-8601 week-year (``GGGG-Www``) so that the first week of
    January sorts after the last week of the previous December.
    """

    granularity = Granularity(granularity)
    if ts.empty:
        return pd.Series([], index=ts.index, dtype=object)
    ts = ts.dt.tz_convert("UTC")
    if granularity is Granularity.DAILY:
        return ts.dt.strftime("%Y-%m-%d")
    if granularity is Granularity.MONTHLY:
        return ts.dt.strftime("%Y-%m")
    iso = ts.dt.isocalendar()
    return iso["year"].astype(str) + "-W" + iso["week"].astype(str).str.zfill(2)


def bucket_labels(
    start: pd.Timestamp, end: pd.Timestamp, granularity: Granularity | str
) -> list[str]:
    """Return every bucket label touched by ``[start, end]`` in ascending order."""

    days = pd.date_range(start.tz_convert("UTC").floor("D"), end.tz_convert("UTC").floor("D"), freq="D")
    labels = label_series(pd.Series(days), granularity)
    return list(dict.fromkeys(labels.tolist()))


__all__ = ["Granularity", "bucket_labels", "label_series"]
