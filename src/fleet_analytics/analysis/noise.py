"""Single-pass jitter suppression for fuel level readings."""

from __future__ import annotations

import numpy as np
import pandas as pd


def jitter_mask(levels: pd.Series, jitter_threshold_pct: float = 5.0) -> pd.Series:
    """Return a boolean mask of readings to keep.

    An interior sample ``i`` is dropped when skipping it gives a smoother
    trend (``|f[i+1] - f[i-1]| < max(|f[i] - f[i-1]|, |f[i+1] - f[i]|)``) and
    the jump into it is smaller than ``jitter_threshold_pct`` points. Each
    sample is judged against its original neighbours, and the first and last
    samples are always kept.
    """

    values = pd.to_numeric(levels, errors="coerce")
    prev = values.shift(1)
    nxt = values.shift(-1)

    prev_diff = (values - prev).abs()
    next_diff = (nxt - values).abs()
    direct_diff = (nxt - prev).abs()

    # NaN comparisons are False, which keeps both ends of the series.
    drop = (direct_diff < np.fmax(prev_diff, next_diff)) & (prev_diff < jitter_threshold_pct)
    return ~drop


def filter_fuel_jitter(
    readings: pd.DataFrame,
    *,
    column: str = "fuel_level",
    jitter_threshold_pct: float = 5.0,
) -> pd.DataFrame:
    """Drop single-sample fuel gauge bounce from time ordered ``readings``."""

    if len(readings) < 3:
        return readings
    keep = jitter_mask(readings[column], jitter_threshold_pct)
    return readings.loc[keep]


__all__ = ["filter_fuel_jitter", "jitter_mask"]
