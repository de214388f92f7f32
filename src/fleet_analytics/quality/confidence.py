"""Heuristic data quality score attached to every bucket.

The score is a best-effort signal, not a statistical confidence interval. It
rewards dense sampling and penalises combinations of signals that disagree
with each other (distance without consumption, many refuels in one day, a
large share of malformed samples).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..config import ConfidenceRules


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(slots=True)
class ConfidenceInputs:
    """Signals a domain reports for one bucket.

    ``None`` means the check does not apply to the domain and is counted as
    consistent.
    """

    reading_count: int
    distance_km: Optional[float] = None
    consumption_pct: Optional[float] = None
    moving_time_s: Optional[float] = None
    refuel_count: Optional[int] = None  # highest refuel count of a single day
    skipped_count: int = 0


@dataclass(slots=True)
class ConfidenceResult:
    score: int
    level: ConfidenceLevel
    factors: List[str] = field(default_factory=list)


def level_for_score(score: int) -> ConfidenceLevel:
    if score >= 5:
        return ConfidenceLevel.HIGH
    if score >= 3:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _density(inputs: ConfidenceInputs, rules: ConfidenceRules) -> tuple[int, str]:
    dense = rules.min_readings * rules.dense_multiplier
    if inputs.reading_count >= dense:
        return 3, f"dense sampling ({inputs.reading_count} >= {dense} readings)"
    if inputs.reading_count >= rules.min_readings:
        return 2, f"adequate sampling ({inputs.reading_count} readings)"
    return 1, f"sparse sampling ({inputs.reading_count} readings)"


def _cross_check(inputs: ConfidenceInputs, rules: ConfidenceRules) -> tuple[int, str]:
    distance = inputs.distance_km
    if distance is not None and inputs.consumption_pct is not None:
        consumption = inputs.consumption_pct
        if distance == 0 and consumption > rules.suspicious_consumption_pct:
            return -1, "fuel consumed without distance"
        if distance > 0 and consumption == 0:
            return -1, "distance covered without fuel consumption"
        return 1, "distance and consumption agree"
    if distance is not None and inputs.moving_time_s is not None:
        if (distance > 0) != (inputs.moving_time_s > 0):
            return -1, "distance and moving time disagree"
        return 1, "distance and moving time agree"
    return 1, "no cross-signal check applicable"


def _refuel_pattern(inputs: ConfidenceInputs, rules: ConfidenceRules) -> tuple[int, str | None]:
    if inputs.refuel_count is None:
        return 1, "no refuel pattern check applicable"
    if inputs.refuel_count > rules.max_daily_refuels:
        return -1, f"implausible refuel count ({inputs.refuel_count} in one day)"
    if inputs.refuel_count == 0 and not inputs.consumption_pct:
        return 1, "steady fuel level"
    return 0, None


def score_confidence(inputs: ConfidenceInputs, rules: ConfidenceRules | None = None) -> ConfidenceResult:
    """Score one bucket. Empty buckets are always ``low``."""

    rules = rules or ConfidenceRules()
    if inputs.reading_count <= 0:
        return ConfidenceResult(score=0, level=ConfidenceLevel.LOW, factors=["no readings"])

    score = 0
    factors: list[str] = []
    for check in (_density, _cross_check, _refuel_pattern):
        points, factor = check(inputs, rules)
        score += points
        if factor:
            factors.append(factor)

    total = inputs.reading_count + inputs.skipped_count
    if inputs.skipped_count and inputs.skipped_count / total > rules.max_skipped_fraction:
        score -= 1
        factors.append(f"{inputs.skipped_count} of {total} readings malformed")

    return ConfidenceResult(score=score, level=level_for_score(score), factors=factors)


__all__ = [
    "ConfidenceInputs",
    "ConfidenceLevel",
    "ConfidenceResult",
    "level_for_score",
    "score_confidence",
]
