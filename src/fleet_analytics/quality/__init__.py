"""Data quality scoring for analytics buckets."""

from .confidence import (
    ConfidenceInputs,
    ConfidenceLevel,
    ConfidenceResult,
    level_for_score,
    score_confidence,
)

__all__ = [
    "ConfidenceInputs",
    "ConfidenceLevel",
    "ConfidenceResult",
    "level_for_score",
    "score_confidence",
]
