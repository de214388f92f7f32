"""Calendar bucketing of one domain's readings and deltas."""

from __future__ import annotations

import logging
from typing import Sequence

import pandas as pd

from ..config import AnalyticsConfig
from ..quality.confidence import ConfidenceInputs, score_confidence
from ..reporting.schemas import Bucket
from ..utils.calendar import Granularity, label_series
from .deltas import TIMESTAMP_COL, ReadingBatch, compute_deltas
from .domains import DomainAnalyzer

_logger = logging.getLogger(__name__)

TOTAL_LABEL = "total"


class BucketAggregator:
    """Reduce a validated reading batch into one :class:`Bucket` per label.

    Deltas are computed once over the whole batch and assigned to the bucket
    of their TO reading, so per-bucket distances add up to the distance of
    the whole range. Every requested label is present in the output; labels
    without readings get a zeroed summary with ``has_data`` false.
    """

    def __init__(
        self,
        analyzer: DomainAnalyzer,
        config: AnalyticsConfig,
        granularity: Granularity | str | None = None,
    ) -> None:
        self.analyzer = analyzer
        self.config = config
        self.granularity = Granularity(granularity or config.granularity)

    def _empty_bucket(self, device_id: str, label: str, skipped: int) -> Bucket:
        result = score_confidence(
            ConfidenceInputs(reading_count=0, skipped_count=skipped), self.config.confidence
        )
        return Bucket(
            label=label,
            device_id=device_id,
            domain=self.analyzer.domain,
            summary=self.analyzer.empty(),
            confidence=result.level,
            confidence_score=result.score,
            confidence_factors=result.factors,
            skipped_count=skipped,
            has_data=False,
        )

    def _bucket(
        self,
        device_id: str,
        label: str,
        readings: pd.DataFrame,
        deltas: pd.DataFrame,
        skipped: int,
    ) -> Bucket:
        if readings.empty:
            return self._empty_bucket(device_id, label, skipped)

        summary, inputs = self.analyzer.summarize(readings, deltas, self.config)
        inputs.skipped_count = skipped
        result = score_confidence(inputs, self.config.confidence)
        return Bucket(
            label=label,
            device_id=device_id,
            domain=self.analyzer.domain,
            summary=summary,
            confidence=result.level,
            confidence_score=result.score,
            confidence_factors=result.factors,
            reading_count=len(readings),
            skipped_count=skipped,
            has_data=True,
        )

    def aggregate(self, device_id: str, batch: ReadingBatch, labels: Sequence[str]) -> dict[str, Bucket]:
        """Return buckets keyed by label, in the order of ``labels``."""

        frame = batch.frame.reset_index(drop=True)
        reading_labels = label_series(frame[TIMESTAMP_COL], self.granularity)
        deltas = compute_deltas(frame)
        delta_labels = reading_labels.loc[deltas.index]
        skipped_labels = label_series(batch.skipped.dropna(), self.granularity)
        skipped_counts = skipped_labels.value_counts()

        outside = int((~reading_labels.isin(labels)).sum())
        if outside:
            _logger.debug("Ignoring %d reading(s) outside the requested buckets", outside)

        buckets: dict[str, Bucket] = {}
        for label in labels:
            buckets[label] = self._bucket(
                device_id,
                label,
                frame.loc[reading_labels == label],
                deltas.loc[delta_labels == label],
                int(skipped_counts.get(label, 0)),
            )
        return buckets

    def summarize_range(self, device_id: str, batch: ReadingBatch, label: str = TOTAL_LABEL) -> Bucket:
        """Reduce the whole batch into a single bucket."""

        frame = batch.frame.reset_index(drop=True)
        return self._bucket(device_id, label, frame, compute_deltas(frame), batch.skipped_count)


__all__ = ["BucketAggregator", "TOTAL_LABEL"]
