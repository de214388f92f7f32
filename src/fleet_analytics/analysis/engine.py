"""Orchestration of the per-domain pipelines over a reading source."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

import pandas as pd

from ..config import AnalyticsConfig, load_default_config
from ..data.source import RawReading, ReadingSource
from ..exceptions import AnalyticsError, UnknownDeviceError, UpstreamUnavailableError
from ..reporting.combined import assemble_combined_report
from ..reporting.schemas import (
    Bucket,
    CombinedReport,
    Domain,
    DomainReport,
    DrivingEventsReport,
    FuelEventsReport,
)
from ..utils.calendar import Granularity, bucket_labels
from ..utils.time import resolve_range
from .buckets import BucketAggregator
from .deltas import ReadingBatch, compute_deltas, frame_from_readings
from .domains import DomainAnalyzer, get_analyzer
from .events import EventType, classify_motion, fuel_events, motion_events, pct_to_litres

_logger = logging.getLogger(__name__)

CURRENT_LABEL = "current"


def compute_domain_buckets(
    device_id: str,
    analyzer: DomainAnalyzer,
    batch: ReadingBatch,
    start: pd.Timestamp,
    end: pd.Timestamp,
    config: AnalyticsConfig,
    granularity: Granularity | str | None = None,
) -> dict[str, Bucket]:
    """Bucket one domain's readings over ``[start, end]``, gap-filled."""

    aggregator = BucketAggregator(analyzer, config, granularity)
    labels = bucket_labels(start, end, aggregator.granularity)
    return aggregator.aggregate(device_id, batch, labels)


class AnalyticsEngine:
    """Compute bucketed analytics for one device at a time.

    The engine holds no per-request state: every call fetches readings from
    ``source`` and derives its result from scratch, so repeated calls over
    unchanged data return identical reports. Source failures surface as
    :class:`UpstreamUnavailableError` and are never retried here.
    """

    def __init__(self, source: ReadingSource, config: AnalyticsConfig | None = None) -> None:
        self.source = source
        self.config = config or load_default_config()

    async def _call_source(
        self, operation: str, call: Callable[[], Awaitable[Any]], **context: Any
    ) -> Any:
        try:
            return await call()
        except AnalyticsError:
            raise
        except Exception as exc:
            raise UpstreamUnavailableError(
                f"Reading source failed during {operation}: {exc}", **context
            ) from exc

    async def _ensure_device(
        self, device_id: str, *, start: Any = None, end: Any = None, domain: str | None = None
    ) -> None:
        exists = await self._call_source(
            "device lookup",
            lambda: self.source.device_exists(device_id),
            device_id=device_id,
            start=start,
            end=end,
            domain=domain,
        )
        if not exists:
            raise UnknownDeviceError(
                "No readings exist for device", device_id=device_id, start=start, end=end, domain=domain
            )

    async def _fetch(
        self,
        device_id: str,
        analyzer: DomainAnalyzer,
        start: pd.Timestamp,
        end: pd.Timestamp,
        *,
        check_device: bool = True,
    ) -> ReadingBatch:
        domain = analyzer.domain.value
        records = await self._call_source(
            "find",
            lambda: self.source.find(device_id, start, end, analyzer.required_fields),
            device_id=device_id,
            start=start,
            end=end,
            domain=domain,
        )
        batch = frame_from_readings(records, analyzer.required_fields, device_id=device_id)
        if batch.skipped_count:
            _logger.debug(
                "Skipped %d malformed %s reading(s) for device %s",
                batch.skipped_count,
                domain,
                device_id,
            )
        if check_device and batch.empty and not batch.skipped_count:
            await self._ensure_device(device_id, start=start, end=end, domain=domain)
        return batch

    async def _domain_buckets(
        self,
        device_id: str,
        domain: Domain,
        start: pd.Timestamp,
        end: pd.Timestamp,
        config: AnalyticsConfig,
        granularity: Granularity | str | None,
        *,
        check_device: bool = True,
    ) -> dict[str, Bucket]:
        analyzer = get_analyzer(domain)
        batch = await self._fetch(device_id, analyzer, start, end, check_device=check_device)
        return compute_domain_buckets(device_id, analyzer, batch, start, end, config, granularity)

    async def domain_report(
        self,
        device_id: str,
        domain: Domain | str,
        start: Any,
        end: Any,
        *,
        granularity: Granularity | str | None = None,
        config: AnalyticsConfig | None = None,
    ) -> DomainReport:
        """Gap-filled buckets of one domain over whole UTC days ``start..end``."""

        domain = Domain(domain)
        config = config or self.config
        granularity = Granularity(granularity or config.granularity)
        start_ts, end_ts = resolve_range(start, end, device_id=device_id, domain=domain.value)

        buckets = await self._domain_buckets(device_id, domain, start_ts, end_ts, config, granularity)
        return DomainReport(
            device_id=device_id,
            domain=domain,
            start=start_ts.to_pydatetime(),
            end=end_ts.to_pydatetime(),
            granularity=granularity,
            buckets=list(buckets.values()),
        )

    async def combined_report(
        self,
        device_id: str,
        start: Any,
        end: Any,
        *,
        granularity: Granularity | str | None = None,
        config: AnalyticsConfig | None = None,
    ) -> CombinedReport:
        """Run every domain concurrently and join the buckets on label.

        A domain that fails is reported as ``null`` and listed in
        ``failed_domains``. When every domain fails because the source is
        unavailable the first upstream error is raised instead.
        """

        config = config or self.config
        granularity = Granularity(granularity or config.granularity)
        start_ts, end_ts = resolve_range(start, end, device_id=device_id)
        await self._ensure_device(device_id, start=start_ts, end=end_ts)

        domains = list(Domain)
        results = await asyncio.gather(
            *(
                self._domain_buckets(
                    device_id, domain, start_ts, end_ts, config, granularity, check_device=False
                )
                for domain in domains
            ),
            return_exceptions=True,
        )

        per_domain: dict[Domain, Optional[Mapping[str, Bucket]]] = {}
        failures: list[Exception] = []
        for domain, result in zip(domains, results):
            if isinstance(result, BaseException):
                # Cancellation and interpreter exits are never downgraded to a null domain.
                if not isinstance(result, Exception):
                    raise result
                _logger.warning(
                    "Domain %s failed for device %s: %s", domain.value, device_id, result
                )
                per_domain[domain] = None
                failures.append(result)
            else:
                per_domain[domain] = result

        if len(failures) == len(domains) and all(
            isinstance(exc, UpstreamUnavailableError) for exc in failures
        ):
            raise failures[0]

        return CombinedReport(
            device_id=device_id,
            start=start_ts.to_pydatetime(),
            end=end_ts.to_pydatetime(),
            granularity=granularity,
            rows=assemble_combined_report(per_domain),
            failed_domains=[domain for domain in domains if per_domain[domain] is None],
        )

    async def range_summary(
        self,
        device_id: str,
        domain: Domain | str,
        start: Any,
        end: Any,
        *,
        config: AnalyticsConfig | None = None,
    ) -> Bucket:
        """One bucket labelled ``total`` covering the whole range."""

        domain = Domain(domain)
        config = config or self.config
        start_ts, end_ts = resolve_range(start, end, device_id=device_id, domain=domain.value)
        analyzer = get_analyzer(domain)
        batch = await self._fetch(device_id, analyzer, start_ts, end_ts)
        return BucketAggregator(analyzer, config).summarize_range(device_id, batch)

    async def current_status(
        self,
        device_id: str,
        domain: Domain | str,
        *,
        config: AnalyticsConfig | None = None,
    ) -> Bucket:
        """Summarise the latest reading carrying the domain's fields.

        The snapshot runs through the same pipeline as a period report, so
        it has no deltas and zero distance or elapsed time.
        """

        domain = Domain(domain)
        config = config or self.config
        analyzer = get_analyzer(domain)
        latest: RawReading | None = await self._call_source(
            "latest",
            lambda: self.source.latest(device_id, analyzer.required_fields),
            device_id=device_id,
            domain=domain.value,
        )
        if latest is None:
            await self._ensure_device(device_id, domain=domain.value)
        records = [] if latest is None else [latest]
        batch = frame_from_readings(records, analyzer.required_fields, device_id=device_id)
        return BucketAggregator(analyzer, config).summarize_range(device_id, batch, label=CURRENT_LABEL)

    async def driving_events(
        self,
        device_id: str,
        start: Any,
        end: Any,
        *,
        config: AnalyticsConfig | None = None,
    ) -> DrivingEventsReport:
        """List speeding and rapid acceleration/deceleration events over the range."""

        config = config or self.config
        start_ts, end_ts = resolve_range(start, end, device_id=device_id, domain=Domain.DRIVING.value)
        batch = await self._fetch(device_id, get_analyzer(Domain.DRIVING), start_ts, end_ts)

        deltas = compute_deltas(batch.frame)
        flags = classify_motion(deltas, config.driving)
        return DrivingEventsReport(
            device_id=device_id,
            start=start_ts.to_pydatetime(),
            end=end_ts.to_pydatetime(),
            events=motion_events(deltas, config.driving),
            speeding_count=int(flags["speeding"].sum()),
            speeding_distance_km=float(deltas.loc[flags["speeding"], "distance_delta_km"].sum()),
            rapid_accel_count=int(flags["rapid_accel"].sum()),
            rapid_decel_count=int(flags["rapid_decel"].sum()),
        )

    async def fuel_events(
        self,
        device_id: str,
        start: Any,
        end: Any,
        *,
        config: AnalyticsConfig | None = None,
    ) -> FuelEventsReport:
        """List refuel and daily consumption events with range totals."""

        config = config or self.config
        start_ts, end_ts = resolve_range(start, end, device_id=device_id, domain=Domain.FUEL.value)
        batch = await self._fetch(device_id, get_analyzer(Domain.FUEL), start_ts, end_ts)

        events = fuel_events(batch.frame, config.fuel)
        refueled = sum(e.magnitude for e in events if e.type is EventType.REFUEL)
        consumed = sum(e.magnitude for e in events if e.type is EventType.CONSUMPTION)
        levels = batch.frame["fuel_level"].dropna()
        net = float(levels.iloc[-1] - levels.iloc[0]) if len(levels) else 0.0

        return FuelEventsReport(
            device_id=device_id,
            start=start_ts.to_pydatetime(),
            end=end_ts.to_pydatetime(),
            events=events,
            refuel_count=sum(1 for e in events if e.type is EventType.REFUEL),
            total_refueled_pct=refueled,
            total_consumed_pct=consumed,
            total_refueled_l=pct_to_litres(refueled, config.fuel),
            total_consumed_l=pct_to_litres(consumed, config.fuel),
            net_fuel_change_pct=net,
        )


__all__ = ["AnalyticsEngine", "CURRENT_LABEL", "compute_domain_buckets"]
