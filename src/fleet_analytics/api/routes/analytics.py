"""Read-only endpoints serving bucketed telemetry analytics."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ...analysis.engine import AnalyticsEngine
from ...config import AnalyticsConfig
from ...reporting.schemas import (
    Bucket,
    CombinedReport,
    Domain,
    DomainReport,
    DrivingEventsReport,
    FuelEventsReport,
)
from ...utils.calendar import Granularity

router = APIRouter(prefix="/api", tags=["analytics"])


def get_engine(request: Request) -> AnalyticsEngine:
    return request.app.state.engine


class ThresholdOverrides:
    """Optional per-request threshold query parameters."""

    def __init__(
        self,
        speed_limit: Optional[float] = Query(None, description="Speeding threshold, km/h"),
        accel_threshold: Optional[float] = Query(None, description="Rapid acceleration, km/h"),
        decel_threshold: Optional[float] = Query(None, description="Rapid deceleration, km/h"),
        tank_capacity: Optional[float] = Query(None, description="Fuel tank capacity, litres"),
    ) -> None:
        self.speed_limit = speed_limit
        self.accel_threshold = accel_threshold
        self.decel_threshold = decel_threshold
        self.tank_capacity = tank_capacity

    def apply(self, config: AnalyticsConfig) -> AnalyticsConfig:
        return config.with_overrides(
            {
                "driving": {
                    "speed_limit_kph": self.speed_limit,
                    "rapid_accel_kph": self.accel_threshold,
                    "rapid_decel_kph": self.decel_threshold,
                },
                "fuel": {"tank_capacity_l": self.tank_capacity},
            }
        )


@router.get("/analytics/{device_id}/combined", response_model=CombinedReport)
async def get_combined_report(
    device_id: str,
    start_date: str = Query(..., description="First day of the range (UTC)"),
    end_date: str = Query(..., description="Last day of the range (UTC)"),
    granularity: Optional[Granularity] = Query(None, alias="type"),
    overrides: ThresholdOverrides = Depends(),
    engine: AnalyticsEngine = Depends(get_engine),
) -> CombinedReport:
    """Return every domain bucketed per period, joined on the period label."""

    return await engine.combined_report(
        device_id,
        start_date,
        end_date,
        granularity=granularity,
        config=overrides.apply(engine.config),
    )


@router.get("/analytics/{device_id}/driving/events", response_model=DrivingEventsReport)
async def get_driving_events(
    device_id: str,
    start_date: str = Query(...),
    end_date: str = Query(...),
    overrides: ThresholdOverrides = Depends(),
    engine: AnalyticsEngine = Depends(get_engine),
) -> DrivingEventsReport:
    """Return each speeding and harsh speed change event in the range."""

    return await engine.driving_events(
        device_id, start_date, end_date, config=overrides.apply(engine.config)
    )


@router.get("/analytics/{device_id}/{domain}", response_model=DomainReport)
async def get_domain_report(
    device_id: str,
    domain: Domain,
    start_date: str = Query(...),
    end_date: str = Query(...),
    granularity: Optional[Granularity] = Query(None, alias="type"),
    overrides: ThresholdOverrides = Depends(),
    engine: AnalyticsEngine = Depends(get_engine),
) -> DomainReport:
    return await engine.domain_report(
        device_id,
        domain,
        start_date,
        end_date,
        granularity=granularity,
        config=overrides.apply(engine.config),
    )


@router.get("/analytics/{device_id}/{domain}/summary", response_model=Bucket)
async def get_range_summary(
    device_id: str,
    domain: Domain,
    start_date: str = Query(...),
    end_date: str = Query(...),
    overrides: ThresholdOverrides = Depends(),
    engine: AnalyticsEngine = Depends(get_engine),
) -> Bucket:
    """Return one bucket covering the whole range."""

    return await engine.range_summary(
        device_id, domain, start_date, end_date, config=overrides.apply(engine.config)
    )


@router.get("/analytics/{device_id}/{domain}/current", response_model=Bucket)
async def get_current_status(
    device_id: str,
    domain: Domain,
    overrides: ThresholdOverrides = Depends(),
    engine: AnalyticsEngine = Depends(get_engine),
) -> Bucket:
    """Return a snapshot built from the latest reading of the domain."""

    return await engine.current_status(device_id, domain, config=overrides.apply(engine.config))


@router.get("/fuel/{device_id}/events", response_model=FuelEventsReport)
async def get_fuel_events(
    device_id: str,
    start_date: str = Query(...),
    end_date: str = Query(...),
    overrides: ThresholdOverrides = Depends(),
    engine: AnalyticsEngine = Depends(get_engine),
) -> FuelEventsReport:
    return await engine.fuel_events(
        device_id, start_date, end_date, config=overrides.apply(engine.config)
    )


__all__ = ["get_engine", "router"]
