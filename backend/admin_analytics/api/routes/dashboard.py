from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from admin_analytics.api.deps import DashboardService
from admin_analytics.schemas.dashboard import (
    ActivityItem,
    AnalyticsSnapshot,
    DashboardSnapshot,
    GeoDataPoint,
    TopProduct,
    TrendPoint,
)

router = APIRouter(prefix="/admin", tags=["dashboard"])

PeriodParam = Annotated[str, Query(max_length=16)]


@router.get("/dashboard", response_model=DashboardSnapshot)
async def get_dashboard(service: DashboardService) -> DashboardSnapshot:
    return await service.get_dashboard_snapshot()


@router.get("/analytics", response_model=AnalyticsSnapshot)
async def get_analytics(
    service: DashboardService, period: PeriodParam = "month"
) -> AnalyticsSnapshot:
    return await service.get_analytics_snapshot(period)


@router.get("/analytics/trend", response_model=list[TrendPoint])
async def get_revenue_trend(
    service: DashboardService, period: PeriodParam = "month"
) -> list[TrendPoint]:
    return await service.get_revenue_trend(period)


@router.get("/analytics/top-products", response_model=list[TopProduct])
async def get_top_products(
    service: DashboardService,
    period: PeriodParam = "month",
    limit: int | None = Query(default=None, ge=1, le=100),
) -> list[TopProduct]:
    return await service.get_top_products(period, limit)


@router.get("/analytics/geo", response_model=list[GeoDataPoint])
async def get_geographic_data(
    service: DashboardService, period: PeriodParam = "month"
) -> list[GeoDataPoint]:
    return await service.get_geographic_data(period)


@router.get("/activity", response_model=list[ActivityItem])
async def get_recent_activity(
    service: DashboardService,
    limit: int | None = Query(default=None, ge=1, le=50),
) -> list[ActivityItem]:
    return await service.get_recent_activity_feed(limit)


@router.post(
    "/currency/invalidate",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def invalidate_currency(service: DashboardService) -> Response:
    service.currency.invalidate()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
