from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, NamedTuple

from admin_analytics.core.config import Settings, get_settings
from admin_analytics.schemas.dashboard import (
    ActivityItem,
    AnalyticsMetric,
    AnalyticsSnapshot,
    DashboardSnapshot,
    GeoDataPoint,
    TopProduct,
    TrendPoint,
)
from admin_analytics.services.activity import GALLERY_FILTER, ActivityFeed
from admin_analytics.services.aggregation import (
    AggregateQuery,
    AggregationKind,
    ResilientAggregator,
)
from admin_analytics.services.comparison import change_percentage, round_to
from admin_analytics.services.currency import CurrencyResolver
from admin_analytics.services.geo import country_name_of, extract_country_code, region_of
from admin_analytics.services.normalize import (
    first_present,
    read_path,
    status_of,
    to_datetime,
    to_number,
)
from admin_analytics.services.periods import DateRange, resolve_period_bounds
from admin_analytics.services.trends import TrendRecord, bucketize, rank_top_products
from admin_analytics.store.base import FieldFilter, RecordStore, where

logger = logging.getLogger(__name__)

METRIC_LABELS = {
    "totalOrders": "admin.analytics.metrics.total_orders",
    "revenue": "admin.analytics.metrics.revenue",
    "averageOrderValue": "admin.analytics.metrics.average_order_value",
    "newCustomers": "admin.analytics.metrics.new_customers",
    "productsUpdated": "admin.analytics.metrics.products_updated",
    "galleryUploads": "admin.analytics.metrics.gallery_uploads",
}

PENDING_FILTER = where("status", "==", "pending")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrdersSummary(NamedTuple):
    total: int
    pending: int
    revenue: float


class OrderTotals(NamedTuple):
    count: int
    revenue: float
    average: float


def _metric(key: str, fmt: str, current: float, previous: float) -> AnalyticsMetric:
    return AnalyticsMetric(
        key=key,
        label_key=METRIC_LABELS[key],
        format=fmt,
        current_value=current,
        previous_value=previous,
        change_percentage=change_percentage(current, previous),
    )


class AdminDashboardService:
    """Builds the admin console read models from the record store.

    Every public coroutine returns a usable value: failures are logged and
    turned into empty results.
    """

    def __init__(
        self,
        store: RecordStore,
        currency: CurrencyResolver,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._currency = currency
        self._settings = settings or get_settings()
        self._clock = clock
        self._aggregator = ResilientAggregator.for_store(store)
        self._activity = ActivityFeed(
            store, per_kind_limit=self._settings.activity_fetch_limit, clock=clock
        )

    @property
    def currency(self) -> CurrencyResolver:
        return self._currency

    async def _orders_summary(self) -> OrdersSummary:
        totals, pending = await asyncio.gather(
            self._aggregator.aggregate(
                AggregateQuery(
                    "orders", kind=AggregationKind.COUNT_SUM, sum_field="total"
                )
            ),
            self._aggregator.count(
                AggregateQuery("orders", extra_filters=(PENDING_FILTER,))
            ),
        )
        return OrdersSummary(
            total=totals.count or 0,
            pending=pending,
            revenue=round_to(totals.total or 0.0, 2),
        )

    async def get_dashboard_snapshot(self) -> DashboardSnapshot:
        try:
            currency_code = await self._currency.resolve()
            (
                total_products,
                orders,
                total_gallery_images,
                total_users,
                pending_reviews,
                recent_activity,
            ) = await asyncio.gather(
                self._aggregator.count(AggregateQuery("products")),
                self._orders_summary(),
                self._aggregator.count(
                    AggregateQuery("media", extra_filters=(GALLERY_FILTER,))
                ),
                self._aggregator.count(AggregateQuery("users")),
                self._aggregator.count(
                    AggregateQuery("productReviews", extra_filters=(PENDING_FILTER,))
                ),
                self._activity.recent(
                    currency_code, self._settings.dashboard_activity_items
                ),
            )
        except Exception:
            logger.exception("Error building dashboard snapshot")
            return DashboardSnapshot(currency_code=self._settings.default_currency)

        return DashboardSnapshot(
            total_products=total_products,
            total_orders=orders.total,
            total_gallery_images=total_gallery_images,
            total_users=total_users,
            pending_orders=orders.pending,
            pending_reviews=pending_reviews,
            total_revenue=orders.revenue,
            currency_code=currency_code,
            recent_activity=recent_activity,
        )

    async def _order_totals(self, date_range: DateRange) -> OrderTotals:
        result = await self._aggregator.aggregate(
            AggregateQuery(
                "orders",
                time_field="createdAt",
                range=date_range,
                kind=AggregationKind.COUNT_SUM,
                sum_field="total",
            )
        )
        count = result.count or 0
        revenue = result.total or 0.0
        average = revenue / count if count > 0 else 0.0
        return OrderTotals(count, round_to(revenue, 2), round_to(average, 2))

    async def _count_in_range(
        self,
        collection: str,
        time_field: str,
        date_range: DateRange,
        fallback_time_field: str | None = None,
        gallery_only: bool = False,
    ) -> int:
        filters = (GALLERY_FILTER,) if gallery_only else ()
        return await self._aggregator.count(
            AggregateQuery(
                collection,
                time_field=time_field,
                range=date_range,
                extra_filters=filters,
                fallback_time_field=fallback_time_field,
                prefilter=filters,
            )
        )

    async def get_analytics_snapshot(self, period: str) -> AnalyticsSnapshot:
        currency_code = await self._currency.resolve()
        bounds = resolve_period_bounds(period, self._clock())
        current, previous = bounds.current, bounds.previous

        try:
            (
                current_orders,
                previous_orders,
                current_users,
                previous_users,
                current_products,
                previous_products,
                current_gallery,
                previous_gallery,
                recent_activity,
            ) = await asyncio.gather(
                self._order_totals(current),
                self._order_totals(previous),
                self._count_in_range("users", "createdAt", current),
                self._count_in_range("users", "createdAt", previous),
                self._count_in_range("products", "updatedAt", current, "createdAt"),
                self._count_in_range("products", "updatedAt", previous, "createdAt"),
                self._count_in_range("media", "uploadedAt", current, gallery_only=True),
                self._count_in_range("media", "uploadedAt", previous, gallery_only=True),
                self._activity.recent(
                    currency_code, self._settings.analytics_activity_items
                ),
            )
        except Exception:
            logger.exception("Error building analytics snapshot for %s", period)
            return AnalyticsSnapshot(period=period, currency_code=currency_code)

        metrics = [
            _metric("totalOrders", "number", current_orders.count, previous_orders.count),
            _metric("revenue", "currency", current_orders.revenue, previous_orders.revenue),
            _metric(
                "averageOrderValue",
                "currency",
                current_orders.average,
                previous_orders.average,
            ),
            _metric("newCustomers", "number", current_users, previous_users),
            _metric("productsUpdated", "number", current_products, previous_products),
            _metric("galleryUploads", "number", current_gallery, previous_gallery),
        ]
        return AnalyticsSnapshot(
            period=period,
            currency_code=currency_code,
            metrics=metrics,
            recent_activity=recent_activity,
        )

    async def get_recent_activity_feed(self, max_items: int | None = None) -> list[ActivityItem]:
        limit = self._settings.feed_activity_items if max_items is None else max_items
        try:
            currency_code = await self._currency.resolve()
            return await self._activity.recent(currency_code, limit)
        except Exception:
            logger.exception("Error loading recent activity")
            return []

    async def _records_in_range(
        self,
        collection: str,
        time_field: str,
        date_range: DateRange,
        *filters: FieldFilter,
    ) -> list[dict[str, Any]]:
        if date_range.is_empty:
            return []
        records = await self._store.scan(collection, list(filters))
        matched = []
        for record in records:
            moment = to_datetime(read_path(record.data, time_field))
            if moment is not None and date_range.contains(moment):
                matched.append(record.data)
        return matched

    async def _completed_orders(self, period: str) -> list[dict[str, Any]]:
        current = resolve_period_bounds(period, self._clock()).current
        return await self._records_in_range(
            "orders",
            "createdAt",
            current,
            where("status", "==", self._settings.trend_status),
        )

    async def get_revenue_trend(self, period: str) -> list[TrendPoint]:
        try:
            orders = await self._completed_orders(period)
            records = []
            for data in orders:
                cost = read_path(data, "costPrice")
                records.append(
                    TrendRecord(
                        timestamp=to_datetime(read_path(data, "createdAt")),
                        amount=float(to_number(first_present(data, "totalAmount", "total"))),
                        cost=None if cost is None else float(to_number(cost)),
                    )
                )
            return bucketize(period, records, self._settings.profit_cost_ratio)
        except Exception:
            logger.exception("Error getting revenue trend for %s", period)
            return []

    async def get_top_products(self, period: str, limit: int | None = None) -> list[TopProduct]:
        try:
            orders = await self._completed_orders(period)
            return rank_top_products(orders, limit or self._settings.top_products_limit)
        except Exception:
            logger.exception("Error getting top products for %s", period)
            return []

    async def _quotes_in_range(self, date_range: DateRange) -> list[dict[str, Any]]:
        try:
            return await self._records_in_range("quotes", "createdAt", date_range)
        except Exception as exc:
            logger.info("No quote requests available: %s", exc)
            return []

    async def get_geographic_data(self, period: str) -> list[GeoDataPoint]:
        """Quotes, conversions and revenue per country for the current period.

        Orders count as quotes only when no quote request at all falls in the
        period.
        """
        try:
            current = resolve_period_bounds(period, self._clock()).current
            orders, quotes = await asyncio.gather(
                self._records_in_range("orders", "createdAt", current),
                self._quotes_in_range(current),
            )
        except Exception:
            logger.exception("Error getting geographic data for %s", period)
            return []

        fulfilled = {status.lower() for status in self._settings.fulfilled_statuses}
        countries: dict[str, dict[str, Any]] = {}

        def entry(code: str) -> dict[str, Any]:
            return countries.setdefault(code, {"quotes": 0, "conversions": 0, "revenue": 0.0})

        for data in quotes:
            code = extract_country_code(data)
            if code:
                entry(code)["quotes"] += 1

        orders_as_quotes = not quotes
        for data in orders:
            code = extract_country_code(data)
            if not code:
                continue
            stats = entry(code)
            if orders_as_quotes:
                stats["quotes"] += 1
            if status_of(data) in fulfilled:
                stats["conversions"] += 1
                stats["revenue"] += to_number(first_present(data, "total", "totalAmount"))

        points = [
            GeoDataPoint(
                country=country_name_of(code),
                country_code=code,
                region=region_of(code).value,
                quotes=stats["quotes"],
                conversions=stats["conversions"],
                revenue=round_to(stats["revenue"], 2),
            )
            for code, stats in countries.items()
            if stats["quotes"] > 0 or stats["conversions"] > 0
        ]
        points.sort(key=lambda point: point.quotes, reverse=True)
        return points
