from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping

from admin_analytics.schemas.dashboard import TopProduct, TrendPoint
from admin_analytics.services.comparison import round_to
from admin_analytics.services.normalize import to_number
from admin_analytics.services.periods import Period

# products without view tracking are assumed to convert at this rate
DEFAULT_CONVERSION_RATE = 10.0


class Granularity(str, Enum):
    hour = "hour"
    day = "day"
    month = "month"


def granularity_for(period: "str | Period") -> Granularity:
    resolved = Period.parse(period)
    if resolved is Period.today:
        return Granularity.hour
    if resolved is Period.year:
        return Granularity.month
    return Granularity.day


@dataclass(frozen=True, order=True)
class BucketKey:
    instant: datetime
    granularity: Granularity = field(compare=False)

    @property
    def label(self) -> str:
        if self.granularity is Granularity.hour:
            return self.instant.strftime("%Y-%m-%d %H:00")
        if self.granularity is Granularity.month:
            return self.instant.strftime("%Y-%m")
        return self.instant.strftime("%Y-%m-%d")


def bucket_key_for(period: "str | Period", timestamp: datetime) -> BucketKey:
    granularity = granularity_for(period)
    instant = timestamp.replace(minute=0, second=0, microsecond=0)
    if granularity is not Granularity.hour:
        instant = instant.replace(hour=0)
    if granularity is Granularity.month:
        instant = instant.replace(day=1)
    return BucketKey(instant=instant, granularity=granularity)


@dataclass(frozen=True)
class TrendRecord:
    timestamp: datetime
    amount: float
    cost: float | None = None


@dataclass
class _Bucket:
    revenue: float = 0.0
    orders: int = 0
    profit: float = 0.0


def bucketize(
    period: "str | Period",
    records: Iterable[TrendRecord],
    cost_ratio: float = 0.7,
) -> list[TrendPoint]:
    """Group records into period-sized buckets, oldest first.

    Buckets without records are not emitted.
    """
    buckets: dict[BucketKey, _Bucket] = defaultdict(_Bucket)
    for record in records:
        bucket = buckets[bucket_key_for(period, record.timestamp)]
        cost = record.cost if record.cost is not None else record.amount * cost_ratio
        bucket.revenue += record.amount
        bucket.orders += 1
        bucket.profit += record.amount - cost

    return [
        TrendPoint(
            date=key.instant,
            label=key.label,
            revenue=round_to(bucket.revenue, 2),
            orders=bucket.orders,
            profit=round_to(bucket.profit, 2),
        )
        for key, bucket in sorted(buckets.items())
    ]


def rank_top_products(
    orders: Iterable[Mapping[str, Any]], limit: int = 10
) -> list[TopProduct]:
    stats: dict[str, dict[str, Any]] = {}
    for order in orders:
        items = order.get("items") or []
        if not isinstance(items, list):
            continue
        for item in items:
            if not isinstance(item, Mapping):
                continue
            product_id = str(item.get("productId") or "")
            entry = stats.setdefault(
                product_id,
                {"name": item.get("productName") or "Unknown", "revenue": 0.0, "orders": 0},
            )
            entry["revenue"] += to_number(item.get("price")) * to_number(item.get("quantity"))
            entry["orders"] += 1

    ranked = sorted(stats.items(), key=lambda pair: pair[1]["revenue"], reverse=True)
    return [
        TopProduct(
            product_id=product_id,
            product_name=str(entry["name"]),
            revenue=round_to(entry["revenue"], 2),
            orders=entry["orders"],
            views=int(entry["orders"] * 100 / DEFAULT_CONVERSION_RATE),
            conversion_rate=DEFAULT_CONVERSION_RATE,
        )
        for product_id, entry in ranked[:limit]
    ]
