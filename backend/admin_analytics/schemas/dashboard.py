from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ActivityType = Literal["order", "product", "gallery", "user"]
MetricFormat = Literal["number", "currency"]
RegionCode = Literal["LATAM", "EU", "APAC", "NA", "MENA", "OTHER"]
MetricKey = Literal[
    "totalOrders",
    "revenue",
    "averageOrderValue",
    "newCustomers",
    "productsUpdated",
    "galleryUploads",
]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class ActivityItem(CamelModel):
    id: str
    type: ActivityType
    description: str
    timestamp: datetime
    icon: str
    entity_id: str | None = None


class DashboardSnapshot(CamelModel):
    total_products: int = 0
    total_orders: int = 0
    total_gallery_images: int = 0
    total_users: int = 0
    pending_orders: int = 0
    pending_reviews: int = 0
    total_revenue: float = 0.0
    currency_code: str = "USD"
    recent_activity: list[ActivityItem] = Field(default_factory=list)


class AnalyticsMetric(CamelModel):
    key: MetricKey
    label_key: str
    format: MetricFormat
    current_value: float
    previous_value: float
    change_percentage: float | None = None


class AnalyticsSnapshot(CamelModel):
    period: str
    currency_code: str
    metrics: list[AnalyticsMetric] = Field(default_factory=list)
    recent_activity: list[ActivityItem] = Field(default_factory=list)


class TrendPoint(CamelModel):
    date: datetime
    label: str
    revenue: float
    orders: int
    profit: float


class TopProduct(CamelModel):
    product_id: str
    product_name: str
    revenue: float
    orders: int
    views: int
    conversion_rate: float


class GeoDataPoint(CamelModel):
    country: str
    country_code: str
    region: RegionCode
    quotes: int = 0
    conversions: int = 0
    revenue: float = 0.0
