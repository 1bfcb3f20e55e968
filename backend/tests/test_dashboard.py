from datetime import datetime, timezone

import pytest


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture()
def catalog(seed):
    seed("settings", {"_id": "store", "stripeCurrency": "eur"})
    seed(
        "products",
        {"name": "Antminer S19", "updatedAt": utc(2024, 5, 5)},
        {"name": "Antminer S21", "updatedAt": utc(2024, 4, 5)},
    )
    seed(
        "orders",
        {
            "status": "completed",
            "total": 100,
            "createdAt": utc(2024, 5, 2),
            "items": [{"productId": "s19", "productName": "Antminer S19", "price": 50, "quantity": 2}],
        },
        {
            "status": "pending",
            "total": 50,
            "createdAt": utc(2024, 5, 3),
            "items": [{"productId": "s21", "productName": "Antminer S21", "price": 50, "quantity": 1}],
        },
        {"status": "completed", "total": 100, "createdAt": utc(2024, 4, 10)},
    )
    seed(
        "media",
        {"relatedEntityType": "gallery", "uploadedAt": utc(2024, 3, 1)},
        {"relatedEntityType": "gallery", "uploadedAt": utc(2024, 3, 2)},
        {"relatedEntityType": "product", "uploadedAt": utc(2024, 5, 2)},
    )
    seed("users", {"email": "ana@example.com", "createdAt": utc(2024, 5, 7)})
    seed("productReviews", {"status": "pending"}, {"status": "approved"})


async def test_dashboard_snapshot_counts(service, catalog) -> None:
    snapshot = await service.get_dashboard_snapshot()

    assert snapshot.total_products == 2
    assert snapshot.total_orders == 3
    assert snapshot.pending_orders == 1
    assert snapshot.total_revenue == 250.0
    assert snapshot.total_gallery_images == 2
    assert snapshot.total_users == 1
    assert snapshot.pending_reviews == 1
    assert snapshot.currency_code == "EUR"
    assert len(snapshot.recent_activity) <= 8
    assert snapshot.recent_activity[0].type == "user"


async def test_dashboard_snapshot_without_server_aggregates(store, catalog, flaky, make_service) -> None:
    service = make_service(flaky(store, fail_aggregates=True))

    snapshot = await service.get_dashboard_snapshot()

    assert snapshot.total_orders == 3
    assert snapshot.total_revenue == 250.0
    assert snapshot.total_gallery_images == 2


async def test_dashboard_snapshot_failure_returns_defaults(store, catalog, flaky, make_service) -> None:
    service = make_service(flaky(store, broken=["products"]))

    snapshot = await service.get_dashboard_snapshot()

    assert snapshot.total_orders == 0
    assert snapshot.total_revenue == 0.0
    assert snapshot.recent_activity == []
    assert snapshot.currency_code == "USD"


async def test_analytics_with_empty_store(service) -> None:
    snapshot = await service.get_analytics_snapshot("month")

    assert snapshot.period == "month"
    assert snapshot.currency_code == "USD"
    assert [metric.key for metric in snapshot.metrics] == [
        "totalOrders",
        "revenue",
        "averageOrderValue",
        "newCustomers",
        "productsUpdated",
        "galleryUploads",
    ]
    for metric in snapshot.metrics:
        assert metric.current_value == 0
        assert metric.previous_value == 0
        assert metric.change_percentage == 0.0
    assert snapshot.recent_activity == []


async def test_analytics_compares_periods(service, catalog) -> None:
    snapshot = await service.get_analytics_snapshot("month")
    metrics = {metric.key: metric for metric in snapshot.metrics}

    assert snapshot.currency_code == "EUR"
    assert (metrics["totalOrders"].current_value, metrics["totalOrders"].previous_value) == (2, 1)
    assert metrics["totalOrders"].change_percentage == 100.0
    assert metrics["revenue"].current_value == 150.0
    assert metrics["revenue"].change_percentage == 50.0
    assert metrics["revenue"].format == "currency"
    assert metrics["averageOrderValue"].current_value == 75.0
    assert metrics["averageOrderValue"].change_percentage == -25.0
    assert metrics["newCustomers"].change_percentage is None
    assert metrics["productsUpdated"].change_percentage == 0.0
    assert metrics["galleryUploads"].current_value == 0
    assert metrics["totalOrders"].label_key == "admin.analytics.metrics.total_orders"


async def test_analytics_unknown_period_reports_zeros(service, catalog) -> None:
    snapshot = await service.get_analytics_snapshot("fortnight")

    assert snapshot.period == "fortnight"
    assert all(metric.current_value == 0 for metric in snapshot.metrics)


async def test_currency_failure_falls_back_to_usd(store, catalog, flaky, make_service) -> None:
    service = make_service(flaky(store, fail_get=True))

    snapshot = await service.get_analytics_snapshot("month")

    assert snapshot.currency_code == "USD"
    assert service.currency.cached is None


async def test_revenue_trend_uses_completed_orders(service, catalog) -> None:
    points = await service.get_revenue_trend("month")

    assert [(point.label, point.revenue, point.orders) for point in points] == [
        ("2024-05-02", 100.0, 1)
    ]
    assert points[0].profit == 30.0


async def test_top_products(service, catalog) -> None:
    products = await service.get_top_products("month")

    assert [product.product_id for product in products] == ["s19"]
    assert products[0].revenue == 100.0


async def test_trend_failure_returns_empty(store, catalog, flaky, make_service) -> None:
    service = make_service(flaky(store, broken=["orders"]))

    assert await service.get_revenue_trend("month") == []
    assert await service.get_top_products("month") == []
    assert await service.get_geographic_data("month") == []


async def test_geographic_data_counts_quotes_and_conversions(service, seed) -> None:
    seed(
        "quotes",
        {"countryCode": "BR", "createdAt": utc(2024, 5, 3)},
        {"country": "Brasil", "createdAt": utc(2024, 5, 4)},
        {"country": "Germany", "createdAt": utc(2024, 3, 4)},
        {"email": "nobody@example.com", "createdAt": utc(2024, 5, 4)},
    )
    seed(
        "orders",
        {"countryCode": "BR", "status": "completed", "total": 100, "createdAt": utc(2024, 5, 5)},
        {"countryCode": "BR", "status": "pending", "total": 70, "createdAt": utc(2024, 5, 6)},
        {"countryCode": "US", "status": "completed", "total": 40, "createdAt": utc(2024, 4, 6)},
    )

    points = await service.get_geographic_data("month")

    assert [point.model_dump() for point in points] == [
        {
            "country": "Brazil",
            "country_code": "BR",
            "region": "LATAM",
            "quotes": 2,
            "conversions": 1,
            "revenue": 100.0,
        }
    ]


async def test_geographic_data_without_quotes_collection(service, seed) -> None:
    seed(
        "orders",
        {"total": 100, "status": "completed", "country": "BR", "createdAt": utc(2024, 5, 2)},
        {"total": 50, "status": "pending", "country": "BR", "createdAt": utc(2024, 5, 2)},
    )

    points = await service.get_geographic_data("month")

    assert [(p.country_code, p.quotes, p.conversions, p.revenue) for p in points] == [
        ("BR", 2, 1, 100.0)
    ]


async def test_geographic_data_skips_unreadable_timestamps(service, seed) -> None:
    seed(
        "orders",
        {"total": 100, "status": "completed", "country": "BR", "createdAt": utc(2024, 5, 2)},
        {"total": 50, "status": "completed", "country": "BR", "createdAt": {"seconds": 1e20}},
    )

    points = await service.get_geographic_data("month")

    assert [(p.country_code, p.quotes, p.conversions, p.revenue) for p in points] == [
        ("BR", 1, 1, 100.0)
    ]


async def test_geographic_data_counts_orders_as_quotes_without_quotes(service, seed) -> None:
    seed(
        "orders",
        {"shippingAddress": {"countryCode": "DE"}, "status": "Delivered", "totalAmount": 80, "createdAt": utc(2024, 5, 5)},
        {"country": "Germany", "status": "pending", "total": 10, "createdAt": utc(2024, 5, 6)},
        {"countryCode": "JP", "status": "cancelled", "total": 20, "createdAt": utc(2024, 5, 7)},
        {"countryCode": "JP", "status": "shipped", "total": 20, "createdAt": utc(2024, 5, 7)},
        {"countryCode": "JP", "status": "completed", "total": 30, "createdAt": utc(2024, 5, 8)},
    )

    points = await service.get_geographic_data("month")

    assert [(p.country_code, p.region, p.quotes, p.conversions, p.revenue) for p in points] == [
        ("JP", "APAC", 3, 2, 50.0),
        ("DE", "EU", 2, 1, 80.0),
    ]


async def test_recent_activity_feed(service, catalog) -> None:
    items = await service.get_recent_activity_feed()

    # orders without updatedAt are left out of the ordered scan
    assert [item.type for item in items] == ["user", "product", "product", "gallery", "gallery"]
    assert await service.get_recent_activity_feed(2) == items[:2]
