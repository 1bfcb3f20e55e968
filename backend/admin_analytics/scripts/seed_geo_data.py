"""Seed quote requests and completed orders carrying country data.

Populates the record store with enough geographic activity to demo the
analytics heatmap:

    python -m admin_analytics.scripts.seed_geo_data --quotes 100 --orders 15
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any

from admin_analytics.core.logging import configure_logging
from admin_analytics.store.base import RecordStore

logger = logging.getLogger(__name__)

SAMPLE_COUNTRIES: list[tuple[str, str, int]] = [
    ("BR", "Brazil", 20),
    ("MX", "Mexico", 15),
    ("AR", "Argentina", 10),
    ("CL", "Chile", 8),
    ("CO", "Colombia", 7),
    ("GB", "United Kingdom", 12),
    ("DE", "Germany", 11),
    ("FR", "France", 8),
    ("NL", "Netherlands", 6),
    ("ES", "Spain", 5),
    ("SG", "Singapore", 10),
    ("JP", "Japan", 8),
    ("AU", "Australia", 7),
    ("KR", "South Korea", 6),
    ("IN", "India", 5),
    ("US", "United States", 18),
    ("CA", "Canada", 9),
]

SAMPLE_PRODUCTS: list[tuple[str, str, float]] = [
    ("antminer-s19-pro", "Antminer S19 Pro", 3500.0),
    ("whatsminer-m30s", "WhatsMiner M30S+", 2800.0),
    ("antminer-s21", "Antminer S21", 5200.0),
]


def _pick_country(rng: random.Random) -> tuple[str, str]:
    code, name, _ = rng.choices(
        SAMPLE_COUNTRIES, weights=[weight for _, _, weight in SAMPLE_COUNTRIES]
    )[0]
    return code, name


def _days_ago(rng: random.Random, now: datetime, days: int) -> datetime:
    return now - timedelta(days=rng.random() * days)


def build_geo_seed(
    rng: random.Random,
    now: datetime,
    quotes: int = 100,
    orders: int = 15,
    days: int = 30,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    quote_docs = []
    for index in range(quotes):
        code, name = _pick_country(rng)
        quote_docs.append(
            {
                "country": name,
                "countryCode": code,
                "email": f"customer{index}@example.com",
                "message": f"Interested in mining hardware for {name} deployment",
                "createdAt": _days_ago(rng, now, days),
                "status": "pending",
                "source": "seed",
            }
        )

    order_docs = []
    for index in range(orders):
        code, name = _pick_country(rng)
        product_id, product_name, price = rng.choice(SAMPLE_PRODUCTS)
        quantity = rng.randint(1, 5)
        total = price * quantity
        order_docs.append(
            {
                "orderNumber": f"ORD-{int(now.timestamp())}-{index}",
                "country": name,
                "countryCode": code,
                "shippingAddress": {
                    "country": name,
                    "countryCode": code,
                    "city": "Sample City",
                    "postalCode": "12345",
                },
                "items": [
                    {
                        "productId": product_id,
                        "productName": product_name,
                        "price": price,
                        "quantity": quantity,
                    }
                ],
                "total": total,
                "totalAmount": total,
                "status": "completed",
                "createdAt": _days_ago(rng, now, days),
                "updatedAt": _days_ago(rng, now, min(days, 7)),
            }
        )
    return quote_docs, order_docs


async def seed(store: RecordStore, quote_docs: list[dict], order_docs: list[dict]) -> None:
    await asyncio.gather(*(store.add("quotes", doc) for doc in quote_docs))
    logger.info("Created %d quote requests", len(quote_docs))
    await asyncio.gather(*(store.add("orders", doc) for doc in order_docs))
    logger.info("Created %d completed orders", len(order_docs))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--quotes", type=int, default=100)
    parser.add_argument("--orders", type=int, default=15)
    parser.add_argument("--days", type=int, default=30)
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    from admin_analytics.api.deps import get_record_store

    configure_logging()
    args = parse_args(argv)
    rng = random.Random(args.seed)
    quote_docs, order_docs = build_geo_seed(
        rng, datetime.now(timezone.utc), args.quotes, args.orders, args.days
    )
    store = get_record_store()
    try:
        asyncio.run(seed(store, quote_docs, order_docs))
    finally:
        store.close()
    logger.info(
        "Seeded %d quotes across %d countries", len(quote_docs), len(SAMPLE_COUNTRIES)
    )


if __name__ == "__main__":
    main()
