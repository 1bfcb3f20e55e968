from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Sequence

from admin_analytics.schemas.dashboard import ActivityItem
from admin_analytics.services.currency import format_currency
from admin_analytics.services.normalize import (
    first_present,
    read_path,
    status_of,
    text_of,
    to_datetime,
    to_number,
)
from admin_analytics.store.base import Record, RecordStore, where

logger = logging.getLogger(__name__)

GALLERY_FILTER = where("relatedEntityType", "==", "gallery")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActivityFeed:
    """Recent orders, product edits, gallery uploads and sign-ups as one feed."""

    def __init__(
        self,
        store: RecordStore,
        per_kind_limit: int = 10,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._per_kind_limit = per_kind_limit
        self._clock = clock

    def _timestamp(self, record: Record, *fields: str) -> datetime:
        return to_datetime(first_present(record.data, *fields), self._clock())

    async def _ordered(
        self, collection: str, order_field: str, fallback_field: str
    ) -> list[Record]:
        try:
            return await self._store.scan(
                collection, order_by=order_field, limit=self._per_kind_limit
            )
        except Exception as exc:
            logger.warning(
                "Falling back to %s for %s: %s", fallback_field, collection, exc
            )
            return await self._store.scan(
                collection, order_by=fallback_field, limit=self._per_kind_limit
            )

    async def orders(self, currency_code: str) -> list[ActivityItem]:
        records = await self._ordered("orders", "updatedAt", "createdAt")
        items = []
        for record in records:
            order_number = text_of(record.data, "orderNumber") or record.id
            status = status_of(record.data)
            amount = format_currency(to_number(read_path(record.data, "total")), currency_code)
            items.append(
                ActivityItem(
                    id=record.id,
                    type="order",
                    description=f"Order {order_number} · {status.capitalize()} · {amount}",
                    timestamp=self._timestamp(record, "updatedAt", "createdAt"),
                    icon="order",
                    entity_id=record.id,
                )
            )
        return items

    async def products(self) -> list[ActivityItem]:
        records = await self._ordered("products", "updatedAt", "createdAt")
        items = []
        for record in records:
            name = text_of(record.data, "name") or "Product"
            thickness = text_of(record.data, "specs.grosor") or text_of(record.data, "grosor")
            description = f"{name} ({thickness}) updated" if thickness else f"{name} updated"
            items.append(
                ActivityItem(
                    id=record.id,
                    type="product",
                    description=description,
                    timestamp=self._timestamp(record, "updatedAt", "createdAt"),
                    icon="product",
                    entity_id=record.id,
                )
            )
        return items

    def _gallery_item(self, record: Record) -> ActivityItem:
        description = (
            text_of(record.data, "altText")
            or text_of(record.data, "caption")
            or "Gallery media uploaded"
        )
        return ActivityItem(
            id=record.id,
            type="gallery",
            description=description,
            timestamp=self._timestamp(record, "uploadedAt"),
            icon="gallery",
            entity_id=record.id,
        )

    async def gallery(self) -> list[ActivityItem]:
        try:
            records = await self._store.scan(
                "media",
                [GALLERY_FILTER],
                order_by="uploadedAt",
                limit=self._per_kind_limit,
            )
        except Exception as exc:
            logger.warning("Gallery query fell back to manual filtering: %s", exc)
            candidates = await self._store.scan(
                "media", order_by="uploadedAt", limit=self._per_kind_limit * 2
            )
            records = [r for r in candidates if GALLERY_FILTER.matches(r.data)]
            records = records[: self._per_kind_limit]
        return [self._gallery_item(record) for record in records]

    async def users(self) -> list[ActivityItem]:
        records = await self._ordered("users", "createdAt", "createdAt")
        items = []
        for record in records:
            display_name = text_of(record.data, "displayName")
            email = text_of(record.data, "email")
            description = (
                f"New user: {display_name}" if display_name else f"New user registered: {email}"
            )
            items.append(
                ActivityItem(
                    id=record.id,
                    type="user",
                    description=description,
                    timestamp=self._timestamp(record, "createdAt"),
                    icon="user",
                    entity_id=record.id,
                )
            )
        return items

    @staticmethod
    async def _guarded(kind: str, call: Awaitable[list[ActivityItem]]) -> list[ActivityItem]:
        try:
            return await call
        except Exception as exc:
            logger.warning("Dropping %s activity: %s", kind, exc)
            return []

    async def recent(self, currency_code: str, max_items: int) -> list[ActivityItem]:
        if max_items <= 0:
            return []
        sources: Sequence[tuple[str, Awaitable[list[ActivityItem]]]] = (
            ("order", self.orders(currency_code)),
            ("product", self.products()),
            ("gallery", self.gallery()),
            ("user", self.users()),
        )
        results = await asyncio.gather(
            *(self._guarded(kind, call) for kind, call in sources)
        )
        merged = [item for items in results for item in items]
        merged.sort(key=lambda item: item.timestamp, reverse=True)
        return merged[:max_items]
