from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from admin_analytics.core.config import Settings
from admin_analytics.services.normalize import to_number
from admin_analytics.store.base import RecordStore

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "BRL": "R$",
    "MXN": "MX$",
    "CAD": "CA$",
    "AUD": "A$",
    "JPY": "¥",
    "INR": "₹",
}

CurrencyFetcher = Callable[[], Awaitable[Any]]


class CurrencyResolver:
    """Process-wide display currency, fetched at most once at a time.

    Concurrent callers share the in-flight lookup. A successful lookup is
    cached until ``invalidate``; a failed one returns the default and leaves
    the cache empty so the next call retries.
    """

    def __init__(self, fetch: CurrencyFetcher, default: str = "USD") -> None:
        self._fetch = fetch
        self._default = default.upper()
        self._cached: str | None = None
        self._inflight: asyncio.Task[str | None] | None = None
        # bumped by invalidate; loads started under an older value are discarded
        self._generation = 0

    @property
    def cached(self) -> str | None:
        return self._cached

    @property
    def default(self) -> str:
        return self._default

    def invalidate(self) -> None:
        self._generation += 1
        self._cached = None
        self._inflight = None

    async def _load(self, generation: int) -> str | None:
        try:
            value = await self._fetch()
        except Exception as exc:
            logger.warning("Currency lookup failed, using %s: %s", self._default, exc)
            return None
        finally:
            if generation == self._generation:
                self._inflight = None
        code = str(value or "").strip().upper() or self._default
        if generation == self._generation:
            self._cached = code
        return code

    async def resolve(self) -> str:
        if self._cached:
            return self._cached
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._load(self._generation))
        code = await asyncio.shield(self._inflight)
        return code or self._default


def settings_currency_fetcher(store: RecordStore, settings: Settings) -> CurrencyFetcher:
    async def fetch() -> Any:
        record = await store.get(settings.settings_collection, settings.settings_document_id)
        if record is None:
            return None
        return record.data.get(settings.currency_field)

    return fetch


def format_currency(amount: Any, currency_code: str) -> str:
    value = float(to_number(amount))
    code = (currency_code or "").upper()
    sign = "-" if value < 0 else ""
    body = f"{abs(value):,.2f}"
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{sign}{symbol}{body}"
    return f"{sign}{code} {body}"
