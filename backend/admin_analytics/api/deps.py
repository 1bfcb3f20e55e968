from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from admin_analytics.core.config import get_settings
from admin_analytics.db.session import SessionLocal
from admin_analytics.services.currency import CurrencyResolver, settings_currency_fetcher
from admin_analytics.services.dashboard import AdminDashboardService
from admin_analytics.store.base import RecordStore
from admin_analytics.store.sql import SqlRecordStore


@lru_cache
def get_record_store() -> RecordStore:
    settings = get_settings()
    # SQLite connections cannot be used from several threads at once
    max_workers = 1 if settings.database_url.startswith("sqlite") else None
    return SqlRecordStore(SessionLocal, max_workers=max_workers)


@lru_cache
def get_dashboard_service() -> AdminDashboardService:
    settings = get_settings()
    store = get_record_store()
    currency = CurrencyResolver(
        settings_currency_fetcher(store, settings), default=settings.default_currency
    )
    return AdminDashboardService(store, currency, settings)


DashboardService = Annotated[AdminDashboardService, Depends(get_dashboard_service)]
