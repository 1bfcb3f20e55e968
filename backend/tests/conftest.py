import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Sequence

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from admin_analytics.api.deps import get_dashboard_service
from admin_analytics.core.config import Settings
from admin_analytics.db.base import Base
from admin_analytics.db.session import get_db
from admin_analytics.main import app
from admin_analytics.models.document import Document
from admin_analytics.services.currency import CurrencyResolver, settings_currency_fetcher
from admin_analytics.services.dashboard import AdminDashboardService
from admin_analytics.store.base import FieldFilter, Record, RecordStore, encode_value
from admin_analytics.store.errors import AggregateUnsupported, RecordStoreError
from admin_analytics.store.sql import SqlRecordStore

NOW = datetime(2024, 5, 15, 12, 30, tzinfo=timezone.utc)


class FlakyStore(RecordStore):
    """Wraps a store and fails the operations a test asks it to."""

    def __init__(
        self,
        inner: RecordStore,
        fail_aggregates: bool = False,
        broken: Sequence[str] = (),
        fail_filtered_scans: Sequence[str] = (),
        fail_ordered_scans: dict[str, set[str]] | None = None,
        fail_get: bool = False,
    ) -> None:
        self.inner = inner
        self.fail_aggregates = fail_aggregates
        self.broken = set(broken)
        self.fail_filtered_scans = set(fail_filtered_scans)
        self.fail_ordered_scans = fail_ordered_scans or {}
        self.fail_get = fail_get
        self.calls: Counter = Counter()

    def _check(self, collection: str) -> None:
        if collection in self.broken:
            raise RecordStoreError(f"{collection} unavailable")

    async def count(self, collection: str, filters: Sequence[FieldFilter] = ()) -> int:
        self.calls["count"] += 1
        self._check(collection)
        if self.fail_aggregates:
            raise AggregateUnsupported("count not supported")
        return await self.inner.count(collection, filters)

    async def aggregate_sum(
        self, collection: str, filters: Sequence[FieldFilter], field_name: str
    ) -> float:
        self.calls["sum"] += 1
        self._check(collection)
        if self.fail_aggregates:
            raise AggregateUnsupported("sum not supported")
        return await self.inner.aggregate_sum(collection, filters, field_name)

    async def scan(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[Record]:
        self.calls["scan"] += 1
        self._check(collection)
        if filters and collection in self.fail_filtered_scans:
            raise RecordStoreError("missing index")
        if order_by and order_by in self.fail_ordered_scans.get(collection, set()):
            raise RecordStoreError(f"cannot order {collection} by {order_by}")
        return await self.inner.scan(collection, filters, order_by, descending, limit)

    async def get(self, collection: str, doc_id: str) -> Record | None:
        self.calls["get"] += 1
        self._check(collection)
        if self.fail_get:
            raise RecordStoreError("settings unavailable")
        return await self.inner.get(collection, doc_id)

    async def add(
        self, collection: str, data: dict[str, Any], doc_id: str | None = None
    ) -> Record:
        return await self.inner.add(collection, data, doc_id)


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture()
def store(session_factory):
    record_store = SqlRecordStore(session_factory, max_workers=1)
    yield record_store
    record_store.close()


@pytest.fixture()
def seed(session_factory):
    def _seed(collection: str, *docs: dict[str, Any]) -> list[str]:
        ids = []
        with session_factory() as db:
            for doc in docs:
                data = dict(doc)
                doc_id = str(data.pop("_id", None) or uuid.uuid4().hex)
                db.add(Document(collection=collection, doc_id=doc_id, data=encode_value(data)))
                ids.append(doc_id)
            db.commit()
        return ids

    return _seed


@pytest.fixture()
def flaky():
    return FlakyStore


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None, database_url="sqlite+pysqlite:///:memory:")


@pytest.fixture()
def clock():
    return lambda: NOW


@pytest.fixture()
def make_service(settings, clock):
    def _make(record_store: RecordStore) -> AdminDashboardService:
        currency = CurrencyResolver(
            settings_currency_fetcher(record_store, settings),
            default=settings.default_currency,
        )
        return AdminDashboardService(record_store, currency, settings, clock=clock)

    return _make


@pytest.fixture()
def service(store, make_service):
    return make_service(store)


@pytest.fixture()
def client(service, session_factory) -> TestClient:
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dashboard_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
