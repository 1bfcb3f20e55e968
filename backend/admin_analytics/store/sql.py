from __future__ import annotations

import asyncio
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from functools import partial
from typing import Any, Callable, Sequence, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admin_analytics.models.document import Document
from admin_analytics.store.base import (
    ISO_LIKE_PATTERN,
    FieldFilter,
    Record,
    RecordStore,
    apply_filters,
    encode_value,
    lookup,
    sort_key,
)
from admin_analytics.store.errors import AggregateUnsupported, RecordStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RANGE_OPS = (">=", "<")

_MISSING = object()


class SqlRecordStore(RecordStore):
    """Document collections stored as JSON rows of a single ``documents`` table.

    SQLAlchemy work runs on a private thread pool so callers on the event loop
    never block. Use ``max_workers=1`` for SQLite connections shared through a
    ``StaticPool``.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        max_workers: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="record-store"
        )

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, partial(fn, *args))
        except SQLAlchemyError as exc:
            raise RecordStoreError(str(exc)) from exc

    @staticmethod
    def _condition(item: FieldFilter) -> Any:
        if "." in item.field:
            raise AggregateUnsupported(
                f"Nested field {item.field!r} cannot be filtered server-side"
            )
        if item.op in RANGE_OPS and not isinstance(item.value, datetime):
            raise AggregateUnsupported(
                f"Range filter on {item.field!r} requires a timestamp operand"
            )
        value = encode_value(item.value)
        if not isinstance(value, str):
            raise AggregateUnsupported(
                f"Filter on {item.field!r} requires a string operand"
            )
        column = Document.data[item.field].as_string()
        if item.op == "==":
            return column == value
        if item.op == ">=":
            return column >= value
        return column < value

    def _conditions(self, collection: str, filters: Sequence[FieldFilter]) -> list[Any]:
        conditions: list[Any] = [Document.collection == collection]
        conditions.extend(self._condition(item) for item in filters)
        return conditions

    @staticmethod
    def _check_timestamps(
        db: Session, collection: str, filters: Sequence[FieldFilter]
    ) -> None:
        # text comparison only orders values written with ISO_FORMAT
        for field_name in sorted({item.field for item in filters if item.op in RANGE_OPS}):
            column = Document.data[field_name].as_string()
            loose = db.scalar(
                select(func.count())
                .select_from(Document)
                .where(
                    Document.collection == collection,
                    column.is_not(None),
                    column.not_like(ISO_LIKE_PATTERN),
                )
            )
            if loose:
                raise AggregateUnsupported(
                    f"{collection}.{field_name} holds {loose} non-canonical timestamps"
                )

    def _count(self, collection: str, filters: Sequence[FieldFilter]) -> int:
        conditions = self._conditions(collection, filters)
        with self._session_factory() as db:
            self._check_timestamps(db, collection, filters)
            value = db.scalar(
                select(func.count()).select_from(Document).where(*conditions)
            )
        return int(value or 0)

    def _sum(self, collection: str, filters: Sequence[FieldFilter], field_name: str) -> float:
        if "." in field_name:
            raise AggregateUnsupported(f"Cannot sum nested field {field_name!r}")
        conditions = self._conditions(collection, filters)
        with self._session_factory() as db:
            self._check_timestamps(db, collection, filters)
            value = db.scalar(
                select(
                    func.coalesce(func.sum(Document.data[field_name].as_float()), 0.0)
                ).where(*conditions)
            )
        return float(value or 0.0)

    def _scan(
        self,
        collection: str,
        filters: Sequence[FieldFilter],
        order_by: str | None,
        descending: bool,
        limit: int | None,
    ) -> list[Record]:
        with self._session_factory() as db:
            rows = db.execute(
                select(Document.doc_id, Document.data)
                .where(Document.collection == collection)
                .order_by(Document.id)
            ).all()
        records = apply_filters(
            (Record(id=row.doc_id, data=dict(row.data or {})) for row in rows), filters
        )
        if order_by:
            records = [
                record
                for record in records
                if lookup(record.data, order_by, _MISSING) is not _MISSING
            ]
            records.sort(
                key=lambda record: sort_key(lookup(record.data, order_by)),
                reverse=descending,
            )
        if limit is not None:
            records = records[:limit]
        return records

    def _get(self, collection: str, doc_id: str) -> Record | None:
        with self._session_factory() as db:
            document = db.scalar(
                select(Document).where(
                    Document.collection == collection, Document.doc_id == doc_id
                )
            )
            if document is None:
                return None
            return Record(id=document.doc_id, data=dict(document.data or {}))

    def _add(self, collection: str, data: dict[str, Any], doc_id: str | None) -> Record:
        record = Record(id=doc_id or uuid.uuid4().hex, data=encode_value(data))
        with self._session_factory() as db:
            db.add(Document(collection=collection, doc_id=record.id, data=record.data))
            db.commit()
        return record

    async def count(self, collection: str, filters: Sequence[FieldFilter] = ()) -> int:
        return await self._run(self._count, collection, list(filters))

    async def aggregate_sum(
        self, collection: str, filters: Sequence[FieldFilter], field_name: str
    ) -> float:
        return await self._run(self._sum, collection, list(filters), field_name)

    async def scan(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[Record]:
        return await self._run(
            self._scan, collection, list(filters), order_by, descending, limit
        )

    async def get(self, collection: str, doc_id: str) -> Record | None:
        return await self._run(self._get, collection, doc_id)

    async def add(
        self, collection: str, data: dict[str, Any], doc_id: str | None = None
    ) -> Record:
        logger.debug("Adding document to %s", collection)
        return await self._run(self._add, collection, data, doc_id)
