"""Range aggregates that prefer the store's server-side count/sum.

``ResilientAggregator`` runs the ``ServerAggregate`` strategy and, when the
store rejects or fails the query, recomputes the same result with
``ScanAndFilter`` over a full collection fetch. Only a failure of the scan
itself reaches the caller.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from admin_analytics.services.normalize import read_path, to_datetime, to_number
from admin_analytics.services.periods import DateRange
from admin_analytics.store.base import FieldFilter, RecordStore, in_range

logger = logging.getLogger(__name__)


class AggregationKind(str, Enum):
    COUNT = "count"
    SUM = "sum"
    COUNT_SUM = "count_sum"

    @property
    def wants_count(self) -> bool:
        return self in (AggregationKind.COUNT, AggregationKind.COUNT_SUM)

    @property
    def wants_sum(self) -> bool:
        return self in (AggregationKind.SUM, AggregationKind.COUNT_SUM)


@dataclass(frozen=True)
class AggregateQuery:
    collection: str
    time_field: str | None = None
    range: DateRange | None = None
    kind: AggregationKind = AggregationKind.COUNT
    sum_field: str | None = None
    extra_filters: tuple[FieldFilter, ...] = ()
    # read when a record lacks ``time_field``; honoured by the scan path only
    fallback_time_field: str | None = None
    # secondary filter the scan path may push to the store before filtering
    prefilter: tuple[FieldFilter, ...] = ()

    def __post_init__(self) -> None:
        if self.kind.wants_sum and not self.sum_field:
            raise ValueError("sum_field is required for sum aggregates")
        if (self.range is None) != (self.time_field is None):
            raise ValueError("time_field and range must be given together")

    def server_filters(self) -> list[FieldFilter]:
        filters: list[FieldFilter] = []
        if self.range is not None and self.time_field is not None:
            filters.extend(in_range(self.time_field, self.range.start, self.range.end))
        filters.extend(self.extra_filters)
        return filters


@dataclass(frozen=True)
class AggregateResult:
    count: int | None = None
    total: float | None = None

    @classmethod
    def empty(cls, kind: AggregationKind) -> "AggregateResult":
        return cls(
            count=0 if kind.wants_count else None,
            total=0.0 if kind.wants_sum else None,
        )


class AggregateStrategy(ABC):
    name = "strategy"

    @abstractmethod
    async def run(self, query: AggregateQuery) -> AggregateResult:
        ...


class ServerAggregate(AggregateStrategy):
    name = "server"

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def run(self, query: AggregateQuery) -> AggregateResult:
        filters = query.server_filters()
        count_call = (
            self._store.count(query.collection, filters)
            if query.kind.wants_count
            else None
        )
        sum_call = (
            self._store.aggregate_sum(query.collection, filters, query.sum_field)
            if query.kind.wants_sum
            else None
        )
        if count_call is not None and sum_call is not None:
            count, total = await asyncio.gather(count_call, sum_call)
        elif count_call is not None:
            count, total = await count_call, None
        else:
            count, total = None, await sum_call
        return AggregateResult(
            count=int(to_number(count)) if query.kind.wants_count else None,
            total=float(to_number(total)) if query.kind.wants_sum else None,
        )


class ScanAndFilter(AggregateStrategy):
    name = "scan"

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def _in_range(self, query: AggregateQuery, data: dict) -> bool:
        if query.range is None:
            return True
        raw = read_path(data, query.time_field)
        if raw is None and query.fallback_time_field:
            raw = read_path(data, query.fallback_time_field)
        moment = to_datetime(raw)
        return moment is not None and query.range.contains(moment)

    async def run(self, query: AggregateQuery) -> AggregateResult:
        records = await self._store.scan(query.collection, query.prefilter)
        count = 0
        total = 0.0
        for record in records:
            data = record.data
            if not all(item.matches(data) for item in query.extra_filters):
                continue
            if not self._in_range(query, data):
                continue
            count += 1
            if query.kind.wants_sum:
                total += to_number(read_path(data, query.sum_field))
        return AggregateResult(
            count=count if query.kind.wants_count else None,
            total=total if query.kind.wants_sum else None,
        )


class ResilientAggregator:
    def __init__(self, primary: AggregateStrategy, fallback: AggregateStrategy) -> None:
        self._primary = primary
        self._fallback = fallback

    @classmethod
    def for_store(cls, store: RecordStore) -> "ResilientAggregator":
        return cls(ServerAggregate(store), ScanAndFilter(store))

    async def aggregate(self, query: AggregateQuery) -> AggregateResult:
        if query.range is not None and query.range.is_empty:
            return AggregateResult.empty(query.kind)
        try:
            return await self._primary.run(query)
        except Exception as exc:
            logger.warning(
                "Falling back to %s aggregate for %s: %s",
                self._fallback.name,
                query.collection,
                exc,
            )
        return await self._fallback.run(query)

    async def count(self, query: AggregateQuery) -> int:
        result = await self.aggregate(query)
        return result.count or 0
