"""Record store port consumed by the analytics services.

Records are loosely typed documents grouped in named collections. Stores
persist datetimes as fixed-width ISO-8601 UTC strings, so range filters over
timestamps compare lexically on the stored form.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Sequence

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"
# SQL LIKE shape of values written with ISO_FORMAT
ISO_LIKE_PATTERN = "____-__-__T__:__:__.______+00:00"

FILTER_OPS = ("==", ">=", "<")

_MISSING = object()


def encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime(ISO_FORMAT)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {str(key): encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return value


def lookup(data: Any, path: str, default: Any = None) -> Any:
    current = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def sort_key(value: Any) -> tuple[int, Any]:
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (1, float(value))
    if isinstance(value, str):
        return (2, value)
    return (3, str(value))


@dataclass(frozen=True)
class Record:
    id: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FieldFilter:
    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter operator {self.op!r}")

    def matches(self, data: dict[str, Any]) -> bool:
        actual = lookup(data, self.field, _MISSING)
        if actual is _MISSING:
            return False
        expected = encode_value(self.value)
        if self.op == "==":
            return actual == expected
        left, right = sort_key(actual), sort_key(expected)
        # values of different types never satisfy a range
        if left[0] != right[0]:
            return False
        if self.op == ">=":
            return left >= right
        return left < right


def where(field_name: str, op: str, value: Any) -> FieldFilter:
    return FieldFilter(field_name, op, value)


def in_range(field_name: str, start: datetime, end: datetime) -> list[FieldFilter]:
    return [FieldFilter(field_name, ">=", start), FieldFilter(field_name, "<", end)]


def apply_filters(records: Iterable[Record], filters: Sequence[FieldFilter]) -> list[Record]:
    return [record for record in records if all(f.matches(record.data) for f in filters)]


class RecordStore(ABC):
    def close(self) -> None:
        """Release resources held by the store."""

    @abstractmethod
    async def count(self, collection: str, filters: Sequence[FieldFilter] = ()) -> int:
        """Exact server-side count; raises AggregateUnsupported when unavailable."""

    @abstractmethod
    async def aggregate_sum(
        self, collection: str, filters: Sequence[FieldFilter], field_name: str
    ) -> float:
        """Server-side sum of ``field_name``; raises AggregateUnsupported when unavailable."""

    @abstractmethod
    async def scan(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[Record]:
        """Fetch matching records.

        When ``order_by`` is given, records without that field are left out of
        the result.
        """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Record | None:
        ...

    @abstractmethod
    async def add(
        self, collection: str, data: dict[str, Any], doc_id: str | None = None
    ) -> Record:
        ...
