"""Field probing and type normalization for loosely typed documents."""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from admin_analytics.store.base import lookup


def to_number(value: Any) -> float | int:
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    if isinstance(value, Decimal):
        return float(value) if value.is_finite() else 0
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return 0
        try:
            parsed = float(Decimal(cleaned))
        except (InvalidOperation, ValueError):
            return 0
        return parsed if math.isfinite(parsed) else 0
    # server-native numeric wrappers expose either __float__ or a ``value`` field
    if hasattr(value, "__float__"):
        try:
            parsed = float(value)
        except (TypeError, ValueError, OverflowError):
            return 0
        return parsed if math.isfinite(parsed) else 0
    if isinstance(value, Mapping):
        return to_number(value["value"]) if "value" in value else 0
    inner = getattr(value, "value", None)
    if inner is not None and inner is not value:
        return to_number(inner)
    return 0


def to_datetime(value: Any, default: datetime | None = None) -> datetime | None:
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    for attr in ("to_datetime", "toDate"):
        converter = getattr(value, attr, None)
        if callable(converter):
            return to_datetime(converter(), default)
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return default
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned.endswith("Z"):
            cleaned = cleaned[:-1] + "+00:00"
        try:
            return to_datetime(datetime.fromisoformat(cleaned), default)
        except ValueError:
            return default
    if isinstance(value, Mapping) and "seconds" in value:
        seconds = to_number(value["seconds"])
        nanos = to_number(value.get("nanoseconds", 0))
        try:
            return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return default
    return default


def read_path(data: Mapping[str, Any] | None, path: str) -> Any:
    if not data:
        return None
    return lookup(data, path)


def first_present(data: Mapping[str, Any] | None, *paths: str) -> Any:
    """Return the first truthy value among ``paths``."""
    for path in paths:
        value = read_path(data, path)
        if value:
            return value
    return None


def text_of(data: Mapping[str, Any] | None, path: str) -> str:
    value = read_path(data, path)
    if value is None:
        return ""
    return str(value).strip()


def status_of(data: Mapping[str, Any] | None, default: str = "pending") -> str:
    status = text_of(data, "status")
    return (status or default).lower()
