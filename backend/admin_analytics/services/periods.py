from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


class Period(str, Enum):
    today = "today"
    week = "week"
    month = "month"
    year = "year"

    @classmethod
    def parse(cls, value: "str | Period") -> "Period | None":
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("DateRange start must not be after end")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    @property
    def is_empty(self) -> bool:
        return self.start == self.end


@dataclass(frozen=True)
class PeriodBounds:
    current: DateRange
    previous: DateRange


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _shift_months(moment: datetime, months: int) -> datetime:
    index = moment.month - 1 + months
    return moment.replace(year=moment.year + index // 12, month=index % 12 + 1)


def resolve_period_bounds(period: "str | Period", now: datetime) -> PeriodBounds:
    """Current/previous ranges for ``period``, all derived from ``now``.

    Unknown periods resolve to empty ranges at the start of today.
    """
    start_today = _start_of_day(now)
    resolved = Period.parse(period)

    if resolved is Period.today:
        return PeriodBounds(
            current=DateRange(start_today, now),
            previous=DateRange(start_today - timedelta(days=1), start_today),
        )
    if resolved is Period.week:
        start = start_today - timedelta(days=6)
        return PeriodBounds(
            current=DateRange(start, now),
            previous=DateRange(start - timedelta(days=7), start),
        )
    if resolved is Period.month:
        start = start_today.replace(day=1)
        return PeriodBounds(
            current=DateRange(start, now),
            previous=DateRange(_shift_months(start, -1), start),
        )
    if resolved is Period.year:
        start = start_today.replace(month=1, day=1)
        return PeriodBounds(
            current=DateRange(start, now),
            previous=DateRange(start.replace(year=start.year - 1), start),
        )
    empty = DateRange(start_today, start_today)
    return PeriodBounds(current=empty, previous=empty)
