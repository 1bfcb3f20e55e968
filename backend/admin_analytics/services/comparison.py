from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal


def round_to(value: float, places: int) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def change_percentage(current: float, previous: float) -> float | None:
    """Percent change from ``previous`` to ``current`` rounded to one decimal.

    ``None`` means growth from zero, which has no percentage.
    """
    if previous == 0:
        return 0.0 if current == 0 else None
    change = (current - previous) / previous * 100
    if not math.isfinite(change):
        return None
    return round_to(change, 1)
