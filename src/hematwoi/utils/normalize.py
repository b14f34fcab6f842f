"""Numeric and date normalization helpers.

Every value that crosses from the store (or from a request payload) into the
ledger passes through these functions. Numeric columns may come back as
strings and dates as ISO text, so nothing downstream trusts raw input.
"""

from __future__ import annotations

import math
from calendar import monthrange
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

CENT = Decimal("0.01")


def utcnow() -> datetime:
    """Current instant as a naive UTC datetime (the storage convention)."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def safe_number(value: Any) -> float:
    """Parse ``value`` as a float, falling back to 0.0 for anything unusable."""

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        parsed = float(value)
    else:
        try:
            parsed = float(str(value).strip())
        except ValueError:
            return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def to_number(value: Any) -> Optional[float]:
    """Parse ``value`` as a finite float; blank or invalid input yields None."""

    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        parsed = float(value)
    elif isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            parsed = float(trimmed)
        except ValueError:
            return None
    else:
        return None
    return parsed if math.isfinite(parsed) else None


def round_money(value: float) -> float:
    """Round to cents using half-up rounding."""

    try:
        quantized = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return 0.0
    return float(quantized)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def clean_text(value: Any) -> Optional[str]:
    """Trim text; empty strings become None."""

    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def coerce_datetime(value: Any) -> Optional[datetime]:
    """Coerce a date, datetime or ISO string into a naive UTC datetime.

    Bare dates (``YYYY-MM-DD``) resolve to midnight UTC. Unparsable input
    returns None.
    """

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _to_naive_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            return datetime.combine(date.fromisoformat(text[:10]), time.min)
        except ValueError:
            return None
    return _to_naive_utc(parsed)


def coerce_datetime_end(value: Any) -> Optional[datetime]:
    """Like :func:`coerce_datetime` but bare dates resolve to 23:59:59."""

    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time(23, 59, 59))
    if isinstance(value, str) and len(value.strip()) == 10:
        start = coerce_datetime(value)
        return start.replace(hour=23, minute=59, second=59) if start else None
    return coerce_datetime(value)


def truncate_to_day(value: datetime) -> datetime:
    """Drop the time-of-day component."""

    return datetime.combine(value.date(), time.min)


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by whole calendar months.

    The day is clamped to the last day of the target month, so Jan 31 + 1
    month is Feb 28 (or 29).
    """

    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def month_start(value: datetime, offset: int = 0) -> datetime:
    """First instant of the calendar month ``offset`` months after ``value``."""

    return add_months(value.replace(day=1, hour=0, minute=0, second=0, microsecond=0), offset)


def clamp_tenor(value: Any, *, maximum: int = 36) -> Optional[int]:
    """Clamp a tenor into ``[1, maximum]``; None when it is not numeric."""

    if value is None or value == "":
        return 1
    parsed = to_number(value)
    if parsed is None:
        return None
    return int(clamp(int(parsed), 1, maximum))
