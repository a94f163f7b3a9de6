from __future__ import annotations

import calendar
import math
from datetime import date, datetime, time, timezone
from typing import Union

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse a YYYY-MM-DD (or full ISO datetime) string into a date."""
    v = (value or "").strip()
    try:
        if len(v) > 10:
            return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
        return datetime.strptime(v, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date format: {value!r}")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_day(value: Union[date, datetime]) -> date:
    """Drop the time-of-day part; attendance has day granularity."""
    if isinstance(value, datetime):
        return value.date()
    return value


def day_start(value: Union[date, datetime]) -> datetime:
    """Local midnight of the given day, the form dates are stored in."""
    return datetime.combine(to_day(value), time.min)


def month_bounds(month: int, year: int) -> tuple[date, date]:
    if not 1 <= int(month) <= 12:
        raise ValidationError("Month must be between 1 and 12")
    last_day = calendar.monthrange(int(year), int(month))[1]
    return date(int(year), int(month), 1), date(int(year), int(month), last_day)


def academic_year_bounds(academic_year: str) -> tuple[date, date]:
    """'2024-2025' -> (2024-04-01, 2025-03-31)."""
    start_year, end_year = parse_academic_year(academic_year)
    return date(start_year, 4, 1), date(end_year, 3, 31)


def parse_academic_year(academic_year: str) -> tuple[int, int]:
    parts = (academic_year or "").strip().split("-")
    if len(parts) != 2 or not all(p.isdigit() and len(p) == 4 for p in parts):
        raise ValidationError("Academic year must be in format YYYY-YYYY")
    start_year, end_year = int(parts[0]), int(parts[1])
    if end_year != start_year + 1:
        raise ValidationError("Academic year must be consecutive years")
    return start_year, end_year


def current_academic_year(today: date | None = None) -> str:
    today = today or date.today()
    if today.month >= 6:
        return f"{today.year}-{today.year + 1}"
    return f"{today.year - 1}-{today.year}"


def percentage(part: int, total: int) -> int:
    """Whole percent, rounded half up; 0 when there is nothing to divide."""
    if not total:
        return 0
    return int(math.floor(part * 100 / total + 0.5))


def minutes_until(later: datetime, now: datetime) -> int:
    return max(0, math.ceil((later - now).total_seconds() / 60))
