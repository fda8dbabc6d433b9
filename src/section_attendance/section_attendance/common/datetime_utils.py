from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator, Optional

from ..core.constants import DEFAULT_RANGE_DAYS, MAX_RANGE_DAYS
from ..core.exceptions import ValidationError


def parse_iso_date(value: str, field_name: str = "date") -> date:
    """Parse YYYY-MM-DD string into date."""
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: expected YYYY-MM-DD")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def today_local() -> date:
    return now_local().date()


def resolve_range(start: Optional[str], end: Optional[str], *, today: Optional[date] = None) -> tuple[date, date]:
    """Resolve an optional start/end query pair into a bounded date window.

    Missing bounds default to the last DEFAULT_RANGE_DAYS days ending today.
    """
    today = today or today_local()
    end_date = parse_iso_date(end, "end_date") if end else today
    start_date = parse_iso_date(start, "start_date") if start else end_date - timedelta(days=DEFAULT_RANGE_DAYS)

    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")
    if (end_date - start_date).days + 1 > MAX_RANGE_DAYS:
        raise ValidationError(f"Date range must not exceed {MAX_RANGE_DAYS} days")
    return start_date, end_date


def iter_days(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)
