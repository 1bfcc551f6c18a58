from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union

from ..core.constants import ACADEMIC_YEAR_END_MONTH, ACADEMIC_YEAR_START_MONTH
from ..core.enums import MonthPeriod
from ..core.exceptions import ValidationError

_ISO_WEEK_RE = re.compile(r"^(\d{4})-W(\d{1,2})$")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")

WeekRef = Union[str, date]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date: {value!r}")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def iso_week_key(day: date) -> str:
    """ISO-8601 week key (``YYYY-Www``) of the Monday-start week holding ``day``."""
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def parse_iso_week(key: str) -> Tuple[int, int]:
    match = _ISO_WEEK_RE.match((key or "").strip())
    if not match:
        raise ValidationError(f"Invalid ISO week: {key!r}")
    year, week = int(match.group(1)), int(match.group(2))
    try:
        date.fromisocalendar(year, week, 1)
    except ValueError:
        raise ValidationError(f"Invalid ISO week: {key!r}")
    return year, week


def week_start(ref: WeekRef) -> date:
    """Monday of the ISO week identified by a key or by any day inside it."""
    if isinstance(ref, date):
        return ref - timedelta(days=ref.weekday())
    year, week = parse_iso_week(ref)
    return date.fromisocalendar(year, week, 1)


def iso_week_range(ref: WeekRef) -> Tuple[date, date]:
    monday = week_start(ref)
    return monday, monday + timedelta(days=6)


def shift_iso_week(ref: WeekRef, weeks: int) -> str:
    return iso_week_key(week_start(ref) + timedelta(weeks=weeks))


def format_week_label(ref: WeekRef) -> str:
    first_day, last_day = iso_week_range(ref)
    return f"{first_day.strftime('%d %b')} - {last_day.strftime('%d %b')}"


def month_range(year: int, month: int) -> Tuple[date, date]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def parse_month(value: str) -> Tuple[int, int]:
    """Parse ``YYYY-MM`` into (year, month)."""
    match = _MONTH_RE.match((value or "").strip())
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise ValidationError(f"Invalid month: {value!r}")
    return int(match.group(1)), int(match.group(2))


def month_period_range(
    period: MonthPeriod,
    today: date,
    custom_month: Optional[str] = None,
) -> Tuple[date, date]:
    if period == MonthPeriod.CURRENT:
        return month_range(today.year, today.month)
    if period == MonthPeriod.CUSTOM:
        if not custom_month:
            raise ValidationError("A custom month period needs a month (YYYY-MM)")
        return month_range(*parse_month(custom_month))

    first_of_month = today.replace(day=1)
    last_of_previous = first_of_month - timedelta(days=1)
    return month_range(last_of_previous.year, last_of_previous.month)


def academic_year_range(start_year: int) -> Tuple[date, date]:
    """September 1st of ``start_year`` to May 31st of the following year."""
    first_day, _ = month_range(start_year, ACADEMIC_YEAR_START_MONTH)
    _, last_day = month_range(start_year + 1, ACADEMIC_YEAR_END_MONTH)
    return first_day, last_day


def default_academic_year(today: date) -> int:
    if today.month >= ACADEMIC_YEAR_START_MONTH:
        return today.year
    return today.year - 1
