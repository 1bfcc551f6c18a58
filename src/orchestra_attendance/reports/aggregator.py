"""Attendance aggregation used by every report view.

All functions here are pure: they only read the records passed in and return
fresh values, so report requests can call them concurrently.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple, Union

from ..attendance.model import (
    AttendanceRecord,
    AttendanceStats,
    DailyBreakdown,
    InstrumentBreakdown,
    MonthlyBreakdown,
    WeekChange,
    WeeklyTrendPoint,
)
from ..common.datetime_utils import WeekRef, format_week_label, iso_week_key, shift_iso_week, week_start
from ..common.validators import require_positive
from ..core.constants import (
    ACADEMIC_YEAR_START_MONTH,
    DEFAULT_TREND_SLOPE_THRESHOLD,
    DEFAULT_TREND_WEEKS,
    INSTRUMENT_ORDER,
    NOT_ASSIGNED_INSTRUMENT,
)
from ..core.enums import StatusCode, TrendDirection
from ..students.model import Student

logger = logging.getLogger(__name__)

ACADEMIC_MONTHS = 9
_MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def normalize_status(code: Any) -> StatusCode:
    """Map a raw status code to a bucket.

    Unrecognised or missing codes are counted as present, matching what the
    web reports have always shown.
    """

    cleaned = "" if code is None else str(code).strip().upper()
    try:
        return StatusCode(cleaned)
    except ValueError:
        logger.debug("Unrecognised status code %r, counting as present", code)
        return StatusCode.PRESENT


def _percentage(count: int, total: int) -> float:
    return (count / total) * 100 if total > 0 else 0.0


def compute_stats(records: Iterable[AttendanceRecord]) -> AttendanceStats:
    present = excused = unexcused = 0
    for record in records:
        status = normalize_status(record.status_code)
        if status == StatusCode.EXCUSED_ABSENCE:
            excused += 1
        elif status == StatusCode.UNEXCUSED_ABSENCE:
            unexcused += 1
        else:
            present += 1

    total = present + excused + unexcused
    return AttendanceStats(
        total_attendance=present,
        total_excused_absences=excused,
        total_unexcused_absences=unexcused,
        total=total,
        attendance_percentage=_percentage(present, total),
        excused_percentage=_percentage(excused, total),
        unexcused_percentage=_percentage(unexcused, total),
    )


def trend_window(reference_week: WeekRef, window_size: int = DEFAULT_TREND_WEEKS) -> list[str]:
    """ISO week keys of the window ending at ``reference_week``, oldest first."""
    window_size = require_positive(window_size, "window_size")
    anchor = week_start(reference_week)
    return [shift_iso_week(anchor, -offset) for offset in range(window_size - 1, -1, -1)]


def compute_weekly_trend(
    records: Iterable[AttendanceRecord],
    reference_week: WeekRef,
    window_size: int = DEFAULT_TREND_WEEKS,
) -> list[WeeklyTrendPoint]:
    weeks = trend_window(reference_week, window_size)
    buckets: dict[str, list[AttendanceRecord]] = {week: [] for week in weeks}

    for record in records:
        bucket = buckets.get(iso_week_key(record.date))
        if bucket is not None:
            bucket.append(record)

    return [
        WeeklyTrendPoint(
            week=week,
            week_label=format_week_label(week),
            attendance_percentage=compute_stats(buckets[week]).attendance_percentage,
        )
        for week in weeks
    ]


def trend_slope(values: Sequence[float]) -> float:
    """Least-squares slope of ``values`` against x = 0, 1, 2, ..."""
    n = len(values)
    xs = range(n)
    sum_x = sum(xs)
    sum_y = sum(values)
    sum_xy = sum(x * y for x, y in zip(xs, values))
    sum_x2 = sum(x * x for x in xs)
    denom = n * sum_x2 - sum_x * sum_x
    if denom == 0:
        return 0.0
    return (n * sum_xy - sum_x * sum_y) / denom


def classify_trend_direction(
    points: Sequence[Union[WeeklyTrendPoint, float]],
    threshold: float = DEFAULT_TREND_SLOPE_THRESHOLD,
) -> TrendDirection:
    if len(points) != DEFAULT_TREND_WEEKS:
        return TrendDirection.FLAT

    values = [p.attendance_percentage if isinstance(p, WeeklyTrendPoint) else float(p) for p in points]
    slope = trend_slope(values)
    if slope > threshold:
        return TrendDirection.UP
    if slope < -threshold:
        return TrendDirection.DOWN
    return TrendDirection.FLAT


def academic_months(academic_year_start_year: int) -> list[Tuple[int, int]]:
    """(year, month) pairs from September through May, in calendar order."""
    months = []
    year, month = academic_year_start_year, ACADEMIC_YEAR_START_MONTH
    for _ in range(ACADEMIC_MONTHS):
        months.append((year, month))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return months


def compute_monthly_breakdown(
    records: Iterable[AttendanceRecord],
    academic_year_start_year: int,
) -> list[MonthlyBreakdown]:
    months = academic_months(academic_year_start_year)
    counts: dict[Tuple[int, int], dict[StatusCode, int]] = {m: defaultdict(int) for m in months}

    for record in records:
        bucket = counts.get((record.date.year, record.date.month))
        if bucket is None:
            continue
        bucket[normalize_status(record.status_code)] += 1

    breakdown = []
    for year, month in months:
        c = counts[(year, month)]
        present = c[StatusCode.PRESENT]
        excused = c[StatusCode.EXCUSED_ABSENCE]
        unexcused = c[StatusCode.UNEXCUSED_ABSENCE]
        breakdown.append(
            MonthlyBreakdown(
                month_key=f"{year}-{month:02d}",
                label=_MONTH_LABELS[month - 1],
                present=present,
                excused=excused,
                unexcused=unexcused,
                total=present + excused + unexcused,
            )
        )
    return breakdown


def _tally(records: Iterable[AttendanceRecord], key) -> dict:
    counts: dict = defaultdict(lambda: defaultdict(int))
    for record in records:
        counts[key(record)][normalize_status(record.status_code)] += 1
    return counts


def compute_daily_breakdown(records: Iterable[AttendanceRecord]) -> list[DailyBreakdown]:
    """Counts per rehearsal date, oldest first; dates without records are omitted."""
    counts = _tally(records, lambda r: r.date)

    rows = []
    for day in sorted(counts):
        c = counts[day]
        present = c[StatusCode.PRESENT]
        excused = c[StatusCode.EXCUSED_ABSENCE]
        unexcused = c[StatusCode.UNEXCUSED_ABSENCE]
        rows.append(DailyBreakdown(day, present, excused, unexcused, present + excused + unexcused))
    return rows


def instrument_of(student: Optional[Student]) -> str:
    if student is None or not (student.instrument or "").strip():
        return NOT_ASSIGNED_INSTRUMENT
    return student.instrument.strip()


def _instrument_rank(name: str):
    if name in INSTRUMENT_ORDER:
        return (INSTRUMENT_ORDER.index(name), "")
    return (len(INSTRUMENT_ORDER), name.casefold())


def compute_instrument_breakdown(
    records: Iterable[AttendanceRecord],
    students: Union[Mapping[str, Student], Iterable[Student]],
) -> list[InstrumentBreakdown]:
    """Counts per instrument section, best attendance rate first.

    Records whose student is unknown, or has no instrument, fall under
    "Not assigned". Equal rates keep the usual section order.
    """

    if not isinstance(students, Mapping):
        students = {s.student_id: s for s in students}
    counts = _tally(records, lambda r: instrument_of(students.get(r.student_id)))

    rows = []
    for instrument, c in counts.items():
        present = c[StatusCode.PRESENT]
        excused = c[StatusCode.EXCUSED_ABSENCE]
        unexcused = c[StatusCode.UNEXCUSED_ABSENCE]
        total = present + excused + unexcused
        rows.append(
            InstrumentBreakdown(
                instrument=instrument,
                present=present,
                excused=excused,
                unexcused=unexcused,
                total=total,
                attendance_rate=_percentage(present, total),
            )
        )
    rows.sort(key=lambda row: (-row.attendance_rate, _instrument_rank(row.instrument)))
    return rows


def unexcused_dates_by_student(records: Iterable[AttendanceRecord]) -> dict[str, list[date]]:
    """Dates of each student's unexcused absences, oldest first."""
    found: dict[str, list[date]] = defaultdict(list)
    for record in records:
        if normalize_status(record.status_code) == StatusCode.UNEXCUSED_ABSENCE:
            found[record.student_id].append(record.date)
    return {student_id: sorted(dates) for student_id, dates in found.items()}


def _change(current: int, previous: int) -> float:
    return ((current - previous) / max(previous, 1)) * 100


def compute_week_over_week_changes(weekly_stats: Sequence[Tuple[str, AttendanceStats]]) -> list[WeekChange]:
    """Change of each status count against the previous week; the first week is the 0 baseline."""

    changes: list[WeekChange] = []
    previous: Optional[AttendanceStats] = None
    for label, stats in weekly_stats:
        if previous is None:
            changes.append(WeekChange(label, 0.0, 0.0, 0.0))
        else:
            changes.append(
                WeekChange(
                    week_label=label,
                    attendance_change=_change(stats.total_attendance, previous.total_attendance),
                    excused_change=_change(stats.total_excused_absences, previous.total_excused_absences),
                    unexcused_change=_change(stats.total_unexcused_absences, previous.total_unexcused_absences),
                )
            )
        previous = stats
    return changes


def format_percentage(value: float) -> str:
    return f"{round(value, 1):.1f}"
