from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional, Sequence

from ..attendance.model import (
    AttendanceRecord,
    AttendanceStats,
    DailyBreakdown,
    InstrumentBreakdown,
    MonthlyBreakdown,
    UnexcusedAbsence,
    WeekChange,
    WeeklyTrendPoint,
)
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import (
    academic_year_range,
    default_academic_year,
    iso_week_key,
    iso_week_range,
    month_period_range,
    now_local,
)
from ..common.validators import require_non_empty, require_positive
from ..core.constants import DEFAULT_TREND_SLOPE_THRESHOLD, DEFAULT_TREND_WEEKS
from ..core.enums import Granularity, MonthPeriod, ReportType, TrendDirection
from ..core.exceptions import ValidationError
from ..students.model import Student
from ..students.repository import ParentRepository, StudentRepository
from .aggregator import (
    classify_trend_direction,
    compute_daily_breakdown,
    compute_instrument_breakdown,
    compute_monthly_breakdown,
    compute_stats,
    compute_week_over_week_changes,
    compute_weekly_trend,
    instrument_of,
    unexcused_dates_by_student,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportData:
    start: date
    end: date
    granularity: Granularity
    report_type: ReportType
    stats: AttendanceStats
    weekly_trend: list[WeeklyTrendPoint] = field(default_factory=list)
    trend_direction: TrendDirection = TrendDirection.FLAT
    monthly_breakdown: list[MonthlyBreakdown] = field(default_factory=list)
    daily_breakdown: list[DailyBreakdown] = field(default_factory=list)
    instrument_breakdown: list[InstrumentBreakdown] = field(default_factory=list)
    student_id: Optional[str] = None
    instrument: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "start_date": self.start.strftime("%Y-%m-%d"),
            "end_date": self.end.strftime("%Y-%m-%d"),
            "granularity": self.granularity.value,
            "report_type": self.report_type.value,
            "report_scope": "student" if self.report_type == ReportType.INDIVIDUAL else "group",
            "student_id": self.student_id,
            "instrument_filter": self.instrument,
            "stats": self.stats.to_dict(),
            "weekly_trend": [
                {"week": p.week, "label": p.week_label, "percentage": p.attendance_percentage}
                for p in self.weekly_trend
            ],
            "trend_direction": self.trend_direction.value,
            "monthly_breakdown": [
                {
                    "key": m.month_key,
                    "label": m.label,
                    "a": m.present,
                    "ea": m.excused,
                    "ua": m.unexcused,
                    "total": m.total,
                }
                for m in self.monthly_breakdown
            ],
            "daily_breakdown": [
                {
                    "date": d.date.strftime("%Y-%m-%d"),
                    "present": d.present,
                    "excused": d.excused,
                    "unexcused": d.unexcused,
                    "total": d.total,
                }
                for d in self.daily_breakdown
            ],
            "instrument_breakdown": [
                {
                    "instrument": i.instrument,
                    "present": i.present,
                    "excused": i.excused,
                    "unexcused": i.unexcused,
                    "total": i.total,
                    "attendance_rate": round(i.attendance_rate, 1),
                }
                for i in self.instrument_breakdown
            ],
        }


@dataclass(frozen=True)
class LabelledWeekStats:
    label: str
    start: date
    end: date
    stats: AttendanceStats


@dataclass(frozen=True)
class RollingWeeklyReport:
    weeks: list[LabelledWeekStats]
    changes: list[WeekChange]


@dataclass(frozen=True)
class UnexcusedRoster:
    date: date
    absences: list[UnexcusedAbsence]

    def to_dict(self) -> dict:
        rows = []
        for item in self.absences:
            contact = item.contact
            rows.append(
                {
                    "student_id": item.student.student_id,
                    "student_name": item.student.full_name,
                    "instrument": instrument_of(item.student),
                    "absences": item.absences,
                    "dates": [d.strftime("%Y-%m-%d") for d in item.dates],
                    "parent_name": contact.full_name if contact else None,
                    "parent_email": contact.email if contact else None,
                    "parent_phone": contact.phone if contact else None,
                }
            )
        return {"date": self.date.strftime("%Y-%m-%d"), "students": rows}


class AttendanceReportService:
    """Fetch attendance rows for a report request, then aggregate them."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        students: StudentRepository,
        parents: Optional[ParentRepository] = None,
        *,
        trend_weeks: int = DEFAULT_TREND_WEEKS,
        slope_threshold: float = DEFAULT_TREND_SLOPE_THRESHOLD,
    ):
        self._attendance = attendance
        self._students = students
        self._parents = parents
        self._trend_weeks = require_positive(trend_weeks, "trend_weeks")
        self._slope_threshold = float(slope_threshold)

    def _scope_student_ids(
        self,
        *,
        report_type: ReportType,
        student_id: Optional[str],
        instrument: Optional[str],
        program_id: Optional[str],
    ) -> Optional[list[str]]:
        """Student ids to restrict the query to, or None for the whole program."""
        if report_type == ReportType.INDIVIDUAL:
            return [str(student_id)]
        if instrument:
            students = self._students.list_active(program_id=program_id, instrument=instrument)
            ids = [s.student_id for s in students]
            logger.debug("Instrument filter %r matched %d students", instrument, len(ids))
            return ids
        return None

    def _fetch(self, *, start: date, end: date, program_id: Optional[str], student_ids) -> Sequence[AttendanceRecord]:
        records = self._attendance.get_records(
            start_date=start,
            end_date=end,
            program_id=program_id,
            student_ids=student_ids,
        )
        logger.info("Fetched %d attendance records for %s..%s", len(records), start, end)
        return records

    def resolve_range(
        self,
        *,
        granularity: Granularity,
        today: date,
        month_period: MonthPeriod = MonthPeriod.CURRENT,
        custom_month: Optional[str] = None,
        iso_week: Optional[str] = None,
        academic_year: Optional[int] = None,
    ) -> tuple[date, date]:
        if granularity == Granularity.MONTHLY:
            return month_period_range(month_period, today, custom_month)
        if granularity == Granularity.WEEKLY:
            return iso_week_range(iso_week or iso_week_key(today))
        return academic_year_range(academic_year if academic_year is not None else default_academic_year(today))

    def build_report(
        self,
        *,
        granularity: Granularity,
        report_type: ReportType = ReportType.GROUP,
        program_id: Optional[str] = None,
        student_id: Optional[str] = None,
        instrument: Optional[str] = None,
        month_period: MonthPeriod = MonthPeriod.CURRENT,
        custom_month: Optional[str] = None,
        iso_week: Optional[str] = None,
        academic_year: Optional[int] = None,
        today: Optional[date] = None,
    ) -> ReportData:
        student: Optional[Student] = None
        if report_type == ReportType.INDIVIDUAL:
            student_id = require_non_empty(student_id, "student_id")
            student = self._students.get_by_id(student_id)
            if student is None:
                raise ValidationError(f"Unknown student: {student_id}")

        today = today or now_local().date()
        if granularity == Granularity.ANNUAL and academic_year is None:
            academic_year = default_academic_year(today)

        start, end = self.resolve_range(
            granularity=granularity,
            today=today,
            month_period=month_period,
            custom_month=custom_month,
            iso_week=iso_week,
            academic_year=academic_year,
        )
        student_ids = self._scope_student_ids(
            report_type=report_type,
            student_id=student_id,
            instrument=instrument,
            program_id=program_id,
        )

        # Weekly reports also need the preceding weeks of the trend window.
        fetch_start = start
        if granularity == Granularity.WEEKLY:
            fetch_start = start - timedelta(weeks=self._trend_weeks - 1)
        records = self._fetch(start=fetch_start, end=end, program_id=program_id, student_ids=student_ids)

        in_period = [r for r in records if start <= r.date <= end]
        stats = compute_stats(in_period)

        weekly_trend: list[WeeklyTrendPoint] = []
        direction = TrendDirection.FLAT
        breakdown: list[MonthlyBreakdown] = []
        if granularity == Granularity.WEEKLY:
            weekly_trend = compute_weekly_trend(records, start, self._trend_weeks)
            direction = classify_trend_direction(weekly_trend, self._slope_threshold)
        elif granularity == Granularity.ANNUAL:
            breakdown = compute_monthly_breakdown(in_period, academic_year)

        if student is not None:
            students_by_id: dict[str, Student] = {student.student_id: student}
        else:
            students_by_id = {s.student_id: s for s in self._students.list_active(program_id=program_id)}

        return ReportData(
            start=start,
            end=end,
            granularity=granularity,
            report_type=report_type,
            stats=stats,
            weekly_trend=weekly_trend,
            trend_direction=direction,
            monthly_breakdown=breakdown,
            daily_breakdown=compute_daily_breakdown(in_period),
            instrument_breakdown=compute_instrument_breakdown(in_period, students_by_id),
            student_id=str(student_id) if report_type == ReportType.INDIVIDUAL else None,
            instrument=instrument if report_type == ReportType.GROUP else None,
        )

    def build_rolling_weekly_stats(
        self,
        *,
        today: Optional[date] = None,
        weeks: int = DEFAULT_TREND_WEEKS,
        program_id: Optional[str] = None,
        student_id: Optional[str] = None,
        instrument: Optional[str] = None,
    ) -> RollingWeeklyReport:
        """Stats for the last ``weeks`` seven-day windows ending today, oldest first.

        Windows are rolling (not ISO weeks); the newest is labelled "Current week".
        """

        weeks = require_positive(weeks, "weeks")
        today = today or now_local().date()
        report_type = ReportType.INDIVIDUAL if student_id else ReportType.GROUP
        student_ids = self._scope_student_ids(
            report_type=report_type,
            student_id=student_id,
            instrument=instrument,
            program_id=program_id,
        )

        windows = []
        for i in range(weeks - 1, -1, -1):
            end = today - timedelta(days=7 * i)
            label = "Current week" if i == 0 else f"Week {weeks - i}"
            windows.append((label, end - timedelta(days=6), end))

        records = self._fetch(start=windows[0][1], end=today, program_id=program_id, student_ids=student_ids)

        labelled = [
            LabelledWeekStats(
                label=label,
                start=start,
                end=end,
                stats=compute_stats(r for r in records if start <= r.date <= end),
            )
            for label, start, end in windows
        ]
        changes = compute_week_over_week_changes([(w.label, w.stats) for w in labelled])
        return RollingWeeklyReport(weeks=labelled, changes=changes)

    def build_unexcused_roster(self, *, day: date, program_id: Optional[str] = None) -> UnexcusedRoster:
        """Students with an unexcused absence on ``day``, most absences first.

        Each entry carries the student's primary parent contact when a parent
        repository is configured.
        """

        records = self._fetch(start=day, end=day, program_id=program_id, student_ids=None)
        by_student = unexcused_dates_by_student(records)

        absences = []
        for student_id, dates in by_student.items():
            student = self._students.get_by_id(student_id)
            if student is None:
                logger.warning("Unexcused absence for unknown student %s on %s", student_id, day)
                student = Student(student_id, "", "")
            contact = self._parents.get_primary_contact(student_id) if self._parents is not None else None
            absences.append(UnexcusedAbsence(student=student, absences=len(dates), dates=dates, contact=contact))

        absences.sort(key=lambda a: (-a.absences, a.student.last_name.casefold(), a.student.first_name.casefold()))
        logger.info("%d students with unexcused absences on %s", len(absences), day)
        return UnexcusedRoster(date=day, absences=absences)
