from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..students.model import Parent, Student


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's status for one rehearsal day."""

    student_id: str
    date: date
    status_code: Optional[str]
    program_id: Optional[str] = None


@dataclass(frozen=True)
class AttendanceStats:
    """Counts and percentages for a set of attendance records."""

    total_attendance: int
    total_excused_absences: int
    total_unexcused_absences: int
    total: int
    attendance_percentage: float
    excused_percentage: float
    unexcused_percentage: float

    @classmethod
    def empty(cls) -> "AttendanceStats":
        return cls(0, 0, 0, 0, 0.0, 0.0, 0.0)

    def to_dict(self) -> dict:
        return {
            "total_attendance": self.total_attendance,
            "total_excused_absences": self.total_excused_absences,
            "total_unexcused_absences": self.total_unexcused_absences,
            "total": self.total,
            "attendance_percentage": self.attendance_percentage,
            "excused_percentage": self.excused_percentage,
            "unexcused_percentage": self.unexcused_percentage,
        }


@dataclass(frozen=True)
class WeeklyTrendPoint:
    week: str
    week_label: str
    attendance_percentage: float


@dataclass(frozen=True)
class MonthlyBreakdown:
    month_key: str
    label: str
    present: int
    excused: int
    unexcused: int
    total: int


@dataclass(frozen=True)
class WeekChange:
    """Percent change of each status count against the previous week."""

    week_label: str
    attendance_change: float
    excused_change: float
    unexcused_change: float


@dataclass(frozen=True)
class DailyBreakdown:
    date: date
    present: int
    excused: int
    unexcused: int
    total: int


@dataclass(frozen=True)
class InstrumentBreakdown:
    instrument: str
    present: int
    excused: int
    unexcused: int
    total: int
    attendance_rate: float


@dataclass(frozen=True)
class UnexcusedAbsence:
    """One student's unexcused absences in a period, with who to contact."""

    student: Student
    absences: int
    dates: list[date]
    contact: Optional[Parent] = None
