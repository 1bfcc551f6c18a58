from __future__ import annotations

from datetime import date

import pytest

from orchestra_attendance.attendance.model import AttendanceRecord
from orchestra_attendance.core.enums import Granularity, MonthPeriod, ReportType, TrendDirection
from orchestra_attendance.core.exceptions import ValidationError
from orchestra_attendance.reports.service import AttendanceReportService
from orchestra_attendance.students.model import Parent, Student


class FakeAttendanceRepo:
    def __init__(self, records):
        self._records = list(records)
        self.calls = []

    def get_records(self, *, start_date, end_date, program_id=None, student_ids=None):
        self.calls.append(
            {
                "start_date": start_date,
                "end_date": end_date,
                "program_id": program_id,
                "student_ids": None if student_ids is None else list(student_ids),
            }
        )
        ids = None if student_ids is None else set(student_ids)
        return [
            r
            for r in self._records
            if start_date <= r.date <= end_date
            and (program_id is None or r.program_id == program_id)
            and (ids is None or r.student_id in ids)
        ]


class FakeStudentRepo:
    def __init__(self, students):
        self._students = list(students)

    def get_by_id(self, student_id):
        return next((s for s in self._students if s.student_id == student_id), None)

    def list_active(self, *, program_id=None, instrument=None):
        return [
            s
            for s in self._students
            if s.is_active
            and (program_id is None or s.program_id == program_id)
            and (instrument is None or s.instrument == instrument)
        ]

    def list_instruments(self, *, program_id=None):
        return sorted({s.instrument for s in self._students if s.instrument})


class FakeParentRepo:
    def __init__(self, contacts):
        self._contacts = dict(contacts)

    def get_primary_contact(self, student_id):
        return self._contacts.get(student_id)


STUDENTS = [
    Student("s1", "Ana", "Ruiz", "Violin", "p1"),
    Student("s2", "Leo", "Diaz", "Cello", "p1"),
    Student("s3", "Mia", "Paz", "Violin", "p1", is_active=False),
]


def rec(student, day, code, program="p1"):
    return AttendanceRecord(student_id=student, date=day, status_code=code, program_id=program)


def make_service(records):
    repo = FakeAttendanceRepo(records)
    return AttendanceReportService(repo, FakeStudentRepo(STUDENTS)), repo


def test_weekly_report_builds_trend_and_direction():
    records = [
        # 2024-W34 .. W37, attendance 25% -> 50% -> 75% -> 100%
        rec("s1", date(2024, 8, 19), "A"), rec("s2", date(2024, 8, 19), "UA"),
        rec("s1", date(2024, 8, 20), "UA"), rec("s2", date(2024, 8, 20), "EA"),
        rec("s1", date(2024, 8, 26), "A"), rec("s2", date(2024, 8, 26), "UA"),
        rec("s1", date(2024, 9, 2), "A"), rec("s2", date(2024, 9, 2), "A"),
        rec("s1", date(2024, 9, 3), "A"), rec("s2", date(2024, 9, 3), "EA"),
        rec("s1", date(2024, 9, 9), "A"), rec("s2", date(2024, 9, 10), "A"),
    ]
    svc, repo = make_service(records)

    report = svc.build_report(granularity=Granularity.WEEKLY, iso_week="2024-W37")

    assert (report.start, report.end) == (date(2024, 9, 9), date(2024, 9, 15))
    assert repo.calls[0]["start_date"] == date(2024, 8, 19)
    assert report.stats.total == 2
    assert report.stats.attendance_percentage == 100.0
    assert [p.attendance_percentage for p in report.weekly_trend] == [25.0, 50.0, 75.0, 100.0]
    assert report.trend_direction == TrendDirection.UP
    assert report.monthly_breakdown == []


def test_weekly_report_defaults_to_current_week():
    svc, _ = make_service([])

    report = svc.build_report(granularity=Granularity.WEEKLY, today=date(2024, 9, 11))

    assert report.start == date(2024, 9, 9)
    assert len(report.weekly_trend) == 4
    assert report.trend_direction == TrendDirection.FLAT


def test_annual_report_builds_breakdown():
    records = [
        rec("s1", date(2024, 9, 15), "A"),
        rec("s2", date(2025, 1, 10), "UA"),
        rec("s1", date(2025, 7, 1), "A"),
    ]
    svc, _ = make_service(records)

    report = svc.build_report(granularity=Granularity.ANNUAL, academic_year=2024)

    assert (report.start, report.end) == (date(2024, 9, 1), date(2025, 5, 31))
    assert report.stats.total == 2
    assert len(report.monthly_breakdown) == 9
    assert report.monthly_breakdown[0].present == 1
    assert report.monthly_breakdown[4].unexcused == 1
    assert report.weekly_trend == []


def test_annual_report_defaults_academic_year_from_today():
    svc, _ = make_service([])

    report = svc.build_report(granularity=Granularity.ANNUAL, today=date(2025, 3, 1))

    assert report.start == date(2024, 9, 1)
    assert report.monthly_breakdown[0].month_key == "2024-09"


def test_monthly_previous_period():
    records = [rec("s1", date(2024, 2, 10), "EA"), rec("s1", date(2024, 3, 1), "A")]
    svc, _ = make_service(records)

    report = svc.build_report(
        granularity=Granularity.MONTHLY,
        month_period=MonthPeriod.PREVIOUS,
        today=date(2024, 3, 15),
    )

    assert report.stats.total == 1
    assert report.stats.excused_percentage == 100.0
    assert report.weekly_trend == [] and report.monthly_breakdown == []
    assert report.trend_direction == TrendDirection.FLAT


def test_individual_report_requires_student():
    svc, _ = make_service([])

    with pytest.raises(ValidationError):
        svc.build_report(granularity=Granularity.MONTHLY, report_type=ReportType.INDIVIDUAL)


def test_individual_report_filters_to_student():
    records = [rec("s1", date(2024, 3, 4), "A"), rec("s2", date(2024, 3, 4), "UA")]
    svc, repo = make_service(records)

    report = svc.build_report(
        granularity=Granularity.MONTHLY,
        report_type=ReportType.INDIVIDUAL,
        student_id="s2",
        instrument="Violin",
        today=date(2024, 3, 20),
    )

    assert repo.calls[0]["student_ids"] == ["s2"]
    assert report.stats.total_unexcused_absences == 1
    assert report.student_id == "s2"
    assert report.instrument is None


def test_group_report_filters_by_instrument_of_active_students():
    records = [
        rec("s1", date(2024, 3, 4), "A"),
        rec("s2", date(2024, 3, 4), "UA"),
        rec("s3", date(2024, 3, 4), "UA"),
    ]
    svc, repo = make_service(records)

    report = svc.build_report(granularity=Granularity.MONTHLY, instrument="Violin", today=date(2024, 3, 20))

    assert repo.calls[0]["student_ids"] == ["s1"]
    assert report.stats.total == 1
    assert report.instrument == "Violin"


def test_group_report_with_unplayed_instrument_is_empty():
    svc, _ = make_service([rec("s1", date(2024, 3, 4), "A")])

    report = svc.build_report(granularity=Granularity.MONTHLY, instrument="Harp", today=date(2024, 3, 20))

    assert report.stats.total == 0
    assert report.stats.attendance_percentage == 0.0


def test_report_forwards_program_id():
    records = [rec("s1", date(2024, 3, 4), "A"), rec("s1", date(2024, 3, 5), "A", program="p2")]
    svc, repo = make_service(records)

    report = svc.build_report(granularity=Granularity.MONTHLY, program_id="p2", today=date(2024, 3, 20))

    assert repo.calls[0]["program_id"] == "p2"
    assert report.stats.total == 1


def test_report_to_dict_shape():
    svc, _ = make_service([rec("s1", date(2024, 9, 3), "A")])

    data = svc.build_report(granularity=Granularity.WEEKLY, iso_week="2024-W36").to_dict()

    assert data["start_date"] == "2024-09-02"
    assert data["report_scope"] == "group"
    assert data["stats"]["total_attendance"] == 1
    assert data["weekly_trend"][-1] == {"week": "2024-W36", "label": "02 Sep - 08 Sep", "percentage": 100.0}
    assert data["trend_direction"] in {"up", "down", "flat"}


def test_rolling_weekly_stats():
    today = date(2024, 9, 28)
    records = [
        rec("s1", date(2024, 9, 1), "A"),   # Week 1 (Sep 1 - Sep 7)
        rec("s1", date(2024, 9, 8), "A"),   # Week 2
        rec("s2", date(2024, 9, 14), "UA"),  # Week 2
        rec("s1", date(2024, 9, 22), "A"),  # Current week (Sep 22 - Sep 28)
        rec("s2", date(2024, 9, 28), "A"),
    ]
    svc, repo = make_service(records)

    report = svc.build_rolling_weekly_stats(today=today)

    assert [w.label for w in report.weeks] == ["Week 1", "Week 2", "Week 3", "Current week"]
    assert report.weeks[0].start == date(2024, 9, 1)
    assert report.weeks[-1].end == today
    assert [w.stats.total for w in report.weeks] == [1, 2, 0, 2]
    assert repo.calls[0]["start_date"] == date(2024, 9, 1)
    assert report.changes[0].attendance_change == 0.0
    assert report.changes[1].unexcused_change == pytest.approx(100.0)
    assert report.changes[3].attendance_change == pytest.approx(200.0)


def test_individual_report_for_unknown_student_is_rejected():
    svc, repo = make_service([rec("s1", date(2024, 3, 4), "A")])

    with pytest.raises(ValidationError):
        svc.build_report(granularity=Granularity.MONTHLY, report_type=ReportType.INDIVIDUAL, student_id="s9")
    with pytest.raises(ValidationError):
        svc.build_report(granularity=Granularity.MONTHLY, report_type=ReportType.INDIVIDUAL, student_id="   ")
    assert repo.calls == []


def test_group_report_has_daily_and_instrument_breakdowns():
    records = [
        rec("s1", date(2024, 3, 5), "EA"),
        rec("s1", date(2024, 3, 4), "A"),
        rec("s2", date(2024, 3, 4), "UA"),
        rec("s2", date(2024, 3, 5), "A"),
        rec("s3", date(2024, 3, 5), "A"),
    ]
    svc, _ = make_service(records)

    report = svc.build_report(granularity=Granularity.MONTHLY, today=date(2024, 3, 20))

    assert [(d.date, d.present, d.excused, d.unexcused, d.total) for d in report.daily_breakdown] == [
        (date(2024, 3, 4), 1, 0, 1, 2),
        (date(2024, 3, 5), 2, 1, 0, 3),
    ]
    # s3 is inactive, so its row has no known instrument.
    assert [(i.instrument, i.total, i.attendance_rate) for i in report.instrument_breakdown] == [
        ("Not assigned", 1, 100.0),
        ("Violin", 2, 50.0),
        ("Cello", 2, 50.0),
    ]


def test_individual_report_instrument_breakdown_uses_the_student():
    records = [rec("s2", date(2024, 3, 4), "UA"), rec("s2", date(2024, 3, 11), "A")]
    svc, _ = make_service(records)

    report = svc.build_report(
        granularity=Granularity.MONTHLY,
        report_type=ReportType.INDIVIDUAL,
        student_id="s2",
        today=date(2024, 3, 20),
    )

    assert [(i.instrument, i.present, i.unexcused) for i in report.instrument_breakdown] == [("Cello", 1, 1)]
    assert report.to_dict()["instrument_breakdown"][0]["attendance_rate"] == 50.0


def test_unexcused_roster_for_a_day():
    day = date(2024, 3, 4)
    records = [
        rec("s1", day, "UA"),
        rec("s2", day, "ua"),
        rec("s2", day, "UA"),
        rec("s3", day, "A"),
        rec("s1", date(2024, 3, 5), "UA"),
    ]
    repo = FakeAttendanceRepo(records)
    parents = FakeParentRepo({"s1": Parent("f1", "Rosa", "Ruiz", "rosa@example.com", "555-0101", True)})
    svc = AttendanceReportService(repo, FakeStudentRepo(STUDENTS), parents)

    roster = svc.build_unexcused_roster(day=day)

    assert (repo.calls[0]["start_date"], repo.calls[0]["end_date"]) == (day, day)
    assert [(a.student.student_id, a.absences) for a in roster.absences] == [("s2", 2), ("s1", 1)]
    assert roster.absences[0].contact is None
    assert roster.absences[1].contact.full_name == "Rosa Ruiz"

    row = roster.to_dict()["students"][1]
    assert row == {
        "student_id": "s1",
        "student_name": "Ana Ruiz",
        "instrument": "Violin",
        "absences": 1,
        "dates": ["2024-03-04"],
        "parent_name": "Rosa Ruiz",
        "parent_email": "rosa@example.com",
        "parent_phone": "555-0101",
    }


def test_unexcused_roster_without_parent_repository_or_known_student():
    svc, _ = make_service([rec("s9", date(2024, 3, 4), "UA"), rec("s1", date(2024, 3, 4), "EA")])

    roster = svc.build_unexcused_roster(day=date(2024, 3, 4))

    assert len(roster.absences) == 1
    only = roster.absences[0]
    assert only.student.student_id == "s9"
    assert only.contact is None
    assert roster.to_dict()["students"][0]["instrument"] == "Not assigned"
