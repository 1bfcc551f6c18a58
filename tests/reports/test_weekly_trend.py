from __future__ import annotations

from datetime import date, timedelta

import pytest

from orchestra_attendance.attendance.model import AttendanceRecord, AttendanceStats, WeeklyTrendPoint
from orchestra_attendance.core.enums import TrendDirection
from orchestra_attendance.core.exceptions import ValidationError
from orchestra_attendance.reports.aggregator import (
    classify_trend_direction,
    compute_week_over_week_changes,
    compute_weekly_trend,
    trend_slope,
    trend_window,
)


def rec(code, day, student="s1"):
    return AttendanceRecord(student_id=student, date=day, status_code=code)


def test_trend_has_window_size_points_even_without_data():
    points = compute_weekly_trend([], "2024-W37", 4)

    assert [p.week for p in points] == ["2024-W34", "2024-W35", "2024-W36", "2024-W37"]
    assert all(p.attendance_percentage == 0.0 for p in points)


def test_trend_buckets_by_monday_start_week():
    records = [
        rec("A", date(2024, 9, 9)),   # Monday of W37
        rec("UA", date(2024, 9, 15)),  # Sunday of W37
        rec("A", date(2024, 9, 8)),   # Sunday of W36
        rec("A", date(2024, 8, 1)),   # outside the window
    ]

    points = compute_weekly_trend(records, date(2024, 9, 11))

    by_week = {p.week: p.attendance_percentage for p in points}
    assert by_week["2024-W37"] == 50.0
    assert by_week["2024-W36"] == 100.0
    assert by_week["2024-W35"] == 0.0
    assert points[-1].week == "2024-W37"
    assert points[-1].week_label == "09 Sep - 15 Sep"


def test_trend_window_crosses_year_boundary():
    assert trend_window("2021-W02", 4) == ["2020-W52", "2020-W53", "2021-W01", "2021-W02"]
    assert trend_window("2025-W01", 3) == ["2024-W51", "2024-W52", "2025-W01"]


def test_trend_window_size_other_than_four():
    points = compute_weekly_trend([], "2024-W10", 6)

    assert len(points) == 6


def test_invalid_window_size_or_week():
    with pytest.raises(ValidationError):
        compute_weekly_trend([], "2024-W10", 0)
    with pytest.raises(ValidationError):
        compute_weekly_trend([], "2024-W60")
    with pytest.raises(ValidationError):
        compute_weekly_trend([], "last week")


@pytest.mark.parametrize(
    "values, expected",
    [
        ([10, 20, 30, 40], TrendDirection.UP),
        ([40, 30, 20, 10], TrendDirection.DOWN),
        ([25, 26, 24, 25], TrendDirection.FLAT),
    ],
)
def test_classify_trend_direction(values, expected):
    assert classify_trend_direction(values) == expected


def test_classify_accepts_trend_points():
    points = [WeeklyTrendPoint(f"2024-W{w:02d}", "", pct) for w, pct in zip(range(10, 14), [90, 80, 70, 60])]

    assert classify_trend_direction(points) == TrendDirection.DOWN


def test_classify_needs_exactly_four_points():
    assert classify_trend_direction([10, 50, 90]) == TrendDirection.FLAT
    assert classify_trend_direction([]) == TrendDirection.FLAT
    assert classify_trend_direction([10, 20, 30, 40, 50]) == TrendDirection.FLAT


def test_threshold_is_exclusive_and_adjustable():
    # slope of exactly 0.5 stays flat
    assert trend_slope([0, 0.5, 1.0, 1.5]) == pytest.approx(0.5)
    assert classify_trend_direction([0, 0.5, 1.0, 1.5]) == TrendDirection.FLAT
    assert classify_trend_direction([0, 0.5, 1.0, 1.5], threshold=0.1) == TrendDirection.UP


def test_trend_slope_degenerate_inputs():
    assert trend_slope([]) == 0.0
    assert trend_slope([42]) == 0.0
    assert trend_slope([10, 20, 30, 40]) == pytest.approx(10.0)


def test_week_over_week_changes():
    def stats(a, ea, ua):
        total = a + ea + ua
        return AttendanceStats(a, ea, ua, total, 0.0, 0.0, 0.0)

    changes = compute_week_over_week_changes(
        [
            ("Week 1", stats(10, 2, 0)),
            ("Week 2", stats(15, 1, 3)),
            ("Current week", stats(15, 0, 0)),
        ]
    )

    assert [c.week_label for c in changes] == ["Week 1", "Week 2", "Current week"]
    assert (changes[0].attendance_change, changes[0].excused_change, changes[0].unexcused_change) == (0.0, 0.0, 0.0)
    assert changes[1].attendance_change == pytest.approx(50.0)
    assert changes[1].excused_change == pytest.approx(-50.0)
    # previous count of zero divides by one
    assert changes[1].unexcused_change == pytest.approx(300.0)
    assert changes[2].attendance_change == 0.0
    assert changes[2].unexcused_change == pytest.approx(-100.0)


def test_week_over_week_changes_empty():
    assert compute_week_over_week_changes([]) == []
