from __future__ import annotations

from enum import Enum


class StatusCode(str, Enum):
    """Attendance status codes as stored in the attendance table."""

    PRESENT = "A"
    EXCUSED_ABSENCE = "EA"
    UNEXCUSED_ABSENCE = "UA"


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class Granularity(str, Enum):
    """Report period granularity offered by the reports page."""

    MONTHLY = "monthly"
    WEEKLY = "weekly"
    ANNUAL = "annual"


class ReportType(str, Enum):
    INDIVIDUAL = "individual"
    GROUP = "group"


class MonthPeriod(str, Enum):
    """Month selector for monthly reports."""

    CURRENT = "current"
    PREVIOUS = "previous"
    CUSTOM = "custom"
