from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .core.constants import DEFAULT_FETCH_BASE_DELAY, DEFAULT_FETCH_MAX_RETRIES, DEFAULT_TREND_SLOPE_THRESHOLD
from .database.connection import DBConfig, DatabaseConnection
from .database.retry import RetryPolicy
from .reports.service import AttendanceReportService
from .students.mysql_student_repository import MySQLParentRepository, MySQLStudentRepository
from .students.repository import ParentRepository, StudentRepository


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    attendance_repo: AttendanceRepository
    students_repo: StudentRepository
    parents_repo: Optional[ParentRepository]

    report_service: AttendanceReportService


def build_container(
    *,
    db_config: dict,
    max_retries: int = DEFAULT_FETCH_MAX_RETRIES,
    base_delay: float = DEFAULT_FETCH_BASE_DELAY,
    slope_threshold: float = DEFAULT_TREND_SLOPE_THRESHOLD,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    retry = RetryPolicy(max_retries=max_retries, base_delay=base_delay)

    attendance_repo = MySQLAttendanceRepository(conn, retry=retry)
    students_repo = MySQLStudentRepository(conn, retry=retry)
    parents_repo = MySQLParentRepository(conn, retry=retry)

    return build_container_from_repos(
        attendance_repo,
        students_repo,
        parents_repo=parents_repo,
        conn=conn,
        slope_threshold=slope_threshold,
    )


def build_container_from_repos(
    attendance_repo: AttendanceRepository,
    students_repo: StudentRepository,
    *,
    parents_repo: Optional[ParentRepository] = None,
    conn: Optional[DatabaseConnection] = None,
    slope_threshold: float = DEFAULT_TREND_SLOPE_THRESHOLD,
) -> Container:
    report_service = AttendanceReportService(
        attendance_repo,
        students_repo,
        parents_repo,
        slope_threshold=slope_threshold,
    )
    return Container(
        conn=conn,
        attendance_repo=attendance_repo,
        students_repo=students_repo,
        parents_repo=parents_repo,
        report_service=report_service,
    )
