from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, in_clause, normalize_mysql_date
from ..database.retry import RetryPolicy
from .model import AttendanceRecord
from .repository import AttendanceRepository


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, retry: Optional[RetryPolicy] = None):
        self._conn_factory = conn_factory
        self._retry = retry or RetryPolicy()

    def get_records(
        self,
        *,
        start_date: date,
        end_date: date,
        program_id: Optional[str] = None,
        student_ids: Optional[Iterable[str]] = None,
    ) -> Sequence[AttendanceRecord]:
        sql = """
            SELECT student_id, date, status_code, program_id
            FROM attendance
            WHERE date >= %s AND date <= %s
        """
        params: list = [start_date, end_date]
        if program_id:
            sql += " AND program_id=%s"
            params.append(program_id)
        if student_ids is not None:
            ids = [str(s) for s in student_ids]
            if not ids:
                return []
            sql += f" AND student_id IN ({in_clause(ids)})"
            params.extend(ids)
        sql += " ORDER BY date"

        def query() -> list[AttendanceRecord]:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(sql, tuple(params))
                return [
                    AttendanceRecord(
                        student_id=str(r["student_id"]),
                        date=normalize_mysql_date(r["date"]),
                        status_code=r.get("status_code"),
                        program_id=r.get("program_id"),
                    )
                    for r in fetchall(cur)
                ]

        return self._retry.run(query, what="attendance query")
