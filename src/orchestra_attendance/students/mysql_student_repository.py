from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import INSTRUMENT_ORDER
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..database.retry import RetryPolicy
from .model import Parent, Student
from .repository import ParentRepository, StudentRepository


def sort_instruments(instruments) -> list[str]:
    """Orchestra sections first (Violin, Viola, Cello, Bass), then the rest alphabetically."""

    def key(name: str):
        if name in INSTRUMENT_ORDER:
            return (0, INSTRUMENT_ORDER.index(name), "")
        return (1, 0, name.casefold())

    unique = {i.strip() for i in instruments if i and i.strip()}
    return sorted(unique, key=key)


def _to_student(row: dict) -> Student:
    return Student(
        student_id=str(row["id"]),
        first_name=row.get("first_name") or "",
        last_name=row.get("last_name") or "",
        instrument=(row.get("instrument") or "").strip() or None,
        program_id=row.get("program_id"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, retry: Optional[RetryPolicy] = None):
        self._conn_factory = conn_factory
        self._retry = retry or RetryPolicy()

    def get_by_id(self, student_id: str) -> Optional[Student]:
        def query():
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    SELECT id, first_name, last_name, instrument, program_id, is_active
                    FROM students
                    WHERE id=%s
                    """,
                    (student_id,),
                )
                row = fetchone(cur)
                return _to_student(row) if row else None

        return self._retry.run(query, what="student lookup")

    def list_active(self, *, program_id: Optional[str] = None, instrument: Optional[str] = None) -> Sequence[Student]:
        sql = """
            SELECT id, first_name, last_name, instrument, program_id, is_active
            FROM students
            WHERE is_active=1
        """
        params: list = []
        if program_id:
            sql += " AND program_id=%s"
            params.append(program_id)
        if instrument:
            sql += " AND TRIM(instrument)=%s"
            params.append(instrument.strip())
        sql += " ORDER BY first_name, last_name"

        def query():
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(sql, tuple(params))
                return [_to_student(r) for r in fetchall(cur)]

        return self._retry.run(query, what="student list")

    def list_instruments(self, *, program_id: Optional[str] = None) -> Sequence[str]:
        sql = "SELECT DISTINCT instrument FROM students WHERE instrument IS NOT NULL"
        params: tuple = ()
        if program_id:
            sql += " AND program_id=%s"
            params = (program_id,)

        def query():
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(sql, params)
                return sort_instruments(r["instrument"] for r in fetchall(cur))

        return self._retry.run(query, what="instrument list")


class MySQLParentRepository(ParentRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, retry: Optional[RetryPolicy] = None):
        self._conn_factory = conn_factory
        self._retry = retry or RetryPolicy()

    def get_primary_contact(self, student_id: str) -> Optional[Parent]:
        def query():
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    SELECT p.id, p.first_name, p.last_name, p.email, p.phone, sp.is_primary_contact
                    FROM student_parents sp
                    JOIN parents p ON p.id = sp.parent_id
                    WHERE sp.student_id=%s
                    ORDER BY sp.is_primary_contact DESC, p.id
                    LIMIT 1
                    """,
                    (student_id,),
                )
                row = fetchone(cur)
                if not row:
                    return None
                return Parent(
                    parent_id=str(row["id"]),
                    first_name=row.get("first_name") or "",
                    last_name=row.get("last_name") or "",
                    email=row.get("email"),
                    phone=row.get("phone"),
                    is_primary_contact=bool(row.get("is_primary_contact")),
                )

        return self._retry.run(query, what="parent contact lookup")
