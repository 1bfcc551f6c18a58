from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_records(
        self,
        *,
        start_date: date,
        end_date: date,
        program_id: Optional[str] = None,
        student_ids: Optional[Iterable[str]] = None,
    ) -> Sequence[AttendanceRecord]:
        """Rows with ``start_date <= date <= end_date``; ``student_ids`` narrows when given."""

        raise NotImplementedError
