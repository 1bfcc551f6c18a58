from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Parent, Student


class StudentRepository(Protocol):
    def get_by_id(self, student_id: str) -> Optional[Student]:
        raise NotImplementedError

    def list_active(self, *, program_id: Optional[str] = None, instrument: Optional[str] = None) -> Sequence[Student]:
        raise NotImplementedError

    def list_instruments(self, *, program_id: Optional[str] = None) -> Sequence[str]:
        raise NotImplementedError


class ParentRepository(Protocol):
    def get_primary_contact(self, student_id: str) -> Optional[Parent]:
        """The student's primary contact, else any linked parent, else None."""

        raise NotImplementedError
