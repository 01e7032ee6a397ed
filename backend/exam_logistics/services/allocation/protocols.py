# backend/exam_logistics/services/allocation/protocols.py

"""Collaborator contracts for the allocation services."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Protocol, Sequence

from .types import (
    ExamRoomRow,
    ExistingAssignment,
    PlannedAssignment,
    Role,
    TeacherRecord,
)


class StaffingDirectory(Protocol):
    """Read side: teachers, existing assignments and exam-room records."""

    async def get_teachers(self) -> List[TeacherRecord]:
        ...

    async def get_assignments_for_dates(
        self, dates: Iterable[date]
    ) -> List[ExistingAssignment]:
        ...

    async def get_exam_room_rows(self, dates: Iterable[date]) -> List[ExamRoomRow]:
        ...

    async def get_assignments_for_room(
        self, exam_room_id: int, exam_date: date
    ) -> List[ExistingAssignment]:
        ...


class AssignmentWriter(Protocol):
    """Write side: at most one holder per (exam room, date, role)."""

    async def delete_by_room_and_role(
        self, exam_room_id: int, role: Role, exam_date: Optional[date] = None
    ) -> int:
        ...

    async def create(self, assignment: PlannedAssignment) -> int:
        ...

    async def batch_commit(self, writes: Sequence[PlannedAssignment]) -> int:
        """Replace the holder of every (exam room, date, role) in one transaction."""
        ...
