# backend/exam_logistics/tests/helpers.py

"""Builders and in-memory doubles shared by the unit tests."""

from datetime import date, time
from typing import Dict, Iterable, List, Optional

from exam_logistics.services.allocation.types import (
    ExamRoomRow,
    ExamSession,
    ExistingAssignment,
    PlannedAssignment,
    Role,
    TeacherRecord,
)

AP = "Associate Professor"
LECTURER = "Lecturer"
ASSISTANT_LECTURER = "Assistant Lecturer"
TUTOR = "Tutor"

DAY_1 = date(2025, 5, 1)
DAY_2 = date(2025, 5, 2)


def teacher(teacher_id: int, rank: str, periods: int = 0, name: Optional[str] = None) -> TeacherRecord:
    return TeacherRecord(
        teacher_id=teacher_id,
        name=name or f"Teacher {teacher_id}",
        rank=rank,
        department="General Studies",
        periods_assigned=periods,
    )


def room_row(
    exam_room_id: int,
    room_number: str,
    exam_date: date,
    link_id: Optional[int] = None,
    start: Optional[time] = time(9, 0),
    end: Optional[time] = time(12, 0),
    group_label: Optional[str] = None,
) -> ExamRoomRow:
    return ExamRoomRow(
        exam_room_id=exam_room_id,
        room_number=room_number,
        exam_date=exam_date,
        link_id=link_id if link_id is not None else exam_room_id * 10,
        start_time=start,
        end_time=end,
        group_label=group_label,
    )


class FakeStaffingDirectory:
    """In-memory directory with the same contract as ``StaffingData``."""

    def __init__(
        self,
        teachers: Iterable[TeacherRecord] = (),
        assignments: Iterable[ExistingAssignment] = (),
        rows: Iterable[ExamRoomRow] = (),
    ):
        self.teachers = list(teachers)
        self.assignments = list(assignments)
        self.rows = list(rows)
        self.calls: List[str] = []

    async def get_teachers(self) -> List[TeacherRecord]:
        self.calls.append("get_teachers")
        return list(self.teachers)

    async def get_assignments_for_dates(self, dates) -> List[ExistingAssignment]:
        self.calls.append("get_assignments_for_dates")
        wanted = set(dates)
        return [a for a in self.assignments if a.exam_date in wanted]

    async def get_exam_room_rows(self, dates) -> List[ExamRoomRow]:
        self.calls.append("get_exam_room_rows")
        wanted = set(dates)
        return [r for r in self.rows if r.exam_date in wanted]

    async def get_assignments_for_room(self, exam_room_id, exam_date) -> List[ExistingAssignment]:
        self.calls.append("get_assignments_for_room")
        return [
            a
            for a in self.assignments
            if a.exam_room_id == exam_room_id and a.exam_date == exam_date
        ]


class RecordingWriter:
    """Writer double that keeps one holder per (exam room, date, role)."""

    def __init__(self, fail_with: Optional[BaseException] = None):
        self.fail_with = fail_with
        self.rows: Dict[tuple, PlannedAssignment] = {}
        self.commits: List[List[PlannedAssignment]] = []

    async def delete_by_room_and_role(self, exam_room_id, role, exam_date=None) -> int:
        keys = [
            k
            for k in self.rows
            if k[0] == exam_room_id and k[2] == role and (exam_date is None or k[1] == exam_date)
        ]
        for key in keys:
            del self.rows[key]
        return len(keys)

    async def create(self, assignment: PlannedAssignment) -> int:
        self.rows[(assignment.exam_room_id, assignment.exam_date, assignment.role)] = assignment
        return len(self.rows)

    async def batch_commit(self, writes) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        for write in writes:
            await self.delete_by_room_and_role(write.exam_room_id, write.role, write.exam_date)
            await self.create(write)
        self.commits.append(list(writes))
        return len(writes)


def existing(
    teacher_id: int,
    exam_date: date,
    session: ExamSession = ExamSession.MORNING,
    role: Role = Role.ASSISTANT,
    exam_room_id: int = 99,
    room_number: str = "Z-999",
) -> ExistingAssignment:
    return ExistingAssignment(
        teacher_id=teacher_id,
        exam_date=exam_date,
        session=session,
        role=role,
        exam_room_id=exam_room_id,
        room_number=room_number,
    )
