# backend/exam_logistics/services/data_retrieval/staffing_data.py

"""
Service for retrieving teachers, exam rooms and existing invigilation
assignments from the database
"""

import logging
from datetime import date
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...models import Exam, ExamRoom, ExamRoomExamLink, Room, Teacher, TeacherAssignment
from ..allocation.types import (
    ExamRoomRow,
    ExamSession,
    ExistingAssignment,
    Role,
    TeacherRecord,
)

logger = logging.getLogger(__name__)


class StaffingData:
    """Service for retrieving staffing-related data"""

    def __init__(self, session: AsyncSession):
        self.session = session
        logger.debug("StaffingData service initialized with session")

    async def get_teachers(self) -> List[TeacherRecord]:
        """All teachers ordered by id, as immutable snapshots."""
        stmt = select(Teacher).order_by(Teacher.teacher_id)
        result = await self.session.execute(stmt)
        teachers = [
            TeacherRecord(
                teacher_id=t.teacher_id,
                name=t.name,
                rank=t.rank,
                department=t.department,
                periods_assigned=t.total_periods_assigned or 0,
            )
            for t in result.scalars().all()
        ]
        logger.info(f"Retrieved {len(teachers)} teachers")
        return teachers

    async def get_assignments_for_dates(
        self, dates: Iterable[date]
    ) -> List[ExistingAssignment]:
        """Persisted assignments on any of ``dates`` with their room numbers."""
        dates = list(dates)
        if not dates:
            return []

        stmt = (
            select(TeacherAssignment, Room.room_number)
            .join(ExamRoom, ExamRoom.exam_room_id == TeacherAssignment.exam_room_id)
            .join(Room, Room.room_id == ExamRoom.room_id)
            .where(TeacherAssignment.exam_date.in_(dates))
            .order_by(TeacherAssignment.assignment_id)
        )
        result = await self.session.execute(stmt)
        assignments = [
            self._to_existing(row.TeacherAssignment, row.room_number)
            for row in result.all()
        ]
        logger.info(f"Retrieved {len(assignments)} assignments for {len(dates)} dates")
        return assignments

    async def get_assignments_for_room(
        self, exam_room_id: int, exam_date: date
    ) -> List[ExistingAssignment]:
        stmt = (
            select(TeacherAssignment, Room.room_number)
            .join(ExamRoom, ExamRoom.exam_room_id == TeacherAssignment.exam_room_id)
            .join(Room, Room.room_id == ExamRoom.room_id)
            .where(
                TeacherAssignment.exam_room_id == exam_room_id,
                TeacherAssignment.exam_date == exam_date,
            )
            .order_by(TeacherAssignment.assignment_id)
        )
        result = await self.session.execute(stmt)
        return [
            self._to_existing(row.TeacherAssignment, row.room_number)
            for row in result.all()
        ]

    async def get_exam_room_rows(self, dates: Iterable[date]) -> List[ExamRoomRow]:
        """Exam rooms on ``dates`` joined with their linked exams, if any."""
        dates = list(dates)
        if not dates:
            return []

        stmt = (
            select(ExamRoom, Room.room_number, ExamRoomExamLink.link_id, Exam)
            .join(Room, Room.room_id == ExamRoom.room_id)
            .outerjoin(
                ExamRoomExamLink,
                ExamRoomExamLink.exam_room_id == ExamRoom.exam_room_id,
            )
            .outerjoin(Exam, Exam.exam_id == ExamRoomExamLink.exam_id)
            .where(ExamRoom.exam_date.in_(dates))
            .order_by(ExamRoom.exam_room_id, ExamRoomExamLink.link_id)
        )
        result = await self.session.execute(stmt)

        rows = []
        for exam_room, room_number, link_id, exam in result.all():
            rows.append(
                ExamRoomRow(
                    exam_room_id=exam_room.exam_room_id,
                    room_number=room_number,
                    exam_date=exam_room.exam_date,
                    link_id=link_id,
                    start_time=exam.start_time if exam else None,
                    end_time=exam.end_time if exam else None,
                    group_label=(exam.group_label or None) if exam else None,
                )
            )
        logger.info(f"Retrieved {len(rows)} exam-room rows for {len(dates)} dates")
        return rows

    @staticmethod
    def _to_existing(assignment: TeacherAssignment, room_number: str) -> ExistingAssignment:
        return ExistingAssignment(
            teacher_id=assignment.teacher_id,
            exam_date=assignment.exam_date,
            session=ExamSession(assignment.session),
            role=Role(assignment.role),
            exam_room_id=assignment.exam_room_id,
            room_number=room_number,
        )
