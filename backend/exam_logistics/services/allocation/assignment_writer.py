# backend/exam_logistics/services/allocation/assignment_writer.py

"""SQLAlchemy persistence for invigilation assignments.

Each role in an exam room on a date has at most one holder: writes delete
the current holder first, then insert. Teacher period counters follow the
rows, down for every deleted assignment and up for every inserted one.
"""

import logging
from datetime import date
from typing import Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...models import Teacher, TeacherAssignment
from .types import PlannedAssignment, Role

logger = logging.getLogger(__name__)


class SqlAssignmentWriter:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def delete_by_room_and_role(
        self, exam_room_id: int, role: Role, exam_date: Optional[date] = None
    ) -> int:
        """Remove the holder(s) of ``role``; scoped to ``exam_date`` when given."""
        conditions = [
            TeacherAssignment.exam_room_id == exam_room_id,
            TeacherAssignment.role == role.value,
        ]
        if exam_date is not None:
            conditions.append(TeacherAssignment.exam_date == exam_date)

        result = await self.session.execute(
            select(TeacherAssignment.assignment_id, TeacherAssignment.teacher_id).where(
                *conditions
            )
        )
        rows = result.all()
        if not rows:
            return 0

        await self.session.execute(
            delete(TeacherAssignment).where(
                TeacherAssignment.assignment_id.in_([r.assignment_id for r in rows])
            )
        )
        for row in rows:
            await self.session.execute(
                update(Teacher)
                .where(
                    Teacher.teacher_id == row.teacher_id,
                    Teacher.total_periods_assigned > 0,
                )
                .values(total_periods_assigned=Teacher.total_periods_assigned - 1)
            )
        logger.debug(
            f"Removed {len(rows)} {role.value} assignment(s) from exam room {exam_room_id}"
        )
        return len(rows)

    async def create(self, assignment: PlannedAssignment) -> int:
        record = TeacherAssignment(
            exam_room_id=assignment.exam_room_id,
            teacher_id=assignment.teacher_id,
            role=assignment.role.value,
            exam_date=assignment.exam_date,
            session=assignment.session.value,
            shift_start=assignment.shift_start,
            shift_end=assignment.shift_end,
        )
        self.session.add(record)
        await self.session.execute(
            update(Teacher)
            .where(Teacher.teacher_id == assignment.teacher_id)
            .values(total_periods_assigned=Teacher.total_periods_assigned + 1)
        )
        await self.session.flush()
        return record.assignment_id

    async def batch_commit(self, writes: Sequence[PlannedAssignment]) -> int:
        """Replace every written role holder in a single transaction."""
        try:
            for write in writes:
                await self.delete_by_room_and_role(
                    write.exam_room_id, write.role, write.exam_date
                )
                await self.create(write)
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Batch commit of {len(writes)} assignments failed: {e}")
            await self.session.rollback()
            raise
        logger.info(f"Committed {len(writes)} assignments")
        return len(writes)
