# backend/exam_logistics/tests/integration/test_staffing_repository.py

"""
Database-backed tests: directory reads, replace-on-write persistence and a
full bulk run against an in-memory SQLite database.
"""

from dataclasses import replace
from datetime import time

import pytest
from sqlalchemy import func, select

from exam_logistics.models import (
    Exam,
    ExamRoom,
    ExamRoomExamLink,
    Room,
    Teacher,
    TeacherAssignment,
)
from exam_logistics.services.allocation.assignment_writer import SqlAssignmentWriter
from exam_logistics.services.allocation.batch_planner import BatchPlanner, PlannerPhase
from exam_logistics.services.allocation.types import (
    ExamSession,
    PlannedAssignment,
    Role,
    RoomSlot,
)
from exam_logistics.services.data_retrieval.staffing_data import StaffingData
from exam_logistics.tests.helpers import AP, DAY_1, DAY_2, LECTURER, TUTOR

pytestmark = pytest.mark.asyncio

NETWORKS_GROUP = "Year 2 - Semester 1 · Computer Science (Networks)"


async def _seed(session):
    session.add_all(
        [
            Teacher(teacher_id=1, name="Teacher One", rank=AP, total_periods_assigned=0),
            Teacher(teacher_id=2, name="Teacher Two", rank=AP, total_periods_assigned=3),
            Teacher(teacher_id=10, name="Teacher Ten", rank=LECTURER, total_periods_assigned=0),
            Teacher(teacher_id=11, name="Teacher Eleven", rank=LECTURER, total_periods_assigned=1),
            Teacher(teacher_id=20, name="Teacher Twenty", rank=TUTOR, total_periods_assigned=0),
            Room(room_id=1, room_number="B-101"),
            Room(room_id=2, room_number="B-102"),
            ExamRoom(exam_room_id=5, room_id=1, exam_date=DAY_1),
            ExamRoom(exam_room_id=6, room_id=2, exam_date=DAY_1),
            Exam(
                exam_id=100,
                subject_code="CS-201",
                exam_name="Computer Networks",
                exam_date=DAY_1,
                start_time=time(13, 30),
                end_time=time(16, 30),
                program="Computer Science",
                specialization="Networks",
                year_level=2,
                semester=1,
            ),
            ExamRoomExamLink(link_id=40, exam_room_id=5, exam_id=100),
        ]
    )
    await session.commit()


async def _periods(session, teacher_id):
    result = await session.execute(
        select(Teacher.total_periods_assigned).where(Teacher.teacher_id == teacher_id)
    )
    return result.scalar_one()


async def _assignment_count(session):
    result = await session.execute(select(func.count(TeacherAssignment.assignment_id)))
    return result.scalar_one()


class TestStaffingData:
    async def test_teachers_in_id_order(self, db_session):
        await _seed(db_session)
        teachers = await StaffingData(db_session).get_teachers()
        assert [t.teacher_id for t in teachers] == [1, 2, 10, 11, 20]
        assert teachers[1].periods_assigned == 3

    async def test_exam_room_rows(self, db_session):
        await _seed(db_session)
        rows = await StaffingData(db_session).get_exam_room_rows([DAY_1])
        assert len(rows) == 2

        linked, unlinked = rows
        assert linked.exam_room_id == 5
        assert linked.room_number == "B-101"
        assert linked.link_id == 40
        assert linked.start_time == time(13, 30)
        assert linked.group_label == NETWORKS_GROUP

        assert unlinked.exam_room_id == 6
        assert unlinked.link_id is None
        assert unlinked.group_label is None

    async def test_no_rows_for_other_dates(self, db_session):
        await _seed(db_session)
        directory = StaffingData(db_session)
        assert await directory.get_exam_room_rows([DAY_2]) == []
        assert await directory.get_exam_room_rows([]) == []

    async def test_assignments_carry_room_number(self, db_session):
        await _seed(db_session)
        db_session.add(
            TeacherAssignment(
                exam_room_id=5,
                teacher_id=10,
                role="Assistant",
                exam_date=DAY_1,
                session="Afternoon",
            )
        )
        await db_session.commit()

        directory = StaffingData(db_session)
        (found,) = await directory.get_assignments_for_dates([DAY_1])
        assert found.room_number == "B-101"
        assert found.session == ExamSession.AFTERNOON
        assert found.role == Role.ASSISTANT
        assert await directory.get_assignments_for_room(5, DAY_1) == [found]
        assert await directory.get_assignments_for_room(6, DAY_1) == []


class TestSqlAssignmentWriter:
    def _write(self, teacher_id=10):
        return PlannedAssignment(
            exam_room_id=5,
            teacher_id=teacher_id,
            role=Role.ASSISTANT,
            exam_date=DAY_1,
            session=ExamSession.AFTERNOON,
            shift_start=time(13, 30),
            shift_end=time(16, 30),
        )

    async def test_rewriting_same_holder_is_idempotent(self, db_session):
        await _seed(db_session)
        writer = SqlAssignmentWriter(db_session)
        await writer.batch_commit([self._write()])
        await writer.batch_commit([self._write()])

        assert await _assignment_count(db_session) == 1
        assert await _periods(db_session, 10) == 1

    async def test_replacing_holder_moves_the_period(self, db_session):
        await _seed(db_session)
        writer = SqlAssignmentWriter(db_session)
        await writer.batch_commit([self._write(teacher_id=10)])
        await writer.batch_commit([replace(self._write(), teacher_id=11)])

        result = await db_session.execute(select(TeacherAssignment.teacher_id))
        assert result.scalars().all() == [11]
        assert await _periods(db_session, 10) == 0
        assert await _periods(db_session, 11) == 2

    async def test_roles_are_independent(self, db_session):
        await _seed(db_session)
        writer = SqlAssignmentWriter(db_session)
        supervisor = replace(self._write(), teacher_id=1, role=Role.SUPERVISOR)
        await writer.batch_commit([supervisor, self._write()])
        assert await writer.delete_by_room_and_role(5, Role.SUPERVISOR, DAY_1) == 1
        await db_session.commit()

        assert await _assignment_count(db_session) == 1
        assert await _periods(db_session, 1) == 0


class TestBulkRunAgainstDatabase:
    async def test_calculate_and_save(self, db_session, settings):
        await _seed(db_session)
        planner = BatchPlanner(
            StaffingData(db_session), SqlAssignmentWriter(db_session), settings=settings
        )

        state = await planner.calculate(
            [RoomSlot("b-101", DAY_1, exam_room_id=999), RoomSlot("B-102", DAY_1)]
        )
        first, second = state.previews
        assert first.exam_room_id == 5
        assert first.session == ExamSession.AFTERNOON
        assert second.session == ExamSession.MORNING
        assert (first.supervisor.teacher_id, first.assistant.teacher_id) == (1, 10)

        state = await planner.save()
        assert state.phase == PlannerPhase.DONE
        assert all(o.saved for o in state.outcomes)

        result = await db_session.execute(
            select(TeacherAssignment.exam_room_id, TeacherAssignment.session).order_by(
                TeacherAssignment.assignment_id
            )
        )
        assert {tuple(row) for row in result.all()} == {(5, "Afternoon"), (6, "Morning")}
        assert await _assignment_count(db_session) == 4
        assert await _periods(db_session, 1) == 2

    async def test_room_without_exam_room_on_date(self, db_session, settings):
        await _seed(db_session)
        planner = BatchPlanner(
            StaffingData(db_session), SqlAssignmentWriter(db_session), settings=settings
        )
        state = await planner.calculate([RoomSlot("B-101", DAY_2)])
        assert not state.previews[0].ok
        assert state.planned == ()
