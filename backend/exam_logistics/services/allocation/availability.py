# backend/exam_logistics/services/allocation/availability.py

"""Cross-room time-conflict checks for teachers.

A teacher is busy for a (date, session) when any persisted or staged
assignment already places them there, whatever the room or role. With
``one_duty_per_day`` the conflict widens to the whole date.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import DefaultDict, Iterable, List, Optional, Set

from .types import ExamSession, ExistingAssignment, PlannedAssignment, SlotKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeacherAvailability:
    teacher_id: int
    available: bool
    reason: Optional[str] = None
    conflicts: List[ExistingAssignment] = field(default_factory=list)


def describe_conflict(conflict: ExistingAssignment) -> str:
    where = f"room {conflict.room_number}" if conflict.room_number else "another room"
    return (
        f"Already assigned to {where} on {conflict.exam_date.isoformat()} "
        f"during {conflict.session.value} session"
    )


class AvailabilityChecker:
    def __init__(
        self,
        assignments: Iterable[ExistingAssignment] = (),
        one_duty_per_day: bool = False,
    ):
        self.one_duty_per_day = one_duty_per_day
        self._by_teacher: DefaultDict[int, List[ExistingAssignment]] = defaultdict(list)
        self._busy: DefaultDict[SlotKey, Set[int]] = defaultdict(set)
        self._busy_by_date: DefaultDict[date, Set[int]] = defaultdict(set)
        for assignment in assignments:
            self._add(assignment)

    def _add(self, assignment: ExistingAssignment) -> None:
        self._by_teacher[assignment.teacher_id].append(assignment)
        self._busy[SlotKey(assignment.exam_date, assignment.session)].add(
            assignment.teacher_id
        )
        self._busy_by_date[assignment.exam_date].add(assignment.teacher_id)

    def stage(self, planned: PlannedAssignment) -> None:
        """Record an in-batch pick so later slots see the teacher as busy."""
        self._add(
            ExistingAssignment(
                teacher_id=planned.teacher_id,
                exam_date=planned.exam_date,
                session=planned.session,
                role=planned.role,
                exam_room_id=planned.exam_room_id,
                room_number=planned.room_number,
            )
        )

    def busy_teacher_ids(self, exam_date: date, session: ExamSession) -> Set[int]:
        if self.one_duty_per_day:
            return set(self._busy_by_date.get(exam_date, ()))
        return set(self._busy.get(SlotKey(exam_date, session), ()))

    def is_busy(self, teacher_id: int, exam_date: date, session: ExamSession) -> bool:
        return teacher_id in self.busy_teacher_ids(exam_date, session)

    def check_availability(
        self, teacher_id: int, exam_date: date, session: ExamSession
    ) -> TeacherAvailability:
        conflicts = [
            a
            for a in self._by_teacher.get(teacher_id, ())
            if a.exam_date == exam_date
            and (self.one_duty_per_day or a.session == session)
        ]
        if not conflicts:
            return TeacherAvailability(teacher_id=teacher_id, available=True)
        return TeacherAvailability(
            teacher_id=teacher_id,
            available=False,
            reason=describe_conflict(conflicts[0]),
            conflicts=conflicts,
        )

