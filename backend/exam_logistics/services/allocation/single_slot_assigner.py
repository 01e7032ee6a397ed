# backend/exam_logistics/services/allocation/single_slot_assigner.py

"""Interactive staffing of one room on one date.

The room is re-resolved on every load and confirm. Confirming replaces the
holder of each picked role in one atomic write, so re-confirming the current
holders, or swapping them between roles, leaves period counters unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from ...config import Settings, get_settings
from ...core.exceptions import (
    AppError,
    CommitFailedError,
    InvalidRoleError,
    PeriodLimitReachedError,
    PrefetchFailedError,
    RoomNotFoundForDateError,
    TimeConflictError,
)
from ..tracking_mixin import TrackingMixin
from .availability import AvailabilityChecker, describe_conflict
from .batch_planner import build_context, calculate_assignments
from .ledgers import WorkloadLedger, check_rank_limits
from .protocols import AssignmentWriter, StaffingDirectory
from .rank_policy import RankPolicy, workload_level
from .room_slot_resolver import RoomSlotResolver
from .types import (
    BatchContext,
    ExamSession,
    PlannedAssignment,
    RankLimits,
    ResolvedRoomSlot,
    Role,
    RoomSlot,
    SlotPreview,
    TeacherRecord,
    derive_session,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    teacher: TeacherRecord
    available: bool
    periods_assigned: int
    workload_level: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class RoomAssignmentStatus:
    exam_room_id: int
    supervisor_id: Optional[int] = None
    assistant_id: Optional[int] = None

    @property
    def has_supervisor(self) -> bool:
        return self.supervisor_id is not None

    @property
    def has_assistant(self) -> bool:
        return self.assistant_id is not None

    @property
    def is_fully_staffed(self) -> bool:
        return self.has_supervisor and self.has_assistant


@dataclass
class SlotAssignmentView:
    """Everything the interactive assigner shows for one room-slot."""

    slot: RoomSlot
    resolved: ResolvedRoomSlot
    session: ExamSession
    status: RoomAssignmentStatus
    context: BatchContext
    availability: AvailabilityChecker
    candidates: Dict[Role, List[Candidate]] = field(default_factory=dict)

    @property
    def exam_room_id(self) -> int:
        return self.resolved.exam_room_id


class SingleSlotAssigner(TrackingMixin):
    """
    Interactive assignment for one room on one date: re-resolve the room,
    show current holders and ranked candidates, suggest a pair, and replace
    role holders on confirmation.
    """

    def __init__(
        self,
        directory: StaffingDirectory,
        writer: AssignmentWriter,
        policy: Optional[RankPolicy] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__()
        self.directory = directory
        self.writer = writer
        self.settings = settings or get_settings()
        self.policy = policy or RankPolicy.from_settings(self.settings)

    async def load(self, slot: RoomSlot) -> SlotAssignmentView:
        action = self._start_action(
            "single_slot_load", f"Loading room {slot.room_number} on {slot.exam_date}"
        )
        try:
            rows = await self.directory.get_exam_room_rows([slot.exam_date])
            resolved = RoomSlotResolver(rows).resolve(slot.room_number, slot.exam_date)
            if resolved is None:
                raise RoomNotFoundForDateError(slot.room_number, slot.exam_date)

            teachers = await self.directory.get_teachers()
            existing = await self.directory.get_assignments_for_dates([slot.exam_date])
            room_assignments = await self.directory.get_assignments_for_room(
                resolved.exam_room_id, slot.exam_date
            )
        except AppError:
            self._end_action(action, "failed")
            raise
        except Exception as exc:
            self._end_action(action, "failed", {"error": str(exc)})
            raise PrefetchFailedError(cause=exc).with_context(
                room_number=slot.room_number
            ) from exc

        context = build_context(teachers, self.policy, existing, rows)
        session = slot.session or derive_session(
            resolved.start_time, ExamSession(self.settings.DEFAULT_SESSION)
        )
        availability = AvailabilityChecker(
            existing, one_duty_per_day=self.settings.ONE_DUTY_PER_DAY
        )
        holders = {a.role: a.teacher_id for a in room_assignments}
        status = RoomAssignmentStatus(
            exam_room_id=resolved.exam_room_id,
            supervisor_id=holders.get(Role.SUPERVISOR),
            assistant_id=holders.get(Role.ASSISTANT),
        )

        view = SlotAssignmentView(
            slot=slot,
            resolved=resolved,
            session=session,
            status=status,
            context=context,
            availability=availability,
        )
        view.candidates = {
            Role.SUPERVISOR: self._rank_candidates(view, context.supervisor_pool),
            Role.ASSISTANT: self._rank_candidates(view, context.assistant_pool),
        }
        self._end_action(
            action,
            "completed",
            {
                "exam_room_id": resolved.exam_room_id,
                "fully_staffed": status.is_fully_staffed,
            },
        )
        return view

    def _rank_candidates(self, view: SlotAssignmentView, pool: List[int]) -> List[Candidate]:
        candidates = []
        for teacher_id in pool:
            teacher = view.context.teacher(teacher_id)
            check = view.availability.check_availability(
                teacher_id, view.slot.exam_date, view.session
            )
            candidates.append(
                Candidate(
                    teacher=teacher,
                    available=check.available,
                    periods_assigned=teacher.periods_assigned,
                    workload_level=workload_level(teacher.periods_assigned),
                    reason=check.reason,
                )
            )
        # Available first, then lightest workload; sort is stable
        candidates.sort(key=lambda c: (not c.available, c.periods_assigned))
        return candidates

    def auto_pick(
        self, view: SlotAssignmentView, rank_limits: Optional[Mapping[str, int]] = None
    ) -> SlotPreview:
        """Suggest a pair for the slot; nothing is written."""
        limits = self._limits(rank_limits)
        computation = calculate_assignments(
            [view.slot],
            limits,
            view.context,
            self.policy,
            history_window=self.settings.PAIR_HISTORY_WINDOW,
            one_duty_per_day=self.settings.ONE_DUTY_PER_DAY,
            default_session=ExamSession(self.settings.DEFAULT_SESSION),
        )
        preview = computation.previews[0]
        logger.info(f"Suggested for room {view.slot.room_number}: {preview.message}")
        return preview

    def validate_pick(
        self,
        view: SlotAssignmentView,
        teacher_id: int,
        role: Role,
        rank_limits: Optional[Mapping[str, int]] = None,
        replacing: Iterable[Role] = (),
    ) -> TeacherRecord:
        """Raise if ``teacher_id`` cannot take ``role`` in this slot.

        ``replacing`` names other roles of this room rewritten in the same
        commit; a teacher holding one of them here is moved, not doubled.
        """
        teacher = view.context.teachers.get(teacher_id)
        if teacher is None:
            raise InvalidRoleError(
                role=role.value, message=f"Teacher {teacher_id} not found"
            )
        if not self.policy.is_eligible(teacher, role):
            raise InvalidRoleError(teacher.rank, role.value).with_context(
                teacher_id=teacher_id
            )

        check = view.availability.check_availability(
            teacher_id, view.slot.exam_date, view.session
        )
        # Rows for roles rewritten in this room are deleted before the insert
        replaced = {role, *replacing}
        held_here = [
            c
            for c in check.conflicts
            if c.exam_room_id == view.exam_room_id and c.role in replaced
        ]
        conflicts = [c for c in check.conflicts if c not in held_here]
        if conflicts:
            raise TimeConflictError(
                teacher_id, message=describe_conflict(conflicts[0]), conflicts=conflicts
            )

        limits = self._limits(rank_limits)
        workload = WorkloadLedger([teacher])
        if not held_here and not workload.eligible(teacher_id, limits):
            raise PeriodLimitReachedError(teacher_id, limits.get(teacher.rank))
        return teacher

    async def confirm(
        self,
        slot: RoomSlot,
        picks: Mapping[Role, int],
        rank_limits: Optional[Mapping[str, int]] = None,
    ) -> List[PlannedAssignment]:
        """Replace the holder of each picked role; the room id is re-resolved first."""
        if not picks:
            return []
        if len(set(picks.values())) != len(picks):
            raise InvalidRoleError(
                message="The same teacher cannot be both supervisor and assistant"
            )

        view = await self.load(slot)
        writes = []
        for role, teacher_id in picks.items():
            self.validate_pick(
                view, teacher_id, role, rank_limits, replacing=picks.keys()
            )
            writes.append(
                PlannedAssignment(
                    exam_room_id=view.exam_room_id,
                    teacher_id=teacher_id,
                    role=role,
                    exam_date=slot.exam_date,
                    session=view.session,
                    shift_start=slot.shift_start or view.resolved.start_time,
                    shift_end=slot.shift_end or view.resolved.end_time,
                    room_number=slot.room_number,
                    link_id=view.resolved.link_id,
                )
            )

        action = self._start_action(
            "single_slot_commit", f"Writing {len(writes)} assignments"
        )
        try:
            await self.writer.batch_commit(writes)
        except Exception as exc:
            self._end_action(action, "failed", {"error": str(exc)})
            raise CommitFailedError(cause=exc, write_count=len(writes)).with_context(
                exam_room_id=view.exam_room_id
            ) from exc
        self._end_action(action, "completed", {"written": len(writes)})
        await self._log_operation(
            "single_slot_confirmed",
            {"exam_room_id": view.exam_room_id, "roles": [r.value for r in picks]},
        )
        return writes

    def _limits(self, rank_limits: Optional[Mapping[str, int]]) -> RankLimits:
        return check_rank_limits(
            self.settings.rank_period_limits if rank_limits is None else rank_limits
        )
