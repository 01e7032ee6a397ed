# backend/exam_logistics/services/allocation/batch_planner.py

"""Bulk allocation over many room-slots and dates.

The planner moves through ``calculating -> preview -> saving -> done``. Data
is fetched once, every slot is computed synchronously in caller order, the
outcome is held for review, and only an explicit save writes it. Prefetch and
commit are the only awaits in a run.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ...config import Settings, get_settings
from ...core.exceptions import (
    CommitFailedError,
    InvalidPhaseTransitionError,
    PrefetchFailedError,
)
from ..tracking_mixin import TrackingMixin
from .availability import AvailabilityChecker
from .ledgers import PairHistory, PairTypeFairnessLedger, WorkloadLedger, check_rank_limits
from .pairing_engine import PairingPolicyEngine
from .protocols import AssignmentWriter, StaffingDirectory
from .rank_policy import RankPolicy
from .room_slot_resolver import RoomSlotResolver
from .types import (
    BatchContext,
    ExamSession,
    IssueCode,
    PlannedAssignment,
    RankLimits,
    Role,
    RoomSlot,
    SlotIssue,
    SlotOutcome,
    SlotPreview,
    TeacherRecord,
    derive_session,
)

logger = logging.getLogger(__name__)

ROOM_NOT_FOUND_MESSAGE = "Room not found for this date"
NO_TEACHERS_MESSAGE = "No available teachers"
NOT_SAVED_MESSAGE = "Not saved: database write failed"


class PlannerPhase(str, Enum):
    CALCULATING = "calculating"
    PREVIEW = "preview"
    SAVING = "saving"
    DONE = "done"


@dataclass(frozen=True)
class PlannerState:
    phase: PlannerPhase
    previews: Tuple[SlotPreview, ...] = ()
    planned: Tuple[PlannedAssignment, ...] = ()
    outcomes: Tuple[SlotOutcome, ...] = ()
    error: Optional[str] = None

    @property
    def has_error(self) -> bool:
        return self.error is not None


def _require(state: PlannerState, expected: PlannerPhase, requested: PlannerPhase) -> None:
    if state.phase != expected:
        raise InvalidPhaseTransitionError(state.phase.value, requested.value)


def begin_calculation() -> PlannerState:
    return PlannerState(phase=PlannerPhase.CALCULATING)


def enter_preview(
    state: PlannerState,
    previews: Sequence[SlotPreview],
    planned: Sequence[PlannedAssignment],
) -> PlannerState:
    _require(state, PlannerPhase.CALCULATING, PlannerPhase.PREVIEW)
    return replace(
        state, phase=PlannerPhase.PREVIEW, previews=tuple(previews), planned=tuple(planned)
    )


def begin_saving(state: PlannerState) -> PlannerState:
    _require(state, PlannerPhase.PREVIEW, PlannerPhase.SAVING)
    return replace(state, phase=PlannerPhase.SAVING)


def finish(
    state: PlannerState, outcomes: Sequence[SlotOutcome], error: Optional[str] = None
) -> PlannerState:
    _require(state, PlannerPhase.SAVING, PlannerPhase.DONE)
    return replace(state, phase=PlannerPhase.DONE, outcomes=tuple(outcomes), error=error)


def abort_prefetch(state: PlannerState, error: str) -> PlannerState:
    _require(state, PlannerPhase.CALCULATING, PlannerPhase.DONE)
    return replace(state, phase=PlannerPhase.DONE, error=error)


@dataclass
class BatchComputation:
    previews: List[SlotPreview]
    planned: List[PlannedAssignment]
    workload: WorkloadLedger
    fairness: PairTypeFairnessLedger
    history: PairHistory


def build_context(
    teachers: Sequence[TeacherRecord],
    policy: RankPolicy,
    existing_assignments=(),
    exam_room_rows=(),
) -> BatchContext:
    """Index teachers by id and split them into ordered role pools."""
    by_id: Dict[int, TeacherRecord] = OrderedDict()
    for teacher in teachers:
        by_id[teacher.teacher_id] = teacher
    return BatchContext(
        teachers=dict(by_id),
        supervisor_pool=[t for t, rec in by_id.items() if policy.is_eligible(rec, Role.SUPERVISOR)],
        assistant_pool=[t for t, rec in by_id.items() if policy.is_eligible(rec, Role.ASSISTANT)],
        existing_assignments=list(existing_assignments),
        exam_room_rows=list(exam_room_rows),
    )


def _slot_message(preview: SlotPreview) -> str:
    if preview.supervisor and preview.assistant:
        return f"Assigned: {preview.pair_label}"
    if preview.supervisor:
        detail = preview.issues[0].message if preview.issues else "no assistant available"
        return f"Supervisor only: {detail}"
    detail = preview.issues[0].message if preview.issues else ""
    return f"{NO_TEACHERS_MESSAGE}: {detail}" if detail else NO_TEACHERS_MESSAGE


def calculate_assignments(
    slots: Sequence[RoomSlot],
    rank_limits: Mapping[str, int],
    context: BatchContext,
    policy: Optional[RankPolicy] = None,
    *,
    history_window: Optional[int] = None,
    one_duty_per_day: bool = False,
    default_session: ExamSession = ExamSession.MORNING,
) -> BatchComputation:
    """Compute previews and planned writes for ``slots`` in the given order.

    Pure with respect to I/O: it only reads ``context`` and the fresh ledgers
    it creates. Slots earlier in ``slots`` get first pick of the pool.
    """
    policy = policy or RankPolicy()
    limits = check_rank_limits(rank_limits)

    workload = WorkloadLedger(context.teachers.values())
    fairness = PairTypeFairnessLedger()
    history = PairHistory(window=history_window)
    availability = AvailabilityChecker(
        context.existing_assignments, one_duty_per_day=one_duty_per_day
    )
    resolver = RoomSlotResolver(context.exam_room_rows)
    engine = PairingPolicyEngine(
        context.teachers, policy, limits, workload, fairness, history
    )

    previews: List[SlotPreview] = []
    planned: List[PlannedAssignment] = []

    for slot in slots:
        resolved = resolver.resolve(slot.room_number, slot.exam_date)
        if resolved is None:
            previews.append(
                SlotPreview(
                    slot=slot,
                    ok=False,
                    message=ROOM_NOT_FOUND_MESSAGE,
                    issues=[SlotIssue(IssueCode.ROOM_NOT_FOUND_FOR_DATE, ROOM_NOT_FOUND_MESSAGE)],
                )
            )
            continue

        if slot.exam_room_id is not None and slot.exam_room_id != resolved.exam_room_id:
            logger.info(
                f"Room {slot.room_number} on {slot.exam_date}: stale id "
                f"{slot.exam_room_id} replaced by {resolved.exam_room_id}"
            )

        session = slot.session or derive_session(resolved.start_time, default_session)
        group_key = slot.group_key or resolved.group_label or slot.room_number
        busy = availability.busy_teacher_ids(slot.exam_date, session)

        result = engine.pick_pair(
            context.supervisor_pool,
            context.assistant_pool,
            slot.exam_date,
            group_key,
            busy,
        )

        for role, teacher_id in (
            (Role.SUPERVISOR, result.supervisor_id),
            (Role.ASSISTANT, result.assistant_id),
        ):
            if teacher_id is None:
                continue
            workload.commit(teacher_id)
            write = PlannedAssignment(
                exam_room_id=resolved.exam_room_id,
                teacher_id=teacher_id,
                role=role,
                exam_date=slot.exam_date,
                session=session,
                shift_start=slot.shift_start or resolved.start_time,
                shift_end=slot.shift_end or resolved.end_time,
                room_number=slot.room_number,
                link_id=resolved.link_id,
            )
            availability.stage(write)
            planned.append(write)

        preview = SlotPreview(
            slot=slot,
            ok=result.has_any,
            message="",
            exam_room_id=resolved.exam_room_id,
            session=session,
            supervisor=context.teachers.get(result.supervisor_id) if result.supervisor_id is not None else None,
            assistant=context.teachers.get(result.assistant_id) if result.assistant_id is not None else None,
            pair_type=result.pair_type,
            pair_label=result.label,
            used_fallback=result.used_fallback,
            issues=list(result.issues),
        )
        preview.message = _slot_message(preview)
        previews.append(preview)

    return BatchComputation(previews, planned, workload, fairness, history)


def format_rank_limits(rank_limits: Mapping[str, int]) -> str:
    if not rank_limits:
        return "No period limits"
    return " · ".join(f"{rank} (max {limit})" for rank, limit in rank_limits.items())


@dataclass
class DateSummary:
    total: int = 0
    ready: int = 0
    saved: int = 0


@dataclass
class BatchSummary:
    phase: PlannerPhase
    dates: Dict[date, DateSummary] = field(default_factory=dict)
    teacher_assignments: int = 0
    rank_limits: str = ""
    error: Optional[str] = None

    @property
    def total_slots(self) -> int:
        return sum(d.total for d in self.dates.values())

    @property
    def ready_slots(self) -> int:
        return sum(d.ready for d in self.dates.values())


def summarize(state: PlannerState, rank_limits: Mapping[str, int]) -> BatchSummary:
    """Per-date counts grouped in first-seen date order."""
    summary = BatchSummary(
        phase=state.phase,
        teacher_assignments=len(state.planned),
        rank_limits=format_rank_limits(rank_limits),
        error=state.error,
    )
    saved = {(o.room_number, o.exam_date): o.saved for o in state.outcomes}
    for preview in state.previews:
        day = summary.dates.setdefault(preview.slot.exam_date, DateSummary())
        day.total += 1
        day.ready += int(preview.ok)
        day.saved += int(saved.get((preview.slot.room_number, preview.slot.exam_date), False))
    return summary


class BatchPlanner(TrackingMixin):
    """
    Bulk invigilation planner: prefetch once, compute every slot, hold the
    result for review and commit it in one batched write.
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
        self.state: Optional[PlannerState] = None
        self.rank_limits: RankLimits = {}
        self.context: Optional[BatchContext] = None

    async def prefetch(self, slots: Sequence[RoomSlot]) -> BatchContext:
        """Load teachers, existing assignments and exam rooms for every batch date."""
        dates = sorted({slot.exam_date for slot in slots})
        teachers = await self.directory.get_teachers()
        assignments = await self.directory.get_assignments_for_dates(dates)
        rows = await self.directory.get_exam_room_rows(dates)
        return build_context(teachers, self.policy, assignments, rows)

    async def calculate(
        self,
        slots: Sequence[RoomSlot],
        rank_limits: Optional[Mapping[str, int]] = None,
    ) -> PlannerState:
        self._start_batch()
        self.rank_limits = check_rank_limits(
            self.settings.rank_period_limits if rank_limits is None else rank_limits
        )
        self.state = begin_calculation()

        prefetch_action = self._start_action(
            "bulk_prefetch",
            f"Loading staffing data for {len(slots)} room-slots",
            {"slot_count": len(slots)},
        )
        try:
            self.context = await self.prefetch(slots)
        except Exception as exc:
            error = PrefetchFailedError(cause=exc).with_context(slot_count=len(slots))
            self._end_action(prefetch_action, "failed", {"error": str(exc)})
            self.state = abort_prefetch(self.state, error.message)
            await self._log_operation("bulk_prefetch_failed", level="ERROR", error=str(exc))
            raise error from exc
        self._end_action(
            prefetch_action,
            "completed",
            {
                "teachers": len(self.context.teachers),
                "existing_assignments": len(self.context.existing_assignments),
                "exam_rooms": len(self.context.exam_room_rows),
            },
        )

        calculate_action = self._start_action(
            "bulk_calculate", "Computing invigilation pairs", {"rank_limits": self.rank_limits}
        )
        computation = calculate_assignments(
            slots,
            self.rank_limits,
            self.context,
            self.policy,
            history_window=self.settings.PAIR_HISTORY_WINDOW,
            one_duty_per_day=self.settings.ONE_DUTY_PER_DAY,
            default_session=ExamSession(self.settings.DEFAULT_SESSION),
        )
        self.state = enter_preview(self.state, computation.previews, computation.planned)
        self._end_action(
            calculate_action,
            "completed",
            {
                "slots_ready": sum(1 for p in computation.previews if p.ok),
                "planned_writes": len(computation.planned),
            },
        )
        await self._log_operation(
            "bulk_preview_ready",
            {
                "slots": len(computation.previews),
                "ready": sum(1 for p in computation.previews if p.ok),
            },
        )
        return self.state

    async def save(self) -> PlannerState:
        if self.state is None:
            raise InvalidPhaseTransitionError(None, PlannerPhase.SAVING.value)
        self.state = begin_saving(self.state)
        writes = list(self.state.planned)

        commit_action = self._start_action(
            "bulk_commit", f"Writing {len(writes)} assignments", {"write_count": len(writes)}
        )
        try:
            if writes:
                await self.writer.batch_commit(writes)
        except Exception as exc:
            error = CommitFailedError(cause=exc, write_count=len(writes))
            self._end_action(commit_action, "failed", {"error": str(exc)})
            outcomes = [
                SlotOutcome(
                    room_number=p.slot.room_number,
                    exam_date=p.slot.exam_date,
                    ok=p.ok,
                    saved=False,
                    message=NOT_SAVED_MESSAGE,
                )
                for p in self.state.previews
            ]
            self.state = finish(self.state, outcomes, error=error.message)
            await self._log_operation("bulk_commit_failed", level="ERROR", error=str(exc))
            raise error from exc

        self._end_action(commit_action, "completed", {"written": len(writes)})
        outcomes = [
            SlotOutcome(
                room_number=p.slot.room_number,
                exam_date=p.slot.exam_date,
                ok=p.ok,
                saved=p.ok,
                message=p.message,
            )
            for p in self.state.previews
        ]
        self.state = finish(self.state, outcomes)
        await self._log_operation("bulk_commit_completed", {"written": len(writes)})
        return self.state

    def discard(self) -> None:
        """Drop a computed run without writing anything."""
        if self.state is not None and self.state.phase == PlannerPhase.SAVING:
            raise InvalidPhaseTransitionError(self.state.phase.value, "discarded")
        self.state = None
        self.context = None

    def summary(self) -> BatchSummary:
        if self.state is None:
            raise InvalidPhaseTransitionError(None, "summary")
        return summarize(self.state, self.rank_limits)
