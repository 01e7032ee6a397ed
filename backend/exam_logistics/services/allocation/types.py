# backend/exam_logistics/services/allocation/types.py

"""Value types shared by the allocation components.

Teachers are referenced by id everywhere past the directory boundary: pools
are ordered id lists and the live period counters live in the workload
ledger, so one teacher visible from two pools always has a single counter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


class Role(str, Enum):
    SUPERVISOR = "Supervisor"
    ASSISTANT = "Assistant"


class ExamSession(str, Enum):
    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    EVENING = "Evening"


def _parse_start_time(start_time: Union[str, time, datetime, None]) -> Optional[time]:
    if start_time is None:
        return None
    if isinstance(start_time, datetime):
        return start_time.time()
    if isinstance(start_time, time):
        return start_time
    text = str(start_time).strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def derive_session(
    start_time: Union[str, time, datetime, None],
    default: ExamSession = ExamSession.MORNING,
) -> ExamSession:
    """Morning before noon, Afternoon from noon; ``default`` when unknown."""
    parsed = _parse_start_time(start_time)
    if parsed is None:
        if start_time is not None:
            logger.debug(f"Unparseable exam start time {start_time!r}, using {default.value}")
        return default
    return ExamSession.MORNING if parsed.hour < 12 else ExamSession.AFTERNOON


@dataclass(frozen=True)
class TeacherRecord:
    """Identity snapshot of a teacher; the period counter is only a seed."""

    teacher_id: int
    name: str
    rank: str
    department: Optional[str] = None
    periods_assigned: int = 0


@dataclass(frozen=True)
class PairTypeKey:
    supervisor_rank: str
    assistant_rank: str

    @property
    def is_same_rank(self) -> bool:
        return self.supervisor_rank == self.assistant_rank

    def __str__(self) -> str:
        return f"{self.supervisor_rank} + {self.assistant_rank}"


@dataclass(frozen=True)
class PairRecord:
    supervisor_id: Optional[int]
    assistant_id: Optional[int]


@dataclass(frozen=True)
class SlotKey:
    """Availability granularity: one date and one session."""

    exam_date: date
    session: ExamSession


@dataclass(frozen=True)
class RoomSlot:
    """A room on a date (and optionally a session) that needs staffing.

    ``exam_room_id`` is whatever id the caller holds and may be stale; the
    engine always re-resolves the canonical id from room number and date.
    """

    room_number: str
    exam_date: date
    session: Optional[ExamSession] = None
    shift_start: Optional[time] = None
    shift_end: Optional[time] = None
    group_key: Optional[str] = None
    exam_room_id: Optional[int] = None


class IssueCode(str, Enum):
    NO_ELIGIBLE_SUPERVISOR = "no_eligible_supervisor"
    NO_ELIGIBLE_ASSISTANT = "no_eligible_assistant"
    ROOM_NOT_FOUND_FOR_DATE = "room_not_found_for_date"


class ShortfallCause(str, Enum):
    NO_CANDIDATES_OF_RANK = "no_candidates_of_rank"
    ALL_BUSY = "all_busy"
    ALL_OVER_LIMIT = "all_over_limit"


@dataclass(frozen=True)
class SlotIssue:
    code: IssueCode
    message: str
    cause: Optional[ShortfallCause] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "cause": self.cause.value if self.cause else None,
        }


@dataclass
class PairingResult:
    supervisor_id: Optional[int] = None
    assistant_id: Optional[int] = None
    pair_type: Optional[PairTypeKey] = None
    used_fallback: bool = False
    label: Optional[str] = None
    issues: List[SlotIssue] = field(default_factory=list)

    @property
    def has_any(self) -> bool:
        return self.supervisor_id is not None or self.assistant_id is not None


@dataclass(frozen=True)
class ExistingAssignment:
    """A persisted assignment as seen by the availability checker."""

    teacher_id: int
    exam_date: date
    session: ExamSession
    role: Role
    exam_room_id: Optional[int] = None
    room_number: Optional[str] = None


@dataclass(frozen=True)
class ExamRoomRow:
    """One (exam room, linked exam) row from the room directory."""

    exam_room_id: int
    room_number: str
    exam_date: date
    link_id: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    group_label: Optional[str] = None


@dataclass(frozen=True)
class ResolvedRoomSlot:
    exam_room_id: int
    link_id: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    group_label: Optional[str] = None


@dataclass(frozen=True)
class PlannedAssignment:
    """A single write produced by the planner: one role in one exam room."""

    exam_room_id: int
    teacher_id: int
    role: Role
    exam_date: date
    session: ExamSession
    shift_start: Optional[time] = None
    shift_end: Optional[time] = None
    room_number: Optional[str] = None
    link_id: Optional[int] = None


@dataclass
class SlotPreview:
    slot: RoomSlot
    ok: bool
    message: str
    exam_room_id: Optional[int] = None
    session: Optional[ExamSession] = None
    supervisor: Optional[TeacherRecord] = None
    assistant: Optional[TeacherRecord] = None
    pair_type: Optional[PairTypeKey] = None
    pair_label: Optional[str] = None
    used_fallback: bool = False
    issues: List[SlotIssue] = field(default_factory=list)


@dataclass(frozen=True)
class SlotOutcome:
    room_number: str
    exam_date: date
    ok: bool
    saved: bool
    message: str


@dataclass
class BatchContext:
    """Everything a batch run reads, loaded once before computation."""

    teachers: Dict[int, TeacherRecord]
    supervisor_pool: List[int]
    assistant_pool: List[int]
    existing_assignments: List[ExistingAssignment] = field(default_factory=list)
    exam_room_rows: List[ExamRoomRow] = field(default_factory=list)

    def teacher(self, teacher_id: int) -> TeacherRecord:
        return self.teachers[teacher_id]


RankLimits = Dict[str, int]
LedgerKey = Tuple[date, PairTypeKey]
