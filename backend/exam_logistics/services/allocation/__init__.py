# backend/exam_logistics/services/allocation/__init__.py

"""Invigilation allocation: policy, ledgers, pairing and the two planners."""

# Types
from .types import (
    BatchContext,
    ExamSession,
    PairTypeKey,
    PlannedAssignment,
    Role,
    RoomSlot,
    SlotPreview,
    TeacherRecord,
    derive_session,
)

# Policy and ledgers
from .rank_policy import RankPolicy, workload_level
from .availability import AvailabilityChecker, TeacherAvailability
from .ledgers import PairHistory, PairTypeFairnessLedger, WorkloadLedger
from .pairing_engine import PairingPolicyEngine
from .room_slot_resolver import RoomSlotResolver

# Planners
from .batch_planner import (
    BatchPlanner,
    BatchSummary,
    PlannerPhase,
    PlannerState,
    calculate_assignments,
)
from .single_slot_assigner import (
    RoomAssignmentStatus,
    SingleSlotAssigner,
    SlotAssignmentView,
)

# Persistence
from .assignment_writer import SqlAssignmentWriter

__all__ = [
    # Types
    "BatchContext",
    "ExamSession",
    "PairTypeKey",
    "PlannedAssignment",
    "Role",
    "RoomSlot",
    "SlotPreview",
    "TeacherRecord",
    "derive_session",
    # Policy and ledgers
    "RankPolicy",
    "workload_level",
    "AvailabilityChecker",
    "TeacherAvailability",
    "PairHistory",
    "PairTypeFairnessLedger",
    "WorkloadLedger",
    "PairingPolicyEngine",
    "RoomSlotResolver",
    # Planners
    "BatchPlanner",
    "BatchSummary",
    "PlannerPhase",
    "PlannerState",
    "calculate_assignments",
    "RoomAssignmentStatus",
    "SingleSlotAssigner",
    "SlotAssignmentView",
    # Persistence
    "SqlAssignmentWriter",
]
