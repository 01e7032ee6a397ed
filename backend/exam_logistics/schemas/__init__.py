# backend/exam_logistics/schemas/__init__.py

from .allocation import (
    BulkAssignRequest,
    RoomSlotIn,
    SlotIssueOut,
    SlotPreviewOut,
    TeacherOut,
)

__all__ = [
    "BulkAssignRequest",
    "RoomSlotIn",
    "SlotIssueOut",
    "SlotPreviewOut",
    "TeacherOut",
]
