# backend/exam_logistics/schemas/allocation.py
"""Pydantic v2 schemas for bulk and single-slot allocation requests."""

from __future__ import annotations

from datetime import date, time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..services.allocation.ledgers import check_rank_limits
from ..services.allocation.types import ExamSession, RoomSlot, SlotPreview

MODEL_CONFIG = ConfigDict(from_attributes=True)


class RoomSlotIn(BaseModel):
    room_number: str = Field(min_length=1)
    exam_date: date
    session: Optional[ExamSession] = None
    shift_start: Optional[time] = None
    shift_end: Optional[time] = None
    group_key: Optional[str] = None
    exam_room_id: Optional[int] = None

    @field_validator("room_number")
    def strip_room_number(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("room_number must not be blank")
        return v

    @model_validator(mode="after")
    def check_shift_window(self) -> "RoomSlotIn":
        if self.shift_start and self.shift_end and self.shift_end <= self.shift_start:
            raise ValueError("shift_end must be after shift_start")
        return self

    def to_room_slot(self) -> RoomSlot:
        return RoomSlot(
            room_number=self.room_number,
            exam_date=self.exam_date,
            session=self.session,
            shift_start=self.shift_start,
            shift_end=self.shift_end,
            group_key=self.group_key,
            exam_room_id=self.exam_room_id,
        )


class BulkAssignRequest(BaseModel):
    slots: List[RoomSlotIn] = Field(min_length=1)
    rank_limits: Dict[str, int] = Field(default_factory=dict)

    @field_validator("rank_limits", mode="before")
    def validate_rank_limits(cls, v: Any) -> Dict[str, int]:
        return check_rank_limits(v)

    def to_room_slots(self) -> List[RoomSlot]:
        return [slot.to_room_slot() for slot in self.slots]


class TeacherOut(BaseModel):
    model_config = MODEL_CONFIG

    teacher_id: int
    name: str
    rank: str
    department: Optional[str] = None


class SlotIssueOut(BaseModel):
    code: str
    message: str
    cause: Optional[str] = None


class SlotPreviewOut(BaseModel):
    room_number: str
    exam_date: date
    exam_room_id: Optional[int] = None
    session: Optional[ExamSession] = None
    ok: bool
    message: str
    supervisor: Optional[TeacherOut] = None
    assistant: Optional[TeacherOut] = None
    pair_label: Optional[str] = None
    issues: List[SlotIssueOut] = Field(default_factory=list)

    @classmethod
    def from_preview(cls, preview: SlotPreview) -> "SlotPreviewOut":
        return cls(
            room_number=preview.slot.room_number,
            exam_date=preview.slot.exam_date,
            exam_room_id=preview.exam_room_id,
            session=preview.session,
            ok=preview.ok,
            message=preview.message,
            supervisor=(
                TeacherOut.model_validate(preview.supervisor)
                if preview.supervisor
                else None
            ),
            assistant=(
                TeacherOut.model_validate(preview.assistant)
                if preview.assistant
                else None
            ),
            pair_label=preview.pair_label,
            issues=[SlotIssueOut(**issue.to_dict()) for issue in preview.issues],
        )
