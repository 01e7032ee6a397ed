# backend/exam_logistics/models/staffing.py

from datetime import date, datetime, time
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .infrastructure import ExamRoom


class Teacher(Base, TimestampMixin):
    __tablename__ = "teachers"
    __table_args__ = (
        CheckConstraint("total_periods_assigned >= 0", name="ck_teachers_periods"),
    )

    teacher_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    rank: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    department: Mapped[Optional[str]] = mapped_column(String(128))
    total_periods_assigned: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    assignments: Mapped[List["TeacherAssignment"]] = relationship(
        back_populates="teacher", cascade="all, delete-orphan"
    )


class TeacherAssignment(Base):
    """One teacher holding one role in one exam room on one date."""

    __tablename__ = "teacher_assignments"
    __table_args__ = (
        UniqueConstraint("exam_room_id", "exam_date", "role"),
        CheckConstraint("role IN ('Supervisor', 'Assistant')", name="ck_role"),
        Index("ix_teacher_assignments_teacher_date", "teacher_id", "exam_date"),
    )

    assignment_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    exam_room_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exam_rooms.exam_room_id", ondelete="CASCADE"), nullable=False
    )
    teacher_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teachers.teacher_id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    exam_date: Mapped[date] = mapped_column(Date, nullable=False)
    session: Mapped[str] = mapped_column(String(16), nullable=False, default="Morning")
    shift_start: Mapped[Optional[time]] = mapped_column(Time)
    shift_end: Mapped[Optional[time]] = mapped_column(Time)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    exam_room: Mapped["ExamRoom"] = relationship(back_populates="teacher_assignments")
    teacher: Mapped["Teacher"] = relationship(back_populates="assignments")
