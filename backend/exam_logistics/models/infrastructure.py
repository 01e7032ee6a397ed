# backend/exam_logistics/models/infrastructure.py

from datetime import date
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .academic import Exam
    from .staffing import TeacherAssignment


class Room(Base, TimestampMixin):
    __tablename__ = "rooms"

    room_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    building: Mapped[Optional[str]] = mapped_column(String(128))
    capacity: Mapped[Optional[int]] = mapped_column(Integer)

    exam_rooms: Mapped[List["ExamRoom"]] = relationship(back_populates="room")


class ExamRoom(Base, TimestampMixin):
    """A room provisioned for exams on one date.

    ``exam_room_id`` is the canonical room-assignment id that teacher
    assignments hang off.
    """

    __tablename__ = "exam_rooms"
    __table_args__ = (UniqueConstraint("room_id", "exam_date"),)

    exam_room_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    room_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("rooms.room_id", ondelete="CASCADE"), nullable=False
    )
    exam_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    room: Mapped["Room"] = relationship(back_populates="exam_rooms")
    exam_links: Mapped[List["ExamRoomExamLink"]] = relationship(
        back_populates="exam_room", cascade="all, delete-orphan"
    )
    teacher_assignments: Mapped[List["TeacherAssignment"]] = relationship(
        back_populates="exam_room", cascade="all, delete-orphan"
    )


class ExamRoomExamLink(Base):
    __tablename__ = "exam_room_exam_links"
    __table_args__ = (UniqueConstraint("exam_room_id", "exam_id"),)

    link_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    exam_room_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exam_rooms.exam_room_id", ondelete="CASCADE"), nullable=False
    )
    exam_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exams.exam_id", ondelete="CASCADE"), nullable=False
    )

    exam_room: Mapped["ExamRoom"] = relationship(back_populates="exam_links")
    exam: Mapped["Exam"] = relationship(back_populates="room_links")
