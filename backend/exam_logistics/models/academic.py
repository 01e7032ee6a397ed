# backend/exam_logistics/models/academic.py

from datetime import date, time
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Date, Integer, String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .infrastructure import ExamRoomExamLink


class Exam(Base, TimestampMixin):
    __tablename__ = "exams"

    exam_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_code: Mapped[str] = mapped_column(String(32), nullable=False)
    exam_name: Mapped[str] = mapped_column(String(255), nullable=False)
    exam_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[Optional[time]] = mapped_column(Time)
    end_time: Mapped[Optional[time]] = mapped_column(Time)
    program: Mapped[Optional[str]] = mapped_column(String(128))
    specialization: Mapped[Optional[str]] = mapped_column(String(128))
    year_level: Mapped[Optional[int]] = mapped_column(Integer)
    semester: Mapped[Optional[int]] = mapped_column(Integer)

    room_links: Mapped[List["ExamRoomExamLink"]] = relationship(
        back_populates="exam", cascade="all, delete-orphan"
    )

    @property
    def group_label(self) -> str:
        """Student-group label used as the room-group key for pair history."""
        parts = []
        if self.year_level is not None:
            parts.append(f"Year {self.year_level}")
        if self.semester is not None:
            parts.append(f"Semester {self.semester}")
        label = " - ".join(parts)
        if self.program:
            label = f"{label} · {self.program}" if label else self.program
        if self.specialization:
            label = f"{label} ({self.specialization})"
        return label
