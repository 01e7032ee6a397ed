# backend/exam_logistics/models/__init__.py

from .base import Base, TimestampMixin
from .academic import Exam
from .infrastructure import Room, ExamRoom, ExamRoomExamLink
from .staffing import Teacher, TeacherAssignment

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Academic
    "Exam",
    # Infrastructure
    "Room",
    "ExamRoom",
    "ExamRoomExamLink",
    # Staffing
    "Teacher",
    "TeacherAssignment",
]
