# backend/exam_logistics/__init__.py

"""Exam invigilation allocation engine."""

# Core
from .core import (
    AppError,
    AllocationError,
    CommitFailedError,
    PrefetchFailedError,
    RoomNotFoundForDateError,
    SchedulingError,
)

# Services
from .services import allocation, data_retrieval

__all__ = [
    # Core
    "AppError",
    "SchedulingError",
    "AllocationError",
    "PrefetchFailedError",
    "CommitFailedError",
    "RoomNotFoundForDateError",
    # Services
    "allocation",
    "data_retrieval",
]

__version__ = "1.0.0"
