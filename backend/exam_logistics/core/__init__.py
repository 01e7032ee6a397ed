# backend/exam_logistics/core/__init__.py

from ..config import get_settings
from .exceptions import (
    AppError,
    SchedulingError,
    AllocationError,
    PrefetchFailedError,
    CommitFailedError,
    RoomNotFoundForDateError,
    InvalidRoleError,
    TimeConflictError,
    PeriodLimitReachedError,
    InvalidPhaseTransitionError,
)


__all__ = [
    "get_settings",  # Export the function, not a settings instance
    "AppError",
    "SchedulingError",
    "AllocationError",
    "PrefetchFailedError",
    "CommitFailedError",
    "RoomNotFoundForDateError",
    "InvalidRoleError",
    "TimeConflictError",
    "PeriodLimitReachedError",
    "InvalidPhaseTransitionError",
]
