# backend/exam_logistics/core/exceptions.py
"""Application-level exceptions used across the allocation services.

Exceptions carry structured metadata so that service callers can log them,
translate them for a UI, or attach them to a planner's terminal state.

Design goals:
- Each exception is serializable via ``to_dict``.
- Exceptions include an explicit ``code`` and ``status_code`` for consistent
  handling by whatever surface sits on top of the engine.
- Slot-level shortfalls (no eligible supervisor, room missing for a date) are
  reported as data on previews; only run-level failures are raised.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base application exception with structured metadata.

    Attributes
    ----------
    message
        Human readable message.
    code
        Machine friendly error code (snake_case).
    status_code
        Suggested HTTP-like status code for callers that surface errors.
    details
        Arbitrary extra data useful for debugging or UX.
    timestamp
        UTC ISO timestamp when the exception was created.
    cause
        Optional underlying exception instance.
    context
        Optional lightweight context dict (ids, phase names, counts).
    """

    code: str = "app_error"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An application error occurred",
        *,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def __str__(self) -> str:
        base = f"{self.__class__.__name__}({self.code}): {self.message}"
        if self.context:
            base += f" | context={self.context}"
        if self.details is not None:
            base += f" | details={self.details}"
        if self.cause is not None:
            base += f" | cause={repr(self.cause)}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Return a serializable representation of the error."""
        return {
            "error": {
                "type": self.__class__.__name__,
                "code": self.code,
                "message": self.message,
                "status_code": self.status_code,
                "details": self.details,
                "context": self.context,
                "timestamp": self.timestamp,
            }
        }

    def with_context(self, **ctx: Any) -> "AppError":
        """Return self after extending the context dict. Useful for chaining.

        Example:
        raise err.with_context(exam_room_id=exam_room_id)
        """
        self.context.update({k: v for k, v in ctx.items() if v is not None})
        return self


class SchedulingError(AppError):
    """Generic scheduling/allocation error.

    Base for orchestration failures; subclasses narrow the code and status.
    """

    code = "scheduling_error"
    status_code = 500

    def __init__(
        self,
        message: str = "Scheduling engine error",
        *,
        phase: Optional[str] = None,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=details, cause=cause, context=context)
        if phase:
            self.context.setdefault("phase", phase)


class AllocationError(SchedulingError):
    """Base for invigilation allocation failures."""

    code = "allocation_error"


class PrefetchFailedError(AllocationError):
    """Raised when the batch context cannot be loaded.

    Nothing is computed once this happens; the planner moves straight to its
    terminal phase with the error attached.
    """

    code = "prefetch_failed"
    status_code = 503

    def __init__(
        self,
        message: str = "Failed to fetch data",
        *,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        if cause is not None and message == "Failed to fetch data":
            message = f"Failed to fetch data: {cause}"
        super().__init__(
            message, phase="prefetch", details=details, cause=cause, context=context
        )


class CommitFailedError(AllocationError):
    """Raised once per batch when the batched write is rejected."""

    code = "commit_failed"
    status_code = 503

    def __init__(
        self,
        message: str = "Database write failed",
        *,
        write_count: Optional[int] = None,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        if cause is not None and message == "Database write failed":
            message = f"Database write failed: {cause}"
        super().__init__(
            message, phase="commit", details=details, cause=cause, context=context
        )
        if write_count is not None:
            self.context.setdefault("write_count", write_count)


class RoomNotFoundForDateError(AllocationError):
    """Raised in single-slot mode when a room has no exam-room record on a date."""

    code = "room_not_found_for_date"
    status_code = 404

    def __init__(
        self,
        room_number: Optional[str] = None,
        exam_date: Optional[Any] = None,
        message: Optional[str] = None,
        *,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        msg = message or (
            f"Room {room_number} not found for {exam_date}"
            if room_number
            else "Room not found for this date"
        )
        super().__init__(msg, details=details, cause=cause, context=context)
        if room_number is not None:
            self.context.setdefault("room_number", room_number)
        if exam_date is not None:
            self.context.setdefault("exam_date", str(exam_date))


class InvalidRoleError(AllocationError):
    """Raised when a teacher's rank does not permit the requested role."""

    code = "invalid_role"
    status_code = 422

    def __init__(
        self,
        rank: Optional[str] = None,
        role: Optional[str] = None,
        message: Optional[str] = None,
        *,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        msg = message or f"Rank '{rank}' cannot be assigned as {role}"
        super().__init__(msg, details=details, cause=cause, context=context)
        if rank is not None:
            self.context.setdefault("rank", rank)
        if role is not None:
            self.context.setdefault("role", role)


class TimeConflictError(AllocationError):
    """Raised when a teacher already holds a duty in the same date and session."""

    code = "time_conflict"
    status_code = 409

    def __init__(
        self,
        teacher_id: Optional[int] = None,
        message: Optional[str] = None,
        *,
        conflicts: Optional[list] = None,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        msg = message or f"Teacher {teacher_id} has a time conflict"
        super().__init__(msg, details=details, cause=cause, context=context)
        if teacher_id is not None:
            self.context.setdefault("teacher_id", teacher_id)
        self.conflicts = conflicts or []


class PeriodLimitReachedError(AllocationError):
    """Raised when a teacher has used up the period allowance of their rank."""

    code = "period_limit_reached"
    status_code = 409

    def __init__(
        self,
        teacher_id: Optional[int] = None,
        limit: Optional[int] = None,
        message: Optional[str] = None,
        *,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        msg = message or f"Teacher {teacher_id} has reached the period limit ({limit})"
        super().__init__(msg, details=details, cause=cause, context=context)
        if teacher_id is not None:
            self.context.setdefault("teacher_id", teacher_id)
        if limit is not None:
            self.context.setdefault("limit", limit)


class InvalidPhaseTransitionError(AllocationError):
    """Raised when the batch planner is driven out of its phase order."""

    code = "invalid_phase_transition"
    status_code = 409

    def __init__(
        self,
        current: Optional[str] = None,
        requested: Optional[str] = None,
        message: Optional[str] = None,
        *,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        msg = message or f"Cannot move planner from {current} to {requested}"
        super().__init__(msg, details=details, cause=cause, context=context)
        if current is not None:
            self.context.setdefault("current_phase", current)
        if requested is not None:
            self.context.setdefault("requested_phase", requested)


__all__ = [
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
