# backend/exam_logistics/services/tracking_mixin.py

"""Action tracking for allocation services.

Services open an action per phase (prefetch, calculate, commit); the mixin
keeps a parent/child stack, times each action and logs its outcome with the
current batch id attached.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class TrackingMixin:
    """
    Mixin class that provides batch and action ID generation and tracking
    for service operations.
    """

    def __init__(self) -> None:
        self.current_batch_id: Optional[uuid.UUID] = None
        self.current_action_id: Optional[uuid.UUID] = None
        self._action_stack: List[Dict[str, Any]] = []
        self._completed_actions: List[Dict[str, Any]] = []
        self._action_counter = 0

    def _start_batch(self) -> uuid.UUID:
        self.current_batch_id = uuid.uuid4()
        logger.info(
            f"Started batch {self.current_batch_id}",
            extra={"batch_id": str(self.current_batch_id)},
        )
        return self.current_batch_id

    def _start_action(
        self,
        action_type: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> uuid.UUID:
        """
        Start tracking a new action.

        Args:
            action_type: Type of action being performed
            description: Human-readable description
            metadata: Additional metadata for the action

        Returns:
            Generated action ID
        """
        action_id = uuid.uuid4()
        self._action_counter += 1

        self._action_stack.append(
            {
                "action_id": action_id,
                "action_type": action_type,
                "description": description,
                "metadata": metadata or {},
                "started_at": datetime.utcnow(),
                "parent_action_id": self.current_action_id,
                "sequence_number": self._action_counter,
                "status": "running",
            }
        )
        self.current_action_id = action_id

        logger.debug(
            f"Started action '{action_type}' with ID {action_id} "
            f"(seq: {self._action_counter})",
            extra=self._log_extra(),
        )
        return action_id

    def _end_action(
        self, action_id: uuid.UUID, status: str = "completed", result: Any = None
    ) -> None:
        """End tracking of an action and pop it from the stack."""
        index = next(
            (
                i
                for i in range(len(self._action_stack) - 1, -1, -1)
                if self._action_stack[i]["action_id"] == action_id
            ),
            None,
        )
        if index is None:
            logger.warning(f"Action {action_id} not found in action stack")
            return

        if index != len(self._action_stack) - 1:
            logger.warning(
                f"Ending action {action_id} that is not the most recent "
                f"(index {index}, stack size {len(self._action_stack)})"
            )

        action = self._action_stack.pop(index)
        ended_at = datetime.utcnow()
        action.update(
            {
                "ended_at": ended_at,
                "status": status,
                "result": result,
                "duration_ms": (ended_at - action["started_at"]).total_seconds() * 1000,
            }
        )
        self._completed_actions.append(action)

        self.current_action_id = (
            self._action_stack[-1]["action_id"] if self._action_stack else None
        )

        log = logger.warning if status == "failed" else logger.info
        log(
            f"Ended action '{action['action_type']}' - Status: {status}, "
            f"Duration: {action['duration_ms']:.1f}ms",
            extra=self._log_extra(),
        )

    def _log_extra(self) -> Dict[str, Any]:
        return {"batch_id": str(self.current_batch_id) if self.current_batch_id else "no-batch"}

    def _get_current_context(self) -> Dict[str, Any]:
        return {
            "batch_id": self.current_batch_id,
            "action_id": self.current_action_id,
            "action_stack_depth": len(self._action_stack),
            "action_counter": self._action_counter,
        }

    def completed_actions(self) -> List[Dict[str, Any]]:
        return list(self._completed_actions)

    async def _log_operation(
        self,
        operation: str,
        details: Optional[Dict[str, Any]] = None,
        level: str = "INFO",
        error: Optional[str] = None,
    ) -> None:
        """
        Log an operation with the current tracking context.

        Args:
            operation: Description of the operation
            details: Additional details to log
            level: Log level
            error: Error message if applicable
        """
        context = self._get_current_context()
        log_msg = (
            f"{operation} (Batch: {context['batch_id']}, Action: {context['action_id']})"
        )
        if details:
            log_msg = f"{log_msg} {details}"
        if error:
            log_msg = f"{log_msg} - Error: {error}"

        extra = self._log_extra()
        if level.upper() == "ERROR":
            logger.error(log_msg, extra=extra)
        elif level.upper() == "WARNING":
            logger.warning(log_msg, extra=extra)
        else:
            logger.info(log_msg, extra=extra)
