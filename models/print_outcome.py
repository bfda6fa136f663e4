"""
Print workflow state and outcome models.

PrintOutcome is what the workflow hands back to the caller after every
print attempt, whether it completed, was aborted by validation, or faulted
on I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional


class WorkflowState(Enum):
    """
    States of the print workflow.

    Lifecycle:
        IDLE -> LOADING -> READY -> VALIDATING -> ENCODING -> PERSISTING
             -> ADVANCING -> DISPATCHING -> COMPLETED

        VALIDATING -> ABORTED (bad input, nothing written)
        LOADING | ENCODING | PERSISTING | ADVANCING | DISPATCHING -> FAULTED
    """

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    VALIDATING = "validating"
    ENCODING = "encoding"
    PERSISTING = "persisting"
    ADVANCING = "advancing"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAULTED = "faulted"

    @property
    def in_flight(self) -> bool:
        """True while a print attempt is between validation and a settled state."""
        return self in _IN_FLIGHT


_IN_FLIGHT = frozenset({
    WorkflowState.VALIDATING,
    WorkflowState.ENCODING,
    WorkflowState.PERSISTING,
    WorkflowState.ADVANCING,
    WorkflowState.DISPATCHING,
})


@dataclass
class PrintOutcome:
    """
    Result of one print attempt.

    Exactly one of these is produced per call to PrintWorkflow.print_label().
    """

    state: WorkflowState
    """Settled state the attempt ended in (COMPLETED, ABORTED or FAULTED)."""

    message: str
    """Operator-facing message."""

    can_id: Optional[int] = None
    """Can id used by this attempt (None if aborted before encoding)."""

    code21: str = ""
    record_id: Optional[str] = None

    failed_step: Optional[WorkflowState] = None
    """For FAULTED outcomes, the step that failed."""

    error: Optional[str] = None
    """Exception class name for ABORTED/FAULTED outcomes."""

    details: Dict[str, Any] = field(default_factory=dict)

    payload: str = ""
    """Rendered label markup (kept so the label can be re-sent)."""

    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def succeeded(self) -> bool:
        return self.state == WorkflowState.COMPLETED

    @property
    def needs_reconciliation(self) -> bool:
        """True when the record exists but the ledger was not advanced."""
        return self.state == WorkflowState.FAULTED and self.failed_step == WorkflowState.ADVANCING

    @classmethod
    def create_completed(cls, can_id: int, code21: str, record_id: Optional[str], payload: str) -> "PrintOutcome":
        return cls(
            state=WorkflowState.COMPLETED,
            message=f"Label for can {can_id} printed",
            can_id=can_id,
            code21=code21,
            record_id=record_id,
            payload=payload,
        )

    @classmethod
    def create_aborted(cls, error: Exception) -> "PrintOutcome":
        """Validation failed - nothing was read, written or printed."""
        return cls(
            state=WorkflowState.ABORTED,
            message=getattr(error, "message", str(error)),
            error=type(error).__name__,
            details=dict(getattr(error, "details", {}) or {}),
        )

    @classmethod
    def create_faulted(
        cls,
        step: WorkflowState,
        error: Exception,
        can_id: Optional[int] = None,
        code21: str = "",
        record_id: Optional[str] = None,
        payload: str = "",
    ) -> "PrintOutcome":
        """
        An I/O step failed.

        Args:
            step: The state the workflow was in when the error occurred
            error: The exception raised by the failing step
            can_id: Can id of the attempt, if one was assigned
            code21: Code computed for the attempt, if any
            record_id: Print record id, if the record was persisted
            payload: Rendered label markup, if any
        """
        return cls(
            state=WorkflowState.FAULTED,
            message=getattr(error, "message", str(error)),
            can_id=can_id,
            code21=code21,
            record_id=record_id,
            failed_step=step,
            error=type(error).__name__,
            details=dict(getattr(error, "details", {}) or {}),
            payload=payload,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses (payload omitted)."""
        return {
            "state": self.state.value,
            "message": self.message,
            "can_id": self.can_id,
            "code21": self.code21,
            "record_id": self.record_id,
            "failed_step": self.failed_step.value if self.failed_step else None,
            "error": self.error,
            "details": dict(self.details),
            "needs_reconciliation": self.needs_reconciliation,
            "finished_at": self.finished_at.isoformat(),
        }
