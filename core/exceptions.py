"""
Custom exceptions for CanLabeler.

Exception Hierarchy:
    CanLabelerError (base)
    ├── LoadError                - Catalog or ledger fetch failed (recoverable, retry load)
    │   └── LedgerUnavailable    - Sequence ledger could not be read
    ├── ValidationError          - Bad operator input (recoverable, no I/O performed)
    ├── EncodingError            - Code21 field overflow (fatal to this attempt)
    ├── PersistError             - Print record write failed (no id consumed)
    │   └── DuplicateCanId       - A record for this can id already exists
    ├── LedgerUpdateFailed       - Record persisted, counter not advanced (reconcile!)
    ├── DeviceUnavailable        - Scale or printer not reachable
    ├── ConcurrentPrintRejected  - A print is already in flight
    └── WorkflowStateError       - Action not allowed in the current workflow state

Usage:
    Load and validation errors are shown to the operator, who retries.
    LedgerUpdateFailed must be surfaced prominently - the ledger lags the
    print log until it is reconciled.
"""

from typing import Optional, Dict, Any


class CanLabelerError(Exception):
    """
    Base exception for all CanLabeler errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": dict(self.details),
        }


# =============================================================================
# LOAD ERRORS - Operator retries by reloading
# =============================================================================

class LoadError(CanLabelerError):
    """
    Fetching the counter, product catalog or brand catalog failed.

    The workflow cannot reach Ready without all three. Reads are idempotent,
    so the operator can simply reload.
    """

    def __init__(self, message: str, source: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        error_details = details or {}
        if source:
            error_details["source"] = source
        error_details.setdefault("resolution", "Check the record store connection and reload")
        super().__init__(message, error_details)
        self.source = source


class LedgerUnavailable(LoadError):
    """The sequence ledger could not be read."""

    def __init__(self, message: str = "Sequence ledger is not available", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, source="ledger", details=details)


# =============================================================================
# ATTEMPT ERRORS - This print attempt fails, nothing else is affected
# =============================================================================

class ValidationError(CanLabelerError):
    """
    Operator input is incomplete or malformed.

    Raised before any I/O is performed, so there is nothing to undo.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, details)
        self.field = field


class EncodingError(CanLabelerError):
    """
    A Code21 field does not fit its allotted width.

    This indicates a data-model violation upstream (e.g. the counter has
    outgrown its digit budget, or a catalog product code is too long).
    """

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        super().__init__(message, details)
        self.field = field
        self.value = value


class PersistError(CanLabelerError):
    """
    The print record could not be written.

    No ledger advance is attempted after this error, so no id is consumed.
    """

    def __init__(self, message: str, can_id: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        error_details = details or {}
        if can_id is not None:
            error_details["can_id"] = can_id
        super().__init__(message, error_details)
        self.can_id = can_id


class DuplicateCanId(PersistError):
    """A print record for this can id already exists."""

    def __init__(self, can_id: int):
        super().__init__(
            f"A print record for can {can_id} already exists",
            can_id=can_id,
            details={"resolution": "Reconcile the sequence ledger before printing again"},
        )


class LedgerUpdateFailed(CanLabelerError):
    """
    The print record was persisted but the counter was not advanced.

    This is a recoverable inconsistency: the id was consumed and recorded,
    only the ledger's bookkeeping lags. It is never retried automatically,
    so a stuck ledger is not masked.
    """

    def __init__(self, can_id: int, counter_id: Optional[str] = None, reason: str = ""):
        message = f"Can {can_id} was recorded but the sequence ledger was not advanced"
        if reason:
            message = f"{message}: {reason}"
        details: Dict[str, Any] = {
            "can_id": can_id,
            "resolution": "Reconcile the ledger before printing the next label",
        }
        if counter_id:
            details["counter_id"] = counter_id
        super().__init__(message, details)
        self.can_id = can_id
        self.counter_id = counter_id


# =============================================================================
# DEVICE ERRORS - Degrade one feature only
# =============================================================================

class DeviceUnavailable(CanLabelerError):
    """
    The scale or the label printer is not reachable.

    Typical causes:
    - No serial port configured or permission denied
    - Printer switched off or unreachable on the network
    """

    def __init__(self, device: str, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        error_details = details or {}
        error_details["device"] = device
        super().__init__(message or f"{device} is not available", error_details)
        self.device = device


# =============================================================================
# WORKFLOW GUARDS
# =============================================================================

class ConcurrentPrintRejected(CanLabelerError):
    """A second print was requested while one is still in flight."""

    def __init__(self, state: str):
        super().__init__(
            "A label is already being printed",
            {"state": state, "resolution": "Wait for the current label to finish"},
        )
        self.state = state


class WorkflowStateError(CanLabelerError):
    """The requested operator action is not allowed in the current state."""

    def __init__(self, action: str, state: str):
        super().__init__(
            f"Cannot {action} while the workflow is {state}",
            {"action": action, "state": state},
        )
        self.action = action
        self.state = state
