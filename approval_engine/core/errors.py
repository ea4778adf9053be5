# ---------------------------------
# TYPED EXCEPTIONS
# ---------------------------------
from enum import Enum
from typing import Any


class DenialReason(str, Enum):
    """Why an actor was refused. Exactly one reason is attached to each denial."""

    NOT_PENDING = "NOT_PENDING"
    SELF_APPROVAL = "SELF_APPROVAL"
    STALE_LEVEL = "STALE_LEVEL"
    WRONG_LEVEL = "WRONG_LEVEL"
    WRONG_ROLE = "WRONG_ROLE"
    NOT_REQUESTER = "NOT_REQUESTER"
    PAYOUT_ROLE = "PAYOUT_ROLE"


class WorkflowError(Exception):
    """Base class for every error surfaced by the approval workflow."""
    pass


class ValidationError(WorkflowError):
    """Malformed payload, missing rejection reason or an ambiguous empty chain."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        self.errors = errors or []
        super().__init__(message)


class StaleOrInvalidTransition(WorkflowError):
    """Raised when an operation is not legal from the record's current state."""

    def __init__(self, message: str, reason: DenialReason | None = None):
        self.reason = reason
        super().__init__(message)


InvalidState = StaleOrInvalidTransition


class Unauthorized(WorkflowError):
    """Raised when the actor may not perform the operation."""

    def __init__(self, reason: DenialReason, message: str | None = None):
        self.reason = reason
        super().__init__(message or f"Action denied: {reason.value}")


class ConcurrentModification(WorkflowError):
    """Raised when the record changed between read and conditional write."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Request '{request_id}' was modified concurrently")


class NotFound(WorkflowError):
    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Request '{request_id}' not found")


class DirectoryUnavailable(WorkflowError):
    """The role directory could not be read or holds unknown role names."""
    pass
