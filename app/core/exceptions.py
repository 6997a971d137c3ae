"""
Domain errors raised by the service layer.

Routers let these propagate; app.main maps them to HTTP responses.
"""
from typing import Optional


class PortalError(Exception):
    """Base class for all domain errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PortalError):
    """Input violates a constraint. Always surfaced to the caller."""

    def __init__(self, message: str, field: Optional[str] = None, constraint: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.constraint = constraint


class InvalidTransitionError(ValidationError):
    """Task status change outside the allowed transition set"""

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Invalid transition: {from_status} -> {to_status}",
            field="status",
            constraint="allowed_transition",
        )
        self.from_status = from_status
        self.to_status = to_status


class NotFoundError(PortalError):
    """Referenced entity does not exist"""

    def __init__(self, entity: str, entity_id=None):
        if entity_id is None:
            message = f"{entity} not found"
        else:
            message = f"{entity} {entity_id} not found"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class PermissionDeniedError(PortalError):
    """Caller lacks the role or property scope for an operation"""


class GoneError(PortalError):
    """Resource exists but is no longer active (guest links, templates)"""


class EscalationSideEffectFailure(PortalError):
    """
    Task creation failed while finalizing a submission.

    Logged and swallowed by the finalization path; never retried.
    """

    def __init__(self, submission_id: int, cause: Exception):
        super().__init__(f"Task escalation failed for submission {submission_id}: {cause}")
        self.submission_id = submission_id
        self.cause = cause
