"""
Task escalation policy

Decides which survey responses become remediation tasks and which task
status changes are allowed. Pure functions only; persistence lives in
app.services.task_service.
"""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional

from app.core.config import settings
from app.core.exceptions import InvalidTransitionError, PermissionDeniedError, ValidationError
from app.models.task import TaskStatus
from app.models.user import UserRole
from app.schemas.auth import AuthorizedCaller


# open -> investigating -> closed, with open -> closed allowed. closed is terminal.
VALID_TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.OPEN: frozenset({TaskStatus.INVESTIGATING, TaskStatus.CLOSED}),
    TaskStatus.INVESTIGATING: frozenset({TaskStatus.CLOSED}),
    TaskStatus.CLOSED: frozenset(),
}

TASK_TRANSITION_ROLES = (UserRole.ADMIN, UserRole.PROPERTY_MANAGER)

DEFAULT_TASK_TITLE = "Issue flagged"


@dataclass(frozen=True)
class RepeatIssuePolicy:
    """
    Which earlier tasks mark a new one as a repeat issue.

    Keyed on property + question. With match_category an earlier task on
    any question of the same category also counts. lookback_days limits
    how far back to look (None = no limit) and statuses lists the task
    states that count.
    """
    match_category: bool = False
    lookback_days: Optional[int] = None
    statuses: FrozenSet[TaskStatus] = field(
        default_factory=lambda: frozenset(TaskStatus)
    )

    @classmethod
    def from_settings(cls) -> "RepeatIssuePolicy":
        return cls(
            match_category=settings.REPEAT_ISSUE_MATCH_CATEGORY,
            lookback_days=settings.REPEAT_ISSUE_LOOKBACK_DAYS,
            statuses=frozenset(TaskStatus(s) for s in settings.REPEAT_ISSUE_STATUSES),
        )


def has_issue_description(issue_description: Optional[str]) -> bool:
    return bool(issue_description and issue_description.strip())


def should_escalate(score: int, issue_description: Optional[str], threshold: Optional[int] = None) -> bool:
    """
    A response escalates when its native score is at or below the threshold
    and it carries a non-empty issue description.
    """
    if threshold is None:
        threshold = settings.TASK_ESCALATION_THRESHOLD
    return score <= threshold and has_issue_description(issue_description)


def select_escalations(responses: Iterable, threshold: Optional[int] = None) -> List:
    """Responses (objects with score and issue_description) that need a task"""
    return [
        r for r in responses
        if should_escalate(r.score, r.issue_description, threshold)
    ]


def validate_transition(current: TaskStatus, target: TaskStatus, closing_notes: Optional[str] = None) -> None:
    """
    Raise if current -> target is not allowed.

    Raises:
        InvalidTransitionError: target not reachable from current
        ValidationError: closing without closing notes
    """
    current = TaskStatus(current)
    target = TaskStatus(target)

    if target not in VALID_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)

    if target == TaskStatus.CLOSED and not (closing_notes and closing_notes.strip()):
        raise ValidationError(
            "Closing notes are required when closing a task",
            field="closing_notes",
            constraint="non_blank",
        )


def ensure_caller_may_transition(caller: AuthorizedCaller, property_id: int, organization_id: int) -> None:
    """
    Authorization check owned by the state machine itself.
    Runs even when the route guard has already passed.
    """
    if not caller.has_role(*TASK_TRANSITION_ROLES):
        raise PermissionDeniedError("Only admins and property managers can update tasks")
    if not caller.can_access_property(property_id, organization_id):
        raise PermissionDeniedError("No access to this property")
