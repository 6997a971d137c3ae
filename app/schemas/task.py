"""
Pydantic schemas for Task endpoints
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from app.models.task import TaskStatus


class TaskFilters(BaseModel):
    """Query filters for task listing"""
    property_id: Optional[int] = None
    status: Optional[TaskStatus] = None
    is_repeat_issue: Optional[bool] = None


class TaskStatusUpdate(BaseModel):
    """Requested status change, checked against the task state machine"""
    status: TaskStatus
    closing_notes: Optional[str] = Field(None, max_length=2000)


class TaskResponse(BaseModel):
    """Task with display names resolved"""
    id: int
    organization_id: int
    property_id: int
    submission_id: int
    response_id: int
    question_id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    assigned_to: Optional[int] = None
    is_repeat_issue: bool
    closing_notes: Optional[str] = None
    closed_at: Optional[datetime] = None
    closed_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    property_name: Optional[str] = None
    question_text: Optional[str] = None
    response_score: Optional[int] = None
    assignee_name: Optional[str] = None
    raised_by_name: Optional[str] = None
    closer_name: Optional[str] = None

    @classmethod
    def from_task(cls, task) -> "TaskResponse":
        submitter = task.submission.submitter if task.submission else None
        return cls(
            id=task.id,
            organization_id=task.organization_id,
            property_id=task.property_id,
            submission_id=task.submission_id,
            response_id=task.response_id,
            question_id=task.question_id,
            title=task.title,
            description=task.description,
            status=task.status,
            assigned_to=task.assigned_to,
            is_repeat_issue=task.is_repeat_issue,
            closing_notes=task.closing_notes,
            closed_at=task.closed_at,
            closed_by=task.closed_by,
            created_at=task.created_at,
            updated_at=task.updated_at,
            property_name=task.property.name if task.property else None,
            question_text=task.question.text if task.question else None,
            response_score=task.response.score if task.response else None,
            assignee_name=task.assignee.full_name if task.assignee else None,
            raised_by_name=submitter.full_name if submitter else None,
            closer_name=task.closer.full_name if task.closer else None,
        )
