"""
Remediation task endpoints
Tasks are raised automatically when internal surveys are submitted.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.api.dependencies import require_roles
from app.db.session import get_db
from app.models.task import TaskStatus
from app.models.user import UserRole
from app.schemas.auth import AuthorizedCaller
from app.schemas.task import TaskFilters, TaskResponse, TaskStatusUpdate
from app.services import task_service

router = APIRouter()

task_roles = require_roles(UserRole.ADMIN, UserRole.PROPERTY_MANAGER)


@router.get("/", response_model=List[TaskResponse])
async def list_tasks(
    property_id: Optional[int] = None,
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    is_repeat_issue: Optional[bool] = None,
    caller: AuthorizedCaller = Depends(task_roles),
    db: AsyncSession = Depends(get_db)
):
    """
    List tasks, newest first.

    RBAC Applied:
    - ADMIN: all tasks in the organization
    - PROPERTY_MANAGER: tasks on assigned properties
    - STAFF: no access
    """
    filters = TaskFilters(property_id=property_id, status=status_filter, is_repeat_issue=is_repeat_issue)
    tasks = await task_service.list_tasks(db, caller, filters)
    return [TaskResponse.from_task(t) for t in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    caller: AuthorizedCaller = Depends(task_roles),
    db: AsyncSession = Depends(get_db)
):
    """Get one task"""
    task = await task_service.get_task(db, caller, task_id)
    return TaskResponse.from_task(task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task_status(
    task_id: int,
    update_data: TaskStatusUpdate,
    caller: AuthorizedCaller = Depends(task_roles),
    db: AsyncSession = Depends(get_db)
):
    """
    Move a task through open → investigating → closed.
    Closing requires closing_notes. Closed tasks cannot be reopened.
    """
    task = await task_service.transition_task(
        db,
        task_id,
        update_data.status,
        update_data.closing_notes,
        caller,
    )
    return TaskResponse.from_task(task)
