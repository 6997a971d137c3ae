"""
Task service
Creates remediation tasks from submitted internal surveys and applies
status transitions against the persisted task state.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError, PermissionDeniedError
from app.models.survey import SurveyQuestion, SurveySubcategory, SurveySubmission, SurveyTemplate, SurveyType
from app.models.task import Task, TaskStatus
from app.models.user import Property
from app.schemas.auth import AuthorizedCaller
from app.schemas.task import TaskFilters
from app.services.escalation import (
    DEFAULT_TASK_TITLE,
    RepeatIssuePolicy,
    TASK_TRANSITION_ROLES,
    ensure_caller_may_transition,
    select_escalations,
    validate_transition,
)

logger = logging.getLogger(__name__)


def _task_options():
    return (
        selectinload(Task.property),
        selectinload(Task.question),
        selectinload(Task.response),
        selectinload(Task.assignee),
        selectinload(Task.closer),
        selectinload(Task.submission).selectinload(SurveySubmission.submitter),
    )


async def _find_repeat_keys(
    db: AsyncSession,
    property_id: int,
    question_ids: List[int],
    category_ids: List[int],
    policy: RepeatIssuePolicy,
):
    """Question ids and category ids that already have a qualifying task"""
    conditions = [Task.question_id.in_(question_ids)]
    if policy.match_category and category_ids:
        conditions.append(SurveySubcategory.category_id.in_(category_ids))

    query = (
        select(Task.question_id, SurveySubcategory.category_id)
        .join(SurveyQuestion, Task.question_id == SurveyQuestion.id)
        .join(SurveySubcategory, SurveyQuestion.subcategory_id == SurveySubcategory.id)
        .where(
            Task.property_id == property_id,
            Task.status.in_(list(policy.statuses)),
            or_(*conditions),
        )
    )
    if policy.lookback_days is not None:
        cutoff = datetime.utcnow() - timedelta(days=policy.lookback_days)
        query = query.where(Task.created_at >= cutoff)

    rows = (await db.execute(query)).all()
    return {r.question_id for r in rows}, {r.category_id for r in rows}


async def create_tasks_from_submission(
    db: AsyncSession,
    submission: SurveySubmission,
    template: SurveyTemplate,
    policy: Optional[RepeatIssuePolicy] = None,
    threshold: Optional[int] = None,
) -> List[Task]:
    """
    Create one task per escalating response of a submitted internal survey.

    Expects submission.responses and the template's category tree to be
    loaded. Tasks are flushed as one batch; committing is up to the caller.
    """
    if template.survey_type != SurveyType.INTERNAL:
        return []

    escalating = select_escalations(submission.responses, threshold)
    if not escalating:
        return []

    policy = policy or RepeatIssuePolicy.from_settings()

    questions = {}
    for category in template.categories:
        for subcategory in category.subcategories:
            for question in subcategory.questions:
                questions[question.id] = (category.id, question)

    property_result = await db.execute(
        select(Property).where(Property.id == submission.property_id)
    )
    prop = property_result.scalar_one_or_none()
    if not prop:
        raise NotFoundError("Property", submission.property_id)

    question_ids = [r.question_id for r in escalating]
    category_ids = sorted({questions[q][0] for q in question_ids if q in questions})
    repeat_questions, repeat_categories = await _find_repeat_keys(
        db, prop.id, question_ids, category_ids, policy
    )

    tasks = []
    for response in escalating:
        category_id, question = questions.get(response.question_id, (None, None))
        is_repeat = response.question_id in repeat_questions or (
            policy.match_category and category_id in repeat_categories
        )
        tasks.append(
            Task(
                organization_id=prop.organization_id,
                property_id=prop.id,
                submission_id=submission.id,
                response_id=response.id,
                question_id=response.question_id,
                title=question.text if question is not None else DEFAULT_TASK_TITLE,
                description=response.issue_description.strip(),
                status=TaskStatus.OPEN,
                assigned_to=prop.primary_pm_id,
                is_repeat_issue=is_repeat,
            )
        )

    db.add_all(tasks)
    await db.flush()

    logger.info(
        f"Created {len(tasks)} task(s) for submission {submission.id} "
        f"({sum(1 for t in tasks if t.is_repeat_issue)} repeat)"
    )
    return tasks


async def list_tasks(db: AsyncSession, caller: AuthorizedCaller, filters: TaskFilters) -> List[Task]:
    """
    Tasks visible to the caller.
    - ADMIN: every task in the organization
    - PROPERTY_MANAGER: tasks on assigned properties
    """
    if not caller.has_role(*TASK_TRANSITION_ROLES):
        raise PermissionDeniedError("Staff cannot access tasks")

    query = select(Task).where(Task.organization_id == caller.organization_id)
    if caller.property_ids is not None:
        if not caller.property_ids:
            return []
        query = query.where(Task.property_id.in_(list(caller.property_ids)))

    if filters.property_id is not None:
        query = query.where(Task.property_id == filters.property_id)
    if filters.status is not None:
        query = query.where(Task.status == filters.status)
    if filters.is_repeat_issue is not None:
        query = query.where(Task.is_repeat_issue == filters.is_repeat_issue)

    query = query.options(*_task_options()).order_by(Task.created_at.desc(), Task.id.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_task(db: AsyncSession, caller: AuthorizedCaller, task_id: int) -> Task:
    """Load one task, enforcing role and property scope"""
    if not caller.has_role(*TASK_TRANSITION_ROLES):
        raise PermissionDeniedError("Staff cannot access tasks")

    result = await db.execute(
        select(Task)
        .where(Task.id == task_id)
        .options(*_task_options())
        .execution_options(populate_existing=True)
    )
    task = result.scalar_one_or_none()
    if not task or task.organization_id != caller.organization_id:
        raise NotFoundError("Task", task_id)
    if not caller.can_access_property(task.property_id):
        raise PermissionDeniedError("No access to this property")
    return task


async def transition_task(
    db: AsyncSession,
    task_id: int,
    target: TaskStatus,
    closing_notes: Optional[str],
    caller: AuthorizedCaller,
) -> Task:
    """
    Move a task to a new status.

    The current status is re-read from the database right before the write,
    so a stale client view can never pick the source state.
    """
    result = await db.execute(
        select(Task)
        .where(Task.id == task_id)
        .execution_options(populate_existing=True)
    )
    task = result.scalar_one_or_none()
    if not task or task.organization_id != caller.organization_id:
        raise NotFoundError("Task", task_id)

    ensure_caller_may_transition(caller, task.property_id, task.organization_id)
    validate_transition(task.status, target, closing_notes)

    previous = task.status
    now = datetime.utcnow()
    task.status = TaskStatus(target)
    task.updated_at = now
    if task.status == TaskStatus.CLOSED:
        task.closing_notes = closing_notes.strip()
        task.closed_at = now
        task.closed_by = caller.user_id

    await db.commit()

    logger.info(f"Task {task_id}: {previous.value} -> {task.status.value} by user {caller.user_id}")

    return await get_task(db, caller, task_id)
