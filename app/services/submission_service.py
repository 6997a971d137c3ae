"""
Submission service
Draft → submitted → reviewed lifecycle for internal surveys, public guest
submissions, and the finalization hook that raises remediation tasks.
"""
import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import (
    EscalationSideEffectFailure,
    GoneError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.models.survey import (
    GuestSurveyLink,
    SubmissionStatus,
    SurveyCategory,
    SurveyResponse,
    SurveySubcategory,
    SurveySubmission,
    SurveyTemplate,
    SurveyType,
)
from app.models.user import UserRole
from app.schemas.auth import AuthorizedCaller
from app.schemas.scoring import CategoryScoreDisplay, SubmissionScoreDisplay
from app.schemas.survey import (
    GuestSubmissionCreate,
    SubmissionCreate,
    SubmissionDetail,
    SubmissionFilters,
    SubmissionListItem,
    SubmissionUpdate,
)
from app.services.scoring import round_score, score_submission
from app.services.property_service import get_scoped_property
from app.services.task_service import create_tasks_from_submission
from app.services.template_service import get_template

logger = logging.getLogger(__name__)

REVIEWER_ROLES = (UserRole.ADMIN, UserRole.PROPERTY_MANAGER)


def _submission_options():
    return (
        selectinload(SurveySubmission.responses),
        selectinload(SurveySubmission.property),
        selectinload(SurveySubmission.submitter),
        selectinload(SurveySubmission.template)
        .selectinload(SurveyTemplate.categories)
        .selectinload(SurveyCategory.subcategories)
        .selectinload(SurveySubcategory.questions),
    )


def _questions_of(template: SurveyTemplate) -> Dict[int, object]:
    return {
        question.id: question
        for category in template.categories
        for subcategory in category.subcategories
        for question in subcategory.questions
    }


def _validate_responses(template: SurveyTemplate, responses: Iterable) -> None:
    """
    Check every response against the template.

    Raises:
        NotFoundError: question not part of the template
        ValidationError: duplicate question or score outside the question scale
    """
    questions = _questions_of(template)
    seen = set()
    for response in responses:
        question = questions.get(response.question_id)
        if question is None:
            raise NotFoundError("Question", response.question_id)
        if response.question_id in seen:
            raise ValidationError(
                f"Question {response.question_id} answered more than once",
                field="responses",
                constraint="unique_question",
            )
        seen.add(response.question_id)
        if not question.scale_min <= response.score <= question.scale_max:
            raise ValidationError(
                f"Score {response.score} for question {question.id} must be between "
                f"{question.scale_min} and {question.scale_max}",
                field="score",
                constraint="within_scale",
            )


def _check_required_answered(template: SurveyTemplate, responses: Iterable) -> None:
    answered = {r.question_id for r in responses}
    missing = [
        q.id for q in _questions_of(template).values()
        if q.is_required and q.id not in answered
    ]
    if missing:
        raise ValidationError(
            f"Required questions not answered: {', '.join(str(q) for q in sorted(missing))}",
            field="responses",
            constraint="required_answered",
        )


def _check_internal_template(template: SurveyTemplate) -> None:
    if not template.is_active:
        raise ValidationError("Template is not active", field="template_id", constraint="active")
    if template.survey_type != SurveyType.INTERNAL:
        raise ValidationError(
            "Guest templates can only be submitted through a guest link",
            field="template_id",
            constraint="internal_template",
        )


async def _load_submission(db: AsyncSession, submission_id: int) -> Optional[SurveySubmission]:
    result = await db.execute(
        select(SurveySubmission)
        .where(SurveySubmission.id == submission_id)
        .options(*_submission_options())
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _build_responses(responses: Iterable, submission_id: Optional[int] = None) -> List[SurveyResponse]:
    return [
        SurveyResponse(
            submission_id=submission_id,
            question_id=r.question_id,
            score=r.score,
            note=r.note,
            issue_description=getattr(r, "issue_description", None),
        )
        for r in responses
    ]


async def get_submission(db: AsyncSession, caller: AuthorizedCaller, submission_id: int) -> SurveySubmission:
    """
    Load a submission the caller may see.
    Drafts are private to their submitter.
    """
    submission = await _load_submission(db, submission_id)
    if not submission or submission.template.organization_id != caller.organization_id:
        raise NotFoundError("Submission", submission_id)
    if not caller.can_access_property(submission.property_id):
        raise PermissionDeniedError("No access to this property")
    if submission.status == SubmissionStatus.DRAFT and submission.submitted_by != caller.user_id:
        raise NotFoundError("Submission", submission_id)
    return submission


async def list_submissions(
    db: AsyncSession,
    caller: AuthorizedCaller,
    filters: SubmissionFilters,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[SurveySubmission], int]:
    """Submissions visible to the caller, most recent visit first"""
    query = (
        select(SurveySubmission)
        .join(SurveyTemplate, SurveySubmission.template_id == SurveyTemplate.id)
        .where(
            SurveyTemplate.organization_id == caller.organization_id,
            or_(
                SurveySubmission.status != SubmissionStatus.DRAFT,
                SurveySubmission.submitted_by == caller.user_id,
            ),
        )
    )
    if caller.property_ids is not None:
        if not caller.property_ids:
            return [], 0
        query = query.where(SurveySubmission.property_id.in_(list(caller.property_ids)))

    if filters.property_id is not None:
        query = query.where(SurveySubmission.property_id == filters.property_id)
    if filters.status is not None:
        query = query.where(SurveySubmission.status == filters.status)
    if filters.survey_type is not None:
        query = query.where(SurveyTemplate.survey_type == filters.survey_type)
    if filters.date_from is not None:
        query = query.where(SurveySubmission.visit_date >= filters.date_from)
    if filters.date_to is not None:
        query = query.where(SurveySubmission.visit_date <= filters.date_to)

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar()

    query = (
        query.options(*_submission_options())
        .order_by(SurveySubmission.visit_date.desc(), SurveySubmission.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def create_submission(
    db: AsyncSession,
    caller: AuthorizedCaller,
    payload: SubmissionCreate,
) -> SurveySubmission:
    """
    Start an internal survey as a draft, or submit it right away.
    A direct submit goes through finalize_submission like any draft.
    """
    template = await get_template(db, payload.template_id, caller.organization_id)
    _check_internal_template(template)
    await get_scoped_property(db, caller, payload.property_id)
    _validate_responses(template, payload.responses)
    if payload.status == SubmissionStatus.SUBMITTED.value:
        _check_required_answered(template, payload.responses)

    submission = SurveySubmission(
        template_id=template.id,
        property_id=payload.property_id,
        submitted_by=caller.user_id,
        status=SubmissionStatus.DRAFT,
        visit_date=payload.visit_date,
        notes=payload.notes,
        responses=_build_responses(payload.responses),
    )
    db.add(submission)
    await db.commit()
    submission_id = submission.id

    logger.info(
        f"User {caller.user_id} started submission {submission_id} "
        f"(template {template.id}, property {payload.property_id})"
    )

    if payload.status == SubmissionStatus.SUBMITTED.value:
        return await finalize_submission(db, submission_id, caller)
    return await get_submission(db, caller, submission_id)


async def update_draft(
    db: AsyncSession,
    caller: AuthorizedCaller,
    submission_id: int,
    payload: SubmissionUpdate,
) -> SurveySubmission:
    """Edit a draft. Supplied responses replace the stored set."""
    submission = await get_submission(db, caller, submission_id)
    if submission.submitted_by != caller.user_id:
        raise PermissionDeniedError("Only the submitter can edit this survey")
    if submission.status != SubmissionStatus.DRAFT:
        raise ValidationError("Only draft surveys can be edited", field="status", constraint="draft")

    update_data = payload.model_dump(exclude_unset=True, exclude={"responses"})
    if "visit_date" in update_data and update_data["visit_date"] is None:
        raise ValidationError("visit_date cannot be cleared", field="visit_date", constraint="required")
    for field, value in update_data.items():
        setattr(submission, field, value)

    if payload.responses is not None:
        _validate_responses(submission.template, payload.responses)
        for response in submission.responses:
            await db.delete(response)
        await db.flush()
        db.add_all(_build_responses(payload.responses, submission_id))

    await db.commit()
    return await get_submission(db, caller, submission_id)


async def _escalate(db: AsyncSession, submission: SurveySubmission) -> None:
    """
    Raise tasks for a freshly submitted survey.

    Best effort: the submission is already committed, so a failure here is
    logged and rolled back but never reaches the submitter.
    """
    submission_id = submission.id
    try:
        await create_tasks_from_submission(db, submission, submission.template)
        await db.commit()
    except Exception as e:
        await db.rollback()
        failure = EscalationSideEffectFailure(submission_id, e)
        logger.error(failure.message, exc_info=True)


async def finalize_submission(
    db: AsyncSession,
    submission_id: int,
    caller: Optional[AuthorizedCaller] = None,
) -> SurveySubmission:
    """
    Move a draft to submitted and run task escalation.

    Raises:
        ValidationError: not a draft, no responses, or required questions unanswered
        PermissionDeniedError: caller is not the submitter
    """
    submission = await _load_submission(db, submission_id)
    if not submission:
        raise NotFoundError("Submission", submission_id)
    if caller is not None:
        if submission.template.organization_id != caller.organization_id:
            raise NotFoundError("Submission", submission_id)
        if submission.submitted_by != caller.user_id:
            raise PermissionDeniedError("Only the submitter can submit this survey")
    if submission.status != SubmissionStatus.DRAFT:
        raise ValidationError("Survey has already been submitted", field="status", constraint="draft")
    if not submission.responses:
        raise ValidationError("At least one response is required", field="responses", constraint="min_items")
    _check_required_answered(submission.template, submission.responses)

    submission.status = SubmissionStatus.SUBMITTED
    submission.submitted_at = datetime.utcnow()
    await db.commit()

    logger.info(f"Submission {submission_id} submitted with {len(submission.responses)} response(s)")

    await _escalate(db, submission)

    return await _load_submission(db, submission_id)


async def mark_reviewed(db: AsyncSession, caller: AuthorizedCaller, submission_id: int) -> SurveySubmission:
    """Manager acknowledgement of a submitted survey"""
    if not caller.has_role(*REVIEWER_ROLES):
        raise PermissionDeniedError("Only admins and property managers can review surveys")

    submission = await get_submission(db, caller, submission_id)
    if submission.status != SubmissionStatus.SUBMITTED:
        raise ValidationError(
            f"Cannot review a survey in status {submission.status.value}",
            field="status",
            constraint="submitted",
        )

    submission.status = SubmissionStatus.REVIEWED
    await db.commit()

    logger.info(f"Submission {submission_id} reviewed by user {caller.user_id}")
    return await get_submission(db, caller, submission_id)


async def create_guest_submission(db: AsyncSession, payload: GuestSubmissionCreate) -> SurveySubmission:
    """
    Public guest feedback through a link token.

    Raises:
        NotFoundError: unknown token
        GoneError: link or template deactivated
        ValidationError: link points at a non-guest template, bad answers
    """
    result = await db.execute(
        select(GuestSurveyLink)
        .where(GuestSurveyLink.token == payload.token)
        .options(
            selectinload(GuestSurveyLink.template)
            .selectinload(SurveyTemplate.categories)
            .selectinload(SurveyCategory.subcategories)
            .selectinload(SurveySubcategory.questions)
        )
    )
    link = result.scalar_one_or_none()
    if not link:
        raise NotFoundError("Survey link")
    if not link.is_active:
        raise GoneError("This survey link is no longer active")

    template = link.template
    if not template.is_active:
        raise GoneError("This survey is no longer available")
    if template.survey_type != SurveyType.GUEST:
        raise ValidationError("This link does not point at a guest survey", field="token", constraint="guest_template")

    _validate_responses(template, payload.responses)
    _check_required_answered(template, payload.responses)

    submission = SurveySubmission(
        template_id=template.id,
        property_id=link.property_id,
        guest_name=payload.guest_name,
        guest_email=payload.guest_email,
        guest_link_id=link.id,
        status=SubmissionStatus.SUBMITTED,
        visit_date=date.today(),
        submitted_at=datetime.utcnow(),
        responses=_build_responses(payload.responses),
    )
    db.add(submission)
    await db.commit()

    logger.info(f"Guest submission {submission.id} received for property {link.property_id}")
    return submission


def score_for_submission(submission: SurveySubmission, template: Optional[SurveyTemplate] = None) -> SubmissionScoreDisplay:
    """Engine score of one submission, rounded for display"""
    template = template or submission.template
    result = score_submission(template.categories, submission.responses)
    by_id = {c.category_id: c for c in result.category_scores}

    return SubmissionScoreDisplay(
        overall_score=round_score(result.overall_score),
        categories=[
            CategoryScoreDisplay(
                category_id=category.id,
                name=category.name,
                weight=category.weight,
                average=round_score(by_id[category.id].average),
                answered_count=by_id[category.id].answered_count,
            )
            for category in template.categories
        ],
    )


def to_detail(submission: SurveySubmission) -> SubmissionDetail:
    return SubmissionDetail.model_validate(
        {
            **{c.name: getattr(submission, c.name) for c in SurveySubmission.__table__.columns},
            "responses": submission.responses,
            "template_name": submission.template.name,
            "survey_type": submission.template.survey_type,
            "property_name": submission.property.name if submission.property else None,
            "submitter_name": submission.submitter.full_name if submission.submitter else None,
            "score": score_for_submission(submission),
        },
        from_attributes=True,
    )


def to_list_item(submission: SurveySubmission) -> SubmissionListItem:
    return SubmissionListItem(
        id=submission.id,
        template_id=submission.template_id,
        template_name=submission.template.name,
        survey_type=submission.template.survey_type,
        property_id=submission.property_id,
        property_name=submission.property.name,
        status=submission.status,
        visit_date=submission.visit_date,
        submitted_by=submission.submitted_by,
        submitter_name=submission.submitter.full_name if submission.submitter else None,
        guest_name=submission.guest_name,
        submitted_at=submission.submitted_at,
        overall_score=round_score(score_submission(submission.template.categories, submission.responses).overall_score),
    )
