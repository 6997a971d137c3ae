"""
Survey submission endpoints
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import Optional

from app.api.dependencies import get_authorized_caller, require_roles
from app.db.session import get_db
from app.models.survey import SubmissionStatus, SurveyType
from app.models.user import UserRole
from app.schemas.auth import AuthorizedCaller
from app.schemas.survey import (
    GuestSubmissionCreate,
    GuestSubmissionCreated,
    SubmissionCreate,
    SubmissionDetail,
    SubmissionFilters,
    SubmissionListResponse,
    SubmissionUpdate,
)
from app.services import submission_service

router = APIRouter()


@router.post("/guest", response_model=GuestSubmissionCreated, status_code=status.HTTP_201_CREATED)
async def submit_guest_survey(
    submission_data: GuestSubmissionCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Public guest feedback through a survey link token. No authentication.

    - 404 unknown token
    - 410 link or survey deactivated
    """
    submission = await submission_service.create_guest_submission(db, submission_data)
    return GuestSubmissionCreated(id=submission.id)


@router.get("/", response_model=SubmissionListResponse)
async def list_surveys(
    property_id: Optional[int] = None,
    status_filter: Optional[SubmissionStatus] = Query(None, alias="status"),
    survey_type: Optional[SurveyType] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """
    List surveys with pagination.

    RBAC Applied:
    - ADMIN: every property of the organization
    - PROPERTY_MANAGER / STAFF: assigned properties only
    Drafts are only listed for their submitter.
    """
    filters = SubmissionFilters(
        property_id=property_id,
        status=status_filter,
        survey_type=survey_type,
        date_from=date_from,
        date_to=date_to,
    )
    submissions, total = await submission_service.list_submissions(db, caller, filters, page, page_size)

    return SubmissionListResponse(
        submissions=[submission_service.to_list_item(s) for s in submissions],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/", response_model=SubmissionDetail, status_code=status.HTTP_201_CREATED)
async def create_survey(
    submission_data: SubmissionCreate,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """
    Start an internal survey as a draft, or submit it directly with
    status="submitted". Submitting raises tasks for low scores that carry
    an issue description.
    """
    submission = await submission_service.create_submission(db, caller, submission_data)
    return submission_service.to_detail(submission)


@router.get("/{submission_id}", response_model=SubmissionDetail)
async def get_survey(
    submission_id: int,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """Get a survey with its responses and score"""
    submission = await submission_service.get_submission(db, caller, submission_id)
    return submission_service.to_detail(submission)


@router.patch("/{submission_id}", response_model=SubmissionDetail)
async def update_survey(
    submission_id: int,
    submission_data: SubmissionUpdate,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """Edit a draft survey. Only the submitter can edit, only while draft."""
    submission = await submission_service.update_draft(db, caller, submission_id, submission_data)
    return submission_service.to_detail(submission)


@router.post("/{submission_id}/submit", response_model=SubmissionDetail)
async def submit_survey(
    submission_id: int,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """
    Finalize a draft.
    Task escalation runs afterwards; its failures never fail this request.
    """
    submission = await submission_service.finalize_submission(db, submission_id, caller)
    return submission_service.to_detail(submission)


@router.post("/{submission_id}/review", response_model=SubmissionDetail)
async def review_survey(
    submission_id: int,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN, UserRole.PROPERTY_MANAGER)),
    db: AsyncSession = Depends(get_db)
):
    """
    Mark a submitted survey as reviewed.
    Requires ADMIN or PROPERTY_MANAGER role.
    """
    submission = await submission_service.mark_reviewed(db, caller, submission_id)
    return submission_service.to_detail(submission)
