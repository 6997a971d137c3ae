"""
Dashboard service
Aggregates submitted (and reviewed) surveys into property score cards,
category breakdowns and monthly trends.

Every number here comes from app.services.scoring.score_submission applied
to a different slice of responses: per property, per month, or per
property and month. Responses of several submissions are pooled, so a
category average is the mean over every answered question in the slice.
"""
import logging
from collections import OrderedDict
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.survey import (
    SubmissionStatus,
    SurveyCategory,
    SurveyQuestion,
    SurveyResponse,
    SurveySubcategory,
    SurveySubmission,
    SurveyTemplate,
    SurveyType,
)
from app.models.user import User
from app.schemas.auth import AuthorizedCaller
from app.schemas.dashboard import (
    CategoryBreakdown,
    DashboardOverview,
    NoteRow,
    OrgTrendPoint,
    PropertyDashboard,
    PropertyScoreSummary,
    SubcategoryBreakdown,
    TrendPoint,
)
from app.schemas.scoring import SubmissionScore
from app.services.property_service import get_scoped_property, list_scoped_properties
from app.services.scoring import round_score, score_submission, subcategory_averages

logger = logging.getLogger(__name__)

SCORED_STATUSES = (SubmissionStatus.SUBMITTED, SubmissionStatus.REVIEWED)
MAX_TREND_MONTHS = 60
MAX_NOTES = 100


def month_key(value: date) -> str:
    return value.strftime("%Y-%m")


def months_back(today: date, months: int) -> date:
    """First day of the month `months - 1` months before today's month"""
    year, month = today.year, today.month - (months - 1)
    while month <= 0:
        month += 12
        year -= 1
    return date(year, month, 1)


def _check_months(months: int) -> None:
    if months < 1 or months > MAX_TREND_MONTHS:
        raise ValidationError(
            f"months must be between 1 and {MAX_TREND_MONTHS}",
            field="months",
            constraint="range",
        )


async def _scored_submissions(
    db: AsyncSession,
    caller: AuthorizedCaller,
    property_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    survey_type: Optional[SurveyType] = None,
) -> List[SurveySubmission]:
    """Final submissions in the caller's scope, with responses and template trees loaded"""
    query = (
        select(SurveySubmission)
        .join(SurveyTemplate, SurveySubmission.template_id == SurveyTemplate.id)
        .where(
            SurveyTemplate.organization_id == caller.organization_id,
            SurveySubmission.status.in_(SCORED_STATUSES),
        )
    )
    if caller.property_ids is not None:
        if not caller.property_ids:
            return []
        query = query.where(SurveySubmission.property_id.in_(list(caller.property_ids)))
    if property_id is not None:
        query = query.where(SurveySubmission.property_id == property_id)
    if date_from is not None:
        query = query.where(SurveySubmission.visit_date >= date_from)
    if date_to is not None:
        query = query.where(SurveySubmission.visit_date <= date_to)
    if survey_type is not None:
        query = query.where(SurveyTemplate.survey_type == survey_type)

    query = query.options(
        selectinload(SurveySubmission.responses),
        selectinload(SurveySubmission.template)
        .selectinload(SurveyTemplate.categories)
        .selectinload(SurveyCategory.subcategories)
        .selectinload(SurveySubcategory.questions),
    ).order_by(SurveySubmission.visit_date, SurveySubmission.id)

    result = await db.execute(query)
    return list(result.scalars().all())


def _pool(submissions: Iterable[SurveySubmission]) -> Tuple[List[SurveyCategory], list]:
    """Categories of every template involved (first seen order) and all responses"""
    categories: "OrderedDict[int, SurveyCategory]" = OrderedDict()
    responses = []
    for submission in submissions:
        for category in submission.template.categories:
            categories.setdefault(category.id, category)
        responses.extend(submission.responses)
    return list(categories.values()), responses


def score_slice(submissions: Iterable[SurveySubmission]) -> SubmissionScore:
    """Engine score of a pooled set of submissions"""
    categories, responses = _pool(submissions)
    return score_submission(categories, responses)


def _by_month(submissions: Iterable[SurveySubmission]) -> "OrderedDict[str, List[SurveySubmission]]":
    groups: "OrderedDict[str, List[SurveySubmission]]" = OrderedDict()
    for submission in submissions:
        groups.setdefault(month_key(submission.visit_date), []).append(submission)
    return groups


def _in_range(submission: SurveySubmission, date_from: Optional[date], date_to: Optional[date]) -> bool:
    if date_from is not None and submission.visit_date < date_from:
        return False
    if date_to is not None and submission.visit_date > date_to:
        return False
    return True


async def get_overview(
    db: AsyncSession,
    caller: AuthorizedCaller,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    survey_type: Optional[SurveyType] = None,
    today: Optional[date] = None,
) -> DashboardOverview:
    """
    Score card per visible property.

    average_score and submission_count honour the date range. Sparkline,
    last survey date and the monthly count always look at recent history.
    """
    today = today or date.today()
    properties = await list_scoped_properties(db, caller)
    submissions = await _scored_submissions(db, caller, survey_type=survey_type)

    by_property: Dict[int, List[SurveySubmission]] = {}
    for submission in submissions:
        by_property.setdefault(submission.property_id, []).append(submission)

    sparkline_start = months_back(today, settings.DASHBOARD_SPARKLINE_MONTHS)
    month_start = today.replace(day=1)

    cards = []
    for prop in properties:
        history = by_property.get(prop.id, [])
        in_range = [s for s in history if _in_range(s, date_from, date_to)]
        recent = [s for s in history if s.visit_date >= sparkline_start]

        cards.append(
            PropertyScoreSummary(
                property_id=prop.id,
                property_name=prop.name,
                property_code=prop.code,
                image_url=prop.image_url,
                average_score=round_score(score_slice(in_range).overall_score) if in_range else None,
                submission_count=len(in_range),
                last_survey_date=max((s.visit_date for s in history), default=None),
                sparkline=[
                    round_score(score_slice(group).overall_score)
                    for group in _by_month(recent).values()
                ],
            )
        )

    logger.debug(
        f"Overview for organization {caller.organization_id}: "
        f"{len(cards)} properties, {len(submissions)} scored submissions"
    )

    return DashboardOverview(
        properties=cards,
        surveys_this_month=sum(1 for s in submissions if s.visit_date >= month_start),
    )


async def get_property_dashboard(
    db: AsyncSession,
    caller: AuthorizedCaller,
    property_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    survey_type: Optional[SurveyType] = None,
) -> PropertyDashboard:
    """Overall, per-category and per-subcategory scores for one property"""
    prop = await get_scoped_property(db, caller, property_id)
    submissions = await _scored_submissions(
        db, caller, property_id=prop.id, date_from=date_from, date_to=date_to, survey_type=survey_type
    )

    categories, responses = _pool(submissions)
    result = score_submission(categories, responses)
    by_id = {c.category_id: c for c in result.category_scores}

    subcategory_names = {
        sub.id: sub.name for category in categories for sub in category.subcategories
    }

    return PropertyDashboard(
        property_id=prop.id,
        property_name=prop.name,
        property_code=prop.code,
        average_score=round_score(result.overall_score) if submissions else None,
        submission_count=len(submissions),
        categories=[
            CategoryBreakdown(
                category_id=category.id,
                category_name=category.name,
                weight=category.weight,
                average_score=round_score(by_id[category.id].average),
                answered_count=by_id[category.id].answered_count,
            )
            for category in categories
        ],
        subcategories=[
            SubcategoryBreakdown(
                subcategory_id=sub.subcategory_id,
                category_id=sub.category_id,
                subcategory_name=subcategory_names[sub.subcategory_id],
                average_score=round_score(sub.average),
                answered_count=sub.answered_count,
            )
            for sub in subcategory_averages(categories, responses)
        ],
    )


async def get_comparison(
    db: AsyncSession,
    caller: AuthorizedCaller,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    survey_type: Optional[SurveyType] = None,
) -> List[PropertyDashboard]:
    """Property dashboards side by side for every visible property with surveys"""
    dashboards = []
    for prop in await list_scoped_properties(db, caller):
        dashboard = await get_property_dashboard(db, caller, prop.id, date_from, date_to, survey_type)
        if dashboard.submission_count:
            dashboards.append(dashboard)
    return dashboards


async def get_property_trends(
    db: AsyncSession,
    caller: AuthorizedCaller,
    property_id: int,
    months: Optional[int] = None,
    survey_type: Optional[SurveyType] = None,
    today: Optional[date] = None,
) -> List[TrendPoint]:
    """Monthly score of one property, oldest month first; months without surveys are skipped"""
    months = settings.DASHBOARD_TREND_MONTHS if months is None else months
    _check_months(months)
    prop = await get_scoped_property(db, caller, property_id)

    start = months_back(today or date.today(), months)
    submissions = await _scored_submissions(
        db, caller, property_id=prop.id, date_from=start, survey_type=survey_type
    )

    return [
        TrendPoint(
            month=month,
            average_score=round_score(score_slice(group).overall_score),
            submission_count=len(group),
        )
        for month, group in _by_month(submissions).items()
    ]


async def get_org_trends(
    db: AsyncSession,
    caller: AuthorizedCaller,
    months: Optional[int] = None,
    survey_type: Optional[SurveyType] = None,
    today: Optional[date] = None,
) -> List[OrgTrendPoint]:
    """Monthly score of every visible property, pivoted by month"""
    months = settings.DASHBOARD_TREND_MONTHS if months is None else months
    _check_months(months)

    start = months_back(today or date.today(), months)
    submissions = await _scored_submissions(db, caller, date_from=start, survey_type=survey_type)
    codes = {p.id: p.code.lower() for p in await list_scoped_properties(db, caller, include_inactive=True)}

    points = []
    for month, group in _by_month(submissions).items():
        per_property: Dict[int, List[SurveySubmission]] = {}
        for submission in group:
            per_property.setdefault(submission.property_id, []).append(submission)

        year, month_number = (int(part) for part in month.split("-"))
        points.append(
            OrgTrendPoint(
                month=month,
                label=date(year, month_number, 1).strftime("%b %Y"),
                scores={
                    codes[property_id]: round_score(score_slice(subset).overall_score)
                    for property_id, subset in per_property.items()
                    if property_id in codes
                },
            )
        )
    return points


async def get_recent_notes(
    db: AsyncSession,
    caller: AuthorizedCaller,
    property_id: int,
    limit: int = 20,
) -> List[NoteRow]:
    """Latest non-empty response notes of final surveys for one property, newest visit first"""
    if limit < 1 or limit > MAX_NOTES:
        raise ValidationError(f"limit must be between 1 and {MAX_NOTES}", field="limit", constraint="range")
    prop = await get_scoped_property(db, caller, property_id)

    query = (
        select(SurveyResponse, SurveySubmission, SurveyQuestion.text, User.full_name)
        .join(SurveySubmission, SurveyResponse.submission_id == SurveySubmission.id)
        .join(SurveyQuestion, SurveyResponse.question_id == SurveyQuestion.id)
        .outerjoin(User, SurveySubmission.submitted_by == User.id)
        .where(
            SurveySubmission.property_id == prop.id,
            SurveySubmission.status.in_(SCORED_STATUSES),
            SurveyResponse.note.is_not(None),
            func.trim(SurveyResponse.note) != "",
        )
        .order_by(SurveySubmission.visit_date.desc(), SurveyResponse.id.desc())
        .limit(limit)
    )
    result = await db.execute(query)

    notes = [
        NoteRow(
            response_id=response.id,
            submission_id=submission.id,
            question_id=response.question_id,
            question_text=question_text,
            score=response.score,
            note=response.note.strip(),
            visit_date=submission.visit_date,
            surveyor_name=full_name or submission.guest_name,
        )
        for response, submission, question_text, full_name in result.all()
    ]
    logger.debug(f"Loaded {len(notes)} notes for property {prop.id}")
    return notes
