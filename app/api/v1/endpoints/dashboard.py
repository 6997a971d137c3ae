"""
Dashboard endpoints - property score cards, breakdowns and trends
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import List, Optional

from app.api.dependencies import get_authorized_caller
from app.db.session import get_db
from app.models.survey import SurveyType
from app.schemas.auth import AuthorizedCaller
from app.schemas.dashboard import DashboardOverview, NoteRow, OrgTrendPoint, PropertyDashboard, TrendPoint
from app.services import dashboard_service

router = APIRouter()


@router.get("/overview", response_model=DashboardOverview)
async def get_overview(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    survey_type: Optional[SurveyType] = None,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """Score card for every property the caller can see"""
    return await dashboard_service.get_overview(db, caller, date_from, date_to, survey_type)


@router.get("/comparison", response_model=List[PropertyDashboard])
async def get_comparison(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    survey_type: Optional[SurveyType] = None,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """Category breakdowns of all visible properties side by side"""
    return await dashboard_service.get_comparison(db, caller, date_from, date_to, survey_type)


@router.get("/trends", response_model=List[OrgTrendPoint])
async def get_org_trends(
    months: Optional[int] = Query(None, description="Number of months, 1-60"),
    survey_type: Optional[SurveyType] = None,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """Monthly score per property across the organization"""
    return await dashboard_service.get_org_trends(db, caller, months, survey_type)


@router.get("/properties/{property_id}", response_model=PropertyDashboard)
async def get_property_dashboard(
    property_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    survey_type: Optional[SurveyType] = None,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """Overall, category and sub-category scores for one property"""
    return await dashboard_service.get_property_dashboard(
        db, caller, property_id, date_from, date_to, survey_type
    )


@router.get("/properties/{property_id}/trends", response_model=List[TrendPoint])
async def get_property_trends(
    property_id: int,
    months: Optional[int] = Query(None, description="Number of months, 1-60"),
    survey_type: Optional[SurveyType] = None,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """Monthly score trend for one property"""
    return await dashboard_service.get_property_trends(db, caller, property_id, months, survey_type)


@router.get("/properties/{property_id}/notes", response_model=List[NoteRow])
async def get_recent_notes(
    property_id: int,
    limit: int = Query(20, description="Number of notes, 1-100"),
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """Latest surveyor notes for one property"""
    return await dashboard_service.get_recent_notes(db, caller, property_id, limit)
