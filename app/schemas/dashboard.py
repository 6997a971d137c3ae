"""
Pydantic schemas for dashboard endpoints
All scores are on the normalized 0-10 scale, rounded to one decimal.
"""
from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import date


class PropertyScoreSummary(BaseModel):
    """Score card for one property on the overview"""
    property_id: int
    property_name: str
    property_code: str
    image_url: Optional[str] = None
    average_score: Optional[float] = None  # None = no survey in range
    submission_count: int = 0
    last_survey_date: Optional[date] = None
    sparkline: List[float] = []  # One point per month with surveys, oldest first


class DashboardOverview(BaseModel):
    """Organization overview"""
    properties: List[PropertyScoreSummary]
    surveys_this_month: int


class CategoryBreakdown(BaseModel):
    """Category score for a property"""
    category_id: int
    category_name: str
    weight: float
    average_score: Optional[float] = None
    answered_count: int = 0


class SubcategoryBreakdown(BaseModel):
    """Sub-category score for a property"""
    subcategory_id: int
    category_id: int
    subcategory_name: str
    average_score: Optional[float] = None
    answered_count: int = 0


class PropertyDashboard(BaseModel):
    """Detailed scores for one property"""
    property_id: int
    property_name: str
    property_code: str
    average_score: Optional[float] = None
    submission_count: int = 0
    categories: List[CategoryBreakdown] = []
    subcategories: List[SubcategoryBreakdown] = []


class TrendPoint(BaseModel):
    """Monthly score of one property"""
    month: str  # YYYY-MM
    average_score: float
    submission_count: int


class OrgTrendPoint(BaseModel):
    """Monthly scores of every property, keyed by lower-case property code"""
    month: str  # YYYY-MM
    label: str  # e.g. "Jan 2026"
    scores: Dict[str, float]


class NoteRow(BaseModel):
    """Surveyor note on one answered question"""
    response_id: int
    submission_id: int
    question_id: int
    question_text: str
    score: int  # Native question scale
    note: str
    visit_date: date
    surveyor_name: Optional[str] = None  # Staff member, or guest name for guest surveys
