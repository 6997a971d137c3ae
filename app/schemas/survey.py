"""
Pydantic schemas for survey submissions
"""
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Literal
from datetime import date, datetime

from app.models.survey import SubmissionStatus, SurveyType
from app.schemas.scoring import SubmissionScoreDisplay


class SurveyResponseIn(BaseModel):
    """One answered question. Range is checked against the question scale."""
    question_id: int
    score: int
    note: Optional[str] = Field(None, max_length=1000)
    issue_description: Optional[str] = Field(None, max_length=2000)


class GuestResponseIn(BaseModel):
    """Guest answers carry no issue description"""
    question_id: int
    score: int
    note: Optional[str] = Field(None, max_length=1000)


class SubmissionCreate(BaseModel):
    """Schema for starting (draft) or directly submitting an internal survey"""
    template_id: int
    property_id: int
    visit_date: date
    notes: Optional[str] = Field(None, max_length=2000)
    status: Literal["draft", "submitted"] = "draft"
    responses: List[SurveyResponseIn] = Field(..., min_length=1)


class SubmissionUpdate(BaseModel):
    """Schema for editing a draft; responses replace the existing set"""
    visit_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)
    responses: Optional[List[SurveyResponseIn]] = Field(None, min_length=1)


class GuestSubmissionCreate(BaseModel):
    """Public guest survey submission"""
    token: str = Field(..., min_length=1)
    guest_name: Optional[str] = Field(None, max_length=200)
    guest_email: Optional[EmailStr] = None
    responses: List[GuestResponseIn] = Field(..., min_length=1)

    @field_validator("guest_email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SubmissionFilters(BaseModel):
    """Query filters for submission listing"""
    property_id: Optional[int] = None
    status: Optional[SubmissionStatus] = None
    survey_type: Optional[SurveyType] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class SurveyResponseOut(BaseModel):
    """Stored response"""
    id: int
    question_id: int
    score: int
    note: Optional[str] = None
    issue_description: Optional[str] = None

    class Config:
        from_attributes = True


class SubmissionResponse(BaseModel):
    """Submission with its responses"""
    id: int
    template_id: int
    property_id: int
    submitted_by: Optional[int] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_link_id: Optional[int] = None
    status: SubmissionStatus
    visit_date: date
    notes: Optional[str] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    responses: List[SurveyResponseOut] = []

    class Config:
        from_attributes = True


class SubmissionDetail(SubmissionResponse):
    """Submission with display names and its rounded score"""
    template_name: Optional[str] = None
    survey_type: Optional[SurveyType] = None
    property_name: Optional[str] = None
    submitter_name: Optional[str] = None
    score: SubmissionScoreDisplay


class SubmissionListItem(BaseModel):
    """Row in the survey list"""
    id: int
    template_id: int
    template_name: str
    survey_type: SurveyType
    property_id: int
    property_name: str
    status: SubmissionStatus
    visit_date: date
    submitted_by: Optional[int] = None
    submitter_name: Optional[str] = None
    guest_name: Optional[str] = None
    submitted_at: Optional[datetime] = None
    overall_score: float


class SubmissionListResponse(BaseModel):
    """Paginated list of submissions"""
    submissions: List[SubmissionListItem]
    total: int
    page: int
    page_size: int


class GuestSubmissionCreated(BaseModel):
    """Acknowledgement returned to guests"""
    id: int
