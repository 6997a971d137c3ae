"""
Pydantic schemas for survey template endpoints
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime

from app.models.survey import SurveyType

MAX_CATEGORY_WEIGHT = 100.0


def _check_unique_sort_order(children, label: str):
    orders = [c.sort_order for c in children]
    if len(orders) != len(set(orders)):
        raise ValueError(f"{label} sort_order values must be unique")


class QuestionBase(BaseModel):
    """Base schema for questions"""
    text: str = Field(..., min_length=1)
    description: Optional[str] = None
    scale_min: int = Field(1, ge=0)
    scale_max: int = Field(10, ge=1)
    is_required: bool = True
    sort_order: int = Field(..., ge=0)


class QuestionCreate(QuestionBase):
    """Schema for creating a question"""

    @model_validator(mode="after")
    def check_scale(self):
        if self.scale_min >= self.scale_max:
            raise ValueError("scale_min must be lower than scale_max")
        return self


class SubcategoryCreate(BaseModel):
    """Schema for creating a sub-category. An empty name means ungrouped."""
    name: str = ""
    description: Optional[str] = None
    sort_order: int = Field(..., ge=0)
    questions: List[QuestionCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_order(self):
        _check_unique_sort_order(self.questions, "Question")
        return self


class CategoryCreate(BaseModel):
    """Schema for creating a weighted category"""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    weight: float = Field(1.0, gt=0, le=MAX_CATEGORY_WEIGHT, allow_inf_nan=False)
    sort_order: int = Field(..., ge=0)
    subcategories: List[SubcategoryCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_order(self):
        _check_unique_sort_order(self.subcategories, "Sub-category")
        return self


class TemplateCreate(BaseModel):
    """Schema for creating a template with its whole category tree"""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    survey_type: SurveyType = SurveyType.INTERNAL
    categories: List[CategoryCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_order(self):
        _check_unique_sort_order(self.categories, "Category")
        return self


class TemplateUpdate(BaseModel):
    """
    Schema for updating a template.
    Supplying categories replaces the structure (new version if the
    template already has submissions).
    """
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    categories: Optional[List[CategoryCreate]] = Field(None, min_length=1)

    @model_validator(mode="after")
    def check_order(self):
        if self.categories:
            _check_unique_sort_order(self.categories, "Category")
        return self


class QuestionResponse(QuestionBase):
    """Response schema for questions"""
    id: int
    subcategory_id: int

    class Config:
        from_attributes = True


class SubcategoryResponse(BaseModel):
    """Response schema for sub-categories"""
    id: int
    category_id: int
    name: str
    description: Optional[str] = None
    sort_order: int
    questions: List[QuestionResponse] = []

    class Config:
        from_attributes = True


class CategoryResponse(BaseModel):
    """Response schema for categories"""
    id: int
    template_id: int
    name: str
    description: Optional[str] = None
    weight: float
    sort_order: int
    subcategories: List[SubcategoryResponse] = []

    class Config:
        from_attributes = True


class TemplateSummary(BaseModel):
    """Template without its tree"""
    id: int
    organization_id: int
    name: str
    description: Optional[str] = None
    version: int
    survey_type: SurveyType
    is_active: bool
    parent_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TemplateResponse(TemplateSummary):
    """Template with categories → sub-categories → questions"""
    categories: List[CategoryResponse] = []

    class Config:
        from_attributes = True
