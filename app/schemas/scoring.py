"""
Pydantic schemas for scoring results
"""
from pydantic import BaseModel
from typing import Optional, List


class CategoryScore(BaseModel):
    """Average normalized score (0-10) of one category"""
    category_id: int
    average: Optional[float] = None  # None = no answered question ("N/A")
    answered_count: int = 0


class SubmissionScore(BaseModel):
    """Full-precision result of the scoring engine"""
    overall_score: float
    category_scores: List[CategoryScore]


class SubcategoryScore(BaseModel):
    """Average normalized score of one subcategory"""
    subcategory_id: int
    category_id: int
    average: Optional[float] = None
    answered_count: int = 0


class CategoryScoreDisplay(BaseModel):
    """Category score rounded for display"""
    category_id: int
    name: str
    weight: float
    average: Optional[float] = None
    answered_count: int


class SubmissionScoreDisplay(BaseModel):
    """Submission score rounded to one decimal place for display"""
    overall_score: float
    categories: List[CategoryScoreDisplay]
