"""
Pydantic schemas for Property endpoints
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime


class PropertyBase(BaseModel):
    """Base schema for properties"""
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    code: str = Field(..., min_length=1, max_length=50)
    location: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.strip().upper()


class PropertyCreate(PropertyBase):
    """Schema for creating a property"""
    primary_pm_id: Optional[int] = None


class PropertyUpdate(BaseModel):
    """Schema for updating a property"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    location: Optional[str] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None
    primary_pm_id: Optional[int] = None


class PropertyResponse(PropertyBase):
    """Response schema for properties"""
    id: int
    organization_id: int
    is_active: bool
    primary_pm_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PropertyAssignmentUpdate(BaseModel):
    """Full replacement of the users assigned to a property"""
    user_ids: List[int] = Field(default_factory=list)


class PropertyAssignmentResponse(BaseModel):
    """Users assigned to a property"""
    property_id: int
    user_ids: List[int]


class GuestLinkUpdate(BaseModel):
    """Enable or disable a guest survey link"""
    is_active: bool


class GuestLinkResponse(BaseModel):
    """Guest survey link"""
    id: int
    token: str
    template_id: int
    property_id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
