"""
Pydantic schemas for User endpoints
"""
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime
from app.models.user import UserRole


class UserBase(BaseModel):
    """Base schema for users"""
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)


class UserCreate(UserBase):
    """Schema for adding a user to the organization (admin)"""
    role: UserRole = UserRole.STAFF


class UserUpdate(BaseModel):
    """Schema for updating a user (admin)"""
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserResponse(UserBase):
    """Response schema for users"""
    id: int
    role: UserRole
    organization_id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CurrentUserResponse(UserResponse):
    """The authenticated user with the properties they can access"""
    property_ids: Optional[List[int]] = None  # None = every property (admin)
