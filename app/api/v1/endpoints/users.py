"""
User API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from typing import List, Optional
import logging

from app.api.dependencies import build_caller, get_current_active_user, require_roles
from app.db.session import get_db
from app.models.user import User, UserRole
from app.schemas.auth import AuthorizedCaller
from app.schemas.user import CurrentUserResponse, UserCreate, UserResponse, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_profile(
    current_user: User = Depends(get_current_active_user)
):
    """
    Get current authenticated user's profile and property scope.
    """
    caller = build_caller(current_user)
    response = CurrentUserResponse.model_validate(current_user)
    if caller.property_ids is not None:
        response.property_ids = sorted(caller.property_ids)
    return response


@router.get("/", response_model=List[UserResponse])
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    List users of the organization (ADMIN only).

    Supports pagination and filtering by:
    - search: Search by email or full name
    - role: Filter by role
    - is_active: Filter by active status
    """
    query = select(User).where(User.organization_id == caller.organization_id)

    if search:
        query = query.where(
            or_(
                User.email.ilike(f"%{search}%"),
                User.full_name.ilike(f"%{search}%"),
            )
        )
    if role is not None:
        query = query.where(User.role == role)
    if is_active is not None:
        query = query.where(User.is_active == is_active)

    query = query.order_by(User.full_name).offset(skip).limit(limit)

    result = await db.execute(query)
    return [UserResponse.model_validate(u) for u in result.scalars().all()]


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Add a user to the organization (ADMIN only).
    Credentials are managed by the identity provider.
    """
    existing = await db.execute(select(User.id).where(User.email == user_data.email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A user with this email already exists"
        )

    user = User(organization_id=caller.organization_id, is_active=True, **user_data.model_dump())
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user.id} ({user.role.value}) added by user {caller.user_id}")

    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a user's name, role or active flag (ADMIN only).
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user or user.organization_id != caller.organization_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {user_id} not found"
        )

    update_data = {k: v for k, v in user_data.model_dump(exclude_unset=True).items() if v is not None}
    if user.id == caller.user_id and (
        update_data.get("is_active") is False
        or update_data.get("role", UserRole.ADMIN) != UserRole.ADMIN
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate or demote your own account"
        )

    for field, value in update_data.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user_id} updated by user {caller.user_id}: {sorted(update_data)}")

    return UserResponse.model_validate(user)
