"""
Property endpoints - properties and their user assignments
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from typing import List, Optional
import logging

from app.api.dependencies import get_authorized_caller, require_roles
from app.core.exceptions import ValidationError
from app.db.session import get_db
from app.models.user import Property, PropertyAssignment, User, UserRole
from app.schemas.auth import AuthorizedCaller
from app.schemas.property import (
    PropertyAssignmentResponse,
    PropertyAssignmentUpdate,
    PropertyCreate,
    PropertyResponse,
    PropertyUpdate,
)
from app.services.property_service import get_scoped_property, list_scoped_properties

logger = logging.getLogger(__name__)

router = APIRouter()


async def _check_primary_pm(db: AsyncSession, caller: AuthorizedCaller, user_id: Optional[int]) -> None:
    """The default task assignee must be an active manager or admin of the organization"""
    if user_id is None:
        return
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if (
        not user
        or user.organization_id != caller.organization_id
        or not user.is_active
        or user.role not in (UserRole.ADMIN, UserRole.PROPERTY_MANAGER)
    ):
        raise ValidationError(
            f"User {user_id} cannot be the primary property manager",
            field="primary_pm_id",
            constraint="active_manager",
        )


@router.get("/", response_model=List[PropertyResponse])
async def list_properties(
    include_inactive: bool = False,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """
    List properties the caller can see.

    RBAC Applied:
    - ADMIN: every property of the organization
    - PROPERTY_MANAGER / STAFF: assigned properties only
    """
    properties = await list_scoped_properties(db, caller, include_inactive=include_inactive)
    return [PropertyResponse.model_validate(p) for p in properties]


@router.post("/", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
async def create_property(
    property_data: PropertyCreate,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a property.
    Requires ADMIN role.
    """
    existing = await db.execute(select(Property.id).where(Property.code == property_data.code))
    if existing.scalar_one_or_none() is not None:
        raise ValidationError(
            f"Property code {property_data.code} is already in use",
            field="code",
            constraint="unique",
        )
    await _check_primary_pm(db, caller, property_data.primary_pm_id)

    prop = Property(organization_id=caller.organization_id, **property_data.model_dump())
    db.add(prop)
    await db.commit()
    await db.refresh(prop)

    logger.info(f"Property {prop.id} '{prop.name}' ({prop.code}) created by user {caller.user_id}")

    return PropertyResponse.model_validate(prop)


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: int,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """Get one property"""
    prop = await get_scoped_property(db, caller, property_id)
    return PropertyResponse.model_validate(prop)


@router.patch("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: int,
    property_data: PropertyUpdate,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a property.
    Requires ADMIN role.
    """
    prop = await get_scoped_property(db, caller, property_id)

    update_data = property_data.model_dump(exclude_unset=True)
    if "primary_pm_id" in update_data:
        await _check_primary_pm(db, caller, update_data["primary_pm_id"])

    for field, value in update_data.items():
        setattr(prop, field, value)

    await db.commit()
    await db.refresh(prop)

    return PropertyResponse.model_validate(prop)


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_property(
    property_id: int,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate a property. Surveys and tasks are kept.
    Requires ADMIN role.
    """
    prop = await get_scoped_property(db, caller, property_id)
    prop.is_active = False
    await db.commit()

    logger.info(f"Property {property_id} deactivated by user {caller.user_id}")


@router.get("/{property_id}/assignments", response_model=PropertyAssignmentResponse)
async def get_assignments(
    property_id: int,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Users assigned to a property.
    Requires ADMIN role.
    """
    prop = await get_scoped_property(db, caller, property_id)
    result = await db.execute(
        select(PropertyAssignment.user_id)
        .where(PropertyAssignment.property_id == prop.id)
        .order_by(PropertyAssignment.user_id)
    )
    return PropertyAssignmentResponse(property_id=prop.id, user_ids=list(result.scalars().all()))


@router.put("/{property_id}/assignments", response_model=PropertyAssignmentResponse)
async def set_assignments(
    property_id: int,
    assignment_data: PropertyAssignmentUpdate,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Replace the users assigned to a property.
    Only property managers and staff of the organization can be assigned.
    Requires ADMIN role.
    """
    prop = await get_scoped_property(db, caller, property_id)
    user_ids = sorted(set(assignment_data.user_ids))

    if user_ids:
        result = await db.execute(
            select(User.id).where(
                User.id.in_(user_ids),
                User.organization_id == caller.organization_id,
                User.role.in_([UserRole.PROPERTY_MANAGER, UserRole.STAFF]),
            )
        )
        valid = set(result.scalars().all())
        invalid = [u for u in user_ids if u not in valid]
        if invalid:
            raise ValidationError(
                f"Users cannot be assigned: {', '.join(str(u) for u in invalid)}",
                field="user_ids",
                constraint="assignable_user",
            )

    await db.execute(delete(PropertyAssignment).where(PropertyAssignment.property_id == prop.id))
    db.add_all([PropertyAssignment(user_id=u, property_id=prop.id) for u in user_ids])
    await db.commit()

    logger.info(f"Property {prop.id} assignments set to {user_ids} by user {caller.user_id}")

    return PropertyAssignmentResponse(property_id=prop.id, user_ids=user_ids)
