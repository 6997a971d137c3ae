"""
Admin endpoints - guest survey link management
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional
import logging

from app.api.dependencies import require_roles
from app.db.session import get_db
from app.models.survey import GuestSurveyLink
from app.models.user import Property, UserRole
from app.schemas.auth import AuthorizedCaller
from app.schemas.property import GuestLinkResponse, GuestLinkUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_org_link(db: AsyncSession, caller: AuthorizedCaller, link_id: int) -> GuestSurveyLink:
    result = await db.execute(
        select(GuestSurveyLink)
        .join(Property, GuestSurveyLink.property_id == Property.id)
        .where(
            GuestSurveyLink.id == link_id,
            Property.organization_id == caller.organization_id,
        )
    )
    link = result.scalar_one_or_none()
    if not link:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Guest link with ID {link_id} not found"
        )
    return link


@router.get("/guest-links", response_model=List[GuestLinkResponse])
async def list_guest_links(
    property_id: Optional[int] = None,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    List guest survey links of the organization (ADMIN only).
    """
    query = (
        select(GuestSurveyLink)
        .join(Property, GuestSurveyLink.property_id == Property.id)
        .where(Property.organization_id == caller.organization_id)
    )
    if property_id is not None:
        query = query.where(GuestSurveyLink.property_id == property_id)

    result = await db.execute(query.order_by(GuestSurveyLink.id))
    return [GuestLinkResponse.model_validate(link) for link in result.scalars().all()]


@router.patch("/guest-links/{link_id}", response_model=GuestLinkResponse)
async def toggle_guest_link(
    link_id: int,
    link_data: GuestLinkUpdate,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Enable or disable a guest survey link (ADMIN only).
    Guests using a disabled link get 410 Gone.
    """
    link = await _get_org_link(db, caller, link_id)
    link.is_active = link_data.is_active

    await db.commit()
    await db.refresh(link)

    logger.info(
        f"Guest link {link_id} {'enabled' if link.is_active else 'disabled'} by user {caller.user_id}"
    )

    return GuestLinkResponse.model_validate(link)
