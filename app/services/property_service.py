"""
Property scope helpers shared by surveys, tasks and dashboards
"""
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, PermissionDeniedError
from app.models.user import Property
from app.schemas.auth import AuthorizedCaller


async def get_scoped_property(db: AsyncSession, caller: AuthorizedCaller, property_id: int) -> Property:
    """
    Load a property of the caller's organization.

    Raises:
        NotFoundError: unknown id or other organization
        PermissionDeniedError: property not assigned to the caller
    """
    result = await db.execute(select(Property).where(Property.id == property_id))
    prop = result.scalar_one_or_none()
    if not prop or prop.organization_id != caller.organization_id:
        raise NotFoundError("Property", property_id)
    if not caller.can_access_property(prop.id):
        raise PermissionDeniedError("No access to this property")
    return prop


async def list_scoped_properties(
    db: AsyncSession,
    caller: AuthorizedCaller,
    include_inactive: bool = False,
) -> List[Property]:
    """Properties the caller can see, by name"""
    query = select(Property).where(Property.organization_id == caller.organization_id)
    if caller.property_ids is not None:
        if not caller.property_ids:
            return []
        query = query.where(Property.id.in_(list(caller.property_ids)))
    if not include_inactive:
        query = query.where(Property.is_active == True)

    result = await db.execute(query.order_by(Property.name))
    return list(result.scalars().all())
