"""
Authorized caller capability passed from the API guard into services
"""
from pydantic import BaseModel
from typing import FrozenSet, Optional

from app.models.user import UserRole


class AuthorizedCaller(BaseModel):
    """
    Identity and property scope of an authenticated, active user.

    Built once per request by app.api.dependencies; services take it instead
    of re-reading roles and assignments at every call site.
    property_ids is None for admins (every property of the organization).
    """
    user_id: int
    organization_id: int
    role: UserRole
    property_ids: Optional[FrozenSet[int]] = None

    class Config:
        frozen = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles

    def can_access_property(self, property_id: int, organization_id: Optional[int] = None) -> bool:
        """True when the property is inside this caller's scope"""
        if organization_id is not None and organization_id != self.organization_id:
            return False
        if self.property_ids is None:
            return True
        return property_id in self.property_ids
