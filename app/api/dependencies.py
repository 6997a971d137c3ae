"""
API Dependencies for authentication and authorization

Every protected route resolves an AuthorizedCaller through this module.
Services receive the caller and never look up roles or assignments again.
"""
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy import select
from typing import Optional

from app.db.session import get_db
from app.models.user import User, UserRole
from app.schemas.auth import AuthorizedCaller
from app.services.auth_service import auth_service
from app.core.config import settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def dev_bypass_enabled() -> bool:
    """Auth bypass for local work. Never active outside development."""
    return settings.DEV_BYPASS_AUTH and settings.ENVIRONMENT == "development"


async def _dev_bypass_user_id(db: AsyncSession) -> Optional[int]:
    result = await db.execute(
        select(User.id)
        .where(User.role == UserRole.ADMIN, User.is_active == True)
        .order_by(User.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> int:
    """
    Get current user ID from JWT token.
    Validates JWT token and extracts user_id.
    """
    if not credentials:
        if dev_bypass_enabled():
            user_id = await _dev_bypass_user_id(db)
            if user_id is not None:
                logger.warning(f"DEV_BYPASS_AUTH: acting as admin user {user_id}")
                return user_id
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = auth_service.decode_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id: str = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return int(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID in token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Get the current authenticated user object with property assignments.
    """
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.assignments))
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get the current authenticated and active user.
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    return current_user


def build_caller(user: User) -> AuthorizedCaller:
    """
    Capability object for a loaded user.
    - ADMIN: every property of the organization (property_ids=None)
    - PROPERTY_MANAGER / STAFF: assigned properties only
    """
    property_ids = None
    if user.role != UserRole.ADMIN:
        property_ids = frozenset(a.property_id for a in user.assignments)

    return AuthorizedCaller(
        user_id=user.id,
        organization_id=user.organization_id,
        role=user.role,
        property_ids=property_ids,
    )


async def get_authorized_caller(
    current_user: User = Depends(get_current_active_user)
) -> AuthorizedCaller:
    """The single authorization guard used by protected routes"""
    return build_caller(current_user)


def require_roles(*roles: UserRole):
    """
    Dependency factory for role-based access control.
    Usage: caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN))
    """
    def check_caller_role(caller: AuthorizedCaller = Depends(get_authorized_caller)) -> AuthorizedCaller:
        if not caller.has_role(*roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return caller

    return check_caller_role
