"""
Authentication service for JWT bearer tokens

Sign-in itself happens at the identity provider; the portal only issues and
verifies the access tokens that carry the user id in `sub`.
"""
from datetime import datetime, timedelta
from typing import Optional
from jose import jwt, JWTError

from app.core.config import settings
from app.models.user import User


class AuthService:
    """JWT token handling"""

    def __init__(self):
        self.algorithm = settings.ALGORITHM
        self.secret_key = settings.SECRET_KEY
        self.access_token_expire_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token"""
        to_encode = data.copy()

        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=self.access_token_expire_minutes)

        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def decode_access_token(self, token: str) -> Optional[dict]:
        """Decode and validate a JWT access token, None when invalid or expired"""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

    def token_for_user(self, user: User) -> str:
        """Access token for a portal user"""
        return self.create_access_token(
            data={"sub": str(user.id), "email": user.email, "role": user.role.value}
        )


# Global auth service instance
auth_service = AuthService()
