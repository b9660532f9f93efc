"""JWT authentication and permission-gate dependencies."""

import secrets
import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from fleet_rbac.core.authorization import Principal, require_permission
from fleet_rbac.core.config import settings
from fleet_rbac.core.exceptions import AuthenticationError
from fleet_rbac.db.session import get_db
from fleet_rbac.services.principal_service import principal_service

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)


def generate_temp_password() -> str:
    """Single-use random credential, URL-safe (12 chars with the default size)."""
    return secrets.token_urlsafe(settings.TEMP_PASSWORD_BYTES)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> int:
    """Extract user_id from the JWT Bearer token."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if user_id is None or payload.get("type") != "access":
        raise AuthenticationError("Invalid token payload")
    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token payload")


def get_current_principal(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> Principal:
    """Resolve the caller's permission set from the store on every request."""
    return principal_service.resolve(db, user_id)


class RequirePermission:
    """Dependency that runs the authorization gate ahead of a route."""

    def __init__(self, permission_key: str):
        self.permission_key = permission_key
        self.guard = require_permission(permission_key)

    async def __call__(self, principal: Principal = Depends(get_current_principal)) -> Principal:
        return self.guard(principal)


# Every administrative route is gated on this one
require_admin = RequirePermission(settings.ADMIN_PERMISSION)
