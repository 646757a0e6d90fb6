"""Authentication and authorization."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .models import User

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
logger = logging.getLogger(__name__)

# Missing header must yield the same 401 as a bad token, so no auto 403.
security = HTTPBearer(auto_error=False)

# Stable role ids referenced by every authorization check.
SUPER_ADMIN = 7
BUSINESS_ADMIN = 8
USER = 9

ROLE_NAMES = {
    SUPER_ADMIN: "SuperAdmin",
    BUSINESS_ADMIN: "BusinessAdmin",
    USER: "User",
}

ROLE_LABELS = {
    SUPER_ADMIN: "Superadmin",
    BUSINESS_ADMIN: "Business Admin",
    USER: "User",
}

# Role permissions matrix
ROLE_PERMISSIONS = {
    SUPER_ADMIN: ["manage_business", "manage_users", "manage_sheets", "view_stats"],
    BUSINESS_ADMIN: ["manage_sheets", "view_stats"],
    USER: ["view_sheets", "view_stats"],
}


@dataclass(frozen=True)
class TokenClaims:
    id: int
    role_id: int
    username: str
    business_id: int | None = None


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception:
        # Invalid/corrupted hash should not crash login flow.
        logger.exception("Password verification failed due to invalid hash format")
        return False


def get_password_hash(password: str) -> str:
    """Hash password."""
    return pwd_context.hash(password)


# Alias for convenience
hash_password = get_password_hash


def validate_new_password(new_password: str | None) -> str:
    if not new_password:
        raise HTTPException(status_code=400, detail="New password is required")
    if len(new_password) < settings.PASSWORD_MIN_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters",
        )
    if len(new_password) > settings.PASSWORD_MAX_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at most {settings.PASSWORD_MAX_LENGTH} characters",
        )
    return new_password


def create_access_token(user: User, expires_in_seconds: Optional[int] = None) -> str:
    """Issue a signed, time-bound token for the user."""
    now = int(time.time())
    ttl = expires_in_seconds if expires_in_seconds is not None else int(settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES) * 60
    claims = {
        "sub": str(user.id),
        "id": user.id,
        "role_id": user.role_id,
        "username": user.username,
        "business_id": user.business_id,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str | None) -> TokenClaims:
    """Check signature, expiry, issuer and audience.

    Every failure raises the same 401 so callers cannot tell a forged token
    from an expired one.
    """
    if not token:
        raise _unauthorized()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={"leeway": int(settings.JWT_LEEWAY_SECONDS)},
        )
    except JWTError:
        raise _unauthorized()

    try:
        user_id = int(payload.get("id", payload.get("sub")))
        role_id = int(payload["role_id"])
        username = str(payload["username"])
    except (KeyError, TypeError, ValueError):
        raise _unauthorized()

    business_id = payload.get("business_id")
    try:
        business_id = int(business_id) if business_id is not None else None
    except (TypeError, ValueError):
        raise _unauthorized()
    return TokenClaims(id=user_id, role_id=role_id, username=username, business_id=business_id)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current authenticated user."""
    if credentials is None or (credentials.scheme or "").lower() != "bearer":
        raise _unauthorized()
    claims = verify_token(credentials.credentials)

    user = db.query(User).filter(User.id == claims.id).first()
    if user is None:
        raise _unauthorized()
    return user


def get_role_permissions(role_id: int) -> list[str]:
    return list(ROLE_PERMISSIONS.get(role_id, []))


def check_permission(user: User, permission: str) -> bool:
    """Check if user has specific permission."""
    return permission in ROLE_PERMISSIONS.get(user.role_id, [])


class RoleChecker:
    """Restrict an endpoint to a set of role ids."""

    def __init__(self, *allowed_roles: int):
        self.allowed_roles = set(allowed_roles)

    def __call__(self, current_user: User = Depends(get_current_user)) -> User:
        if current_user.role_id not in self.allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return current_user


class PermissionChecker:
    """Check user permissions based on role."""

    def __init__(self, required_permission: str):
        self.required_permission = required_permission

    def __call__(self, current_user: User = Depends(get_current_user)) -> User:
        if not check_permission(current_user, self.required_permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {self.required_permission} required",
            )
        return current_user
