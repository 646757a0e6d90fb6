"""Security helpers (RBAC, multi-tenant scoping, and access checks)."""

from __future__ import annotations

from typing import Any, TypeVar

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from .auth import SUPER_ADMIN, get_current_user
from .domain_errors import DomainError
from .models import User

T = TypeVar("T")


def is_super_admin(user: User) -> bool:
    return user.role_id == SUPER_ADMIN


def can_access_business(user: User, business_id: int | None) -> bool:
    if is_super_admin(user):
        return True
    return business_id is not None and user.business_id == business_id


def assert_business_scope(user: User, business_id: int) -> None:
    """SuperAdmin may act on any business; everyone else only on their own."""
    if not can_access_business(user, business_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


def require_business_scope(business_id: int, current_user: User = Depends(get_current_user)) -> User:
    """Dependency for routes carrying ``{business_id}`` in the path."""
    assert_business_scope(current_user, business_id)
    return current_user


def apply_business_scope(query: Any, model: Any, current_user: User):
    """Restrict a query on a tenant-scoped model to the caller's business."""
    if is_super_admin(current_user):
        return query
    return query.filter(getattr(model, "business_id") == current_user.business_id)  # noqa: B009


def require_scoped_entity(
    db: Session,
    model: type[T],
    *,
    entity_id: int,
    current_user: User,
    code: str,
    message: str,
) -> T:
    """Load an entity by id within the caller's tenant or raise 404.

    Rows owned by another business are reported as missing, not forbidden.
    """
    query = db.query(model).filter(getattr(model, "id") == entity_id)  # noqa: B009
    entity = apply_business_scope(query, model, current_user).first()
    if not entity:
        raise DomainError(code=code, http_status=404, message=message)
    return entity
