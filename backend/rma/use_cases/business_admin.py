"""Business (tenant) management."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from ..auth import BUSINESS_ADMIN, hash_password, validate_new_password
from ..domain_errors import DomainError, validation_error
from ..models import Business, User
from ..security import assert_business_scope, is_super_admin

logger = logging.getLogger(__name__)


def _get_business_or_404(db: Session, business_id: int) -> Business:
    business = db.query(Business).filter(Business.id == business_id).first()
    if not business:
        raise DomainError(code="BUSINESS_NOT_FOUND", http_status=404, message="Business not found")
    return business


def list_businesses_use_case(*, db: Session, current_user: User) -> list[Business]:
    query = db.query(Business)
    if not is_super_admin(current_user):
        query = query.filter(Business.id == current_user.business_id)
    return query.order_by(Business.name.asc()).all()


def create_business_use_case(
    *,
    db: Session,
    name: str,
    currency_code: str,
    currency_symbol: str,
    initial_admin: dict[str, Any] | None,
    current_user: User,
) -> tuple[Business, User | None]:
    """Create a business and, optionally, its first BusinessAdmin in one commit."""
    name = (name or "").strip()
    if not name:
        raise validation_error("Business name is required", fields=["name"])

    admin_username = None
    if initial_admin:
        admin_username = (initial_admin.get("username") or "").strip()
        validate_new_password(initial_admin.get("password"))
        if db.query(User.id).filter(User.username == admin_username).first():
            raise DomainError(code="USERNAME_TAKEN", http_status=409, message="Username already exists")

    business = Business(
        name=name,
        currency_code=currency_code.upper(),
        currency_symbol=currency_symbol,
    )
    db.add(business)
    db.flush()

    admin = None
    if initial_admin:
        admin = User(
            username=admin_username,
            password_hash=hash_password(initial_admin["password"]),
            role_id=BUSINESS_ADMIN,
            business_id=business.id,
        )
        db.add(admin)
        db.flush()
        business.owner_id = admin.id

    db.commit()
    db.refresh(business)
    if admin is not None:
        db.refresh(admin)
    logger.info("Business %s created by user %s", business.id, current_user.id)
    return business, admin


def set_business_admin_use_case(*, db: Session, business_id: int, user_id: int) -> Business:
    business = _get_business_or_404(db, business_id)
    user = db.query(User).filter(User.id == user_id, User.business_id == business_id).first()
    if not user:
        raise DomainError(code="USER_NOT_FOUND", http_status=404, message="User not found in this business")
    if is_super_admin(user):
        raise validation_error("A super admin cannot be made a business admin", fields=["user_id"])
    user.role_id = BUSINESS_ADMIN
    business.owner_id = user.id
    db.commit()
    db.refresh(business)
    return business


def list_business_users_use_case(*, db: Session, business_id: int, current_user: User) -> list[User]:
    assert_business_scope(current_user, business_id)
    _get_business_or_404(db, business_id)
    return db.query(User).filter(User.business_id == business_id).order_by(User.username.asc()).all()


def update_business_settings_use_case(
    *,
    db: Session,
    business_id: int,
    changes: dict[str, Any],
    current_user: User,
) -> Business:
    assert_business_scope(current_user, business_id)
    business = _get_business_or_404(db, business_id)
    for key, value in changes.items():
        if key == "currency_code" and value:
            value = value.upper()
        if key == "country" and value:
            value = value.upper()
        setattr(business, key, value)
    db.commit()
    db.refresh(business)
    return business
