"""User administration within tenant boundaries."""
from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from ..auth import BUSINESS_ADMIN, ROLE_NAMES, SUPER_ADMIN, hash_password, validate_new_password, verify_password
from ..domain_errors import DomainError, validation_error
from ..models import Business, User
from ..security import is_super_admin

logger = logging.getLogger(__name__)


def _forbidden(detail: str = "Forbidden") -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def _user_not_found() -> DomainError:
    return DomainError(code="USER_NOT_FOUND", http_status=404, message="User not found")


def _get_manageable_user(db: Session, *, user_id: int, current_user: User) -> User:
    """SuperAdmin manages anyone; a BusinessAdmin only non-SuperAdmins of their own business."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise _user_not_found()
    if is_super_admin(current_user):
        return user
    if current_user.role_id != BUSINESS_ADMIN:
        raise _forbidden()
    if user.business_id != current_user.business_id:
        raise _user_not_found()
    if is_super_admin(user):
        raise _forbidden()
    return user


def _check_passwords_match(new_password: str, confirm_password: str) -> None:
    if new_password != confirm_password:
        raise validation_error("Passwords do not match", fields=["confirm_password"])


def list_users_use_case(*, db: Session, current_user: User) -> list[User]:
    query = db.query(User)
    if not is_super_admin(current_user):
        query = query.filter(User.business_id == current_user.business_id)
    return query.order_by(User.username.asc()).all()


def create_user_use_case(
    *,
    db: Session,
    username: str,
    password: str,
    role_id: int,
    business_id: int | None,
    current_user: User,
) -> User:
    username = (username or "").strip()
    if not username:
        raise validation_error("Username is required", fields=["username"])
    if role_id not in ROLE_NAMES:
        raise validation_error("Unknown role", fields=["role_id"])
    validate_new_password(password)

    if not is_super_admin(current_user):
        if current_user.role_id != BUSINESS_ADMIN:
            raise _forbidden()
        if role_id == SUPER_ADMIN:
            raise _forbidden("Business admins cannot create super admins")
        business_id = current_user.business_id

    if role_id != SUPER_ADMIN:
        if not business_id:
            raise validation_error("business_id is required for this role", fields=["business_id"])
        if not db.query(Business.id).filter(Business.id == business_id).first():
            raise DomainError(code="BUSINESS_NOT_FOUND", http_status=404, message="Business not found")

    if db.query(User.id).filter(User.username == username).first():
        raise DomainError(code="USERNAME_TAKEN", http_status=409, message="Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        role_id=role_id,
        business_id=business_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s created by %s", user.id, current_user.id)
    return user


def delete_user_use_case(*, db: Session, user_id: int, current_user: User) -> None:
    if user_id == current_user.id:
        raise validation_error("You cannot delete your own account", fields=["user_id"])
    user = _get_manageable_user(db, user_id=user_id, current_user=current_user)
    db.delete(user)
    db.commit()
    logger.info("User %s deleted by %s", user_id, current_user.id)


def reset_password_use_case(
    *,
    db: Session,
    user_id: int,
    new_password: str,
    confirm_password: str,
    current_user: User,
) -> User:
    _check_passwords_match(new_password, confirm_password)
    validate_new_password(new_password)
    user = _get_manageable_user(db, user_id=user_id, current_user=current_user)
    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("Password reset for user %s by %s", user.id, current_user.id)
    return user


def change_own_password_use_case(
    *,
    db: Session,
    current_password: str,
    new_password: str,
    confirm_password: str,
    current_user: User,
) -> None:
    if not verify_password(current_password, current_user.password_hash):
        raise validation_error("Current password is incorrect", fields=["current_password"])
    _check_passwords_match(new_password, confirm_password)
    validate_new_password(new_password)
    current_user.password_hash = hash_password(new_password)
    db.commit()
