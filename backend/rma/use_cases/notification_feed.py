"""Notification read model: polling fetch and mark-read, scoped per caller."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..domain_errors import DomainError
from ..models import Notification, User
from ..security import is_super_admin

DEFAULT_LIMIT = 100


def _scoped(db: Session, current_user: User):
    query = db.query(Notification)
    if is_super_admin(current_user):
        return query
    conditions = [Notification.user_id == current_user.id]
    if current_user.business_id is not None:
        conditions.append(Notification.business_id == current_user.business_id)
    return query.filter(or_(*conditions))


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def list_notifications_use_case(
    *,
    db: Session,
    current_user: User,
    since: datetime | None = None,
    unread_only: bool = False,
    limit: int = DEFAULT_LIMIT,
) -> list[Notification]:
    """Newest first. ``since`` returns only rows created strictly after it (polling delta)."""
    query = _scoped(db, current_user)
    if since is not None:
        query = query.filter(Notification.created_at > _naive_utc(since))
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_read_use_case(*, db: Session, notification_id: int, current_user: User) -> Notification:
    notification = _scoped(db, current_user).filter(Notification.id == notification_id).first()
    if not notification:
        raise DomainError(
            code="NOTIFICATION_NOT_FOUND",
            http_status=404,
            message="Notification not found",
        )
    notification.read = True
    db.commit()
    db.refresh(notification)
    return notification


def _mark_unread_as_read(db: Session, query) -> int:
    ids = [row_id for (row_id,) in query.with_entities(Notification.id).filter(Notification.read.is_(False)).all()]
    if ids:
        db.query(Notification).filter(Notification.id.in_(ids)).update(
            {"read": True},
            synchronize_session=False,
        )
    db.commit()
    return len(ids)


def mark_many_read_use_case(*, db: Session, notification_ids: list[int], current_user: User) -> int:
    """Ids outside the caller's scope are ignored, not reported."""
    query = _scoped(db, current_user).filter(Notification.id.in_(notification_ids))
    return _mark_unread_as_read(db, query)


def mark_all_read_use_case(*, db: Session, current_user: User) -> int:
    return _mark_unread_as_read(db, _scoped(db, current_user))
