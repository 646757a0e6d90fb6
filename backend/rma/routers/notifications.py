"""Notification polling endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import MarkReadResult, NotificationMarkRead, NotificationResponse
from ..use_cases.notification_feed import (
    DEFAULT_LIMIT,
    list_notifications_use_case,
    mark_all_read_use_case,
    mark_many_read_use_case,
    mark_read_use_case,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
def get_notifications(
    since: Optional[datetime] = None,
    unread_only: bool = False,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Newest first; pass ``since`` to poll for rows created after a timestamp."""
    return list_notifications_use_case(
        db=db,
        current_user=current_user,
        since=since,
        unread_only=unread_only,
        limit=limit,
    )


@router.post("/read-all", response_model=MarkReadResult)
def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MarkReadResult(updated=mark_all_read_use_case(db=db, current_user=current_user))


@router.post("/read", response_model=MarkReadResult)
def mark_many_read(
    payload: NotificationMarkRead,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = mark_many_read_use_case(db=db, notification_ids=payload.ids, current_user=current_user)
    return MarkReadResult(updated=updated)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return mark_read_use_case(db=db, notification_id=notification_id, current_user=current_user)
