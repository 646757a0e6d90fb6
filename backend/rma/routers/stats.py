"""Dashboard statistics endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import User
from ..schemas import StatsRequest
from ..security import assert_business_scope
from ..use_cases.stats_aggregation import advanced_stats_use_case, summary_stats_use_case

router = APIRouter(prefix="/stats", tags=["stats"])

require_view_stats = PermissionChecker("view_stats")


@router.post("/{business_id}")
def get_stats(
    business_id: int,
    payload: Optional[StatsRequest] = None,
    current_user: User = Depends(require_view_stats),
    db: Session = Depends(get_db),
):
    """Totals, breakdowns and trend for the sheets received in the selected range."""
    assert_business_scope(current_user, business_id)
    range_token = payload.range if payload else None
    return summary_stats_use_case(db=db, business_id=business_id, range_token=range_token)


@router.post("/{business_id}/advanced")
def get_advanced_stats(
    business_id: int,
    payload: Optional[StatsRequest] = None,
    current_user: User = Depends(require_view_stats),
    db: Session = Depends(get_db),
):
    assert_business_scope(current_user, business_id)
    range_token = payload.range if payload else None
    return advanced_stats_use_case(db=db, business_id=business_id, range_token=range_token)
