"""Back Market credential management and order lookup."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..domain_errors import validation_error
from ..models import User
from ..schemas import BackMarketCredentialsUpsert, BackMarketCredentialsView
from ..security import is_super_admin, require_business_scope
from ..services.backmarket_client import BackMarketClient, get_backmarket_client
from ..use_cases.backmarket_credentials import (
    delete_credentials_use_case,
    get_credentials_view_use_case,
    order_prefill_use_case,
    upsert_credentials_use_case,
)

router = APIRouter(tags=["backmarket"])


@router.get("/businesses/{business_id}/backmarket/credentials", response_model=BackMarketCredentialsView)
def get_credentials(
    business_id: int,
    current_user: User = Depends(require_business_scope),
    db: Session = Depends(get_db),
):
    """Masked view; raw keys are never returned."""
    return get_credentials_view_use_case(db=db, business_id=business_id)


@router.put("/businesses/{business_id}/backmarket/credentials", response_model=BackMarketCredentialsView)
def put_credentials(
    business_id: int,
    payload: BackMarketCredentialsUpsert,
    current_user: User = Depends(require_business_scope),
    db: Session = Depends(get_db),
):
    upsert_credentials_use_case(
        db=db,
        business_id=business_id,
        api_key=payload.api_key,
        api_secret=payload.api_secret,
        current_user=current_user,
    )
    return get_credentials_view_use_case(db=db, business_id=business_id)


@router.delete("/businesses/{business_id}/backmarket/credentials")
def delete_credentials(
    business_id: int,
    current_user: User = Depends(require_business_scope),
    db: Session = Depends(get_db),
):
    delete_credentials_use_case(db=db, business_id=business_id)
    return {"message": "deleted"}


@router.get("/bm-orders/{order_number}")
def get_backmarket_order(
    order_number: str,
    business_id: Optional[int] = Query(None, alias="businessId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    client: BackMarketClient = Depends(get_backmarket_client),
):
    """Look up a marketplace order and map it onto a sheet prefill.

    Only a SuperAdmin may pick the business via ``businessId``.
    """
    target = business_id if is_super_admin(current_user) and business_id else current_user.business_id
    if not target:
        raise validation_error("No business scope", fields=["businessId"])
    return order_prefill_use_case(db=db, business_id=target, order_number=order_number, client=client)
