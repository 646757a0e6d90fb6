"""Business endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import BUSINESS_ADMIN, SUPER_ADMIN, RoleChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import (
    BusinessAdminAssign,
    BusinessCreate,
    BusinessCreateResponse,
    BusinessResponse,
    BusinessSettingsUpdate,
    UserResponse,
)
from ..use_cases.business_admin import (
    create_business_use_case,
    list_business_users_use_case,
    list_businesses_use_case,
    set_business_admin_use_case,
    update_business_settings_use_case,
)

router = APIRouter(prefix="/businesses", tags=["businesses"])


@router.get("", response_model=list[BusinessResponse])
def get_businesses(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_businesses_use_case(db=db, current_user=current_user)


@router.post("", response_model=BusinessCreateResponse, status_code=status.HTTP_201_CREATED)
def create_business(
    payload: BusinessCreate,
    current_user: User = Depends(RoleChecker(SUPER_ADMIN)),
    db: Session = Depends(get_db),
):
    """Create a business, optionally with its first admin."""
    business, admin = create_business_use_case(
        db=db,
        name=payload.name,
        currency_code=payload.currency_code,
        currency_symbol=payload.currency_symbol,
        initial_admin=payload.initial_admin.model_dump() if payload.initial_admin else None,
        current_user=current_user,
    )
    return BusinessCreateResponse(
        business=BusinessResponse.model_validate(business),
        admin=UserResponse.model_validate(admin) if admin else None,
    )


@router.patch("/{business_id}/admin", response_model=BusinessResponse)
def set_business_admin(
    business_id: int,
    payload: BusinessAdminAssign,
    current_user: User = Depends(RoleChecker(SUPER_ADMIN)),
    db: Session = Depends(get_db),
):
    return set_business_admin_use_case(db=db, business_id=business_id, user_id=payload.user_id)


@router.get("/{business_id}/users", response_model=list[UserResponse])
def get_business_users(
    business_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_business_users_use_case(db=db, business_id=business_id, current_user=current_user)


@router.put("/{business_id}/settings", response_model=BusinessResponse)
def update_business_settings(
    business_id: int,
    payload: BusinessSettingsUpdate,
    current_user: User = Depends(RoleChecker(SUPER_ADMIN, BUSINESS_ADMIN)),
    db: Session = Depends(get_db),
):
    return update_business_settings_use_case(
        db=db,
        business_id=business_id,
        changes=payload.model_dump(exclude_unset=True),
        current_user=current_user,
    )
