"""User endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import BUSINESS_ADMIN, SUPER_ADMIN, RoleChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import PasswordChangeRequest, PasswordResetRequest, UserCreate, UserResponse
from ..use_cases.user_admin import (
    change_own_password_use_case,
    create_user_use_case,
    delete_user_use_case,
    list_users_use_case,
    reset_password_use_case,
)

router = APIRouter(prefix="/users", tags=["users"])

require_user_admin = RoleChecker(SUPER_ADMIN, BUSINESS_ADMIN)


@router.get("", response_model=list[UserResponse])
def get_users(
    current_user: User = Depends(require_user_admin),
    db: Session = Depends(get_db),
):
    """List users (SuperAdmin: everyone, BusinessAdmin: own business)."""
    return list_users_use_case(db=db, current_user=current_user)


@router.get("/mine", response_model=list[UserResponse])
def get_my_business_users(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Users of the caller's own business."""
    if current_user.business_id is None:
        return []
    return db.query(User).filter(User.business_id == current_user.business_id).order_by(User.username.asc()).all()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    current_user: User = Depends(require_user_admin),
    db: Session = Depends(get_db),
):
    return create_user_use_case(
        db=db,
        username=payload.username,
        password=payload.password,
        role_id=payload.role_id,
        business_id=payload.business_id,
        current_user=current_user,
    )


@router.patch("/me/password")
def change_my_password(
    payload: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    change_own_password_use_case(
        db=db,
        current_password=payload.current_password,
        new_password=payload.new_password,
        confirm_password=payload.confirm_password,
        current_user=current_user,
    )
    return {"message": "Password updated"}


@router.patch("/{user_id}/password")
def reset_user_password(
    user_id: int,
    payload: PasswordResetRequest,
    current_user: User = Depends(require_user_admin),
    db: Session = Depends(get_db),
):
    reset_password_use_case(
        db=db,
        user_id=user_id,
        new_password=payload.new_password,
        confirm_password=payload.confirm_password,
        current_user=current_user,
    )
    return {"message": "Password reset"}


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    current_user: User = Depends(require_user_admin),
    db: Session = Depends(get_db),
):
    delete_user_use_case(db=db, user_id=user_id, current_user=current_user)
    return {"message": "User deleted"}
