"""Sheet (return record) endpoints, scoped by the business id in the path."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas import SheetCreate, SheetDelete, SheetHistoryResponse, SheetResponse, SheetUpdate
from ..security import require_business_scope
from ..services.remote_storage import RemoteStorage, get_storage
from ..use_cases.sheet_lifecycle import (
    create_sheet_use_case,
    delete_sheet_use_case,
    list_sheets_use_case,
    sheet_history_use_case,
    update_sheet_use_case,
)

router = APIRouter(prefix="/sheets", tags=["sheets"])


@router.get("/{business_id}", response_model=list[SheetResponse])
def get_sheets(
    business_id: int,
    current_user: User = Depends(require_business_scope),
    db: Session = Depends(get_db),
):
    return list_sheets_use_case(db=db, business_id=business_id)


@router.post("/{business_id}", response_model=SheetResponse, status_code=status.HTTP_201_CREATED)
def create_sheet(
    business_id: int,
    payload: SheetCreate,
    current_user: User = Depends(require_business_scope),
    db: Session = Depends(get_db),
):
    return create_sheet_use_case(
        db=db,
        business_id=business_id,
        values=payload.model_dump(exclude_unset=True),
        current_user=current_user,
    )


@router.put("/{business_id}", response_model=SheetResponse)
def update_sheet(
    business_id: int,
    payload: SheetUpdate,
    current_user: User = Depends(require_business_scope),
    db: Session = Depends(get_db),
):
    """Partial update; only fields present in the body are written."""
    changes = payload.model_dump(exclude_unset=True)
    sheet_id = changes.pop("id")
    return update_sheet_use_case(
        db=db,
        business_id=business_id,
        sheet_id=sheet_id,
        changes=changes,
        current_user=current_user,
    )


@router.delete("/{business_id}")
def delete_sheet(
    business_id: int,
    payload: SheetDelete,
    current_user: User = Depends(require_business_scope),
    db: Session = Depends(get_db),
    storage: RemoteStorage = Depends(get_storage),
):
    delete_sheet_use_case(
        db=db,
        business_id=business_id,
        sheet_id=payload.id,
        current_user=current_user,
        storage=storage,
    )
    return {"message": "Sheet deleted"}


@router.get("/{business_id}/{sheet_id}/history", response_model=list[SheetHistoryResponse])
def get_sheet_history(
    business_id: int,
    sheet_id: int,
    current_user: User = Depends(require_business_scope),
    db: Session = Depends(get_db),
):
    return sheet_history_use_case(db=db, business_id=business_id, sheet_id=sheet_id)
