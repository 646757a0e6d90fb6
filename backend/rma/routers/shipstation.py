"""ShipStation return-label endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import CreateLabelRequest, ShipStationLabelResponse
from ..services.backmarket_client import BackMarketClient, get_backmarket_client
from ..services.shipstation_client import ShipStationClient, get_shipstation_client
from ..use_cases.label_creation import create_label_use_case, list_labels_use_case

router = APIRouter(prefix="/shipstation", tags=["shipstation"])


@router.post("/create-label", response_model=ShipStationLabelResponse, status_code=status.HTTP_201_CREATED)
def create_label(
    payload: CreateLabelRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    shipstation: ShipStationClient = Depends(get_shipstation_client),
    backmarket: BackMarketClient = Depends(get_backmarket_client),
):
    return create_label_use_case(
        db=db,
        sheet_id=payload.sheet_id,
        overrides=payload.overrides,
        current_user=current_user,
        shipstation=shipstation,
        backmarket=backmarket,
    )


@router.get("/labels/{sheet_id}", response_model=list[ShipStationLabelResponse])
def get_labels(
    sheet_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_labels_use_case(db=db, sheet_id=sheet_id, current_user=current_user)
