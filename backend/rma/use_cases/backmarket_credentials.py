"""Back Market credential storage (sealed at rest, masked on read) and order lookup."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from ..domain_errors import DomainError, validation_error
from ..models import BackMarketCredentials, User
from ..services.backmarket_client import BackMarketClient, is_backmarket_order_number, order_to_sheet_prefill
from ..services.secretbox import SealError, mask_secret, seal, unseal

logger = logging.getLogger(__name__)


def _get_row(db: Session, business_id: int) -> BackMarketCredentials | None:
    return db.query(BackMarketCredentials).filter(BackMarketCredentials.business_id == business_id).first()


def _unseal(value: str | None, *, business_id: int) -> str | None:
    try:
        return unseal(value)
    except SealError:
        logger.error("Stored Back Market credentials for business %s cannot be unsealed", business_id)
        raise DomainError(
            code="CREDENTIALS_UNREADABLE",
            http_status=500,
            message="Stored credentials cannot be decrypted",
        )


def get_credentials_view_use_case(*, db: Session, business_id: int) -> dict[str, Any]:
    """Masked view; raw secrets never leave this function."""
    row = _get_row(db, business_id)
    if not row:
        return {"exists": False}
    api_key = _unseal(row.api_key_encrypted, business_id=business_id)
    api_secret = _unseal(row.api_secret_encrypted, business_id=business_id)
    return {
        "exists": True,
        "api_key_masked": mask_secret(api_key),
        "api_secret_masked": mask_secret(api_secret) if api_secret else None,
        "updated_by": row.updated_by,
        "updated_at": row.updated_at,
    }


def upsert_credentials_use_case(
    *,
    db: Session,
    business_id: int,
    api_key: str | None,
    api_secret: str | None,
    current_user: User,
) -> BackMarketCredentials:
    """Create or replace; an omitted secret keeps the stored one."""
    if not api_key or not api_key.strip():
        raise validation_error("api_key is required", fields=["api_key"])

    row = _get_row(db, business_id)
    if row is None:
        row = BackMarketCredentials(business_id=business_id)
        db.add(row)
    row.api_key_encrypted = seal(api_key.strip())
    if api_secret:
        row.api_secret_encrypted = seal(api_secret)
    row.updated_by = current_user.id
    db.commit()
    db.refresh(row)
    logger.info("Back Market credentials updated for business %s by user %s", business_id, current_user.id)
    return row


def delete_credentials_use_case(*, db: Session, business_id: int) -> bool:
    deleted = db.query(BackMarketCredentials).filter(
        BackMarketCredentials.business_id == business_id,
    ).delete(synchronize_session=False)
    db.commit()
    return bool(deleted)


def load_credentials(db: Session, business_id: int) -> tuple[str, str | None]:
    row = _get_row(db, business_id)
    if not row:
        raise DomainError(
            code="CREDENTIALS_NOT_FOUND",
            http_status=404,
            message="No Back Market credentials configured for this business",
        )
    api_key = _unseal(row.api_key_encrypted, business_id=business_id)
    api_secret = _unseal(row.api_secret_encrypted, business_id=business_id)
    return api_key or "", api_secret


def fetch_order_use_case(
    *,
    db: Session,
    business_id: int,
    order_number: str,
    client: BackMarketClient,
) -> dict[str, Any]:
    if not is_backmarket_order_number(order_number):
        raise validation_error("Invalid Back Market order number", fields=["order_number"])
    api_key, api_secret = load_credentials(db, business_id)
    return client.fetch_order(order_number, api_key=api_key, api_secret=api_secret)


def order_prefill_use_case(
    *,
    db: Session,
    business_id: int,
    order_number: str,
    client: BackMarketClient,
    today: date | None = None,
) -> dict[str, Any]:
    order = fetch_order_use_case(db=db, business_id=business_id, order_number=order_number, client=client)
    return order_to_sheet_prefill(order, today=today)
