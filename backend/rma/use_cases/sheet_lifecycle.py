"""Sheet (return record) CRUD use-cases used by sheet router endpoints."""
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from ..domain_errors import DomainError, validation_error
from ..models import Sheet, SheetHistory, User
from ..services.remote_storage import RemoteStorage
from ..services.sheet_rules import derive_sheet_fields, normalize_sheet_values

logger = logging.getLogger(__name__)

_CREATE_DEFAULTS = {"locked": "No", "oow_case": "No"}


def _json_value(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def _get_sheet_or_404(*, db: Session, sheet_id: int, business_id: int) -> Sheet:
    sheet = db.query(Sheet).filter(
        Sheet.id == sheet_id,
        Sheet.business_id == business_id,
    ).first()
    if not sheet:
        raise DomainError(
            code="SHEET_NOT_FOUND",
            http_status=404,
            message="Sheet not found",
        )
    return sheet


def _apply_derived(sheet: Sheet) -> dict[str, tuple[Any, Any]]:
    derived = derive_sheet_fields(sheet.order_no, sheet.date_received, sheet.order_date)
    changed: dict[str, tuple[Any, Any]] = {}
    for key, value in derived.items():
        old = getattr(sheet, key)
        if old != value:
            changed[key] = (old, value)
        setattr(sheet, key, value)
    return changed


def _history(*, sheet: Sheet, action: str, changes: dict[str, Any] | None, current_user: User) -> SheetHistory:
    return SheetHistory(
        sheet_id=sheet.id,
        business_id=sheet.business_id,
        action=action,
        changes=changes,
        user_id=current_user.id,
        username=current_user.username,
    )


def list_sheets_use_case(*, db: Session, business_id: int) -> list[Sheet]:
    """Newest received first; ties broken by id."""
    return db.query(Sheet).filter(Sheet.business_id == business_id).order_by(
        Sheet.date_received.desc(),
        Sheet.id.desc(),
    ).all()


def create_sheet_use_case(*, db: Session, business_id: int, values: dict[str, Any], current_user: User) -> Sheet:
    """Create a sheet; derived fields are computed here, never taken from the client."""
    order_no = (values.get("order_no") or "").strip()
    if not order_no:
        raise validation_error("order_no is required", fields=["order_no"])

    data = normalize_sheet_values(values)
    data["order_no"] = order_no
    for key, default in _CREATE_DEFAULTS.items():
        if data.get(key) in (None, ""):
            data[key] = default

    sheet = Sheet(business_id=business_id, **data)
    _apply_derived(sheet)
    db.add(sheet)
    db.flush()

    snapshot = {key: _json_value(value) for key, value in data.items()}
    snapshot["platform"] = sheet.platform
    snapshot["return_within_30_days"] = sheet.return_within_30_days
    db.add(_history(sheet=sheet, action="created", changes=snapshot, current_user=current_user))
    db.commit()
    db.refresh(sheet)
    return sheet


def update_sheet_use_case(
    *,
    db: Session,
    business_id: int,
    sheet_id: int,
    changes: dict[str, Any],
    current_user: User,
) -> Sheet:
    """Partial update: only keys present in ``changes`` are written.

    Untouched columns keep their stored value, so two editors changing
    different fields do not overwrite each other.
    """
    sheet = _get_sheet_or_404(db=db, sheet_id=sheet_id, business_id=business_id)

    data = normalize_sheet_values(changes)
    data.pop("id", None)
    data.pop("business_id", None)
    if "order_no" in data:
        order_no = (data["order_no"] or "").strip()
        if not order_no:
            raise validation_error("order_no cannot be empty", fields=["order_no"])
        data["order_no"] = order_no

    diff: dict[str, dict[str, Any]] = {}
    for key, value in data.items():
        old = getattr(sheet, key)
        if old != value:
            diff[key] = {"old": _json_value(old), "new": _json_value(value)}
        setattr(sheet, key, value)

    for key, (old, new) in _apply_derived(sheet).items():
        diff[key] = {"old": old, "new": new}

    if diff:
        db.add(_history(sheet=sheet, action="updated", changes=diff, current_user=current_user))
    db.commit()
    db.refresh(sheet)
    return sheet


def delete_sheet_use_case(
    *,
    db: Session,
    business_id: int,
    sheet_id: int,
    current_user: User,
    storage: RemoteStorage | None = None,
) -> bool:
    """Delete when both id and business match; a miss is a silent no-op."""
    sheet = db.query(Sheet).filter(
        Sheet.id == sheet_id,
        Sheet.business_id == business_id,
    ).first()
    if not sheet:
        return False

    remote_keys = [attachment.remote_path for attachment in sheet.attachments]
    db.add(_history(
        sheet=sheet,
        action="deleted",
        changes={"order_no": sheet.order_no},
        current_user=current_user,
    ))
    db.delete(sheet)
    db.commit()

    if storage is not None:
        for key in remote_keys:
            try:
                storage.delete(key)
            except DomainError:
                logger.warning("Failed to delete remote file %s for sheet %s", key, sheet_id)
    return True


def sheet_history_use_case(*, db: Session, business_id: int, sheet_id: int) -> list[SheetHistory]:
    return db.query(SheetHistory).filter(
        SheetHistory.sheet_id == sheet_id,
        SheetHistory.business_id == business_id,
    ).order_by(SheetHistory.created_at.desc(), SheetHistory.id.desc()).all()
