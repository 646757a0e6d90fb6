"""Return-label creation through ShipStation, recorded per sheet."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import DomainError, validation_error
from ..models import Business, Sheet, ShipStationLabel, User
from ..schemas import LabelOverrides
from ..security import require_scoped_entity
from ..services.backmarket_client import BackMarketClient, is_backmarket_order_number
from ..services.sheet_rules import BACK_MARKET
from ..services.shipstation_client import ShipStationClient
from .backmarket_credentials import load_credentials

logger = logging.getLogger(__name__)

SHIP_TO_REQUIRED = ("name", "street1", "city", "postalCode", "country")
SHIP_FROM_REQUIRED = ("street1", "postalCode")


def _first(*values: Any) -> Any:
    for value in values:
        if value not in (None, ""):
            return value
    return None


def _lookup_backmarket_order(
    db: Session,
    sheet: Sheet,
    client: BackMarketClient | None,
) -> dict[str, Any] | None:
    """Best-effort: a failed lookup falls back to sheet data."""
    if client is None or sheet.platform != BACK_MARKET or not is_backmarket_order_number(sheet.order_no):
        return None
    try:
        api_key, api_secret = load_credentials(db, sheet.business_id)
        return client.fetch_order(sheet.order_no, api_key=api_key, api_secret=api_secret)
    except DomainError as exc:
        logger.warning("Back Market lookup for sheet %s skipped: %s", sheet.id, exc.message)
        return None


def build_ship_to(sheet: Sheet, overrides: LabelOverrides, order: dict[str, Any] | None) -> dict[str, Any]:
    address = (order or {}).get("shipping_address") or {}
    bm_name = f"{address.get('first_name') or ''} {address.get('last_name') or ''}".strip()
    return {
        "name": _first(overrides.name, bm_name, sheet.customer_name),
        "street1": _first(overrides.street1, address.get("street")),
        "street2": address.get("street2") or None,
        "city": _first(overrides.city, address.get("city")),
        "state": _first(overrides.state, address.get("state")),
        "postalCode": _first(overrides.postal_code, address.get("postal_code")),
        "country": _first(overrides.country, address.get("country")),
        "phone": _first(overrides.phone, address.get("phone")),
        "email": _first(overrides.email, address.get("email")),
    }


def build_ship_from(business: Business, overrides: LabelOverrides) -> dict[str, Any]:
    ship_from = overrides.ship_from
    return {
        "name": _first(ship_from and ship_from.name, business.name),
        "street1": _first(ship_from and ship_from.street1, business.street1),
        "street2": business.street2,
        "city": _first(ship_from and ship_from.city, business.city),
        "state": _first(ship_from and ship_from.state, business.state),
        "postalCode": _first(ship_from and ship_from.postal_code, business.postal_code),
        "country": _first(ship_from and ship_from.country, business.country, "GB"),
        "phone": business.phone,
    }


def _require_fields(address: dict[str, Any], required: tuple[str, ...], label: str) -> None:
    missing = [name for name in required if not address.get(name)]
    if missing:
        raise DomainError(
            code="LABEL_ADDRESS_INCOMPLETE",
            http_status=400,
            message=f"{label} address is missing: {', '.join(missing)}",
            details={"fields": missing},
        )


def _weight(overrides: LabelOverrides) -> dict[str, Any]:
    grams = overrides.weight if overrides.weight else settings.SHIPSTATION_DEFAULT_WEIGHT_GRAMS
    return {"value": grams, "units": "grams"}


def create_label_use_case(
    *,
    db: Session,
    sheet_id: int,
    overrides: LabelOverrides | None,
    current_user: User,
    shipstation: ShipStationClient,
    backmarket: BackMarketClient | None = None,
) -> ShipStationLabel:
    """Create the ShipStation order and label for a sheet.

    A pending record is committed before any external call, then moved to
    ``created`` or ``failed`` so interrupted attempts stay visible.
    """
    overrides = overrides or LabelOverrides()
    sheet = require_scoped_entity(
        db,
        Sheet,
        entity_id=sheet_id,
        current_user=current_user,
        code="SHEET_NOT_FOUND",
        message="Sheet not found",
    )
    business = db.get(Business, sheet.business_id)
    if business is None:
        raise DomainError(code="BUSINESS_NOT_FOUND", http_status=404, message="Business not found")

    order = _lookup_backmarket_order(db, sheet, backmarket)
    ship_to = build_ship_to(sheet, overrides, order)
    ship_from = build_ship_from(business, overrides)
    _require_fields(ship_to, SHIP_TO_REQUIRED, "Ship-to")
    _require_fields(ship_from, SHIP_FROM_REQUIRED, "Ship-from")

    order_number = _first(overrides.order_number, sheet.order_no)
    if not order_number:
        raise validation_error("Order number is required", fields=["orderNumber"])
    ship_date = (overrides.ship_date or date.today()).isoformat()
    weight = _weight(overrides)

    label = ShipStationLabel(
        sheet_id=sheet.id,
        business_id=sheet.business_id,
        status="pending",
        carrier_code=settings.SHIPSTATION_CARRIER_CODE,
        service_code=settings.SHIPSTATION_SERVICE_CODE,
        created_by=current_user.id,
    )
    db.add(label)
    db.commit()
    db.refresh(label)

    # Return label: the customer ships to the business.
    order_payload = {
        "orderNumber": f"RMA-{order_number}",
        "orderDate": ship_date,
        "orderStatus": "awaiting_shipment",
        "billTo": ship_to,
        "shipTo": ship_from,
        "items": [{
            "sku": _first(overrides.sku, sheet.sku),
            "name": _first(overrides.item_name, sheet.sku, "Returned item"),
            "quantity": 1,
        }],
        "weight": weight,
    }
    try:
        created_order = shipstation.create_order(order_payload)
        label.shipstation_order_id = str(created_order.get("orderId") or "") or None
        result = shipstation.create_label({
            "carrierCode": settings.SHIPSTATION_CARRIER_CODE,
            "serviceCode": settings.SHIPSTATION_SERVICE_CODE,
            "packageCode": "package",
            "shipDate": ship_date,
            "weight": weight,
            "shipFrom": ship_to,
            "shipTo": ship_from,
            "testLabel": False,
        })
    except DomainError as exc:
        label.status = "failed"
        label.error = exc.message
        db.commit()
        logger.warning("Label %s for sheet %s failed: %s", label.id, sheet.id, exc.message)
        raise

    label.status = "created"
    label.shipment_id = result.shipment_id
    label.tracking_number = result.tracking_number
    label.label_url = result.label_url
    label.label_data = result.label_data
    db.commit()
    db.refresh(label)
    logger.info("Label %s created for sheet %s by user %s", label.id, sheet.id, current_user.id)
    return label


def list_labels_use_case(*, db: Session, sheet_id: int, current_user: User) -> list[ShipStationLabel]:
    sheet = require_scoped_entity(
        db,
        Sheet,
        entity_id=sheet_id,
        current_user=current_user,
        code="SHEET_NOT_FOUND",
        message="Sheet not found",
    )
    return db.query(ShipStationLabel).filter(
        ShipStationLabel.sheet_id == sheet.id,
    ).order_by(ShipStationLabel.created_at.desc(), ShipStationLabel.id.desc()).all()
