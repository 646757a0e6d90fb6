"""Back Market order lookup and mapping into a sheet prefill."""
from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

import requests

from ..config import settings
from ..domain_errors import DomainError, UpstreamError
from .sheet_rules import BACK_MARKET, coerce_date, within_return_window
from .upstream_http import describe_error, request_json

_ORDER_NUMBER_RE = re.compile(r"[0-9]{8}")

# Defaults the returns team expects on a freshly imported Back Market case.
PREFILL_DEFAULTS = {
    "multiple_return": "Choose",
    "apple_google_id": "Choose",
    "return_type": "Refund",
    "replacement_available": "Yes",
    "done_by": "",
    "blocked_by": "PIN Required",
    "cs_comment": "",
    "resolution": "Back in stock",
    "issue": "Choose",
    "out_of_warranty": "No",
    "additional_notes": "",
    "status": "Pending",
    "manager_notes": "",
}


def is_backmarket_order_number(order_number: str | None) -> bool:
    return bool(order_number) and bool(_ORDER_NUMBER_RE.fullmatch(order_number))


class BackMarketClient:
    def __init__(self, *, base_url: str | None = None, session: requests.Session | None = None):
        base = base_url or settings.BACKMARKET_API_URL
        self.base_url = base if base.endswith("/") else f"{base}/"
        self.session = session

    def fetch_order(self, order_number: str, *, api_key: str, api_secret: str | None) -> dict[str, Any]:
        status_code, body = request_json(
            "GET",
            f"{self.base_url}{order_number}",
            service="Back Market",
            error_code="BACKMARKET_FAILED",
            auth=(api_key, api_secret or ""),
            session=self.session,
        )
        if status_code == 404:
            raise DomainError(
                code="BACKMARKET_ORDER_NOT_FOUND",
                http_status=404,
                message=f"Back Market order {order_number} not found",
            )
        if status_code >= 400 or not isinstance(body, dict):
            raise UpstreamError(
                code="BACKMARKET_FAILED",
                http_status=500,
                message=f"Back Market order lookup failed: {describe_error(status_code, body)}",
            )
        return body


def _money(value: Any) -> Decimal:
    try:
        return Decimal(str(value if value is not None else 0))
    except InvalidOperation:
        return Decimal("0")


def order_to_sheet_prefill(order: dict[str, Any], *, today: date | None = None) -> dict[str, Any]:
    """Map a Back Market order payload onto sheet fields."""
    today = today or date.today()
    address = order.get("shipping_address") or {}
    lines = order.get("orderlines") or []
    first_line = lines[0] if isinstance(lines, list) and lines else {}

    order_date = coerce_date(order.get("date_creation")) or today
    date_received = coerce_date(order.get("date_shipping")) or today

    prefill: dict[str, Any] = {
        "customer_name": f"{address.get('first_name') or ''} {address.get('last_name') or ''}".strip(),
        "imei": first_line.get("imei") or "",
        "sku": first_line.get("product") or first_line.get("listing") or "",
        "order_date": order_date.isoformat(),
        "date_received": date_received.isoformat(),
        "return_tracking_no": order.get("tracking_number") or "",
        "refund_amount": _money(order.get("price")),
    }
    prefill.update(PREFILL_DEFAULTS)
    # Lookup only happens for 8-digit numbers, so the platform is fixed.
    prefill["platform"] = BACK_MARKET
    prefill["return_within_30_days"] = within_return_window(date_received, order_date)
    return prefill


def get_backmarket_client() -> BackMarketClient:
    """FastAPI dependency; overridden in tests."""
    return BackMarketClient()
