"""Pure rules for sheet fields derived or normalized at write time."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

BACK_MARKET = "Back Market"
AMAZON = "Amazon"
RETURN_WINDOW_DAYS = 30

_BACK_MARKET_ORDER_RE = re.compile(r"[0-9]{8}")
_PIN_REQUIRED_RE = re.compile(r"^pin required$", re.IGNORECASE)

DERIVED_FIELDS = ("platform", "return_within_30_days")


def classify_platform(order_no: str | None) -> str:
    if order_no is not None and _BACK_MARKET_ORDER_RE.fullmatch(str(order_no).strip()):
        return BACK_MARKET
    return AMAZON


def coerce_date(value: Any) -> date | None:
    """Accept ``date``/``datetime`` or an ISO string (time part ignored); blanks become None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def within_return_window(date_received: Any, order_date: Any) -> str:
    received = coerce_date(date_received)
    ordered = coerce_date(order_date)
    if received is None or ordered is None:
        return ""
    # Day 30 itself is inside the window.
    return "Yes" if (received - ordered).days <= RETURN_WINDOW_DAYS else "No"


def derive_sheet_fields(order_no: str | None, date_received: Any, order_date: Any) -> dict[str, str]:
    """Single source of truth for ``platform`` and ``return_within_30_days``."""
    return {
        "platform": classify_platform(order_no),
        "return_within_30_days": within_return_window(date_received, order_date),
    }


def yes_no(value: Any) -> Any:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return value


def normalize_blocked_by(value: Any) -> Any:
    if isinstance(value, str) and _PIN_REQUIRED_RE.match(value.strip()):
        return "PIN Required"
    return value


def normalize_sheet_values(values: dict[str, Any]) -> dict[str, Any]:
    """Apply write-time normalizations to whichever fields are present."""
    normalized = dict(values)
    if "out_of_warranty" in normalized:
        normalized["out_of_warranty"] = yes_no(normalized["out_of_warranty"])
    if "blocked_by" in normalized:
        normalized["blocked_by"] = normalize_blocked_by(normalized["blocked_by"])
    for key in DERIVED_FIELDS:
        normalized.pop(key, None)
    return normalized
