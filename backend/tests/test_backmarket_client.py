from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
import requests

from rma.domain_errors import DomainError, UpstreamError
from rma.services.backmarket_client import BackMarketClient, is_backmarket_order_number, order_to_sheet_prefill


class _Response:
    def __init__(self, status_code: int, body=None):
        self.status_code = status_code
        self._body = body
        self.content = b"x" if body is not None else b""
        self.text = str(body)

    def json(self):
        return self._body


class _SessionStub:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _client(session: _SessionStub) -> BackMarketClient:
    return BackMarketClient(base_url="https://bm.test/ws/orders", session=session)


def test_fetch_order_uses_basic_auth_and_order_path() -> None:
    session = _SessionStub(_Response(200, {"order_id": 12345678}))

    order = _client(session).fetch_order("12345678", api_key="key", api_secret="secret")

    assert order == {"order_id": 12345678}
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("GET", "https://bm.test/ws/orders/12345678")
    assert kwargs["auth"] == ("key", "secret")


def test_fetch_order_not_found() -> None:
    session = _SessionStub(_Response(404, {"error": "not found"}))

    with pytest.raises(DomainError) as exc:
        _client(session).fetch_order("12345678", api_key="key", api_secret=None)

    assert exc.value.code == "BACKMARKET_ORDER_NOT_FOUND"
    assert exc.value.http_status == 404


def test_fetch_order_http_error_is_upstream_failure() -> None:
    session = _SessionStub(_Response(503, "maintenance"))

    with pytest.raises(UpstreamError, match="503 maintenance") as exc:
        _client(session).fetch_order("12345678", api_key="key", api_secret=None)

    assert exc.value.code == "BACKMARKET_FAILED"


def test_transport_failure_is_retried_once() -> None:
    session = _SessionStub(requests.ConnectionError("reset"), _Response(200, {"order_id": 1}))

    assert _client(session).fetch_order("12345678", api_key="k", api_secret=None) == {"order_id": 1}
    assert len(session.calls) == 2


def test_transport_failure_twice_raises_upstream_error() -> None:
    session = _SessionStub(requests.Timeout("slow"), requests.Timeout("slow"))

    with pytest.raises(UpstreamError) as exc:
        _client(session).fetch_order("12345678", api_key="k", api_secret=None)

    assert exc.value.http_status == 500
    assert len(session.calls) == 2


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("12345678", True),
        ("1234567", False),
        ("1234567a", False),
        ("12345678\n", False),
        ("\u0661\u0662\u0663\u0664\u0665\u0666\u0667\u0668", False),
        (None, False),
    ],
)
def test_is_backmarket_order_number(value, expected) -> None:
    assert is_backmarket_order_number(value) is expected


def test_order_to_sheet_prefill_maps_order_and_defaults() -> None:
    order = {
        "date_creation": "2024-01-15T10:00:00+01:00",
        "date_shipping": "2024-01-20T08:00:00+01:00",
        "price": "129.50",
        "tracking_number": "RM1",
        "shipping_address": {"first_name": "Jane", "last_name": "Doe"},
        "orderlines": [{"imei": "356938035643809", "product": "iPhone 12 64GB"}],
    }

    prefill = order_to_sheet_prefill(order, today=date(2024, 2, 1))

    assert prefill["customer_name"] == "Jane Doe"
    assert prefill["imei"] == "356938035643809"
    assert prefill["sku"] == "iPhone 12 64GB"
    assert prefill["order_date"] == "2024-01-15"
    assert prefill["date_received"] == "2024-01-20"
    assert prefill["refund_amount"] == Decimal("129.50")
    assert prefill["platform"] == "Back Market"
    assert prefill["return_within_30_days"] == "Yes"
    assert prefill["blocked_by"] == "PIN Required"
    assert prefill["status"] == "Pending"


def test_order_to_sheet_prefill_tolerates_sparse_order() -> None:
    prefill = order_to_sheet_prefill({"price": "n/a"}, today=date(2024, 2, 1))

    assert prefill["customer_name"] == ""
    assert prefill["order_date"] == "2024-02-01"
    assert prefill["date_received"] == "2024-02-01"
    assert prefill["refund_amount"] == Decimal("0")
    assert prefill["return_within_30_days"] == "Yes"
