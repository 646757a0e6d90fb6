from __future__ import annotations

from fastapi.testclient import TestClient

from rma.config import settings
from rma.domain_errors import DomainError, UpstreamError, validation_error
from rma.problem_details import build_problem_details_response


def test_problem_details_payload_contains_stable_code_and_rfc7807_fields() -> None:
    response = build_problem_details_response(
        DomainError(
            code="ENQUIRY_EXISTS",
            http_status=409,
            message="An enquiry already exists for order 12345678",
            details={"enquiry_id": 4},
        )
    )

    assert response.status_code == 409
    assert response.media_type == "application/problem+json"

    body = response.body.decode("utf-8")
    assert '"type":"https://api.rma.local/problems/enquiry_exists"' in body
    assert '"title":"Conflict"' in body
    assert '"status":409' in body
    assert '"code":"ENQUIRY_EXISTS"' in body
    assert '"details":{"enquiry_id":4}' in body


def test_problem_details_omits_details_when_none() -> None:
    response = build_problem_details_response(
        UpstreamError(code="SHIPSTATION_FAILED", http_status=500, message="upstream down")
    )

    body = response.body.decode("utf-8")
    assert response.status_code == 500
    assert '"title":"Internal Server Error"' in body
    assert '"details"' not in body


def test_validation_error_helper_lists_fields() -> None:
    error = validation_error("order_no is required", fields=["order_no"])

    assert error.code == "VALIDATION_ERROR"
    assert error.http_status == 400
    assert error.details == {"fields": ["order_no"]}
    assert validation_error("bad").details is None


def test_app_maps_domain_error_to_problem_details(app) -> None:
    @app.get("/boom")
    def _boom():
        raise DomainError(code="ROUTE_PROBLEM", http_status=409, message="route failed", details={"source": "test"})

    response = TestClient(app).get("/boom")

    assert response.status_code == 409
    assert response.headers["content-type"].startswith("application/problem+json")
    payload = response.json()
    assert payload["code"] == "ROUTE_PROBLEM"
    assert payload["detail"] == "route failed"


def test_request_validation_becomes_400_problem(client, tenants, headers_for) -> None:
    response = client.post(
        "/api/enquiries",
        json={"order_number": "12345678"},
        headers=headers_for(tenants["acme_user"]),
    )

    assert response.status_code == 400
    payload = response.json()
    assert payload["code"] == "VALIDATION_ERROR"
    assert set(payload["details"]["fields"]) == {"platform", "description"}


def test_unhandled_error_returns_generic_500(app) -> None:
    @app.get("/explode")
    def _explode():
        raise RuntimeError("database password is hunter2")

    response = TestClient(app, raise_server_exceptions=False).get("/explode")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
    assert "hunter2" not in response.text


def test_app_title_and_debug_come_from_settings(app) -> None:
    assert app.title == settings.APP_NAME
    assert app.debug is settings.DEBUG is False
