"""RFC 7807 Problem Details helpers."""
from __future__ import annotations

from http import HTTPStatus

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .domain_errors import DomainError


def build_problem_details_response(exc: DomainError) -> JSONResponse:
    """Render DomainError as RFC 7807 payload with stable domain code."""
    try:
        title = HTTPStatus(exc.http_status).phrase
    except ValueError:
        title = "Domain Error"

    payload: dict[str, object] = {
        "type": f"https://api.rma.local/problems/{exc.code.lower()}",
        "title": title,
        "status": exc.http_status,
        "detail": exc.message,
        "code": exc.code,
    }
    if exc.details is not None:
        payload["details"] = exc.details

    return JSONResponse(
        status_code=exc.http_status,
        content=payload,
        media_type="application/problem+json",
    )


def request_validation_to_domain_error(exc: RequestValidationError) -> DomainError:
    """Collapse pydantic/FastAPI validation errors into one 400 naming the offending fields."""
    fields: list[str] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        name = ".".join(loc) or "body"
        if name not in fields:
            fields.append(name)
    message = "Invalid or missing fields: " + ", ".join(fields) if fields else "Invalid request"
    return DomainError(
        code="VALIDATION_ERROR",
        http_status=400,
        message=message,
        details={"fields": fields},
    )
