"""Outbound HTTP with one transparent retry on transport failures."""
from __future__ import annotations

import logging
from typing import Any

import requests

from ..config import settings
from ..domain_errors import UpstreamError

logger = logging.getLogger(__name__)

_MAX_ERROR_BODY = 500


def request_json(
    method: str,
    url: str,
    *,
    service: str,
    error_code: str,
    auth: tuple[str, str] | None = None,
    json: Any = None,
    session: requests.Session | None = None,
) -> tuple[int, Any]:
    """Send a JSON request and return ``(status_code, parsed_body)``.

    Connection errors and timeouts are retried once. HTTP error statuses are
    returned to the caller untouched; only transport failures raise.
    """
    http = session or requests
    last_error: Exception | None = None
    for attempt in (1, 2):
        try:
            response = http.request(
                method,
                url,
                auth=auth,
                json=json,
                headers={"Accept": "application/json"},
                timeout=settings.HTTP_TIMEOUT_SECONDS,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            last_error = exc
            logger.warning("%s %s %s failed (attempt %s): %s", service, method, url, attempt, exc)
            continue

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = response.text
        return response.status_code, body

    raise UpstreamError(
        code=error_code,
        http_status=500,
        message=f"{service} request failed: {last_error}",
    )


def describe_error(status_code: int, body: Any) -> str:
    text = body if isinstance(body, str) else str(body or "")
    return f"{status_code} {text[:_MAX_ERROR_BODY]}".strip()
