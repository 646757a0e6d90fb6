"""ShipStation API client (orders + labels)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests

from ..config import settings
from ..domain_errors import DomainError, UpstreamError
from .upstream_http import describe_error, request_json


@dataclass
class LabelResult:
    shipment_id: str | None
    tracking_number: str | None
    label_url: str | None
    label_data: str | None


class ShipStationClient:
    def __init__(
        self,
        *,
        api_key: str | None = None,
        api_secret: str | None = None,
        base_url: str | None = None,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.SHIPSTATION_API_KEY
        self.api_secret = api_secret if api_secret is not None else settings.SHIPSTATION_API_SECRET
        self.base_url = (base_url or settings.SHIPSTATION_BASE_URL).rstrip("/")
        self.session = session

    def _auth(self) -> tuple[str, str]:
        if not self.api_key or not self.api_secret:
            raise DomainError(
                code="SHIPSTATION_NOT_CONFIGURED",
                http_status=500,
                message="ShipStation API credentials are missing",
            )
        return self.api_key, self.api_secret

    def _post(self, path: str, payload: dict[str, Any], action: str) -> dict[str, Any]:
        status_code, body = request_json(
            "POST",
            f"{self.base_url}{path}",
            service="ShipStation",
            error_code="SHIPSTATION_FAILED",
            auth=self._auth(),
            json=payload,
            session=self.session,
        )
        if status_code >= 400 or not isinstance(body, dict):
            raise UpstreamError(
                code="SHIPSTATION_FAILED",
                http_status=500,
                message=f"ShipStation {action} failed: {describe_error(status_code, body)}",
            )
        return body

    def create_order(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._post("/orders/createorder", payload, "create order")

    def create_label(self, payload: dict[str, Any]) -> LabelResult:
        body = self._post("/shipments/createlabel", payload, "create label")
        download = body.get("labelDownload")
        if isinstance(download, dict):
            download = download.get("href")
        return LabelResult(
            shipment_id=_str_or_none(body.get("shipmentId")),
            tracking_number=body.get("trackingNumber"),
            label_url=download,
            label_data=body.get("labelData"),
        )


def _str_or_none(value: Any) -> str | None:
    return None if value is None else str(value)


def get_shipstation_client() -> ShipStationClient:
    """FastAPI dependency; overridden in tests."""
    return ShipStationClient()
