from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["CRED_ENC_KEY"] = "test-credential-passphrase"
os.environ["AUTH_RATE_LIMIT_ENABLED"] = "false"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["ENV"] = "test"

from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from rma.auth import BUSINESS_ADMIN, ROLE_NAMES, ROLE_PERMISSIONS, SUPER_ADMIN, USER, create_access_token
from rma.database import Database
from rma.domain_errors import DomainError, UpstreamError
from rma.main import create_app
from rma.models import Business, Role, Sheet, User
from rma.services.backmarket_client import get_backmarket_client
from rma.services.remote_storage import LocalStorage, get_storage
from rma.services.shipstation_client import LabelResult, get_shipstation_client


class FakeShipStation:
    def __init__(self) -> None:
        self.orders: list[dict[str, Any]] = []
        self.labels: list[dict[str, Any]] = []
        self.fail_label = False

    def create_order(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.orders.append(payload)
        return {"orderId": 9001}

    def create_label(self, payload: dict[str, Any]) -> LabelResult:
        self.labels.append(payload)
        if self.fail_label:
            raise UpstreamError(
                code="SHIPSTATION_FAILED",
                http_status=500,
                message="ShipStation create label failed: 400 bad address",
            )
        return LabelResult(
            shipment_id="77",
            tracking_number="RM123456789GB",
            label_url=None,
            label_data="JVBERi0xLjQK",
        )


class FakeBackMarket:
    def __init__(self) -> None:
        self.orders: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str, str | None]] = []

    def fetch_order(self, order_number: str, *, api_key: str, api_secret: str | None) -> dict[str, Any]:
        self.calls.append((order_number, api_key, api_secret))
        if order_number not in self.orders:
            raise DomainError(
                code="BACKMARKET_ORDER_NOT_FOUND",
                http_status=404,
                message=f"Back Market order {order_number} not found",
            )
        return self.orders[order_number]


@pytest.fixture()
def database() -> Iterator[Database]:
    handle = Database("sqlite://", poolclass=StaticPool).open()
    handle.create_all()
    session = handle.session()
    for role_id, name in ROLE_NAMES.items():
        session.add(Role(id=role_id, name=name, permissions=list(ROLE_PERMISSIONS[role_id])))
    session.commit()
    session.close()
    yield handle
    handle.close()


@pytest.fixture()
def db(database: Database) -> Iterator[Session]:
    session = database.session()
    yield session
    session.close()


@pytest.fixture()
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path / "storage")


@pytest.fixture()
def shipstation() -> FakeShipStation:
    return FakeShipStation()


@pytest.fixture()
def backmarket() -> FakeBackMarket:
    return FakeBackMarket()


@pytest.fixture()
def app(database: Database, storage: LocalStorage, shipstation: FakeShipStation, backmarket: FakeBackMarket):
    application = create_app(database)
    application.dependency_overrides[get_storage] = lambda: storage
    application.dependency_overrides[get_shipstation_client] = lambda: shipstation
    application.dependency_overrides[get_backmarket_client] = lambda: backmarket
    return application


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


def make_business(db: Session, name: str = "Acme Returns", **fields: Any) -> Business:
    business = Business(name=name, **fields)
    db.add(business)
    db.commit()
    db.refresh(business)
    return business


def make_user(
    db: Session,
    username: str,
    *,
    role_id: int = USER,
    business: Business | None = None,
    password_hash: str = "not-a-bcrypt-hash",
) -> User:
    user = User(
        username=username,
        password_hash=password_hash,
        role_id=role_id,
        business_id=business.id if business else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture()
def headers_for():
    return auth_headers


@pytest.fixture()
def sheet_factory(db: Session):
    def _make(business: Business, **fields: Any) -> Sheet:
        values = {"order_no": "12345678", "platform": "Back Market", "return_within_30_days": ""}
        values.update(fields)
        sheet = Sheet(business_id=business.id, **values)
        db.add(sheet)
        db.commit()
        db.refresh(sheet)
        return sheet

    return _make


@pytest.fixture()
def tenants(db: Session) -> dict[str, Any]:
    """Two businesses, each with an admin and a user, plus a platform super admin."""
    acme = make_business(db, "Acme Returns", street1="1 Dock Road", city="Leeds", postal_code="LS1 1AA", country="GB")
    other = make_business(db, "Other Co")
    return {
        "acme": acme,
        "other": other,
        "super": make_user(db, "ops", role_id=SUPER_ADMIN),
        "acme_admin": make_user(db, "acme_admin", role_id=BUSINESS_ADMIN, business=acme),
        "acme_user": make_user(db, "acme_user", role_id=USER, business=acme),
        "other_admin": make_user(db, "other_admin", role_id=BUSINESS_ADMIN, business=other),
    }
