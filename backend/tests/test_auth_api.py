from __future__ import annotations

from rma.auth import BUSINESS_ADMIN, get_password_hash, verify_token
from rma.models import User


def _with_password(db, user: User, password: str) -> User:
    user.password_hash = get_password_hash(password)
    db.commit()
    return user


def test_login_returns_token_and_profile(client, db, tenants) -> None:
    _with_password(db, tenants["acme_admin"], "correct-horse")

    response = client.post("/api/auth/login", json={"username": "acme_admin", "password": "correct-horse"})

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    body = response.json()
    assert body["user"] == {
        "id": tenants["acme_admin"].id,
        "username": "acme_admin",
        "business_id": str(tenants["acme"].id),
        "role": {"id": BUSINESS_ADMIN, "name": "BusinessAdmin"},
    }
    assert verify_token(body["token"]).id == tenants["acme_admin"].id


def test_login_is_case_sensitive_and_uniform_on_failure(client, db, tenants) -> None:
    _with_password(db, tenants["acme_admin"], "correct-horse")

    wrong_case = client.post("/api/auth/login", json={"username": "ACME_ADMIN", "password": "correct-horse"})
    wrong_password = client.post("/api/auth/login", json={"username": "acme_admin", "password": "nope"})

    assert wrong_case.status_code == 401
    assert wrong_password.status_code == 401
    assert wrong_case.json() == wrong_password.json() == {"detail": "Invalid credentials"}


def test_me_lists_role_permissions(client, tenants, headers_for) -> None:
    response = client.get("/api/auth/me", headers=headers_for(tenants["acme_user"]))

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "acme_user"
    assert body["role"]["name"] == "User"
    assert body["permissions"] == ["view_sheets", "view_stats"]


def test_token_for_deleted_user_is_rejected(client, db, tenants, headers_for) -> None:
    headers = headers_for(tenants["acme_user"])
    db.delete(tenants["acme_user"])
    db.commit()

    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_health_is_public(client) -> None:
    assert client.get("/api/health").json() == {"status": "ok", "version": "1.0.0"}
