from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from jose import jwt

from rma.auth import (
    BUSINESS_ADMIN,
    SUPER_ADMIN,
    USER,
    check_permission,
    create_access_token,
    get_role_permissions,
    validate_new_password,
    verify_token,
)
from rma.config import settings


def _user(**overrides):
    values = {"id": 11, "role_id": BUSINESS_ADMIN, "username": "acme_admin", "business_id": 5}
    values.update(overrides)
    return SimpleNamespace(**values)


def test_token_round_trip_carries_identity_claims() -> None:
    claims = verify_token(create_access_token(_user()))

    assert claims.id == 11
    assert claims.role_id == BUSINESS_ADMIN
    assert claims.username == "acme_admin"
    assert claims.business_id == 5


def test_super_admin_token_has_no_business() -> None:
    claims = verify_token(create_access_token(_user(role_id=SUPER_ADMIN, business_id=None)))

    assert claims.business_id is None


def test_expired_token_is_rejected() -> None:
    token = create_access_token(_user(), expires_in_seconds=-3600)

    with pytest.raises(HTTPException) as exc:
        verify_token(token)

    assert exc.value.status_code == 401


def test_token_signed_with_other_key_is_rejected() -> None:
    token = jwt.encode(
        {"id": 1, "role_id": SUPER_ADMIN, "username": "x", "iss": settings.JWT_ISSUER, "aud": settings.JWT_AUDIENCE},
        "some-other-secret",
        algorithm="HS256",
    )

    with pytest.raises(HTTPException) as exc:
        verify_token(token)

    assert exc.value.status_code == 401


def test_wrong_audience_is_rejected() -> None:
    token = jwt.encode(
        {"id": 1, "role_id": SUPER_ADMIN, "username": "x", "iss": settings.JWT_ISSUER, "aud": "elsewhere"},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )

    with pytest.raises(HTTPException):
        verify_token(token)


@pytest.mark.parametrize("token", [None, "", "not.a.jwt"])
def test_missing_or_garbled_token_is_unauthorized(token) -> None:
    with pytest.raises(HTTPException) as exc:
        verify_token(token)

    assert exc.value.status_code == 401


def test_role_permissions() -> None:
    assert "manage_business" in get_role_permissions(SUPER_ADMIN)
    assert "manage_business" not in get_role_permissions(BUSINESS_ADMIN)
    assert get_role_permissions(999) == []
    assert check_permission(_user(role_id=USER), "view_stats") is True
    assert check_permission(_user(role_id=USER), "manage_users") is False


def test_validate_new_password_enforces_length() -> None:
    with pytest.raises(HTTPException, match="at least"):
        validate_new_password("short")
    with pytest.raises(HTTPException, match="required"):
        validate_new_password("")
    assert validate_new_password("long-enough-password") == "long-enough-password"
