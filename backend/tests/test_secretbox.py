from __future__ import annotations

import base64

import pytest

from rma.services.secretbox import SealError, derive_key, mask_secret, seal, unseal


def test_seal_round_trip() -> None:
    token = seal("sk_live_abcdef1234")

    assert token != "sk_live_abcdef1234"
    assert unseal(token) == "sk_live_abcdef1234"


def test_seal_uses_fresh_nonce_each_time() -> None:
    assert seal("same-secret") != seal("same-secret")


def test_sealed_layout_is_nonce_tag_ciphertext() -> None:
    raw = base64.b64decode(seal("abc"))

    assert len(raw) == 12 + 16 + 3


def test_none_passes_through() -> None:
    assert seal(None) is None
    assert unseal(None) is None


def test_tampered_ciphertext_fails_authentication() -> None:
    raw = bytearray(base64.b64decode(seal("sk_live_abcdef1234")))
    raw[-1] ^= 0x01
    tampered = base64.b64encode(bytes(raw)).decode("ascii")

    with pytest.raises(SealError, match="authentication"):
        unseal(tampered)


def test_tampered_tag_fails_authentication() -> None:
    raw = bytearray(base64.b64decode(seal("sk_live_abcdef1234")))
    raw[12] ^= 0x80
    tampered = base64.b64encode(bytes(raw)).decode("ascii")

    with pytest.raises(SealError):
        unseal(tampered)


def test_wrong_key_cannot_unseal() -> None:
    token = seal("secret", key=derive_key("first passphrase"))

    with pytest.raises(SealError):
        unseal(token, key=derive_key("second passphrase"))


@pytest.mark.parametrize("token", ["not base64!!", base64.b64encode(b"short").decode("ascii")])
def test_malformed_tokens_raise_seal_error(token: str) -> None:
    with pytest.raises(SealError):
        unseal(token)


def test_missing_passphrase_refuses_to_derive_key() -> None:
    with pytest.raises(RuntimeError, match="CRED_ENC_KEY"):
        derive_key(None)
    with pytest.raises(RuntimeError):
        derive_key("")


def test_key_is_sha256_of_passphrase() -> None:
    assert len(derive_key("x")) == 32
    assert derive_key("x") == derive_key("x")


def test_mask_secret_keeps_last_four() -> None:
    assert mask_secret("sk_live_abcdef1234") == "*" * 14 + "1234"
    assert mask_secret("abcde") == "*bcde"


def test_mask_secret_hides_short_values_entirely() -> None:
    assert mask_secret("abcd") == "****"
    assert mask_secret("") == ""
    assert mask_secret(None) is None
