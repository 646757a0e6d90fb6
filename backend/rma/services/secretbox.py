"""Authenticated sealing of third-party API secrets at rest.

Sealed values are ``base64(nonce || tag || ciphertext)`` where:

- ``nonce`` is 12 random bytes per seal
- ``tag`` is the 16-byte AES-GCM authentication tag
- the AES-256 key is ``SHA-256(CRED_ENC_KEY)``

The key is derived once when this module is imported. A missing
``CRED_ENC_KEY`` raises immediately, so the API process cannot start without
it. Changing the passphrase makes every previously sealed value unreadable;
there is no rotation support.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..config import settings

_NONCE_SIZE = 12
_TAG_SIZE = 16


class SealError(Exception):
    """Sealed value is malformed or fails authentication (tampered or wrong key)."""


def derive_key(passphrase: str | None) -> bytes:
    if not passphrase:
        raise RuntimeError("CRED_ENC_KEY is not set; refusing to start without a credential sealing key")
    return hashlib.sha256(passphrase.encode("utf-8")).digest()


_KEY = derive_key(settings.CRED_ENC_KEY)


def seal(plaintext: str | None, *, key: bytes | None = None) -> str | None:
    if plaintext is None:
        return None
    nonce = os.urandom(_NONCE_SIZE)
    # AESGCM appends the tag to the ciphertext; stored layout puts it first.
    sealed = AESGCM(key or _KEY).encrypt(nonce, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-_TAG_SIZE], sealed[-_TAG_SIZE:]
    return base64.b64encode(nonce + tag + ciphertext).decode("ascii")


def unseal(token: str | None, *, key: bytes | None = None) -> str | None:
    if token is None:
        return None
    try:
        raw = base64.b64decode(token.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, ValueError) as exc:
        raise SealError("Sealed value is not valid base64") from exc
    if len(raw) < _NONCE_SIZE + _TAG_SIZE:
        raise SealError("Sealed value is truncated")

    nonce = raw[:_NONCE_SIZE]
    tag = raw[_NONCE_SIZE:_NONCE_SIZE + _TAG_SIZE]
    ciphertext = raw[_NONCE_SIZE + _TAG_SIZE:]
    try:
        plaintext = AESGCM(key or _KEY).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as exc:
        raise SealError("Sealed value failed authentication") from exc
    return plaintext.decode("utf-8")


def mask_secret(value: str | None, visible: int = 4) -> str | None:
    """Replace all but the last ``visible`` characters with ``*``."""
    if value is None:
        return None
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
