"""Shared rules for incoming multipart files."""
from __future__ import annotations

import re
import secrets
import time
from dataclasses import dataclass
from pathlib import PurePath
from urllib.parse import quote

from fastapi import UploadFile

from ..domain_errors import DomainError

_SAFE_FILENAME_RE = re.compile(r"^\d{10,16}_[0-9a-f]{6}(\.[A-Za-z0-9]{1,16})?$")
_EXT_RE = re.compile(r"\.[a-z0-9]{1,16}")
_CHUNK_SIZE = 1024 * 1024  # 1MB


@dataclass
class IncomingFile:
    """A file read from the request, capped at ``max_size + 1`` bytes."""

    original_name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def check_file(file: IncomingFile, *, allowed_types: set[str], max_size: int) -> None:
    if not file.original_name:
        raise DomainError(code="VALIDATION_ERROR", http_status=400, message="Filename is required")
    if (file.content_type or "").lower() not in allowed_types:
        raise DomainError(
            code="ATTACHMENT_TYPE_NOT_ALLOWED",
            http_status=400,
            message=f"File type not allowed: {file.content_type or 'unknown'}",
        )
    if file.size > max_size:
        raise DomainError(
            code="ATTACHMENT_TOO_LARGE",
            http_status=400,
            message=f"File too large (max {max_size // (1024 * 1024)}MB)",
        )


def stored_filename(original_name: str, *, now_ms: int | None = None) -> str:
    """``<epoch ms>_<6 hex><ext>``; the client's name is never used on storage."""
    ext = PurePath(original_name or "").suffix.lower()
    if ext and not _EXT_RE.fullmatch(ext):
        ext = ""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{stamp}_{secrets.token_hex(3)}{ext}"


def is_stored_filename(filename: str) -> bool:
    return bool(_SAFE_FILENAME_RE.match(filename or ""))


async def read_upload(file: UploadFile, *, max_size: int) -> IncomingFile:
    """Read at most ``max_size + 1`` bytes so oversize files are detected without buffering them whole."""
    buffer = bytearray()
    try:
        while len(buffer) <= max_size:
            chunk = await file.read(min(_CHUNK_SIZE, max_size + 1 - len(buffer)))
            if not chunk:
                break
            buffer.extend(chunk)
    finally:
        await file.close()
    return IncomingFile(
        original_name=file.filename or "",
        content_type=file.content_type or "",
        data=bytes(buffer),
    )


def content_disposition(disposition: str, filename: str) -> str:
    """Header value safe for non-ASCII names (RFC 6266 ``filename*``)."""
    ascii_name = filename.encode("ascii", "ignore").decode("ascii").replace('"', "").strip() or "download"
    return f"{disposition}; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"
