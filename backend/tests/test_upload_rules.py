from __future__ import annotations

import asyncio
import re
from io import BytesIO

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from rma.domain_errors import DomainError
from rma.services.upload_rules import (
    IncomingFile,
    check_file,
    content_disposition,
    is_stored_filename,
    read_upload,
    stored_filename,
)

ALLOWED = {"image/png", "application/pdf"}


def test_stored_filename_ignores_client_name() -> None:
    name = stored_filename("../../etc/passwd.PNG", now_ms=1700000000000)

    assert re.fullmatch(r"1700000000000_[0-9a-f]{6}\.png", name)
    assert is_stored_filename(name)


def test_stored_filename_drops_unsafe_extension() -> None:
    name = stored_filename("report.p df", now_ms=1700000000000)

    assert re.fullmatch(r"1700000000000_[0-9a-f]{6}", name)


@pytest.mark.parametrize(
    "filename",
    ["../secret.txt", "1700000000000_abcdef/../x", "photo.png", "", "1700000000000_ABCDEF.png"],
)
def test_is_stored_filename_rejects_unsafe_names(filename: str) -> None:
    assert is_stored_filename(filename) is False


def test_check_file_rejects_disallowed_type() -> None:
    with pytest.raises(DomainError, match="File type not allowed") as exc:
        check_file(IncomingFile("a.exe", "application/x-msdownload", b"MZ"), allowed_types=ALLOWED, max_size=10)

    assert exc.value.code == "ATTACHMENT_TYPE_NOT_ALLOWED"


def test_check_file_rejects_oversize() -> None:
    with pytest.raises(DomainError) as exc:
        check_file(IncomingFile("a.png", "image/png", b"x" * 11), allowed_types=ALLOWED, max_size=10)

    assert exc.value.code == "ATTACHMENT_TOO_LARGE"


def test_check_file_accepts_case_insensitive_type() -> None:
    check_file(IncomingFile("a.pdf", "Application/PDF", b"%PDF"), allowed_types=ALLOWED, max_size=10)


def test_read_upload_caps_buffer_one_byte_over_limit() -> None:
    upload = UploadFile(
        file=BytesIO(b"x" * 100),
        filename="big.png",
        headers=Headers({"content-type": "image/png"}),
    )

    incoming = asyncio.run(read_upload(upload, max_size=10))

    assert incoming.size == 11
    assert incoming.original_name == "big.png"
    assert incoming.content_type == "image/png"


def test_content_disposition_encodes_non_ascii_names() -> None:
    header = content_disposition("attachment", "reçu \"final\".pdf")

    assert header.startswith('attachment; filename="reu final.pdf"')
    assert "filename*=UTF-8''re%C3%A7u%20%22final%22.pdf" in header
