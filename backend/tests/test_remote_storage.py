from __future__ import annotations

import paramiko
import pytest

from rma.domain_errors import DomainError, UpstreamError
from rma.services.remote_storage import LocalStorage, SftpStorage, enquiry_attachment_key, sheet_attachment_key


def test_storage_keys_are_tenant_prefixed() -> None:
    assert sheet_attachment_key(3, 17, "1700000000000_abcdef.png") == "business_3/sheet_17/1700000000000_abcdef.png"
    assert enquiry_attachment_key(3, 9, "f.pdf") == "business_3/enquiry_9/f.pdf"


def test_local_storage_put_get_delete(tmp_path) -> None:
    storage = LocalStorage(tmp_path)

    storage.put("business_1/sheet_2/a.txt", b"hello")
    assert storage.get("business_1/sheet_2/a.txt") == b"hello"

    storage.delete("business_1/sheet_2/a.txt")
    storage.delete("business_1/sheet_2/a.txt")
    with pytest.raises(DomainError) as exc:
        storage.get("business_1/sheet_2/a.txt")
    assert exc.value.code == "ATTACHMENT_NOT_FOUND"


def test_local_storage_keys_cannot_escape_base_dir(tmp_path) -> None:
    storage = LocalStorage(tmp_path / "root")

    storage.put("../../outside.txt", b"x")

    assert (tmp_path / "root" / "outside.txt").read_bytes() == b"x"
    assert not (tmp_path / "outside.txt").exists()


def _sftp() -> SftpStorage:
    return SftpStorage(host="sftp.test", port=22, username="u", password="p", base_path="/uploads", timeout=5)


class _ClientStub:
    def __init__(self):
        self.removed = []

    def remove(self, path):
        self.removed.append(path)

    def close(self):
        pass


class _TransportStub:
    def close(self):
        pass


def test_sftp_retries_once_then_succeeds(monkeypatch) -> None:
    storage = _sftp()
    client = _ClientStub()
    attempts = []

    def _connect():
        attempts.append(1)
        if len(attempts) == 1:
            raise paramiko.SSHException("banner timeout")
        return _TransportStub(), client

    monkeypatch.setattr(storage, "_connect", _connect)

    storage.delete("business_1/sheet_2/a.txt")

    assert len(attempts) == 2
    assert client.removed == ["/uploads/business_1/sheet_2/a.txt"]


def test_sftp_gives_up_after_second_failure(monkeypatch) -> None:
    storage = _sftp()
    attempts = []

    def _connect():
        attempts.append(1)
        raise OSError("connection refused")

    monkeypatch.setattr(storage, "_connect", _connect)

    with pytest.raises(UpstreamError) as exc:
        storage.get("business_1/sheet_2/a.txt")

    assert exc.value.code == "STORAGE_UNAVAILABLE"
    assert len(attempts) == 2


def test_sftp_requires_configuration() -> None:
    storage = SftpStorage(host=None, port=22, username=None, password=None, base_path="/uploads", timeout=5)

    with pytest.raises(DomainError) as exc:
        storage.put("business_1/a.txt", b"x")

    assert exc.value.code == "STORAGE_NOT_CONFIGURED"
