"""Remote file storage for attachments (SFTP in production, local disk in development)."""
from __future__ import annotations

import logging
import posixpath
import stat
from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import Callable, Optional, TypeVar
from urllib.parse import quote

import paramiko

from ..config import settings
from ..domain_errors import DomainError, UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def sheet_attachment_key(business_id: int, sheet_id: int, filename: str) -> str:
    return f"business_{business_id}/sheet_{sheet_id}/{filename}"


def enquiry_attachment_key(business_id: int, enquiry_id: int, filename: str) -> str:
    return f"business_{business_id}/enquiry_{enquiry_id}/{filename}"


def _clean_key(key: str) -> str:
    parts = [p for p in key.replace("\\", "/").split("/") if p and p not in (".", "..")]
    if not parts:
        raise ValueError("Empty storage key")
    return "/".join(parts)


class RemoteStorage:
    """Key-addressed blob store. Keys are relative, ``/``-separated paths."""

    def put(self, key: str, data: bytes) -> None:
        raise NotImplementedError

    def get(self, key: str) -> bytes:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def public_url(self, key: str) -> Optional[str]:
        base = settings.STORAGE_PUBLIC_BASE_URL
        if not base:
            return None
        return f"{base.rstrip('/')}/{quote(_clean_key(key))}"


class LocalStorage(RemoteStorage):
    """Local filesystem storage for development and tests."""

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.base_dir / _clean_key(key)

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise DomainError(code="ATTACHMENT_NOT_FOUND", http_status=404, message="File not found in storage")
        return path.read_bytes()

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class SftpStorage(RemoteStorage):
    """SFTP-backed storage. Every operation opens its own connection and is retried once."""

    _RETRYABLE = (paramiko.SSHException, OSError, EOFError)

    def __init__(
        self,
        *,
        host: str | None,
        port: int,
        username: str | None,
        password: str | None,
        base_path: str,
        timeout: int,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.base_path = base_path.rstrip("/") or "/"
        self.timeout = timeout

    def _remote_path(self, key: str) -> str:
        return posixpath.join(self.base_path, _clean_key(key))

    def _connect(self) -> tuple[paramiko.Transport, paramiko.SFTPClient]:
        if not (self.host and self.username and self.password):
            raise DomainError(
                code="STORAGE_NOT_CONFIGURED",
                http_status=500,
                message="SFTP storage is not configured (SFTP_HOST, SFTP_USERNAME, SFTP_PASSWORD)",
            )
        transport = paramiko.Transport((self.host, self.port))
        transport.banner_timeout = self.timeout
        try:
            transport.connect(username=self.username, password=self.password)
            client = paramiko.SFTPClient.from_transport(transport)
            if client is None:
                raise paramiko.SSHException("Could not open SFTP channel")
            client.get_channel().settimeout(self.timeout)
        except Exception:
            transport.close()
            raise
        return transport, client

    def _run(self, operation: str, key: str, action: Callable[[paramiko.SFTPClient, str], T]) -> T:
        remote_path = self._remote_path(key)
        last_error: Exception | None = None
        for attempt in (1, 2):
            transport = None
            try:
                transport, client = self._connect()
                try:
                    return action(client, remote_path)
                finally:
                    client.close()
            except DomainError:
                raise
            except FileNotFoundError:
                raise DomainError(code="ATTACHMENT_NOT_FOUND", http_status=404, message="File not found in storage")
            except self._RETRYABLE as exc:
                last_error = exc
                logger.warning("SFTP %s failed for %s (attempt %s): %s", operation, remote_path, attempt, exc)
            finally:
                if transport is not None:
                    transport.close()
        raise UpstreamError(
            code="STORAGE_UNAVAILABLE",
            http_status=500,
            message=f"Remote storage {operation} failed for {remote_path}: {last_error}",
        )

    @staticmethod
    def _ensure_dirs(client: paramiko.SFTPClient, directory: str) -> None:
        current = ""
        for part in directory.split("/"):
            if not part:
                current = current or "/"
                continue
            current = posixpath.join(current, part) if current else part
            try:
                if not stat.S_ISDIR(client.stat(current).st_mode or 0):
                    raise OSError(f"{current} exists and is not a directory")
            except FileNotFoundError:
                client.mkdir(current)

    def put(self, key: str, data: bytes) -> None:
        def _put(client: paramiko.SFTPClient, path: str) -> None:
            self._ensure_dirs(client, posixpath.dirname(path))
            client.putfo(BytesIO(data), path)

        self._run("upload", key, _put)

    def get(self, key: str) -> bytes:
        def _get(client: paramiko.SFTPClient, path: str) -> bytes:
            buffer = BytesIO()
            client.getfo(path, buffer)
            return buffer.getvalue()

        return self._run("download", key, _get)

    def delete(self, key: str) -> None:
        def _delete(client: paramiko.SFTPClient, path: str) -> None:
            try:
                client.remove(path)
            except FileNotFoundError:
                pass

        self._run("delete", key, _delete)


@lru_cache()
def _configured_storage() -> RemoteStorage:
    if settings.STORAGE_BACKEND.lower() == "local":
        return LocalStorage(settings.LOCAL_STORAGE_DIR)
    return SftpStorage(
        host=settings.SFTP_HOST,
        port=settings.SFTP_PORT,
        username=settings.SFTP_USERNAME,
        password=settings.SFTP_PASSWORD,
        base_path=settings.SFTP_BASE_PATH,
        timeout=settings.SFTP_TIMEOUT_SECONDS,
    )


def get_storage() -> RemoteStorage:
    """FastAPI dependency; overridden in tests."""
    return _configured_storage()
