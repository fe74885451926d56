"""
Remote file sessions over FTP, plus an in-memory server for tests.

A session is a single authenticated control connection. Every top-level
operation opens one through ``session_scope`` and releases it on exit.
All ``ftplib`` failures are translated into ``listings.errors`` here.
"""

from __future__ import annotations

import ftplib
import io
import logging
import posixpath
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Iterator, List, Optional, Protocol, Union

from listings.errors import (
    NotFound,
    RemoteConnectionError,
    RemoteOperationError,
    StoreError,
)

logger = logging.getLogger(__name__)

Payload = Union[bytes, BinaryIO]


class RemoteSession(Protocol):
    """Operations the store and asset manager need from the remote server."""

    def fetch(self, remote_path: str) -> bytes:
        ...

    def store(self, remote_path: str, data: Payload) -> None:
        ...

    def upload_file(self, src_path: str, remote_path: str) -> None:
        ...

    def remove(self, remote_path: str) -> None:
        ...

    def rename(self, src_path: str, dest_path: str) -> None:
        ...

    def list_dir(self, remote_path: str) -> List[str]:
        ...

    def close(self) -> None:
        ...


class RemoteSessionFactory(Protocol):
    def open(self) -> RemoteSession:
        ...


@contextmanager
def session_scope(factory: RemoteSessionFactory) -> Iterator[RemoteSession]:
    """Open a session and close it on every exit path."""
    session = factory.open()
    try:
        yield session
    finally:
        try:
            session.close()
        except StoreError as exc:
            logger.warning("Failed to close remote session cleanly: %s", exc)


def _translate(exc: BaseException, remote_path: str) -> StoreError:
    if isinstance(exc, ftplib.error_perm):
        if str(exc).startswith("550"):
            return NotFound(remote_path)
        return RemoteOperationError(f"{remote_path}: {exc}")
    if isinstance(exc, (ftplib.error_temp, OSError, EOFError)):
        return RemoteConnectionError(f"Connection lost while accessing {remote_path}")
    return RemoteOperationError(f"{remote_path}: {exc}")


class FtpSession:
    """A logged-in ``ftplib`` connection."""

    def __init__(self, ftp: ftplib.FTP):
        self._ftp = ftp

    def fetch(self, remote_path: str) -> bytes:
        buffer = io.BytesIO()
        try:
            self._ftp.retrbinary(f"RETR {remote_path}", buffer.write)
        except ftplib.all_errors as exc:
            raise _translate(exc, remote_path) from exc
        return buffer.getvalue()

    def store(self, remote_path: str, data: Payload) -> None:
        stream = io.BytesIO(data) if isinstance(data, (bytes, bytearray)) else data
        try:
            self._ftp.storbinary(f"STOR {remote_path}", stream)
        except ftplib.all_errors as exc:
            raise _translate(exc, remote_path) from exc

    def upload_file(self, src_path: str, remote_path: str) -> None:
        with open(src_path, "rb") as f:
            self.store(remote_path, f)

    def remove(self, remote_path: str) -> None:
        try:
            self._ftp.delete(remote_path)
        except ftplib.all_errors as exc:
            raise _translate(exc, remote_path) from exc

    def rename(self, src_path: str, dest_path: str) -> None:
        try:
            self._ftp.rename(src_path, dest_path)
        except ftplib.all_errors as exc:
            raise _translate(exc, src_path) from exc

    def list_dir(self, remote_path: str) -> List[str]:
        try:
            return self._ftp.nlst(remote_path)
        except ftplib.all_errors as exc:
            error = _translate(exc, remote_path)
            # Many servers answer NLST on an empty directory with 550.
            if isinstance(error, NotFound):
                return []
            raise error from exc

    def close(self) -> None:
        try:
            self._ftp.quit()
        except ftplib.all_errors:
            # The server may already have dropped us; release the socket anyway.
            self._ftp.close()


@dataclass
class FtpSessionFactory:
    """
    Opens ``FtpSession`` objects against a configured endpoint.
    """

    host: str
    user: str = ""
    password: str = ""
    port: int = 21
    secure: bool = False
    timeout: float = 30.0

    def open(self) -> FtpSession:
        ftp_cls = ftplib.FTP_TLS if self.secure else ftplib.FTP
        ftp = ftp_cls(timeout=self.timeout)
        try:
            ftp.connect(self.host, self.port)
            ftp.login(self.user, self.password)
            if self.secure:
                ftp.prot_p()
        except ftplib.all_errors as exc:
            ftp.close()
            raise RemoteConnectionError(
                f"Could not open FTP session to {self.host}:{self.port}"
            ) from exc
        logger.debug("Opened FTP session to %s:%s", self.host, self.port)
        return FtpSession(ftp)


@dataclass
class InMemoryRemoteServer:
    """Test double for the remote server; hands out sessions over one object map."""

    objects: Dict[str, bytes] = field(default_factory=dict)
    opened: int = 0
    closed: int = 0

    def open(self) -> "InMemoryRemoteSession":
        self.opened += 1
        return InMemoryRemoteSession(self)

    def reset(self) -> None:
        """Clear all stored objects and counters (useful in tests)."""
        self.objects.clear()
        self.opened = 0
        self.closed = 0


class InMemoryRemoteSession:
    def __init__(self, server: InMemoryRemoteServer):
        self.server = server
        self.is_open = True

    def _check_open(self, remote_path: str) -> None:
        if not self.is_open:
            raise RemoteConnectionError(f"Session closed while accessing {remote_path}")

    def fetch(self, remote_path: str) -> bytes:
        self._check_open(remote_path)
        stored = self.server.objects.get(remote_path)
        if stored is None:
            raise NotFound(remote_path)
        return stored

    def store(self, remote_path: str, data: Payload) -> None:
        self._check_open(remote_path)
        if not isinstance(data, (bytes, bytearray)):
            data = data.read()
        self.server.objects[remote_path] = bytes(data)

    def upload_file(self, src_path: str, remote_path: str) -> None:
        with open(src_path, "rb") as f:
            self.store(remote_path, f)

    def remove(self, remote_path: str) -> None:
        self._check_open(remote_path)
        if self.server.objects.pop(remote_path, None) is None:
            raise NotFound(remote_path)

    def rename(self, src_path: str, dest_path: str) -> None:
        self._check_open(src_path)
        if src_path not in self.server.objects:
            raise NotFound(src_path)
        self.server.objects[dest_path] = self.server.objects.pop(src_path)

    def list_dir(self, remote_path: str) -> List[str]:
        self._check_open(remote_path)
        prefix = "" if remote_path in ("", ".") else remote_path.rstrip("/") + "/"
        names = []
        for path in self.server.objects:
            if path.startswith(prefix) and "/" not in path[len(prefix):]:
                names.append(path)
        return sorted(names)

    def close(self) -> None:
        if self.is_open:
            self.is_open = False
            self.server.closed += 1


def remote_join(directory: Optional[str], name: str) -> str:
    if not directory or directory == ".":
        return name
    return posixpath.join(directory, name)
