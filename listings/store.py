"""
The listings document store: one JSON array kept as a single remote object.
"""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from listings.errors import NotFound
from listings.records import Record, decode_records, encode_records
from listings.remote import RemoteSession, RemoteSessionFactory, session_scope

logger = logging.getLogger(__name__)


class DocumentStore:
    """
    Loads and saves the record array.

    Saves use a safe replace: the new document is uploaded under
    ``<remote_path>.tmp``, the old object is removed and the temporary
    object is renamed into place. A failure part way through leaves either
    the previous document or a ``.tmp`` orphan, never a truncated document.
    """

    def __init__(
        self,
        sessions: RemoteSessionFactory,
        remote_path: str,
        scratch_dir: Optional[str] = None,
    ):
        self.sessions = sessions
        self.remote_path = remote_path
        self.scratch_dir = scratch_dir

    @property
    def temp_path(self) -> str:
        return f"{self.remote_path}.tmp"

    @contextmanager
    def _session(self, session: Optional[RemoteSession]) -> Iterator[RemoteSession]:
        if session is not None:
            yield session
            return
        with session_scope(self.sessions) as owned:
            yield owned

    def fetch_raw(self, session: Optional[RemoteSession] = None) -> bytes:
        with self._session(session) as s:
            return s.fetch(self.remote_path)

    def load(self, session: Optional[RemoteSession] = None) -> List[Record]:
        with self._session(session) as s:
            try:
                raw = s.fetch(self.remote_path)
            except NotFound:
                logger.info("Store %s not initialized yet; starting empty", self.remote_path)
                return []
        return decode_records(raw)

    def save(
        self, records: Sequence[Record], session: Optional[RemoteSession] = None
    ) -> None:
        payload = encode_records(records)
        with self._scratch_file(payload) as scratch_path, self._session(session) as s:
            s.upload_file(scratch_path, self.temp_path)
            try:
                s.remove(self.remote_path)
            except NotFound:
                pass
            s.rename(self.temp_path, self.remote_path)
        logger.info("Saved %d records to %s", len(records), self.remote_path)

    @contextmanager
    def _scratch_file(self, payload: bytes) -> Iterator[str]:
        """Stage ``payload`` in a private local file, removed on every exit path."""
        fd, path = tempfile.mkstemp(
            prefix="listings-", suffix=".json", dir=self.scratch_dir
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            yield path
        finally:
            try:
                os.unlink(path)
            except OSError as exc:
                logger.warning("Could not remove scratch file %s: %s", path, exc)
