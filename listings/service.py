"""
Create, list, update and delete listings together with their images.

Every operation opens exactly one remote session, re-reads the store,
applies its change and writes the whole store back. Nothing is cached
between calls. Two concurrent writers race and the last save wins.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from listings.assets import AssetFile, AssetManager
from listings.records import (
    Record,
    RecordFields,
    find_record,
    next_record_id,
)
from listings.remote import RemoteSession, RemoteSessionFactory, session_scope
from listings.store import DocumentStore

logger = logging.getLogger(__name__)

STORE_PREVIEW_CHARS = 200


class RecordService:
    def __init__(
        self,
        sessions: RemoteSessionFactory,
        store: DocumentStore,
        assets: AssetManager,
    ):
        self.sessions = sessions
        self.store = store
        self.assets = assets

    def list_records(self) -> List[Record]:
        with session_scope(self.sessions) as session:
            return self.store.load(session)

    def create_record(
        self, fields: RecordFields, files: Sequence[AssetFile] = ()
    ) -> int:
        with session_scope(self.sessions) as session:
            records = self.store.load(session)
            new_id = next_record_id(records)
            images = self.assets.upload_set(session, new_id, files)
            records.append(fields.build(new_id, images))
            self._save(session, records, new_id, images)
        logger.info("Created listing %s with %d images", new_id, len(images))
        return new_id

    def update_record(
        self,
        record_id: int,
        fields: RecordFields,
        files: Optional[Sequence[AssetFile]] = None,
    ) -> Record:
        with session_scope(self.sessions) as session:
            records = self.store.load(session)
            record = find_record(records, record_id)
            fields.apply_to(record)
            uploaded: List[str] = []
            if files:
                self.assets.remove_set(session, record.images)
                uploaded = self.assets.upload_set(session, record.id, files)
                record.images = uploaded
            self._save(session, records, record_id, uploaded)
        logger.info("Updated listing %s", record_id)
        return record

    def delete_record(self, record_id: int) -> None:
        with session_scope(self.sessions) as session:
            records = self.store.load(session)
            record = find_record(records, record_id)
            self.assets.remove_set(session, record.images)
            records.remove(record)
            self._save(session, records, record_id, [])
        logger.info("Deleted listing %s", record_id)

    def inspect_store(self) -> dict:
        """Diagnostic view of the raw canonical object."""
        raw = self.store.fetch_raw()
        text = raw.decode("utf-8", errors="replace")
        return {
            "remote_db": self.store.remote_path,
            "size": len(text),
            "head": text[:STORE_PREVIEW_CHARS],
        }

    def list_remote_dir(self, remote_dir: str) -> List[str]:
        with session_scope(self.sessions) as session:
            return session.list_dir(remote_dir)

    def _save(
        self,
        session: RemoteSession,
        records: Sequence[Record],
        record_id: int,
        uploaded: Sequence[str],
    ) -> None:
        try:
            self.store.save(records, session)
        except Exception:
            if uploaded:
                logger.error(
                    "Saving listing %s failed after upload; orphaned assets: %s",
                    record_id,
                    ", ".join(uploaded),
                )
            raise
