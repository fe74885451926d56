"""
Listing images stored next to the document on the remote server.

Asset names follow ``{record_id}img{ordinal}{ext}``; the record id prefix
ties each image to exactly one listing.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import BinaryIO, List, Sequence

from listings.errors import RemoteConnectionError, StoreError, UploadFailure
from listings.remote import RemoteSession, remote_join

logger = logging.getLogger(__name__)


@dataclass
class AssetFile:
    """An uploaded file waiting to be pushed to the remote server."""

    filename: str
    stream: BinaryIO


def asset_name(record_id: int, ordinal: int, filename: str) -> str:
    ext = os.path.splitext(os.path.basename(filename or ""))[1].lower()
    return f"{record_id}img{ordinal}{ext}"


class AssetManager:
    def __init__(self, assets_dir: str):
        self.assets_dir = assets_dir

    def remote_path(self, name: str) -> str:
        return remote_join(self.assets_dir, name)

    def upload_set(
        self, session: RemoteSession, record_id: int, files: Sequence[AssetFile]
    ) -> List[str]:
        """
        Upload ``files`` in order and return their asset names.

        The first failure aborts the batch. Assets already pushed in the
        batch are left on the server and logged as orphans.
        """
        uploaded: List[str] = []
        for ordinal, asset in enumerate(files, start=1):
            name = asset_name(record_id, ordinal, asset.filename)
            try:
                session.store(self.remote_path(name), asset.stream)
            except RemoteConnectionError:
                self._log_orphans(record_id, uploaded)
                raise
            except StoreError as exc:
                self._log_orphans(record_id, uploaded)
                raise UploadFailure(name) from exc
            uploaded.append(name)
        if uploaded:
            logger.info("Uploaded %d images for listing %s", len(uploaded), record_id)
        return uploaded

    def remove_set(self, session: RemoteSession, names: Sequence[str]) -> List[str]:
        """Best-effort removal; returns the names that were actually removed."""
        removed = []
        for name in names or []:
            try:
                session.remove(self.remote_path(name))
            except StoreError as exc:
                logger.warning("Failed to remove asset %s: %s", name, exc)
                continue
            removed.append(name)
        return removed

    def _log_orphans(self, record_id: int, names: Sequence[str]) -> None:
        if names:
            logger.warning(
                "Upload for listing %s aborted; orphaned assets left on server: %s",
                record_id,
                ", ".join(names),
            )
