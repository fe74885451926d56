"""
Error taxonomy for the remote persistence layer.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for every persistence failure."""


class RemoteConnectionError(StoreError, ConnectionError):
    """The remote endpoint could not be reached or rejected the login."""


class NotFound(StoreError):
    """A remote object does not exist."""


class RecordNotFound(NotFound):
    def __init__(self, record_id: int):
        super().__init__(f"Listing {record_id} not found")
        self.record_id = record_id


class CorruptStore(StoreError):
    """The store object exists but does not hold a valid record array."""


class UploadFailure(StoreError):
    def __init__(self, asset_name: str, message: str | None = None):
        super().__init__(message or f"Failed to upload asset {asset_name}")
        self.asset_name = asset_name


class RemoteOperationError(StoreError):
    """The remote server refused a command for a reason other than a missing object."""
