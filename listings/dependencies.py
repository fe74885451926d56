"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from listings.assets import AssetManager
from listings.config import get_settings
from listings.remote import FtpSessionFactory, InMemoryRemoteServer, RemoteSessionFactory
from listings.service import RecordService
from listings.store import DocumentStore

_session_factory: RemoteSessionFactory | None = None
_record_service: RecordService | None = None


def get_session_factory() -> RemoteSessionFactory:
    """
    Return a singleton session factory. Without an FTP host the in-memory
    server is used so local runs and tests need no remote endpoint.
    """
    global _session_factory
    if _session_factory:
        return _session_factory

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.ftp_host:
        _session_factory = InMemoryRemoteServer()
    else:
        _session_factory = FtpSessionFactory(
            host=settings.ftp_host,
            user=settings.ftp_user or "",
            password=settings.ftp_pass or "",
            port=settings.ftp_port,
            secure=settings.ftp_secure,
            timeout=settings.ftp_timeout,
        )
    return _session_factory


def get_record_service() -> RecordService:
    global _record_service
    if _record_service:
        return _record_service

    settings = get_settings()
    sessions = get_session_factory()
    _record_service = RecordService(
        sessions=sessions,
        store=DocumentStore(sessions, settings.remote_db, scratch_dir=settings.tmp_dir),
        assets=AssetManager(settings.assets_dir),
    )
    return _record_service
