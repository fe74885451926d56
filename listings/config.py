"""
Configuration and settings for the listings backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Remote FTP endpoint
    ftp_host: Optional[str] = Field(default=None)
    ftp_port: int = Field(default=21)
    ftp_user: Optional[str] = Field(default=None)
    ftp_pass: Optional[str] = Field(default=None)
    ftp_secure: bool = Field(default=False)
    ftp_timeout: float = Field(default=30.0)

    # Remote layout
    remote_db: str = Field(default="imoveis/dados.json")
    assets_dir: str = Field(default="imoveis")

    # Local scratch files used to stage the store before upload
    tmp_dir: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)
    enable_debug_routes: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Comma-separated list of allowed origins
    cors_origins: str = Field(default="*")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, v):
        return str(v).strip().upper() if v else "INFO"

    @property
    def cors_origin_list(self) -> List[str]:
        return [s.strip() for s in self.cors_origins.split(",") if s.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
