"""
Configuration for the Media Pipeline service.

Settings are read from the environment (prefix ``MEDIA_PIPELINE_``, nested
sections separated by ``__``) and an optional ``.env`` file, e.g.::

    MEDIA_PIPELINE_SYSTEM__LOG_LEVEL=DEBUG
    MEDIA_PIPELINE_AUTH__TOKENS='{"dev-token": "owner-1"}'
"""

from functools import lru_cache
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.constants import CompositorConstants, LibraryConstants, SystemConstants


class SystemSettings(BaseModel):
    """Process-wide settings"""

    log_level: str = SystemConstants.LOG_LEVEL_DEFAULT
    debug: bool = False

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return value


class APISettings(BaseModel):
    """HTTP server settings"""

    host: str = "0.0.0.0"
    port: int = Field(8000, ge=1, le=65535)
    cors_enabled: bool = True
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class StorageSettings(BaseModel):
    """Object storage settings"""

    root_path: str = f"{SystemConstants.DATA_DIR}/storage"
    bucket: str = LibraryConstants.DEFAULT_BUCKET
    public_base_url: str = "http://localhost:8000/storage"
    max_upload_mb: int = Field(LibraryConstants.DEFAULT_MAX_UPLOAD_MB, ge=1)
    fetch_timeout_seconds: float = Field(LibraryConstants.DEFAULT_FETCH_TIMEOUT_SECONDS, gt=0)
    fetch_max_mb: int = Field(LibraryConstants.DEFAULT_FETCH_MAX_MB, ge=1)


class DatabaseSettings(BaseModel):
    """Relational store settings"""

    url: str = f"sqlite:///{SystemConstants.DATA_DIR}/media_library.db"


class AuthSettings(BaseModel):
    """Bearer token -> owner id"""

    tokens: Dict[str, str] = Field(default_factory=dict)


class EditorSettings(BaseModel):
    """Image editor settings"""

    jpeg_quality: int = Field(CompositorConstants.JPEG_QUALITY, ge=1, le=100)


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_prefix="MEDIA_PIPELINE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    environment: str = "development"
    system: SystemSettings = Field(default_factory=SystemSettings)
    api: APISettings = Field(default_factory=APISettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    editor: EditorSettings = Field(default_factory=EditorSettings)

    def to_dict(self) -> Dict[str, Any]:
        """Settings as a plain dictionary, tokens replaced by owner ids"""
        data = self.model_dump()
        data["auth"] = {"owners": sorted(set(self.auth.tokens.values()))}
        return data


@lru_cache()
def get_settings() -> Settings:
    """Cached application settings"""
    return Settings()
