"""
Configuration settings for the Patient Registry.
Reads from environment variables / .env; every value has a working default.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    APP_NAME: str = "Patient Registration System"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Storage
    DATA_DIR: Path = Field(default=_REPO_ROOT / "data", validation_alias="DATA_DIR")
    DB_NAME: str = Field(default="patient_registration_db", validation_alias="DB_NAME")
    DB_SETTLE_DELAY: float = Field(default=0.2, validation_alias="DB_SETTLE_DELAY")

    # Handle initialization retry (mutations are never retried)
    INIT_MAX_ATTEMPTS: int = Field(default=3, validation_alias="INIT_MAX_ATTEMPTS")
    INIT_BACKOFF_FACTOR: float = Field(default=2, validation_alias="INIT_BACKOFF_FACTOR")

    # Cross-tab sync
    BROADCAST_CHANNEL: str = Field(default="patient_app_channel", validation_alias="BROADCAST_CHANNEL")
    LIVENESS_INTERVAL_SECONDS: float = Field(default=30, validation_alias="LIVENESS_INTERVAL_SECONDS")

    # API Server
    API_HOST: str = Field(default="127.0.0.1", validation_alias="API_HOST")
    API_PORT: int = Field(default=8000, validation_alias="API_PORT")

    @property
    def database_path(self) -> Path:
        return self.DATA_DIR / f"{self.DB_NAME}.db"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
