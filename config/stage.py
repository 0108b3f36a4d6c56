from __future__ import annotations

from pathlib import Path
from pydantic import model_validator
from pydantic_settings import SettingsConfigDict

from config.base import AppSettings
from config.database import get_database_url

ROOT = Path(__file__).resolve().parents[1]
ENV_FILE = ROOT / "env" / ".env.staging"


class StageSettings(AppSettings):
    APP_ENV: str = "stage"
    DEBUG: bool = False

    # Database components
    DB_DRIVER: str = "postgresql+asyncpg"
    DB_HOST: str | None = None
    DB_PORT: int = 5432
    DB_USER: str | None = None
    DB_PASSWORD: str | None = None
    DB_NAME: str | None = None

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def build_database_url(self) -> "StageSettings":
        """Construct database URL from components when they are provided"""
        if self.DB_HOST:
            self.DATABASE_URL = get_database_url(
                driver=self.DB_DRIVER,
                host=self.DB_HOST,
                port=self.DB_PORT,
                user=self.DB_USER,
                password=self.DB_PASSWORD,
                name=self.DB_NAME,
            )
        return self
