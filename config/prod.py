from __future__ import annotations

from pathlib import Path
from pydantic import model_validator
from pydantic_settings import SettingsConfigDict

from .base import AppSettings

ROOT = Path(__file__).resolve().parents[1]
ENV_FILE = ROOT / "env" / ".env.production"


class ProdSettings(AppSettings):
    APP_ENV: str = "production"
    DEBUG: bool = False
    MAIL_BACKEND: str = "smtp"

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def require_secret_key(self) -> "ProdSettings":
        if not self.SECRET_KEY or not self.SECRET_KEY.strip():
            raise ValueError("SECRET_KEY must be set in production")
        return self
