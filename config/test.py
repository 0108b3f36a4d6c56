from __future__ import annotations

from pydantic_settings import SettingsConfigDict

from .base import AppSettings


class TestSettings(AppSettings):
    """Settings for the pytest suite: SQLite, cheap hashing, no outbound mail."""
    DATABASE_URL: str = "sqlite+aiosqlite:///./council_test.db"
    APP_ENV: str = "test"
    DEBUG: bool = False
    SECRET_KEY: str | None = "test-secret-key"
    BCRYPT_ROUNDS: int = 4
    MAIL_BACKEND: str = "console"

    model_config = SettingsConfigDict(env_prefix="TEST_", extra="ignore")
