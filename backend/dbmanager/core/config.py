from typing import Literal

from pydantic import HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: HttpUrl | None = None

    # Used when a caller has no declared connection configuration.
    DB_DEFAULT_TARGET: str = "sqlite:///file:testdb?mode=memory&cache=shared&uri=true"
    DB_DEFAULT_PRINCIPAL: str = "sa"
    DB_DEFAULT_SECRET: str = ""
    DB_DEFAULT_MAX_POOL_SIZE: int = 10
    DB_DEFAULT_CONNECTION_TIMEOUT_MS: int = 30000

    # Pooled connections older than this are closed on checkout.
    DB_POOL_MAX_AGE_SEC: int = 600
    # Per-statement timeout in seconds (Postgres, MySQL, Trino). None or 0 = off.
    DB_STATEMENT_TIMEOUT: int | None = None


settings = Settings()  # type: ignore
