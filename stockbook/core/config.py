"""Environment-driven configuration for Stockbook.

Every knob the service reads lives on ``AppSettings``. Values come from the
process environment first and then from ``.env``/``.env.local`` files, so a
developer can boot the API locally without exporting anything.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Stockbook"
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")

    # An empty value means "SQLite file inside DATA_DIR", see ``database_url``.
    DB_URL: str = Field(default="", validation_alias=AliasChoices("DB_URL", "DATABASE_URL"))

    API_KEY: str = Field(default="", validation_alias=AliasChoices("API_KEY", "API_TOKEN"))
    API_TOKEN: str | None = None
    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 15
    JWT_REFRESH_TTL_DAYS: int = 7
    AUTH_ALLOW_API_KEY: bool = True
    # NoDecode: the env value is a comma separated string, not JSON.
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = Field(default_factory=list)

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    # Purchases are priced in SOURCE_CURRENCY, sales in TARGET_CURRENCY.
    SOURCE_CURRENCY: str = "AUD"
    TARGET_CURRENCY: str = "PHP"
    EXCHANGE_RATE_URL: str = "https://api.frankfurter.app/latest"
    EXCHANGE_RATE_CACHE_MINUTES: int = 60
    EXCHANGE_RATE_TIMEOUT: float = 10.0

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'stockbook.db'}"

    @property
    def API_KEY_VALUE(self) -> str:
        return self.API_KEY or (self.API_TOKEN or "")

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")

    @field_validator("SOURCE_CURRENCY", "TARGET_CURRENCY")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        return value.strip().upper()


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    settings.API_TOKEN = settings.API_KEY_VALUE
    return settings


settings = get_settings()
