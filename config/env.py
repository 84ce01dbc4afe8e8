"""Deployment settings loaded from environment variables and `.env`."""
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent


class EnvSettings(BaseSettings):
    """Values that differ between deployments. Django settings are built from these."""

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    ledger_app_name: str = "Ledger"
    django_debug: bool = False
    # Development fallback; `manage.py check --deploy` flags it.
    django_secret_key: str = "django-insecure-ledger-development-only"
    django_allowed_hosts: Annotated[list[str], NoDecode] = ["localhost", "127.0.0.1"]

    # Database
    db_engine: Literal["sqlite", "postgres"] = "sqlite"
    db_name: str | None = None
    db_user: str = "ledger"
    db_password: str = ""
    db_host: str = "localhost"
    db_port: int = 5432
    db_conn_max_age: int = 60
    db_timeout: int = 20

    # HTTP
    cors_allowed_origins: Annotated[list[str], NoDecode] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("django_allowed_hosts", "cors_allowed_origins", mode="before")
    @classmethod
    def split_comma_list(cls, value):
        """Accept `a,b,c` in the environment as well as a real list."""
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("db_engine", mode="before")
    @classmethod
    def lower_db_engine(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


@lru_cache
def get_env_settings() -> EnvSettings:
    """Get cached settings instance."""
    return EnvSettings()
