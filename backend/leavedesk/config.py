from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """LeaveDesk settings, read from ``LEAVEDESK_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="LEAVEDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "LeaveDesk"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    database_url: str = "postgresql+asyncpg://leavedesk:leavedesk@db:5432/leavedesk"
    # Migrations own the schema outside local development.
    create_schema_on_startup: bool = False

    # Comma-separated when set from the environment.
    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:5173", "http://localhost:8000"]

    outbox_max_attempts: int = Field(default=5, ge=1)
    outbox_batch_size: int = Field(default=100, ge=1)
    outbox_claim_seconds: int = Field(default=300, gt=0)
    worker_interval_seconds: int = Field(default=86400, gt=0)

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
