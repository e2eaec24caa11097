"""Application configuration using Pydantic Settings."""

import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_env: str = "development"
    log_level: str = "INFO"

    # Database (tracked state + visible annotations)
    database_url: str = "sqlite:///findingsync.db"
    database_echo: bool = False

    # Celery
    celery_broker_url: str = "redis://localhost:6379/1"
    celery_result_backend: str = "redis://localhost:6379/2"

    # In-process workers
    worker_concurrency: int = 2

    # Workspace
    workspace_root: str = "."

    # Tracking
    default_category: str = "findingsync.on_the_fly"
    file_encoding: str = "utf-8"
    unknown_creation_date_on_first_analysis: bool = False
    persist_after_apply: bool = True

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure the log level is one the logging module knows."""
        level = v.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("worker_concurrency", mode="after")
    @classmethod
    def validate_worker_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("worker_concurrency must be at least 1")
        return v

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the configured level to the package logger."""
    settings = settings or get_settings()
    logger = logging.getLogger("findingsync")
    logger.setLevel(settings.log_level)
    if not logging.getLogger().handlers and not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        logger.addHandler(handler)
