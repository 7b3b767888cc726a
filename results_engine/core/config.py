"""Application configuration settings."""

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "School Results Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Grading
    DEFAULT_CURRICULUM: str = "O_LEVEL"

    # Batch report generation
    BATCH_MAX_WORKERS: int = 1
    BATCH_ITEM_TIMEOUT_SECONDS: float | None = None
    REPORT_OUTPUT_DIR: Path = Path("reports")

    @field_validator("DEFAULT_CURRICULUM", mode="before")
    @classmethod
    def normalize_curriculum(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper().replace("-", "_")
        return v

    @field_validator("BATCH_MAX_WORKERS")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("BATCH_MAX_WORKERS must be at least 1")
        return v

    @property
    def log_level(self) -> str:
        """Effective log level; DEBUG overrides LOG_LEVEL."""
        return "DEBUG" if self.DEBUG else self.LOG_LEVEL.upper()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
