"""Settings for the canvas engine, storage and data-source client."""

from functools import lru_cache
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Environment-driven settings; every field reads ``PAGECRAFT_<NAME>``."""

    model_config = SettingsConfigDict(
        env_prefix="PAGECRAFT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Root log level")
    json_logs: bool = Field(default=False, description="Emit one JSON object per log line")

    storage_dir: str = Field(default=".pagecraft", description="Directory for saved canvas state")
    max_document_depth: int = Field(default=64, gt=0, description="Max component nesting depth of a document")

    datasource_timeout: float = Field(default=10.0, gt=0, description="HTTP timeout per data source fetch")
    breaker_fail_max: int = Field(default=5, gt=0, description="Failures before a data source breaker opens")
    breaker_reset_timeout: int = Field(default=30, gt=0, description="Seconds before an open breaker retries")

    template_cache_size: int = Field(default=512, gt=0, description="Parsed template cache size")
    default_library: str = Field(default="general", description="Library tag for unregistered components")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
