"""Configuration settings for request instrumentation."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from request_metrics.observability.constants import (
    DEFAULT_EXCLUDE_PREFIX,
    REQUEST_EVENT,
    ROOT_PLACEHOLDER,
    SERVICE_NAME,
)


class Settings(BaseSettings):
    """Instrumentation settings loaded from environment variables."""

    # Service identification
    service_name: str = SERVICE_NAME
    debug: bool = False

    # Middleware
    exclude_prefixes: list[str] = [DEFAULT_EXCLUDE_PREFIX]
    request_event_name: str = REQUEST_EVENT

    # Payload filtering
    seed_default_filters: bool = True
    project_root: str | None = None  # defaults to the working directory
    root_placeholder: str = ROOT_PLACEHOLDER

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    model_config = SettingsConfigDict(
        env_prefix="REQUEST_METRICS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
