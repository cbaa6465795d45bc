"""Application configuration using Pydantic BaseSettings."""

import logging

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database Configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./illustrate.db", alias="DATABASE_URL")
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Media storage (original artifacts plus scaled tiers)
    media_dir: str = Field(default="./media", alias="MEDIA_DIR")

    # Provider credentials
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    stability_api_key: str = Field(default="", alias="STABILITY_API_KEY")
    replicate_api_token: str = Field(default="", alias="REPLICATE_API_TOKEN")
    fal_api_key: str = Field(default="", alias="FAL_API_KEY")
    hugging_face_token: str = Field(default="", alias="HUGGING_FACE_TOKEN")
    google_api_key: str = Field(default="", alias="GOOGLE_API_KEY")

    # HTTP transport
    http_timeout_seconds: float = Field(default=120.0, alias="HTTP_TIMEOUT_SECONDS")

    # Orchestration
    max_parallel_requests: int = Field(default=4, alias="MAX_PARALLEL_REQUESTS")
    poll_interval_scale: float = Field(default=1.0, alias="POLL_INTERVAL_SCALE")

    # Queue maintenance
    failed_job_retention_seconds: int = Field(default=300, alias="FAILED_JOB_RETENTION_SECONDS")
    cleanup_interval_seconds: int = Field(default=60, alias="CLEANUP_INTERVAL_SECONDS")

    @model_validator(mode="after")
    def validate_numeric_config(self) -> "Settings":
        """Validate numeric configuration on startup.

        Fails fast with a readable message when limits are non-positive.
        Validation is skipped in test environments so fixtures can use tiny values.
        """
        if self.app_env in ("test", "testing"):
            return self

        invalid = []
        if self.max_parallel_requests < 1:
            invalid.append("MAX_PARALLEL_REQUESTS must be at least 1")
        if self.http_timeout_seconds <= 0:
            invalid.append("HTTP_TIMEOUT_SECONDS must be positive")
        if self.poll_interval_scale <= 0:
            invalid.append("POLL_INTERVAL_SCALE must be positive")
        if self.cleanup_interval_seconds < 1:
            invalid.append("CLEANUP_INTERVAL_SECONDS must be at least 1")
        if self.failed_job_retention_seconds < 0:
            invalid.append("FAILED_JOB_RETENTION_SECONDS cannot be negative")

        if invalid:
            error_msg = "Invalid configuration:\n\n" + "\n".join(f"  - {m}" for m in invalid)
            error_msg += "\n\nPlease update your .env file and restart."
            raise ValueError(error_msg)

        return self


def configure_logging(settings: Settings) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development: Console output for human readability
    """
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    if settings.app_env == "production":
        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(),
            cache_logger_on_first_use=True,
        )
    else:
        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.dev.ConsoleRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(),
            cache_logger_on_first_use=True,
        )
