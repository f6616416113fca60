"""
Application settings and configuration management using Pydantic Settings.
"""
from datetime import time

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    app_name: str = Field(default="Table Reservation Engine", description="Application name")
    app_env: str = Field(default="development", description="Environment (development, staging, production)")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    api_v1_prefix: str = Field(default="/api/v1", description="Prefix for versioned API routes")

    # Database Configuration
    database_url: str = Field(default="sqlite:///./reservations.db", description="Database connection URL")
    db_isolation_level: str = Field(default="SERIALIZABLE", description="Transaction isolation level")
    db_echo: bool = Field(default=False, description="Log all SQL statements")

    # Restaurant defaults applied when a restaurant has no hours configured
    default_work_starts: str = Field(default="10:00", description="Default opening time (HH:MM)")
    default_work_ends: str = Field(default="23:00", description="Default closing time (HH:MM)")

    # Admission rules
    closing_buffer_minutes: int = Field(default=60, ge=0, description="No guest bookings this close to closing")
    proximity_buffer_minutes: int = Field(default=60, ge=1, description="Minimum spacing between bookings on a table")
    staff_bypass_admission: bool = Field(
        default=True,
        description="Staff requests skip every admission rule when enabled"
    )

    # Lifecycle
    pending_expiry_minutes: int = Field(
        default=60,
        ge=1,
        description="Unconfirmed requests older than this are declined by the sweep"
    )

    # Concurrency
    store_timeout_seconds: float = Field(default=10.0, gt=0, description="Upper bound for lock and store waits")
    admission_retry_attempts: int = Field(default=1, ge=0, description="Retries after an aborted admission transaction")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed_levels:
            raise ValueError(f"log_level must be one of {allowed_levels}")
        return v_upper

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed_envs = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed_envs:
            raise ValueError(f"app_env must be one of {allowed_envs}")
        return v_lower

    @field_validator("default_work_starts", "default_work_ends")
    @classmethod
    def validate_time_of_day(cls, v: str) -> str:
        """Validate HH:MM time-of-day strings."""
        try:
            time.fromisoformat(v)
        except ValueError:
            raise ValueError(f"expected HH:MM time of day, got {v!r}")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"


# Global settings instance
settings = Settings()
