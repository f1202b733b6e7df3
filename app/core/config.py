"""Core configuration settings.

Centralized configuration using Pydantic Settings for environment
variable management with sensible defaults. Settings are read once at
process start and are not reloaded while jobs are running.
"""

import logging
import os
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # =========================================================================
    # Environment Detection
    # =========================================================================

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        alias="ENVIRONMENT",
    )

    # Application
    app_name: str = "Attendance Sync Platform"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str = "sqlite:///./data/attendance_sync.db"
    database_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    database_max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW")
    database_pool_timeout: int = Field(default=30, alias="DB_POOL_TIMEOUT")
    slow_query_threshold_ms: float = Field(default=500.0, alias="SLOW_QUERY_THRESHOLD_MS")

    # =========================================================================
    # External time-and-attendance system
    # =========================================================================

    biotime_base_url: str = Field(default="https://biotime.example.com/", alias="BIOTIME_API_URL")
    biotime_username: str = Field(default="", alias="BIOTIME_USERNAME")
    biotime_password: str = Field(default="", alias="BIOTIME_PASSWORD")
    biotime_auth_scheme: str = Field(default="JWT", alias="BIOTIME_AUTH_SCHEME")
    # The vendor appliance usually ships a self-signed certificate
    biotime_verify_ssl: bool = Field(default=False, alias="BIOTIME_VERIFY_SSL")
    biotime_auth_timeout_seconds: float = 30.0

    # Paging - employees are record-heavy and slow, attendance rows are light
    employee_page_size: int = 50
    employee_page_timeout_seconds: float = 45.0
    employee_backoff_base_seconds: float = 2.0
    employee_backoff_cap_seconds: float = 30.0
    employee_page_delay_seconds: float = 0.2

    attendance_page_size: int = 200
    attendance_page_timeout_seconds: float = 60.0
    attendance_backoff_base_seconds: float = 3.0
    attendance_backoff_cap_seconds: float = 45.0
    attendance_page_delay_seconds: float = 0.3

    sync_max_retries: int = 3
    sync_default_window_days: int = 7

    # Scheduling
    employee_sync_interval_minutes: int = 360
    attendance_sync_interval_minutes: int = 5

    # =========================================================================
    # Service supervision
    # =========================================================================

    max_restart_attempts: int = 5
    restart_delay_seconds: float = 3.0
    restart_count_reset_seconds: float = 3600.0
    heartbeat_check_interval_seconds: float = 60.0
    heartbeat_timeout_seconds: float = 900.0
    resource_check_interval_seconds: float = 30.0
    memory_high_percent: float = 90.0
    memory_critical_percent: float = 95.0
    cpu_high_percent: float = 90.0
    cpu_critical_percent: float = 95.0
    pressure_cooldown_seconds: float = 30.0
    command_queue_size: int = 100
    emergency_stop_timeout_seconds: float = 5.0
    event_sink_timeout_seconds: float = 10.0

    # =========================================================================
    # Alerting
    # =========================================================================

    notification_enabled: bool = False
    teams_webhook_url: str | None = None
    notification_min_severity: str = "warning"  # info, warning, error, critical
    notification_cooldown_minutes: int = 30
    stale_sync_multiplier: float = 2.0
    alert_check_interval_minutes: int = 15

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("environment", mode="before")
    @classmethod
    def detect_environment(cls, v: str | None) -> str:
        """Auto-detect environment from common environment variables."""
        if v:
            return v.lower()

        if os.getenv("PRODUCTION") or os.getenv("PROD"):
            return "production"
        if os.getenv("STAGING"):
            return "staging"

        return "development"

    @field_validator("biotime_base_url")
    @classmethod
    def normalize_base_url(cls, v: str) -> str:
        """Endpoints are joined relative to the base, so keep a trailing slash."""
        return v if v.endswith("/") else f"{v}/"

    @field_validator(
        "employee_page_size",
        "attendance_page_size",
        "sync_max_retries",
        "sync_default_window_days",
        "command_queue_size",
    )
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @model_validator(mode="after")
    def validate_debug_mode(self):
        """Prevent debug mode in production."""
        if self.environment == "production" and self.debug:
            logger.error(
                "DEBUG mode cannot be enabled in production! "
                "Set DEBUG=false or ENVIRONMENT=development"
            )
            raise ValueError("DEBUG cannot be True in production environment")
        return self

    @model_validator(mode="after")
    def validate_backoff(self):
        """Backoff base must be positive and never above its cap."""
        for prefix in ("employee", "attendance"):
            base = getattr(self, f"{prefix}_backoff_base_seconds")
            cap = getattr(self, f"{prefix}_backoff_cap_seconds")
            if base <= 0:
                raise ValueError(f"{prefix}_backoff_base_seconds must be positive")
            if cap < base:
                raise ValueError(
                    f"{prefix}_backoff_cap_seconds ({cap}) must be >= base ({base})"
                )
        return self

    @model_validator(mode="after")
    def validate_pressure_thresholds(self):
        """High-water marks must sit at or below their critical marks."""
        if self.memory_high_percent > self.memory_critical_percent:
            raise ValueError("memory_high_percent must be <= memory_critical_percent")
        if self.cpu_high_percent > self.cpu_critical_percent:
            raise ValueError("cpu_high_percent must be <= cpu_critical_percent")
        return self

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_configured(self) -> bool:
        """Check if external system credentials are present."""
        return all([
            self.biotime_base_url,
            self.biotime_username,
            self.biotime_password,
        ])


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
