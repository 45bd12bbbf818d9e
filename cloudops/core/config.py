"""Core configuration settings.

Centralized configuration using Pydantic Settings for environment
variable management with sensible defaults.
"""

import logging
import os
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Safety checks:
    - Debug mode validation (cannot be True in production)
    - CORS origin validation (no wildcards in production)
    """

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
    app_name: str = "CloudOps Cost Optimizer"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 3009

    # Database
    database_url: str = "sqlite:///./data/cloudops.db"
    database_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    database_max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW")
    database_pool_timeout: int = Field(default=30, alias="DB_POOL_TIMEOUT")
    slow_query_threshold_ms: float = Field(default=500.0, alias="SLOW_QUERY_THRESHOLD_MS")
    enable_query_logging: bool = Field(default=False, alias="ENABLE_QUERY_LOGGING")

    # =========================================================================
    # Upstream services
    # =========================================================================

    # Inventory snapshots are read through the API gateway
    api_gateway_url: str = Field(default="http://api-gateway:3003", alias="API_GATEWAY_URL")
    # Mutating cloud operations are issued by the monitoring service
    monitoring_service_url: str = Field(
        default="http://monitoring-service:3002",
        alias="MONITORING_SERVICE_URL",
    )
    inventory_timeout_seconds: float = Field(default=10.0, alias="INVENTORY_TIMEOUT_SECONDS")
    actuator_timeout_seconds: float = Field(default=30.0, alias="ACTUATOR_TIMEOUT_SECONDS")

    # =========================================================================
    # Scheduled jobs
    # =========================================================================

    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    metrics_collection_interval_minutes: int = Field(
        default=5, ge=1, alias="METRICS_COLLECTION_INTERVAL_MINUTES"
    )
    recommendation_schedule_hour: int = Field(
        default=9, ge=0, le=23, alias="RECOMMENDATION_SCHEDULE_HOUR"
    )
    recommendation_schedule_minute: int = Field(
        default=0, ge=0, le=59, alias="RECOMMENDATION_SCHEDULE_MINUTE"
    )
    # Users the scheduled jobs run for (comma-separated in the environment)
    monitored_user_ids: Annotated[list[str], NoDecode] = Field(
        default_factory=list, alias="MONITORED_USER_IDS"
    )

    # CORS (no wildcards allowed in production)
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )

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

        hostname = os.getenv("HOSTNAME", "").lower()
        if any(x in hostname for x in ["prod", "production", "prd"]):
            return "production"

        return "development"

    @model_validator(mode="after")
    def validate_debug_mode(self):
        """Prevent debug mode in production."""
        if self.environment == "production" and self.debug:
            logger.error(
                "DEBUG mode cannot be enabled in production! "
                "Set DEBUG=false or ENVIRONMENT=development"
            )
            raise ValueError("DEBUG cannot be True in production environment")

        if self.debug and self.environment != "development":
            logger.warning(
                f"WARNING: DEBUG mode enabled in {self.environment} environment."
            )

        return self

    @model_validator(mode="after")
    def validate_cors_origins(self):
        """Prevent wildcard CORS in production."""
        if self.environment == "production":
            for origin in self.cors_origins:
                if origin.strip() == "*":
                    logger.error(
                        "Wildcard (*) CORS origin not allowed in production! "
                        "Set explicit origins in CORS_ORIGINS"
                    )
                    raise ValueError("Wildcard CORS origin (*) not allowed in production")

        return self

    @field_validator("cors_origins", "monitored_user_ids", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: str | list[str] | None) -> list[str]:
        """Parse a comma-separated string or list into a clean list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return [str(item).strip() for item in v if str(item).strip()]

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
