"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports three modes:
    - DEVELOPMENT: In-memory document and profile stores (no Firebase project needed)
    - STAGING / PRODUCTION: Firestore via firebase-admin

Independently of the mode, REMOTE_STORE_ENABLED decides whether the collections
listed in REMOTE_COLLECTIONS prefer the remote store at all. Collections not
listed (or every collection, when the flag is off) live only in the JSON files
under DATA_DIRECTORY.

Usage:
    from restohub.core.config import get_settings

    settings = get_settings()
    if settings.prefers_remote("orders"):
        ...

Version: 1.0.0
"""

import logging
import sys
from enum import Enum
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local testing with in-memory stores
        PRODUCTION: Live environment backed by Firestore
        STAGING: Pre-production with a separate Firebase project
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class RecomputeMode(str, Enum):
    """When analytics are rebuilt after an order mutation."""
    SYNC = "sync"
    DEFERRED = "deferred"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    The Firebase service-account file should NEVER be committed to version control.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="RestoHub Restaurant Backend",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8001,
        description="API server port"
    )

    # ==========================================================================
    # LOCAL JSON STORAGE
    # ==========================================================================

    data_directory: str = Field(
        default="jsonfiles",
        description="Directory holding one JSON file per collection"
    )
    file_lock_timeout: int = Field(
        default=10,
        description="Seconds to wait for a collection file lock"
    )
    export_directory: str = Field(
        default="exports",
        description="Directory for spreadsheet exports"
    )

    # ==========================================================================
    # REMOTE DOCUMENT STORE (FIRESTORE)
    # ==========================================================================

    remote_store_enabled: bool = Field(
        default=True,
        description="Prefer the remote document store for remote collections"
    )
    remote_collections: str = Field(
        default="menu,orders,availability",
        description="Comma-separated collections that prefer the remote store"
    )
    firebase_credentials_path: Optional[str] = Field(
        default=None,
        description="Path to the Firebase service-account JSON file"
    )
    firebase_project_id: Optional[str] = Field(
        default=None,
        description="Firebase project id (when using application default credentials)"
    )

    # ==========================================================================
    # CACHE
    # ==========================================================================

    cache_enabled: bool = Field(
        default=True,
        description="Serve collection reads from the in-memory TTL cache"
    )

    # ==========================================================================
    # ANALYTICS / MIGRATION
    # ==========================================================================

    analytics_recompute_mode: RecomputeMode = Field(
        default=RecomputeMode.SYNC,
        description="Rebuild analytics inline (sync) or via Celery (deferred)"
    )
    migration_min_confidence: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Minimum match confidence for an order to be migratable"
    )
    migration_report_max_age_seconds: int = Field(
        default=900,
        description="Reports older than this are rejected by the migrator"
    )

    # ==========================================================================
    # REDIS / CELERY
    # ==========================================================================

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )
    celery_worker_concurrency: int = Field(
        default=2,
        ge=1,
        description="Worker processes; every task rewrites whole JSON or spreadsheet files"
    )
    celery_result_expires: int = Field(
        default=3600,
        ge=60,
        description="Seconds task results (export paths, migration stats) stay in Redis"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def use_real_services(self) -> bool:
        """Check if Firestore should be used instead of the in-memory stores."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)

    @property
    def remote_collections_list(self) -> list[str]:
        """Get remote collections as a list."""
        return [c.strip() for c in self.remote_collections.split(",") if c.strip()]

    def prefers_remote(self, collection: str) -> bool:
        """Whether a collection should try the remote store first."""
        return self.remote_store_enabled and collection in self.remote_collections_list

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_production_config(self) -> list[str]:
        """
        Validate that all required production settings are configured.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        missing = []

        if self.use_real_services and self.remote_store_enabled:
            if not self.firebase_credentials_path and not self.firebase_project_id:
                missing.append("FIREBASE_CREDENTIALS_PATH or FIREBASE_PROJECT_ID")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are loaded only once.

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured root logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)

    return logging.getLogger("restohub")


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
