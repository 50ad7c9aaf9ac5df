"""Application settings and configuration."""
import json
import logging
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Volunteer Signup Service"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"  # development, staging, production

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1

    # Entity store
    storage_backend: str = "sql"  # sql, memory
    projects_table: str = "Projects"
    slots_table: str = "Slots"
    volunteers_table: str = "SlotVolunteers"

    # Database (backs the sql entity store)
    database_url: str = "sqlite+aiosqlite:///./data/signups.db"
    database_echo: bool = False
    db_pool_size: int = 10
    db_max_overflow: int = 20

    @field_validator("database_url", mode="before")
    @classmethod
    def fix_database_url(cls, v: str) -> str:
        """Auto-convert postgresql:// URLs to postgresql+asyncpg://."""
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+asyncpg://", 1)
            if v.startswith("postgres://"):
                return v.replace("postgres://", "postgresql+asyncpg://", 1)
        return v

    @field_validator("storage_backend", mode="before")
    @classmethod
    def normalize_storage_backend(cls, v: str) -> str:
        v = (v or "sql").strip().lower()
        if v not in ("sql", "memory"):
            raise ValueError("STORAGE_BACKEND must be 'sql' or 'memory'")
        return v

    # Signup and withdrawal: total attempts when the slot write loses a version race
    signup_max_attempts: int = 5

    @field_validator("signup_max_attempts")
    @classmethod
    def validate_signup_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("SIGNUP_MAX_ATTEMPTS must be at least 1")
        return v

    # Microsoft identity (admin endpoints)
    microsoft_tenant_id: Optional[str] = None
    microsoft_client_id: Optional[str] = None
    microsoft_jwks_timeout: float = 10.0
    microsoft_jwks_requests_per_minute: int = 5

    # CORS - stored as str to prevent pydantic-settings auto-JSON-parse failures
    cors_origins: str = "https://yacnetadmin.github.io,http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list, stripping trailing slashes."""
        v = self.cors_origins.strip()
        if v.startswith("["):
            try:
                origins = json.loads(v)
                return [o.rstrip("/") for o in origins]
            except json.JSONDecodeError:
                pass
        return [origin.strip().strip("'\"").rstrip("/") for origin in v.split(",") if origin.strip()]

    # Rate limiting (slowapi); use a redis:// URL to share counters across workers
    rate_limit_enabled: bool = True
    rate_limit_storage_url: str = "memory://"
    signup_rate_limit: str = "10/minute"
    default_rate_limit: str = "100/minute"

    # Error tracking
    sentry_dsn: Optional[str] = None

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == "development"

    def validate_production_secrets(self) -> None:
        """Validate that production deployments are fully configured.

        In production/staging the app refuses to start without Microsoft
        identity configuration, since admin endpoints would otherwise be
        unusable.
        """
        if self.environment in ("production", "staging"):
            if not self.microsoft_client_id:
                raise ValueError("MICROSOFT_CLIENT_ID is required in production!")
            if self.storage_backend == "memory":
                raise ValueError("STORAGE_BACKEND=memory loses all signups on restart; use sql in production!")

        if self.environment == "production":
            # Keep SQL (and volunteer contact details) out of the logs
            if self.database_echo:
                raise ValueError(
                    "DATABASE_ECHO must be False in production to prevent SQL queries in logs"
                )
            if self.rate_limit_storage_url.startswith("memory"):
                logger.warning(
                    "Rate limiter using in-memory storage - not suitable for multi-worker production"
                )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Automatically validates that production/staging deployments have
    proper configuration - the app will refuse to start otherwise.
    """
    s = Settings()
    s.validate_production_secrets()
    return s
