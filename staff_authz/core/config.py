"""
Application Configuration
Environment variables and settings management
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List, Optional, Union


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    ENVIRONMENT: str = Field(default="development", description="Application environment")
    DEBUG: bool = Field(default=False, description="Debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # Database
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./staff_authz.db",
        description="Async SQLAlchemy database URL"
    )
    DB_POOL_SIZE: int = Field(default=10, description="Database connection pool size")
    DB_MAX_OVERFLOW: int = Field(default=20, description="Database max overflow connections")
    DB_POOL_TIMEOUT: int = Field(default=30, description="Database pool timeout in seconds")
    DB_POOL_RECYCLE: int = Field(default=3600, description="Database pool recycle time in seconds")

    # Security
    CORS_ORIGINS: Union[List[str], str] = Field(default=[], description="CORS allowed origins")
    ACTOR_ID_HEADER: str = Field(
        default="X-Staff-User-Id",
        description="Header carrying the staff id authenticated by the upstream gateway"
    )
    AUTHZ_DISCLOSE_MISSING_PERMISSIONS: bool = Field(
        default=False,
        description="Name the missing permissions in 403 responses"
    )

    # Team catalog
    TEAM_CATALOG_PATH: Optional[str] = Field(
        default=None,
        description="JSON file replacing the built-in team catalog"
    )

    # Bulk operations
    BULK_CONCURRENCY: int = Field(default=4, ge=1, description="Concurrent units per bulk operation")
    BULK_MAX_USERS: int = Field(default=500, ge=1, description="Maximum user ids per bulk request")

    # Audit
    AUDIT_SINKS: Union[List[str], str] = Field(default=["log"], description="Audit sinks: log, database")

    # Bootstrap staff admin
    BOOTSTRAP_ADMIN_ID: Optional[str] = Field(default="staff-admin", description="Bootstrap admin staff id")
    BOOTSTRAP_ADMIN_EMAIL: str = Field(default="admin@staff.local", description="Bootstrap admin email")
    BOOTSTRAP_ADMIN_NAME: str = Field(default="Staff Administrator", description="Bootstrap admin name")

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v if isinstance(v, list) else []

    @field_validator("AUDIT_SINKS", mode="before")
    @classmethod
    def parse_audit_sinks(cls, v):
        """Parse audit sinks from string or list"""
        if isinstance(v, str):
            v = [sink.strip() for sink in v.split(",") if sink.strip()]
        allowed = {"log", "database"}
        unknown = [sink for sink in v if sink not in allowed]
        if unknown:
            raise ValueError(f"Unknown audit sinks: {unknown}")
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value"""
        allowed = ["development", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


# Create settings instance
settings = Settings()

# Derived settings
DATABASE_CONFIG = {
    "pool_size": settings.DB_POOL_SIZE,
    "max_overflow": settings.DB_MAX_OVERFLOW,
    "pool_timeout": settings.DB_POOL_TIMEOUT,
    "pool_recycle": settings.DB_POOL_RECYCLE,
    "pool_pre_ping": True,
    "echo": settings.ENVIRONMENT == "development" and settings.DEBUG,
}
