"""
Course Sales Reports API
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational Store Configuration (SQLite, MySQL or PostgreSQL)"""

    model_config = SettingsConfigDict(env_prefix="DB_")

    driver: str = Field(default="sqlite", description="Database backend: sqlite, mysql or postgresql")
    sqlite_path: str = Field(default="./database/reports.db", description="SQLite database file")
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=3306, description="Database port")
    name: str = Field(default="reports_db", description="Database name")
    user: str = Field(default="root", description="Database user")
    password: SecretStr = Field(default="", description="Database password")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Full URL (overrides the fields above)")
    echo: bool = Field(default=False, description="Echo SQL queries")
    create_tables: bool = Field(default=True, description="Create missing tables on startup")

    @field_validator("driver")
    @classmethod
    def validate_driver(cls, v: str) -> str:
        """Validate database backend"""
        allowed = ["sqlite", "mysql", "postgresql"]
        if v.lower() not in allowed:
            raise ValueError(f"Database driver must be one of: {allowed}")
        return v.lower()

    @property
    def async_url(self) -> str:
        """Async database URL for the configured backend"""
        if self.url:
            return self.url
        if self.driver == "sqlite":
            return f"sqlite+aiosqlite:///{Path(self.sqlite_path).as_posix()}"
        credentials = f"{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.name}"
        if self.driver == "mysql":
            return f"mysql+aiomysql://{credentials}"
        return f"postgresql+asyncpg://{credentials}"


class ReportingSettings(BaseSettings):
    """Report Aggregation Configuration"""

    model_config = SettingsConfigDict(env_prefix="REPORTS_")

    default_period_days: int = Field(default=30, description="Default lookback window in days")
    top_courses_limit: int = Field(default=5, description="Courses shown in the top-courses chart")
    realtime_window_hours: int = Field(default=24, description="Window of the realtime stats")
    revenue_status: str = Field(default="completed", description="Sale status counted as revenue")

    # Placeholder labels
    unassigned_producer_label: str = Field(default="Unassigned instructor", description="Label for courses without producer")
    untitled_course_label: str = Field(default="Untitled course", description="Label for courses without title")
    unknown_user_label: str = Field(default="Unknown user", description="Label for sales without user")

    # Export formatting
    currency_symbol: str = Field(default="$", description="Currency symbol in exports")
    date_format: str = Field(default="%Y-%m-%d", description="Date format in exports")
    datetime_format: str = Field(default="%Y-%m-%d %H:%M", description="Datetime format in exports")


class SecuritySettings(BaseSettings):
    """Security Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or console")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="course-sales-reports", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=5000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    reporting: ReportingSettings = Field(default_factory=ReportingSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
