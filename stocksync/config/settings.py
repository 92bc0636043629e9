"""
Inventory Sync Service
Centralized Configuration Management

Pydantic settings with environment variable support, validation, and type safety.
Every subsystem reads its section from the cached `Settings` instance.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Document Store Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="stocksync", alias="database", description="Database name")
    user: str = Field(default="stocksync", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Full async URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL, asyncpg unless DATABASE_URL says otherwise"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis Cache Configuration"""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    enabled: bool = Field(default=True, description="Use Redis for read caching")
    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=20, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    decode_responses: bool = Field(default=True, description="Decode responses to strings")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class FTPSettings(BaseSettings):
    """Inventory feed FTP source"""

    model_config = SettingsConfigDict(env_prefix="FTP_")

    host: Optional[str] = Field(default=None, description="FTP host")
    port: int = Field(default=21, description="FTP port")
    user: Optional[str] = Field(default=None, description="FTP user")
    password: Optional[SecretStr] = Field(default=None, description="FTP password")
    secure: bool = Field(default=False, description="Use explicit FTPS")
    timeout: int = Field(default=30, description="Connect/transfer timeout in seconds")
    remote_path: str = Field(default="Inventory.csv", description="Path of the inventory export")

    def missing(self) -> List[str]:
        """Names of required variables that are not set"""
        required = {"FTP_HOST": self.host, "FTP_USER": self.user, "FTP_PASSWORD": self.password}
        return [name for name, value in required.items() if not value]


class SyncSettings(BaseSettings):
    """Inventory reconciliation job"""

    model_config = SettingsConfigDict(env_prefix="SYNC_")

    batch_size: int = Field(default=500, description="Max operations per committed batch")
    staging_dir: str = Field(default="/tmp", description="Where downloaded feeds are staged")
    csv_delimiter: str = Field(default=";", description="Field separator of the feed")
    csv_encoding: str = Field(default="utf-8", description="Feed encoding")
    supplier_columns: List[str] = Field(
        default=["Leverandør", "Leverandor", "Leverandørnavn", "Supplier", "Vendor"],
        description="Accepted supplier header names, in priority order",
    )
    unknown_supplier: str = Field(default="Unknown Supplier", description="Supplier used when none is present")
    timezone: str = Field(default="Europe/Copenhagen", description="Local time zone for sales snapshots")

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        """Batches are capped at the store's 500-operation ceiling"""
        if not 1 <= v <= 500:
            raise ValueError("batch_size must be between 1 and 500")
        return v


class SecuritySettings(BaseSettings):
    """CORS and rate limiting"""

    model_config = SettingsConfigDict(env_prefix="")

    rate_limit_requests: int = Field(default=100, alias="RATE_LIMIT_REQUESTS", description="Rate limit requests")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS", description="Rate limit window")

    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE", description="Log file path")


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
    )

    # Application
    app_name: str = Field(default="stocksync", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    ftp: FTPSettings = Field(default_factory=FTPSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
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

    def missing_required(self) -> List[str]:
        """Environment variables the service cannot start without"""
        return self.ftp.missing()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Convenience function for accessing settings
settings = get_settings()
