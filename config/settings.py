"""
PaperDesk Configuration Management

Pydantic-based configuration for the portfolio ledger and market data engine.
Every setting can be overridden via environment variables prefixed with
``PAPERDESK_`` or through a local ``.env`` file.
"""

from typing import List
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Environment types for deployment configuration."""
    LOCAL = "local"
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels for application output."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ProfileStoreBackend(str, Enum):
    """Key-value backends for stored user records."""
    MEMORY = "memory"
    REDIS = "redis"


class Settings(BaseSettings):
    """
    PaperDesk application settings with validation.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="PAPERDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )

    # Application Metadata
    app_name: str = "PaperDesk"
    version: str = "1.0.0"
    environment: Environment = Environment.LOCAL
    debug: bool = False

    # Logging Configuration
    log_level: LogLevel = LogLevel.INFO
    log_to_file: bool = False
    log_file_path: str = "logs/paperdesk.log"
    log_json_format: bool = False
    log_rotation_size: str = "50MB"
    log_retention_days: int = Field(default=14, ge=1, le=365)
    log_compression: str = "zip"

    # Trading Configuration
    initial_cash: float = Field(
        default=100000.0,
        gt=0,
        description="Starting virtual cash balance in USD"
    )
    default_watchlist: List[str] = Field(
        default_factory=lambda: ["BTC", "ETH", "SOL", "DOGE", "ADA", "XRP"],
        description="Symbols polled regardless of holdings"
    )
    default_symbol: str = "BTC"

    # Market Data
    poll_interval_seconds: float = Field(
        default=10.0,
        description="Price polling cadence in seconds"
    )
    history_max_points: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum chart points retained per symbol"
    )
    quote_source_url: str = "https://api.coingecko.com/api/v3/simple/price"
    quote_request_timeout: float = Field(default=8.0, gt=0, le=120)
    quote_vs_currency: str = "usd"

    # Profile Storage
    profile_store_backend: ProfileStoreBackend = ProfileStoreBackend.MEMORY
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "paperdesk"

    @field_validator("poll_interval_seconds")
    @classmethod
    def validate_poll_interval(cls, v):
        """Polling must advance."""
        if v <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        return v

    @field_validator("quote_source_url")
    @classmethod
    def validate_quote_source_url(cls, v):
        """Validate quote source URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Quote source URL must be http(s)")
        return v

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v):
        """Validate Redis URL format."""
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss:// or unix://")
        return v

    @field_validator("default_watchlist")
    @classmethod
    def normalize_watchlist(cls, v):
        """Upper-case and deduplicate watch-list symbols."""
        seen = []
        for symbol in v:
            symbol = symbol.strip().upper()
            if symbol and symbol not in seen:
                seen.append(symbol)
        return seen

    @field_validator("default_symbol")
    @classmethod
    def normalize_default_symbol(cls, v):
        """Default symbol is stored upper-case."""
        v = v.strip().upper()
        if not v:
            raise ValueError("default_symbol must not be empty")
        return v

    @model_validator(mode="after")
    def validate_store_backend(self):
        """Redis backend needs a key prefix to namespace user records."""
        if self.profile_store_backend == ProfileStoreBackend.REDIS and not self.redis_key_prefix:
            raise ValueError("redis_key_prefix is required for the redis profile store")
        return self

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get application settings.

    Returns:
        Settings: Configured application settings
    """
    return settings

