# Complete settings for the demo ledger
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class RedisSettings(BaseModel):
    url: str = "redis://localhost:6379/0"


class LedgerSettings(BaseModel):
    """Demo ledger behaviour and persisted key layout"""
    # Keys are written as {namespace}:{key_prefix}:{field}
    namespace: str = "demo"
    key_prefix: str = "agrx_demo"

    demo_balance: Decimal = Decimal("10000")  # Total demo capital before seed holdings
    starting_xp: int = 240
    starting_streak: int = 5
    xp_per_trade: int = 15

    # Positions below this many shares after a sell are closed and the dust dropped
    dust_threshold: Decimal = Decimal("0.0001")
    # None keeps the full trade history
    max_trades: Optional[int] = None

    @field_validator("demo_balance")
    @classmethod
    def validate_demo_balance(cls, v):
        if v <= 0:
            raise ValueError("demo_balance must be positive")
        return v

    @field_validator("dust_threshold")
    @classmethod
    def validate_dust_threshold(cls, v):
        if v <= 0:
            raise ValueError("dust_threshold must be positive")
        return v

    @field_validator("max_trades")
    @classmethod
    def validate_max_trades(cls, v):
        if v is not None and v < 1:
            raise ValueError("max_trades must be at least 1 when set")
        return v

    @field_validator("starting_xp", "starting_streak", "xp_per_trade")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("XP and streak values cannot be negative")
        return v


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = True
    console_enabled: bool = True
    # Redaction
    redact_keys: list[str] = [
        "authorization", "access_token", "refresh_token", "api_key",
        "password", "secret", "token",
    ]


class Settings(BaseSettings):
    """Main application settings, loaded from environment variables"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = "AGRX Demo Ledger"
    version: str = "1.0.0"
    environment: Environment = Environment.DEVELOPMENT

    # Legacy log_level for backward compatibility
    log_level: str = "INFO"

    redis: RedisSettings = RedisSettings()
    ledger: LedgerSettings = LedgerSettings()
    logging: LoggingSettings = LoggingSettings()


# No global settings instance - use dependency injection instead
