"""Centralized configuration using pydantic-settings.

All configuration is loaded from environment variables and .env files.
For nested settings, use double underscore: PLANLEDGER_LEDGER__PLAN_CHANGE_FEE=0
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class PurchasePolicy(str, Enum):
    """Whether a stale subscription record blocks a new purchase."""

    STRICT = "strict"  # any existing record blocks purchase
    REENTRANT = "reentrant"  # inactive or expired records may be replaced


class Settings(BaseSettings):
    """Main ledger settings.

    All settings can be overridden via environment variables prefixed with
    ``PLANLEDGER_``.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLANLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ============================================================
    # Core Application Settings
    # ============================================================

    app_name: str = Field("planledger", description="Application name")
    app_version: str = Field("1.0.0", description="Application version")
    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment environment")
    testing: bool = Field(False, description="Testing mode")

    # ============================================================
    # Database Configuration
    # ============================================================

    class DatabaseSettings(BaseModel):
        """Database configuration."""

        url: str = Field("sqlite:///./planledger.sqlite", description="SQLAlchemy database URL")
        echo: bool = Field(False, description="Echo SQL statements")

    database: DatabaseSettings = DatabaseSettings()  # type: ignore[call-arg]

    # ============================================================
    # Observability Configuration
    # ============================================================

    class ObservabilitySettings(BaseModel):
        """Observability configuration."""

        log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
        log_format: str = Field("json", description="Log format (json or console)")
        enable_audit_log: bool = Field(True, description="Emit audit log lines for mutations")

    observability: ObservabilitySettings = ObservabilitySettings()  # type: ignore[call-arg]

    # ============================================================
    # Ledger Configuration
    # ============================================================

    class LedgerSettings(BaseModel):
        """Bootstrap values and lifecycle policy for the subscription ledger.

        Amounts are integers in the smallest currency unit, durations are
        logical clock ticks.
        """

        administrator: str = Field("admin", description="Initial administrator identity")
        treasury_account: str = Field(
            "treasury", description="Account that receives charges and pays refunds"
        )

        base_subscription_cost: int = Field(
            50_000_000, ge=0, description="Cost of the baseline low-tier plan"
        )
        default_subscription_period: int = Field(
            2_592_000, gt=0, description="Duration of the baseline plans in ticks"
        )
        refund_period_limit: int = Field(
            259_200, ge=0, description="Ticks after purchase during which refunds are allowed"
        )
        plan_change_fee: int = Field(
            1_000_000, ge=0, description="Flat fee charged on upgrade and downgrade"
        )

        purchase_policy: PurchasePolicy = Field(
            PurchasePolicy.STRICT, description="Whether stale records block purchase"
        )
        enforce_expiry: bool = Field(
            False, description="Reject transitions on records past their end time"
        )

        # Baseline plans created at bootstrap
        basic_plan_name: str = Field("basic", description="Low-tier baseline plan name")
        basic_plan_features: list[str] = Field(
            default_factory=lambda: ["standard-support", "single-seat"],
            description="Low-tier baseline plan features",
        )
        premium_plan_name: str = Field("premium", description="High-tier baseline plan name")
        premium_plan_features: list[str] = Field(
            default_factory=lambda: ["priority-support", "multi-seat", "analytics"],
            description="High-tier baseline plan features",
        )

    ledger: LedgerSettings = LedgerSettings()  # type: ignore[call-arg]

    # ============================================================
    # Validation & Helpers
    # ============================================================

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: Any) -> Any:
        """Validate environment."""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.testing or self.environment == Environment.TEST


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore
    return _settings


def reset_settings() -> None:
    """Reset settings (mainly for testing)."""
    global _settings
    _settings = None


# Convenience export
settings = get_settings()
