# backend/suite/core/config.py
import logging
import os

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment environment name")
    log_level: str = Field(default="INFO", description="Root log level")

    database_url: str = Field(
        default="sqlite+pysqlite:///./suite.db",
        description="SQLAlchemy URL for the bookings database",
    )

    # Stripe Configuration
    stripe_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe secret key for backend API calls",
    )
    stripe_currency: str = Field(default="usd", description="Default currency for payments")

    # Cancellation policy
    cancellation_flat_platform_fee_cents: int = Field(
        default=100,
        description="Flat fee the platform keeps out of a separately charged cancellation fee",
    )
    cancellation_default_24h_percentage: int = Field(
        default=50, description="Fee percentage when the 24h window is enabled but unset"
    )
    cancellation_default_48h_percentage: int = Field(
        default=25, description="Fee percentage when the 48h window is enabled but unset"
    )

    # Use ConfigDict instead of Config class (Pydantic V2 style)
    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator(
        "cancellation_default_24h_percentage",
        "cancellation_default_48h_percentage",
    )
    @classmethod
    def _validate_percentage(cls, value: int) -> int:
        if value < 0 or value > 100:
            raise ValueError("Cancellation percentages must be between 0 and 100")
        return value

    @field_validator("cancellation_flat_platform_fee_cents")
    @classmethod
    def _validate_flat_fee(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Flat platform fee cannot be negative")
        return value

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key.get_secret_value())


settings = Settings()
logger.info(
    "[CONFIG] environment=%s stripe_configured=%s currency=%s",
    settings.environment,
    settings.stripe_configured,
    settings.stripe_currency,
)
