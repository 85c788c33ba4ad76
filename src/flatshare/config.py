"""Configuration management for Flatshare."""

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Household policy settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLATSHARE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Money
    dust_tolerance: Decimal = Decimal("0.004")  # Balances below this count as settled
    currency_unit: Decimal = Field(default=Decimal("0.01"), gt=0)

    # Effort normalization
    laziness_enabled: bool = False
    laziness_floor: float = Field(default=0.0001, gt=0)

    # Rotation tasks
    early_completion_window_hours: int = Field(default=24, ge=0)
    default_grace_period_minutes: int = Field(default=1440, ge=0)
    default_delay_penalty_per_day: float = Field(default=0.25, ge=0)

    # Memoization
    cache_size: int = Field(default=128, ge=0)  # 0 disables the cache


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the FLATSHARE_* variables in your "
            f"environment or .env file.\n"
            f"Error: {e}"
        ) from e
