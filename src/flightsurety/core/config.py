"""Core configuration - centralized config for the flightsurety package.

All environment-based configuration should flow through this module.

Usage:
    from flightsurety.core.config import get_config
    config = get_config()

    log_level = config.log_level
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """Core configuration settings for FlightSurety.

    Settings can be configured via environment variables with the
    FLIGHTSURETY_ prefix or a local .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="FLIGHTSURETY_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="FLIGHTSURETY_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="FLIGHTSURETY_LOG_FILE",
    )

    # ==========================================================================
    # LEDGER SETTINGS
    # ==========================================================================

    owner_address: str = Field(
        default="owner",
        description="Administrator identity allowed to toggle the operating status",
        validation_alias="FLIGHTSURETY_OWNER_ADDRESS",
    )
    genesis_airline: str = Field(
        default="airline-0",
        description="Airline registered when the ledger is created",
        validation_alias="FLIGHTSURETY_GENESIS_AIRLINE",
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for index and status draws. Unset = system randomness.",
        validation_alias="FLIGHTSURETY_RANDOM_SEED",
    )


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CoreSettings | None = None


def get_config() -> CoreSettings:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = CoreSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
