# SPDX-License-Identifier: MIT
# Copyright (c) 2026 FlightSurety Contributors

"""Server configuration using pydantic-settings."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from flightsurety.core.config import CoreSettings


def get_package_version() -> str:
    """Get the package version from installed metadata.

    Returns the version from pyproject.toml when installed,
    or a dev fallback when running from source without install.
    """
    try:
        return version("flightsurety")
    except PackageNotFoundError:
        return "0.0.0-dev"


class ServerSettings(CoreSettings):
    """Configuration for the FlightSurety HTTP server and oracle responder.

    Inherits core settings (logging, ledger identities, randomness) and adds
    HTTP, responder and bootstrap settings.

    Settings can be configured via environment variables with FLIGHTSURETY_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLIGHTSURETY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Server settings
    host: str = Field(default="127.0.0.1", description="Host to bind to")
    port: int = Field(default=3000, description="Port to bind to")

    # CORS settings
    allowed_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins. The dapp is served from another origin, so any is allowed by default.",
    )

    # Oracle responder
    oracle_count: int = Field(default=20, description="Oracle identities registered at start-up")
    oracle_identity_prefix: str = Field(default="oracle", description="Address prefix for owned oracle identities")
    responder_enabled: bool = Field(default=True, description="Run the oracle responder inside the server")
    responder_max_concurrent_submissions: int = Field(default=16, description="Concurrent vote submissions")
    responder_submit_timeout: float = Field(default=10.0, description="Seconds before a submission attempt times out")
    responder_submit_max_attempts: int = Field(default=3, description="Attempts per submission on transport failure")
    responder_retry_backoff: float = Field(default=0.5, description="Initial retry delay in seconds, doubled per attempt")
    responder_max_retry_backoff: float = Field(default=5.0, description="Upper bound on the retry delay in seconds")
    responder_drain_timeout: float = Field(
        default=30.0, description="Seconds to wait for in-flight submissions at shutdown before cancelling them"
    )

    # Bootstrap
    bootstrap_flights: list[str] = Field(
        default=["DL1937", "EI5321", "EY8252"],
        description="Flights registered for the genesis airline at start-up",
    )

    # Server name
    server_name: str = Field(default="flightsurety", description="Server name")
    server_version: str = Field(default_factory=get_package_version, description="Server version")

    @field_validator("oracle_count", "responder_max_concurrent_submissions", "responder_submit_max_attempts")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("responder_submit_timeout", "responder_retry_backoff", "responder_max_retry_backoff")
    @classmethod
    def _positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than 0")
        return value

    @property
    def base_url(self) -> str:
        """Get the base URL for the server."""
        return f"http://{self.host}:{self.port}"


# Global settings instance - lazy loaded
_settings: ServerSettings | None = None


def get_settings() -> ServerSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = ServerSettings()
    return _settings


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    global _settings
    _settings = None
