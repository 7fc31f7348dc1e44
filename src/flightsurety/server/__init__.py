"""HTTP query surface and process bootstrap for FlightSurety."""

from .config import ServerSettings, clear_settings_cache, get_settings

__all__ = ["ServerSettings", "clear_settings_cache", "get_settings"]
