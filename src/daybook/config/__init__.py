"""Configuration module for Daybook."""

from daybook.config.logging import configure_logging
from daybook.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "configure_logging"]
