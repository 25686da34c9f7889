"""Configuration module for ticketbooks."""

from ticketbooks.config.logging import configure_logging
from ticketbooks.config.run_config import ConfigError, EventConfig, RunConfig
from ticketbooks.config.settings import Settings, get_settings

__all__ = [
    "ConfigError",
    "EventConfig",
    "RunConfig",
    "Settings",
    "get_settings",
    "configure_logging",
]
