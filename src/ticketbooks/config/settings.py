"""Environment settings for ticketbooks."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings, read from the environment or a `.env` file.

    Everything that belongs to a specific organization (OAuth clients,
    GL accounts, event rules) lives in the JSON run configuration instead.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )

    # HTTP
    http_timeout: float = Field(default=30.0, validation_alias="HTTP_TIMEOUT")
    user_agent: str = Field(default="ticketbooks", validation_alias="USER_AGENT")

    # pretix exports
    export_poll_interval: float = Field(
        default=1.0, validation_alias="EXPORT_POLL_INTERVAL"
    )
    export_max_wait: float | None = Field(
        default=None,
        validation_alias="EXPORT_MAX_WAIT",
        description="Seconds to wait for one export before giving up (unbounded if unset)",
    )

    # OAuth2 callback server
    callback_host: str = Field(default="0.0.0.0", validation_alias="CALLBACK_HOST")
    callback_port: int = Field(default=443, validation_alias="CALLBACK_PORT")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
