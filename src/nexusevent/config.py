"""Configuration management with Pydantic Settings.

Settings are loaded from environment variables (and an optional ``.env``
file) and used to build a ready-to-use sender registry.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nexusevent.senders.discord import (
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_BACKOFF,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    mask_webhook_url,
)


class DiscordSettings(BaseSettings):
    """Discord notification settings."""

    model_config = SettingsConfigDict(env_prefix="DISCORD_")

    webhook_url: SecretStr | None = Field(
        default=None,
        alias="DISCORD_WEBHOOK_URL",
        description="Discord webhook URL for the default sender",
    )

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, v: SecretStr | None) -> SecretStr | None:
        """Reject webhook URLs that are not HTTP(S)."""
        if v is None:
            return v
        if not v.get_secret_value().startswith(("http://", "https://")):
            raise ValueError("DISCORD_WEBHOOK_URL must be an HTTP(S) URL")
        return v

    @property
    def enabled(self) -> bool:
        """Check if a Discord sender should be registered."""
        return self.webhook_url is not None


class DeliverySettings(BaseSettings):
    """HTTP delivery and retry tuning."""

    model_config = SettingsConfigDict(env_prefix="NEXUSEVENT_")

    timeout_seconds: float = Field(
        default=DEFAULT_TIMEOUT,
        alias="NEXUSEVENT_TIMEOUT_SECONDS",
        description="Per-request HTTP timeout",
        gt=0,
    )
    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        alias="NEXUSEVENT_MAX_RETRIES",
        description="Retries after the first delivery attempt",
        ge=0,
        le=10,
    )
    initial_backoff_seconds: float = Field(
        default=DEFAULT_INITIAL_BACKOFF,
        alias="NEXUSEVENT_INITIAL_BACKOFF_SECONDS",
        description="Delay before the first retry",
        gt=0,
    )
    max_backoff_seconds: float = Field(
        default=DEFAULT_MAX_BACKOFF,
        alias="NEXUSEVENT_MAX_BACKOFF_SECONDS",
        description="Upper bound for the retry delay",
        gt=0,
    )

    @model_validator(mode="after")
    def check_backoff_bounds(self) -> DeliverySettings:
        """Ensure the backoff cap is not below the initial delay."""
        if self.max_backoff_seconds < self.initial_backoff_seconds:
            raise ValueError(
                "NEXUSEVENT_MAX_BACKOFF_SECONDS must be >= NEXUSEVENT_INITIAL_BACKOFF_SECONDS"
            )
        return self


class Settings(BaseSettings):
    """Main application settings.

    Example:
        ```python
        from nexusevent.config import get_settings

        settings = get_settings()
        print(settings.discord.enabled)
        print(settings.log_level)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with the webhook token masked."""
        webhook_url = self.discord.webhook_url
        return {
            "discord": {
                "enabled": str(self.discord.enabled),
                "webhook_url": (
                    mask_webhook_url(webhook_url.get_secret_value())
                    if webhook_url
                    else "(not set)"
                ),
            },
            "delivery": {
                "timeout_seconds": str(self.delivery.timeout_seconds),
                "max_retries": str(self.delivery.max_retries),
                "initial_backoff_seconds": str(self.delivery.initial_backoff_seconds),
                "max_backoff_seconds": str(self.delivery.max_backoff_seconds),
            },
            "log_level": self.log_level,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
