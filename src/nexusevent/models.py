"""Data models shared by senders and the registry."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Literal


class Platform(Enum):
    """Supported notification platforms."""

    DISCORD = "discord"
    SLACK = "slack"
    TELEGRAM = "telegram"
    WEBHOOK = "webhook"
    TEAMS = "teams"


@dataclass(frozen=True)
class EventMessage:
    """A notification message ready for delivery to any platform.

    Attributes:
        title: Message headline. Senders reject empty titles.
        content: Optional body text.
        url: Optional link related to the event.
        author: Optional author/originator shown with the message.
        color: Optional RGB color as an integer (e.g. 0x33CCFF).
        metadata: Opaque key-value data carried along with the message.
        timestamp: When the event happened.
    """

    title: str
    content: str | None = None
    url: str | None = None
    author: str | None = None
    color: int | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)
    timestamp: datetime | None = None


@dataclass(frozen=True)
class DiscordConfig:
    """Configuration for a Discord webhook sender."""

    platform: ClassVar[Platform] = Platform.DISCORD

    webhook_url: str


@dataclass(frozen=True)
class SlackConfig:
    """Configuration for a Slack incoming-webhook sender."""

    platform: ClassVar[Platform] = Platform.SLACK

    webhook_url: str
    channel: str | None = None


@dataclass(frozen=True)
class WebhookConfig:
    """Configuration for a generic HTTP webhook sender."""

    platform: ClassVar[Platform] = Platform.WEBHOOK

    url: str
    headers: Mapping[str, str] = field(default_factory=dict, hash=False)
    method: Literal["POST", "PUT"] = "POST"


SenderConfig = DiscordConfig | SlackConfig | WebhookConfig


@dataclass
class BroadcastResult:
    """Outcome of broadcasting one message to several senders."""

    total: int
    successful: int
    failed: int
    errors: dict[str, Exception] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> BroadcastResult:
        """Return the result of a broadcast that targeted no senders."""
        return cls(total=0, successful=0, failed=0)

    @property
    def all_succeeded(self) -> bool:
        """Return True if at least one sender was targeted and none failed."""
        return self.failed == 0 and self.successful > 0
