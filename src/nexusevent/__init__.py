"""NexusEvent - Multi-platform notification dispatch SDK."""

__version__ = "0.1.1"

from nexusevent.errors import (  # noqa: E402
    DeliveryError,
    DeliveryErrorKind,
    InvalidInputError,
    NexusEventError,
    SenderFailedError,
    SenderNotFoundError,
    WebhookConfigError,
)
from nexusevent.models import (  # noqa: E402
    BroadcastResult,
    DiscordConfig,
    EventMessage,
    Platform,
    SenderConfig,
    SlackConfig,
    WebhookConfig,
)
from nexusevent.registry import NexusEvent, get_instance, reset_instance  # noqa: E402
from nexusevent.senders import DiscordSender, EventSender  # noqa: E402

__all__ = [
    "BroadcastResult",
    "DeliveryError",
    "DeliveryErrorKind",
    "DiscordConfig",
    "DiscordSender",
    "EventMessage",
    "EventSender",
    "InvalidInputError",
    "NexusEvent",
    "NexusEventError",
    "Platform",
    "SenderConfig",
    "SenderFailedError",
    "SenderNotFoundError",
    "SlackConfig",
    "WebhookConfig",
    "WebhookConfigError",
    "__version__",
    "get_instance",
    "reset_instance",
]
