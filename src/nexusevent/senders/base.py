"""Sender protocol implemented by every platform."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from nexusevent.models import EventMessage, Platform


@runtime_checkable
class EventSender(Protocol):
    """Protocol for platform senders.

    Implement this to add a new delivery platform.
    """

    @property
    def platform(self) -> Platform:
        """Platform this sender delivers to."""
        ...

    async def send(self, message: EventMessage) -> None:
        """Deliver a message. Raises on invalid input or final delivery failure."""
        ...

    def validate_config(self) -> bool:
        """Check static configuration without touching the network. Never raises."""
        ...
