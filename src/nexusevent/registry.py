"""Sender registry and multi-sender dispatch."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from nexusevent.errors import InvalidInputError, SenderFailedError, SenderNotFoundError
from nexusevent.models import BroadcastResult, DiscordConfig
from nexusevent.senders.discord import DiscordSender

if TYPE_CHECKING:
    from nexusevent.config import Settings
    from nexusevent.models import EventMessage, Platform
    from nexusevent.senders.base import EventSender

logger = logging.getLogger(__name__)

DEFAULT_DISCORD_SENDER_NAME = "discord"


def _normalize_name(name: str | None) -> str:
    return name.strip() if name else ""


class NexusEvent:
    """Registry of named senders with single-target and broadcast delivery.

    Create one per application (or per test) and pass it to the code that
    needs it. ``get_instance()`` provides a lazily created shared default.

    Example:
        ```python
        nexus = NexusEvent()
        nexus.add_discord_sender("alerts", "https://discord.com/api/webhooks/...")
        await nexus.send("alerts", EventMessage(title="Deploy finished"))
        ```
    """

    def __init__(self) -> None:
        self._senders: dict[str, EventSender] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> NexusEvent:
        """Build a registry from application settings.

        Registers a Discord sender named ``discord`` when
        ``DISCORD_WEBHOOK_URL`` is set, tuned by the delivery settings.

        Args:
            settings: Loaded application settings.

        Returns:
            New NexusEvent registry.
        """
        registry = cls()
        if settings.discord.webhook_url is not None:
            delivery = settings.delivery
            registry.add_discord_sender(
                DEFAULT_DISCORD_SENDER_NAME,
                settings.discord.webhook_url.get_secret_value(),
                timeout=delivery.timeout_seconds,
                max_retries=delivery.max_retries,
                initial_backoff=delivery.initial_backoff_seconds,
                max_backoff=delivery.max_backoff_seconds,
            )
        return registry

    def add_sender(self, name: str, sender: EventSender) -> None:
        """Register a sender, replacing any sender with the same name.

        Args:
            name: Unique sender name. Surrounding whitespace is ignored.
            sender: Sender instance.

        Raises:
            InvalidInputError: If the name is empty.
        """
        key = _normalize_name(name)
        if not key:
            raise InvalidInputError("Sender name cannot be empty")

        if key in self._senders:
            logger.info(f"Replacing sender {key}")
        self._senders[key] = sender
        logger.debug(f"Registered {sender.platform.value} sender {key}")

    def remove_sender(self, name: str) -> bool:
        """Unregister a sender.

        Returns:
            True if a sender was registered under the name and was removed.
        """
        key = _normalize_name(name)
        if not key:
            return False
        removed = self._senders.pop(key, None) is not None
        if removed:
            logger.debug(f"Removed sender {key}")
        return removed

    def add_discord_sender(self, name: str, webhook_url: str, **options: Any) -> None:
        """Create and register a Discord webhook sender.

        Args:
            name: Sender name.
            webhook_url: Discord webhook URL.
            **options: Extra ``DiscordSender`` keyword arguments
                (timeout, max_retries, initial_backoff, max_backoff).
        """
        sender = DiscordSender(DiscordConfig(webhook_url=webhook_url), **options)
        self.add_sender(name, sender)

    def get_sender(self, name: str) -> EventSender | None:
        """Return the sender registered under a name, if any."""
        return self._senders.get(_normalize_name(name))

    @property
    def sender_names(self) -> list[str]:
        """Names of all registered senders."""
        return list(self._senders)

    async def send(self, name: str, message: EventMessage) -> None:
        """Send a message through one named sender.

        Raises:
            InvalidInputError: If the name is empty.
            SenderNotFoundError: If no sender is registered under the name.
            Exception: Whatever the sender raises, unchanged.
        """
        key = _normalize_name(name)
        if not key:
            raise InvalidInputError("Sender name cannot be empty")

        sender = self._senders.get(key)
        if sender is None:
            raise SenderNotFoundError(key)

        await sender.send(message)

    async def broadcast(
        self,
        message: EventMessage,
        platforms: Iterable[Platform] | None = None,
        fail_fast: bool = False,
    ) -> BroadcastResult:
        """Send a message through several senders concurrently.

        Args:
            message: Message to deliver.
            platforms: Only use senders for these platforms. All senders
                are used when omitted.
            fail_fast: Raise the first sender failure instead of returning
                a result.

        Returns:
            BroadcastResult with counts and per-sender errors.
        """
        if not self._senders:
            logger.warning("No senders registered for broadcast")
            return BroadcastResult.empty()

        wanted = set(platforms) if platforms is not None else None
        targets = [
            (name, sender)
            for name, sender in self._senders.items()
            if wanted is None or sender.platform in wanted
        ]
        if not targets:
            logger.warning("No senders match the requested platforms")
            return BroadcastResult.empty()

        if fail_fast:
            await self._gather_or_cancel([sender.send(message) for _, sender in targets])
            successful = len(targets)
            errors: dict[str, Exception] = {}
        else:
            sends = [sender.send(message) for _, sender in targets]
            outcomes = await asyncio.gather(*sends, return_exceptions=True)
            errors = {}
            for (name, _), outcome in zip(targets, outcomes, strict=True):
                if isinstance(outcome, Exception):
                    logger.error(f"Broadcast to {name} failed: {outcome}")
                    errors[name] = SenderFailedError(name, outcome)
                elif isinstance(outcome, BaseException):
                    raise outcome
            successful = len(targets) - len(errors)

        result = BroadcastResult(
            total=len(targets),
            successful=successful,
            failed=len(targets) - successful,
            errors=errors,
        )

        logger.info(f"Broadcast complete: {result.successful}/{result.total} succeeded")

        return result

    @staticmethod
    async def _gather_or_cancel(sends: list[Any]) -> None:
        """Await all sends; on the first failure cancel the rest and re-raise."""
        tasks = [asyncio.ensure_future(send) for send in sends]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                logger.info(f"Cancelling {len(pending)} in-flight send(s) after failure")
                await asyncio.gather(*pending, return_exceptions=True)
            raise

    def validate_sender(self, name: str) -> bool:
        """Validate one sender's configuration. Unknown names are invalid."""
        sender = self._senders.get(_normalize_name(name))
        if sender is None:
            return False
        return self._validate(name, sender)

    def validate_all_senders(self) -> dict[str, bool]:
        """Validate every registered sender's configuration."""
        return {name: self._validate(name, sender) for name, sender in self._senders.items()}

    @staticmethod
    def _validate(name: str, sender: EventSender) -> bool:
        try:
            return bool(sender.validate_config())
        except Exception as e:
            logger.warning(f"Validation of sender {name} raised: {e}")
            return False

    def clear(self) -> None:
        """Remove all registered senders."""
        self._senders.clear()


@lru_cache(maxsize=1)
def get_instance() -> NexusEvent:
    """Get the shared default registry.

    Created on first access. Prefer constructing ``NexusEvent`` directly
    where the registry can be passed around.
    """
    return NexusEvent()


def reset_instance() -> None:
    """Drop the shared default registry.

    The next ``get_instance()`` call returns a fresh, empty registry.
    """
    get_instance.cache_clear()
