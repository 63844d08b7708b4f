"""Sender implementations for supported platforms."""

from nexusevent.senders.base import EventSender
from nexusevent.senders.discord import DiscordSender

__all__ = [
    "DiscordSender",
    "EventSender",
]
