"""Discord webhook sender implementation."""

from __future__ import annotations

import asyncio
import logging
import re
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx

from nexusevent import __version__
from nexusevent.errors import (
    DeliveryError,
    DeliveryErrorKind,
    InvalidInputError,
    WebhookConfigError,
)
from nexusevent.models import Platform

if TYPE_CHECKING:
    from nexusevent.models import DiscordConfig, EventMessage

logger = logging.getLogger(__name__)

# Webhook URL shape: https://discord.com/api/webhooks/{id}/{token}
DISCORD_WEBHOOK_HOST = "discord.com"
DISCORD_WEBHOOK_PATH_PREFIX = "/api/webhooks/"
UNCONFIGURED_MARKER = "YOUR_WEBHOOK_URL"
PLACEHOLDER_MARKERS = (UNCONFIGURED_MARKER, "WEBHOOK_URL")
PLACEHOLDER_SEGMENTS = frozenset({"invalid", "url"})
_WEBHOOK_ID_PATTERN = re.compile(r"[0-9]+")
_WEBHOOK_TOKEN_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
_WEBHOOK_TOKEN_SEGMENT = re.compile(r"(/api/webhooks/[^/]+/)[^/?#]+")

# Delivery defaults
DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF = 1.0
DEFAULT_MAX_BACKOFF = 30.0
USER_AGENT = f"NexusEvent-JS/{__version__}"

# Embed presentation
DEFAULT_EMBED_COLOR = 0x33CCFF
AUTHOR_FIELD_NAME = "Author"
FOOTER_TEXT = "NexusEvent Notification"

_HOST_NOT_FOUND_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "name resolution",
    "no address associated",
)


class TransportErrorKind(Enum):
    """Network-level failures that are worth retrying."""

    CONNECTION_RESET = "connection_reset"
    HOST_NOT_FOUND = "host_not_found"
    CONNECTION_REFUSED = "connection_refused"
    TIMED_OUT = "timed_out"


def is_valid_discord_webhook_url(url: str) -> bool:
    """Check that a URL is a well-formed Discord webhook URL.

    Purely structural: no network access. Placeholder values such as
    ``YOUR_WEBHOOK_URL`` are rejected.

    Args:
        url: Candidate webhook URL.

    Returns:
        True if the URL has the form
        ``https://discord.com/api/webhooks/{numeric id}/{token}``.
    """
    if any(marker in url for marker in PLACEHOLDER_MARKERS):
        return False

    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return False

    if (
        parsed.scheme != "https"
        or parsed.host != DISCORD_WEBHOOK_HOST
        or not parsed.path.startswith(DISCORD_WEBHOOK_PATH_PREFIX)
    ):
        return False

    segments = [s for s in parsed.path.split("/") if s]
    if len(segments) != 4:
        return False

    webhook_id, token = segments[2], segments[3]
    if webhook_id in PLACEHOLDER_SEGMENTS or token in PLACEHOLDER_SEGMENTS:
        return False

    return bool(
        _WEBHOOK_ID_PATTERN.fullmatch(webhook_id) and _WEBHOOK_TOKEN_PATTERN.fullmatch(token)
    )


def mask_webhook_url(url: str) -> str:
    """Hide the token segment of a webhook URL for logging."""
    return _WEBHOOK_TOKEN_SEGMENT.sub(r"\1***", url)


def build_payload(message: EventMessage) -> dict[str, Any]:
    """Build the Discord webhook JSON body for a message.

    The title (and URL, so Discord renders a link preview) always go into
    ``content``. A single embed is added only when the message carries a
    body or an author.
    """
    payload: dict[str, Any] = {}

    if message.url:
        payload["content"] = f"「{message.title}」 {message.url}"
    else:
        payload["content"] = message.title

    if message.content or message.author:
        embed: dict[str, Any] = {"title": message.title}
        if message.content:
            embed["description"] = message.content
        if message.url:
            embed["url"] = message.url
        # 0 is black, a real color
        embed["color"] = message.color if message.color is not None else DEFAULT_EMBED_COLOR
        if message.author:
            embed["fields"] = [
                {"name": AUTHOR_FIELD_NAME, "value": message.author, "inline": True},
            ]
        embed["footer"] = {"text": FOOTER_TEXT}
        if message.timestamp is not None:
            embed["timestamp"] = message.timestamp.isoformat()
        payload["embeds"] = [embed]

    return payload


def classify_transport_error(error: BaseException) -> TransportErrorKind | None:
    """Map an httpx transport exception to a retriable network failure kind."""
    if isinstance(error, httpx.TimeoutException):
        return TransportErrorKind.TIMED_OUT
    if isinstance(error, httpx.ConnectError):
        text = str(error).lower()
        if any(marker in text for marker in _HOST_NOT_FOUND_MARKERS):
            return TransportErrorKind.HOST_NOT_FOUND
        if "refused" in text:
            return TransportErrorKind.CONNECTION_REFUSED
        if "reset" in text:
            return TransportErrorKind.CONNECTION_RESET
        return None
    if isinstance(error, (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)):
        return TransportErrorKind.CONNECTION_RESET
    return None


def is_retriable_error(error: BaseException) -> bool:
    """Decide whether a failed attempt should be retried.

    Retriable: known network failures, HTTP 5xx, HTTP 429, and anything
    whose message mentions a timeout. Everything else is terminal.
    """
    if classify_transport_error(error) is not None:
        return True

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status >= 500 or status == 429:
            return True

    return "timeout" in str(error).lower()


def _server_message(response: httpx.Response) -> str | None:
    """Extract Discord's ``message`` field from an error response."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return None


_STATUS_ERRORS: dict[int, tuple[DeliveryErrorKind, str]] = {
    401: (
        DeliveryErrorKind.AUTHENTICATION,
        "Discord webhook authentication failed, check the webhook URL",
    ),
    404: (
        DeliveryErrorKind.NOT_FOUND,
        "Discord webhook does not exist, check that the URL is correct",
    ),
    429: (
        DeliveryErrorKind.RATE_LIMITED,
        "Discord API rate limit exceeded, try again later",
    ),
}

_TRANSPORT_ERRORS: dict[TransportErrorKind, tuple[DeliveryErrorKind, str]] = {
    TransportErrorKind.HOST_NOT_FOUND: (
        DeliveryErrorKind.NETWORK,
        "Could not resolve the Discord host, check the network connection",
    ),
    TransportErrorKind.CONNECTION_REFUSED: (
        DeliveryErrorKind.NETWORK,
        "Connection refused by the Discord server",
    ),
    TransportErrorKind.CONNECTION_RESET: (
        DeliveryErrorKind.NETWORK,
        "Connection to Discord was reset, check the network connection",
    ),
    TransportErrorKind.TIMED_OUT: (
        DeliveryErrorKind.TIMEOUT,
        "Connection to Discord timed out, check the network connection",
    ),
}


def to_delivery_error(error: BaseException, title: str) -> DeliveryError:
    """Translate a raw httpx failure into a descriptive DeliveryError.

    Args:
        error: The exception raised by the last attempt.
        title: Title of the message being delivered.

    Returns:
        DeliveryError whose kind and text describe the failure category.
    """
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        status = response.status_code
        server_message = _server_message(response)

        if status == 400:
            return DeliveryError(
                "Discord webhook rejected a malformed request: "
                f"{server_message or 'the message could not be sent'}",
                kind=DeliveryErrorKind.BAD_REQUEST,
                status_code=status,
                title=title,
            )
        if status in _STATUS_ERRORS:
            kind, text = _STATUS_ERRORS[status]
            return DeliveryError(text, kind=kind, status_code=status, title=title)
        if status >= 500:
            return DeliveryError(
                f"Discord server error (HTTP {status}), try again later",
                kind=DeliveryErrorKind.SERVER_ERROR,
                status_code=status,
                title=title,
            )
        return DeliveryError(
            f"Discord API error (HTTP {status}): {server_message or error}",
            kind=DeliveryErrorKind.API_ERROR,
            status_code=status,
            title=title,
        )

    transport_kind = classify_transport_error(error)
    if transport_kind is not None:
        kind, text = _TRANSPORT_ERRORS[transport_kind]
        return DeliveryError(text, kind=kind, title=title)

    if "timeout" in str(error).lower():
        return DeliveryError(
            "Request to Discord timed out, try again later",
            kind=DeliveryErrorKind.TIMEOUT,
            title=title,
        )

    return DeliveryError(
        f'Failed to send "{title}" to Discord: {error}',
        kind=DeliveryErrorKind.UNKNOWN,
        title=title,
    )


class DiscordSender:
    """Discord webhook sender.

    Posts messages to a Discord webhook with exponential backoff on
    transient failures (network errors, HTTP 5xx and 429).
    """

    def __init__(
        self,
        config: DiscordConfig,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
        user_agent: str = USER_AGENT,
    ) -> None:
        """Initialize Discord sender.

        Args:
            config: Discord configuration holding the webhook URL.
            timeout: HTTP request timeout in seconds.
            max_retries: Retries after the first attempt.
            initial_backoff: Delay before the first retry, in seconds.
            max_backoff: Upper bound for the doubled retry delay, in seconds.
            user_agent: User-Agent header sent with every request.
        """
        self.config = config
        self.timeout = timeout
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff

        self.headers = {
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }

    @property
    def platform(self) -> Platform:
        """Platform this sender delivers to."""
        return Platform.DISCORD

    @property
    def webhook_url(self) -> str:
        return self.config.webhook_url

    def __repr__(self) -> str:
        return f"DiscordSender(webhook_url={mask_webhook_url(self.webhook_url)!r})"

    async def send(self, message: EventMessage) -> None:
        """Send a message to the Discord webhook.

        Args:
            message: Message to deliver.

        Raises:
            InvalidInputError: If the message title is empty.
            WebhookConfigError: If the webhook URL is malformed or unset.
            DeliveryError: If delivery failed terminally or retries ran out.
        """
        if not message.title or not message.title.strip():
            raise InvalidInputError("Message title cannot be empty")

        if not is_valid_discord_webhook_url(self.webhook_url):
            raise WebhookConfigError("Invalid Discord webhook URL format")

        if UNCONFIGURED_MARKER in self.webhook_url:
            raise WebhookConfigError("Discord webhook URL has not been configured")

        payload = build_payload(message)
        await self._send_with_retry(payload, message.title)

    async def _send_with_retry(self, payload: dict[str, Any], title: str) -> None:
        """POST the payload, retrying transient failures with backoff.

        A client is opened for each delivery and closed when it finishes, so
        no connection outlives the event loop that made it.
        """
        async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
            await self._post_until_done(client, payload, title)

    async def _post_until_done(
        self, client: httpx.AsyncClient, payload: dict[str, Any], title: str
    ) -> None:
        attempts = 0
        delay = self.initial_backoff

        while True:
            attempts += 1
            try:
                # Status codes are interpreted here, not by the client
                response = await client.post(self.webhook_url, json=payload)
                if response.status_code >= 400:
                    raise httpx.HTTPStatusError(
                        f"HTTP {response.status_code}: {response.reason_phrase}",
                        request=response.request,
                        response=response,
                    )
            except httpx.HTTPError as e:
                logger.warning(
                    "Discord delivery failed (attempt %d/%d): %s",
                    attempts,
                    self.max_retries + 1,
                    e,
                )
                if attempts > self.max_retries or not is_retriable_error(e):
                    error = to_delivery_error(e, title)
                    logger.error("Discord delivery of %r abandoned: %s", title, error)
                    raise error from e

                logger.info("Retrying Discord delivery in %.1f seconds", delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_backoff)
                continue

            logger.info(f"Discord message delivered: {title}")
            return

    def validate_config(self) -> bool:
        """Check the webhook URL format. Never raises."""
        try:
            return is_valid_discord_webhook_url(self.webhook_url)
        except Exception as e:
            logger.debug(f"Discord config validation error: {e}")
            return False
