"""Exception types raised by senders and the registry."""

from __future__ import annotations

from enum import Enum


class NexusEventError(Exception):
    """Base exception for NexusEvent errors."""


class InvalidInputError(NexusEventError, ValueError):
    """Raised for empty sender names or message titles."""


class WebhookConfigError(NexusEventError, ValueError):
    """Raised when a sender's webhook configuration is malformed or unset."""


class SenderNotFoundError(NexusEventError, LookupError):
    """Raised when no sender is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Sender "{name}" does not exist')
        self.name = name


class DeliveryErrorKind(Enum):
    """Category of a failed delivery."""

    BAD_REQUEST = "bad_request"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    API_ERROR = "api_error"
    NETWORK = "network"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class DeliveryError(NexusEventError):
    """Raised when a message could not be delivered after retries.

    Attributes:
        kind: Failure category.
        status_code: HTTP status of the last response, if there was one.
        title: Title of the message that failed.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: DeliveryErrorKind = DeliveryErrorKind.UNKNOWN,
        status_code: int | None = None,
        title: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.title = title


class SenderFailedError(NexusEventError):
    """Wraps an individual sender's failure inside a broadcast result."""

    def __init__(self, sender_name: str, cause: BaseException) -> None:
        super().__init__(f'Sender "{sender_name}" failed: {cause}')
        self.sender_name = sender_name
        self.__cause__ = cause
