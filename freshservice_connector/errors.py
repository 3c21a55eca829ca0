"""Exception hierarchy for the connector."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from freshservice_connector.client import RateLimit
    from freshservice_connector.ticketing import Ticket


class FreshServiceError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(FreshServiceError, ValueError):
    """Invalid or missing configuration. Raised before any sync starts."""


class TransportError(FreshServiceError):
    """The request could not be completed (network failure, bad response)."""


class HTTPStatusError(TransportError):
    """Freshservice answered with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        method: str,
        url: str,
        body: str = "",
        rate_limit: Optional["RateLimit"] = None,
    ) -> None:
        self.status_code = status_code
        self.method = method
        self.url = url
        self.body = body
        self.rate_limit = rate_limit
        super().__init__(f"{method} {url} returned HTTP {status_code}: {body[:200]}")


class RequestTimeout(HTTPStatusError):
    """HTTP 408. Read paths treat this as the end of the data."""


class RateLimitExceeded(HTTPStatusError):
    """HTTP 429. Never retried here; ``rate_limit.retry_after`` says when to come back."""


class DecodeError(TransportError):
    """Response body is not JSON, or a record lacks a required field."""

    def __init__(self, message: str, payload: Any = None) -> None:
        self.payload = payload
        super().__init__(message)


class InvalidPageToken(FreshServiceError, ValueError):
    """Page token was not produced by this connector for this resource type."""


class PrincipalTypeError(FreshServiceError, ValueError):
    """Grant or revoke was asked for a principal of the wrong kind."""


class UnsupportedOperation(FreshServiceError):
    """The resource type has no grantable entitlements."""


class TicketValidationError(FreshServiceError, ValueError):
    """Ticket does not satisfy its schema."""


class TicketUpdateError(FreshServiceError):
    """The service request was created but setting subject/description/tags failed.

    ``ticket`` holds what was created so the caller can still track it.
    """

    def __init__(self, message: str, ticket: "Ticket") -> None:
        self.ticket = ticket
        super().__init__(message)
