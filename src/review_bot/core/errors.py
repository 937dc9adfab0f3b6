"""Error taxonomy for upstream service failures.

Every failure that crosses a client boundary (Confluence, GitHub, model
provider) is raised as a ServiceError subclass so orchestrators and the
HTTP layer can react by kind rather than by string matching.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for failures talking to an external service.

    Args:
        message: Human-readable description.
        service: Upstream name ("confluence", "github", "llm").
        status_code: HTTP status returned by the upstream, if any.
        details: Raw upstream error payload, preserved verbatim.
    """

    def __init__(
        self,
        message: str,
        *,
        service: str = "",
        status_code: int | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.service = service
        self.status_code = status_code
        self.details = details

    def __str__(self) -> str:
        return self.message


class ConfigurationError(ServiceError):
    """Required settings are missing or invalid."""


class NotFoundError(ServiceError):
    """The upstream resource does not exist (HTTP 404)."""


class PageNotFoundError(NotFoundError):
    """The design document URL does not resolve to a page."""


class UnauthorizedError(ServiceError):
    """Credentials were rejected (HTTP 401/403)."""


class VersionConflictError(ServiceError):
    """The page changed since its version was read (HTTP 409).

    Never retried and never merged: the caller must re-read and try again.
    """


class UpstreamValidationError(ServiceError):
    """The upstream rejected the payload (HTTP 400); ``details`` holds its errors."""


class ParseError(ServiceError):
    """An upstream response could not be decoded."""


class TransportError(ServiceError):
    """Connection, DNS or timeout failure before a response was received."""


class UpstreamServiceError(ServiceError):
    """Any other non-2xx response (rate limits and 5xx included)."""
