"""Translate httpx responses and exceptions into the ServiceError taxonomy."""

from __future__ import annotations

from typing import Any

import httpx

from src.review_bot.core.errors import (
    NotFoundError,
    ParseError,
    ServiceError,
    TransportError,
    UnauthorizedError,
    UpstreamServiceError,
    UpstreamValidationError,
    VersionConflictError,
)


def _error_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def raise_for_status(
    response: httpx.Response,
    service: str,
    *,
    not_found: type[NotFoundError] = NotFoundError,
    not_found_message: str | None = None,
) -> None:
    """Raise the typed error matching a non-2xx response.

    Args:
        response: The httpx response to inspect.
        service: Upstream name recorded on the error.
        not_found: NotFoundError subclass to raise on 404.
        not_found_message: Message override for 404s.
    """
    if response.is_success:
        return

    status_code = response.status_code
    details = _error_payload(response)
    label = f"{service} {response.request.method} {response.request.url.path}"

    if status_code == 404:
        raise not_found(
            not_found_message or f"{label}: resource not found",
            service=service,
            status_code=status_code,
            details=details,
        )
    if status_code in (401, 403):
        raise UnauthorizedError(
            f"{label}: authentication failed ({status_code})",
            service=service,
            status_code=status_code,
            details=details,
        )
    if status_code == 409:
        raise VersionConflictError(
            f"{label}: version conflict, the resource was modified concurrently",
            service=service,
            status_code=status_code,
            details=details,
        )
    if status_code == 400:
        raise UpstreamValidationError(
            f"{label}: request rejected: {details}",
            service=service,
            status_code=status_code,
            details=details,
        )
    raise UpstreamServiceError(
        f"{label}: unexpected status {status_code}",
        service=service,
        status_code=status_code,
        details=details,
    )


def decode_json(response: httpx.Response, service: str) -> Any:
    """Parse a JSON body, raising ParseError on malformed payloads."""
    try:
        return response.json()
    except ValueError as exc:
        raise ParseError(
            f"{service}: response is not valid JSON",
            service=service,
            status_code=response.status_code,
            details=response.text[:500],
        ) from exc


def transport_error(exc: httpx.TransportError, service: str) -> ServiceError:
    """Wrap an httpx transport failure (connect, read, timeout)."""
    return TransportError(f"{service}: {type(exc).__name__}: {exc}", service=service)
