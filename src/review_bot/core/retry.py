"""Bounded retry policy for upstream HTTP calls.

Retries only transient failures: transport errors, HTTP 429 and 5xx.
Every other 4xx (including 409 version conflicts) surfaces immediately.
Backoff is exponential, 1-10s, matching the tenacity settings used by the
other HTTP clients in this codebase.
"""

from __future__ import annotations

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from src.review_bot.core.errors import TransportError, UpstreamServiceError

logger = structlog.get_logger(__name__)

DEFAULT_WAIT = wait_exponential(multiplier=1, min=1, max=10)


def is_retryable(exc: BaseException) -> bool:
    """True for failures worth another attempt."""
    if isinstance(exc, TransportError):
        return True
    if isinstance(exc, UpstreamServiceError):
        return exc.status_code == 429 or (exc.status_code or 0) >= 500
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "upstream.retrying",
        attempt=retry_state.attempt_number,
        error=str(exc),
        service=getattr(exc, "service", None),
        status_code=getattr(exc, "status_code", None),
    )


def build_retrying(max_attempts: int = 3, wait: wait_base | None = None) -> AsyncRetrying:
    """Create an AsyncRetrying controller for one logical upstream call.

    Usage:
        async for attempt in build_retrying(3):
            with attempt:
                response = await client.get(url)
                raise_for_status(response, service)
                return response

    Args:
        max_attempts: Total attempts including the first; values below 1 mean 1.
        wait: Override the backoff strategy (tests pass ``wait_none()``).
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait or DEFAULT_WAIT,
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        reraise=True,
    )
