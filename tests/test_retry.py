"""Tests for the upstream retry policy."""

from __future__ import annotations

import pytest
from tenacity import wait_none

from src.review_bot.core.errors import (
    NotFoundError,
    TransportError,
    UnauthorizedError,
    UpstreamServiceError,
    VersionConflictError,
)
from src.review_bot.core.retry import build_retrying, is_retryable


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (TransportError("timeout"), True),
        (UpstreamServiceError("busy", status_code=429), True),
        (UpstreamServiceError("down", status_code=503), True),
        (UpstreamServiceError("teapot", status_code=418), False),
        (VersionConflictError("stale", status_code=409), False),
        (UnauthorizedError("nope", status_code=401), False),
        (NotFoundError("gone", status_code=404), False),
        (ValueError("bug"), False),
    ],
)
def test_is_retryable(exc, expected):
    assert is_retryable(exc) is expected


async def _run(operation, max_attempts: int = 3):
    async for attempt in build_retrying(max_attempts, wait=wait_none()):
        with attempt:
            result = await operation()
    return result


async def test_retries_transient_failure_then_succeeds():
    calls = 0

    async def operation():
        nonlocal calls
        calls += 1
        if calls < 3:
            raise UpstreamServiceError("down", status_code=502)
        return "ok"

    assert await _run(operation) == "ok"
    assert calls == 3


async def test_gives_up_and_reraises_last_error():
    calls = 0

    async def operation():
        nonlocal calls
        calls += 1
        raise TransportError("connection reset")

    with pytest.raises(TransportError):
        await _run(operation, max_attempts=2)
    assert calls == 2


async def test_version_conflict_is_not_retried():
    calls = 0

    async def operation():
        nonlocal calls
        calls += 1
        raise VersionConflictError("stale", status_code=409)

    with pytest.raises(VersionConflictError):
        await _run(operation)
    assert calls == 1
