"""Prometheus metrics for the webhook server and model calls.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- track_llm_call(): Context manager for model call metrics
- record_pipeline_run(): Outcome counter for review and meeting pipelines
- get_metrics_response(): Response body for /metrics
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

# ── LLM Metrics ──────────────────────────────────────────────────────────────

llm_requests_total = Counter(
    "llm_requests_total",
    "Total LLM API requests",
    ["model", "family", "status"],
)

llm_request_duration_seconds = Histogram(
    "llm_request_duration_seconds",
    "LLM API request duration in seconds",
    ["model", "family"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

# ── Pipeline Metrics ─────────────────────────────────────────────────────────

pipeline_runs_total = Counter(
    "pipeline_runs_total",
    "Review and meeting pipeline runs by outcome",
    ["pipeline", "outcome"],
)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that records Prometheus metrics for every HTTP request.

    Skips the /metrics endpoint itself to avoid self-referential counting.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        # Route template keeps label cardinality bounded
        route = request.scope.get("route")
        endpoint = getattr(route, "path", None) or "unmatched"

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()

        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# ── LLM Metrics Helper ──────────────────────────────────────────────────────


@asynccontextmanager
async def track_llm_call(model: str, family: str) -> AsyncGenerator[dict[str, Any], None]:
    """Context manager that records duration and success/error of a model call.

    Usage:
        async with track_llm_call("gpt-4", "chat"):
            raw = await router.acompletion(...)
    """
    tracker: dict[str, Any] = {}
    start_time = time.perf_counter()
    status = "success"

    try:
        yield tracker
    except Exception:
        status = "error"
        raise
    finally:
        llm_requests_total.labels(model=model, family=family, status=status).inc()
        llm_request_duration_seconds.labels(model=model, family=family).observe(
            time.perf_counter() - start_time
        )


def record_pipeline_run(pipeline: str, outcome: str) -> None:
    """Count one pipeline run (``review`` / ``meeting``) by outcome."""
    pipeline_runs_total.labels(pipeline=pipeline, outcome=outcome).inc()


# ── Metrics Endpoint ─────────────────────────────────────────────────────────


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
