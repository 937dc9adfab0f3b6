"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, a
lifespan that validates configuration, the GitHub webhook at the configured
path, and the v1 router (health, meeting form).
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.review_bot.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.review_bot.api.v1.router import router as v1_router
from src.review_bot.api.v1.webhooks import create_webhook_router
from src.review_bot.config import Settings, get_settings, validate_settings
from src.review_bot.core.monitoring import MetricsMiddleware, get_metrics_response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and fail fast on missing credentials."""
    log = structlog.get_logger(__name__)
    settings: Settings = app.state.settings
    configure_structlog(settings)
    validate_settings(settings)

    log.info(
        "server.started",
        environment=settings.ENVIRONMENT.value,
        webhook_path=settings.WEBHOOK_PATH,
        azure_llm=settings.is_azure,
        repository=f"{settings.GITHUB_REPO_OWNER}/{settings.GITHUB_REPO_NAME}",
        signature_validation=bool(settings.WEBHOOK_SECRET)
        and not settings.WEBHOOK_SKIP_SIGNATURE_VALIDATION,
    )
    if settings.WEBHOOK_SKIP_SIGNATURE_VALIDATION:
        log.warning("server.signature_validation_disabled")

    yield

    # Orchestrators are built lazily, so either may still be None
    for name in ("pr_reviewer", "meeting_summarizer"):
        service = getattr(app.state, name, None)
        if service is not None:
            await service.aclose()
    log.info("server.stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Design Review Bot",
        version="0.1.0",
        description="Reviews pull requests against Confluence design documents",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pr_reviewer = None
    app.state.meeting_summarizer = None

    # Middleware is added in reverse order (last added = outermost)

    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router)
    app.include_router(create_webhook_router(settings.WEBHOOK_PATH))

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().PORT)
