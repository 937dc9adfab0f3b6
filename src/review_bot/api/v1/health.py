"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready). Readiness
verifies GitHub and Confluence credentials and that a model key is set.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from src.review_bot.api.deps import get_app_settings, get_pr_reviewer

router = APIRouter(tags=["health"])

SERVICE_NAME = "PR Design Review Bot"


@router.get("/health")
async def health_check(request: Request):
    """Basic liveness check; no upstream calls."""
    settings = get_app_settings(request)
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "environment": settings.ENVIRONMENT.value,
    }


async def _check_dependencies(request: Request) -> dict:
    """Check configuration, GitHub, Confluence, and model key. Returns check results dict."""
    settings = get_app_settings(request)
    checks: dict = {"config": "ok", "github": "skipped", "confluence": "skipped"}

    missing = settings.missing_required()
    if missing:
        checks["config"] = "error"
        checks["config_missing"] = missing

    checks["llm"] = "ok" if settings.OPENAI_API_KEY else "no_key"

    if checks["config"] == "ok":
        try:
            connections = await get_pr_reviewer(request).check_connections()
        except HTTPException as e:
            checks["config"] = "error"
            checks["config_error"] = str(e.detail)
        else:
            for name, ok in connections.items():
                checks[name] = "ok" if ok else "error"

    return checks


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: 200 when configured and both upstream APIs authenticate, else 503."""
    checks = await _check_dependencies(request)
    all_healthy = (
        checks.get("config") == "ok"
        and checks.get("github") == "ok"
        and checks.get("confluence") == "ok"
        and checks.get("llm") == "ok"
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_healthy else "degraded",
            "checks": checks,
        },
    )
