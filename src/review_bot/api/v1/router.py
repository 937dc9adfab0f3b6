"""V1 API router -- aggregates the endpoint routers with fixed paths.

The webhook router is mounted separately because its path is configurable.
"""

from __future__ import annotations

from fastapi import APIRouter

from src.review_bot.api.v1 import health, meetings

router = APIRouter()

router.include_router(health.router)
router.include_router(meetings.router)
