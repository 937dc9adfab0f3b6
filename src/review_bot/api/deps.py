"""FastAPI helpers for app-scoped resources.

Orchestrators are built lazily on first use and cached on ``app.state`` so
the server can start (and answer /health) before credentials are complete.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.review_bot.config import Settings, get_settings, validate_settings
from src.review_bot.core.errors import ConfigurationError
from src.review_bot.meetings.summarizer import MeetingSummarizer
from src.review_bot.reviews.reviewer import PRReviewer


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with, falling back to the environment."""
    return getattr(request.app.state, "settings", None) or get_settings()


def _validated_settings(request: Request) -> Settings:
    try:
        return validate_settings(get_app_settings(request))
    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e


def get_pr_reviewer(request: Request) -> PRReviewer:
    """Retrieve PRReviewer from app.state, building it on first use; 503 if unconfigured."""
    reviewer = getattr(request.app.state, "pr_reviewer", None)
    if reviewer is None:
        reviewer = PRReviewer.from_settings(_validated_settings(request))
        request.app.state.pr_reviewer = reviewer
    return reviewer


def get_meeting_summarizer(request: Request) -> MeetingSummarizer:
    """Retrieve MeetingSummarizer from app.state, building it on first use; 503 if unconfigured."""
    summarizer = getattr(request.app.state, "meeting_summarizer", None)
    if summarizer is None:
        summarizer = MeetingSummarizer.from_settings(_validated_settings(request))
        request.app.state.meeting_summarizer = summarizer
    return summarizer
