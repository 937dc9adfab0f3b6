"""Meeting form endpoint.

POST /api/process-meeting accepts JSON or form-encoded
``{confluence_design_document_url, meeting_summary, meeting_transcript}``,
validates it, and runs the meeting pipeline.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.review_bot.api.deps import get_meeting_summarizer
from src.review_bot.meetings.schemas import MeetingRequest

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["meetings"])

MISSING_FIELDS_ERROR = (
    "Missing required fields: confluence_design_document_url and meeting_summary are required"
)
INVALID_URL_ERROR = "Invalid Confluence URL format"


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


async def _read_fields(request: Request) -> dict[str, Any]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}
    try:
        data = await request.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/process-meeting")
async def process_meeting(request: Request):
    """Analyse a meeting and update its design document when warranted."""
    fields = await _read_fields(request)
    url = str(fields.get("confluence_design_document_url") or "").strip()
    summary = str(fields.get("meeting_summary") or "").strip()
    transcript = str(fields.get("meeting_transcript") or "")

    if not url or not summary:
        return _error(status.HTTP_400_BAD_REQUEST, MISSING_FIELDS_ERROR)
    if not is_valid_url(url):
        return _error(status.HTTP_400_BAD_REQUEST, INVALID_URL_ERROR)

    summarizer = get_meeting_summarizer(request)
    meeting = MeetingRequest(
        design_document_url=url,
        meeting_summary=summary,
        meeting_transcript=transcript,
    )

    try:
        result = await summarizer.process_meeting(meeting)
    except Exception as e:
        logger.error("meeting_api.failed", error=str(e), design_document_url=url)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or "Failed to process meeting")

    return {
        "success": True,
        "message": "Meeting processed successfully",
        "updatedDocumentUrl": (result.update_details or {}).get("url", url),
        "summary": result.summary,
        "actionItems": result.action_items,
        "designChanges": result.design_changes,
        "updated": result.updated,
        "updatedContent": (
            "Design document has been updated" if result.updated else "No updates were needed"
        ),
    }
