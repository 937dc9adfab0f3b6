"""MeetingSummarizer: fold meeting outcomes into the design document.

Pipeline (strictly sequential):
1. Fetch the design document from Confluence
2. Ask the model to analyse the meeting against it (JSON answer)
3. Parse the answer best-effort, falling back to line heuristics
4. If an update is warranted, append a sanitized section to the page

Model answers are untrusted: parsing never raises, and everything written
to Confluence goes through the HTML sanitizer in ``append_to_page``.
"""

from __future__ import annotations

import html
import json
import re
from collections.abc import Iterable

import structlog
from pydantic import ValidationError

from src.review_bot.config import Settings
from src.review_bot.core.monitoring import record_pipeline_run
from src.review_bot.meetings.schemas import MeetingAnalysisResult, MeetingRequest, MeetingResult
from src.review_bot.services.confluence import ConfluenceClient
from src.review_bot.services.llm import ModelClient

logger = structlog.get_logger(__name__)

SECTION_TITLE = "Meeting Discussion Update"
FALLBACK_SUMMARY_CHARS = 500

_ITEM_PREFIX = re.compile(r"^(?:[-*•]\s*)?(?:\[\s?\]\s*)?(?:action:|todo:)?\s*", re.IGNORECASE)


# ── Parsing ──────────────────────────────────────────────────────────────────


def extract_json_block(text: str) -> str | None:
    """First balanced ``{...}`` block in ``text``, ignoring braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def extract_action_items(text: str) -> list[str]:
    """Heuristic scan for action-item lines.

    Matches lines containing ``action:``, ``todo:`` or ``- [ ]``, and bullet
    lines that contain "to " (``- Alice to update the API``).
    """
    items: list[str] = []
    for line in (text or "").splitlines():
        stripped = line.strip()
        lowered = stripped.lower()
        if (
            "action:" in lowered
            or "todo:" in lowered
            or "- [ ]" in lowered
            or (stripped.startswith("-") and "to " in lowered)
        ):
            items.append(stripped)
    return items


def _fallback_summary(meeting_summary: str) -> str:
    summary = " ".join((meeting_summary or "").split())
    if not summary:
        return "Meeting processed; the analysis could not be parsed."
    if len(summary) > FALLBACK_SUMMARY_CHARS:
        summary = summary[:FALLBACK_SUMMARY_CHARS].rstrip() + "..."
    return summary


def parse_meeting_analysis(text: str, meeting_summary: str = "") -> MeetingAnalysisResult:
    """Turn the model's answer into a MeetingAnalysisResult. Never raises.

    When no valid JSON object is found the result has ``should_update=False``,
    a summary derived from the meeting notes, and heuristically extracted
    action items.
    """
    block = extract_json_block(text or "")
    if block is not None:
        try:
            analysis = MeetingAnalysisResult.model_validate(json.loads(block))
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning("meeting.analysis_parse_failed", error=str(e))
        else:
            if not analysis.summary.strip():
                analysis.summary = _fallback_summary(meeting_summary)
            if not analysis.action_items:
                analysis.action_items = extract_action_items(meeting_summary)
            return analysis
    else:
        logger.warning("meeting.analysis_json_missing", response_chars=len(text or ""))

    return MeetingAnalysisResult(
        summary=_fallback_summary(meeting_summary),
        action_items=extract_action_items(text) or extract_action_items(meeting_summary),
        should_update=False,
        updated_content_html="",
        reasoning="Model response did not contain a parsable JSON object",
    )


def format_action_items_html(items: Iterable[str]) -> str:
    """Action items as an escaped ``<ul>`` block, empty string when none."""
    cleaned = [_ITEM_PREFIX.sub("", item).strip() for item in items]
    cleaned = [item for item in cleaned if item]
    if not cleaned:
        return ""
    rows = "".join(f"<li>{html.escape(item)}</li>" for item in cleaned)
    return f"<h3>📋 Action Items</h3><ul>{rows}</ul>"


# ── Pipeline ─────────────────────────────────────────────────────────────────


class MeetingSummarizer:
    """Runs the meeting pipeline against one Confluence site and model.

    Args:
        confluence: Client used to read and append to design documents.
        llm: Model client used for the meeting analysis.
    """

    def __init__(self, confluence: ConfluenceClient, llm: ModelClient) -> None:
        self.confluence = confluence
        self.llm = llm

    @classmethod
    def from_settings(cls, settings: Settings) -> MeetingSummarizer:
        return cls(ConfluenceClient.from_settings(settings), ModelClient.from_settings(settings))

    async def aclose(self) -> None:
        """Close both clients; safe to call more than once."""
        await self.confluence.aclose()
        await self.llm.aclose()

    async def process_meeting(self, request: MeetingRequest) -> MeetingResult:
        """Analyse one meeting and append to the document when warranted.

        Errors are logged and re-raised; the HTTP layer reports them.
        """
        url = request.design_document_url
        log = logger.bind(design_document_url=url)
        log.info("meeting.started", summary_chars=len(request.meeting_summary))

        try:
            document = await self.confluence.fetch_page(url)
            raw = await self.llm.analyze_meeting(
                document,
                request.meeting_summary,
                request.meeting_transcript,
            )
            analysis = parse_meeting_analysis(raw, request.meeting_summary)

            update_details = None
            if analysis.should_update and analysis.updated_content_html.strip():
                content = analysis.updated_content_html + format_action_items_html(
                    analysis.action_items
                )
                update_details = await self.confluence.append_to_page(url, content, SECTION_TITLE)
                log.info("meeting.document_updated", version=update_details.get("version"))
            else:
                log.info("meeting.no_update_needed", reasoning=analysis.reasoning[:200])
        except Exception as e:
            log.error("meeting.failed", error=str(e), error_type=type(e).__name__)
            record_pipeline_run("meeting", "error")
            raise

        record_pipeline_run("meeting", "updated" if update_details else "unchanged")
        return MeetingResult(
            success=True,
            design_document_url=url,
            summary=analysis.summary,
            action_items=analysis.action_items,
            design_changes=analysis.design_changes,
            reasoning=analysis.reasoning,
            updated=update_details is not None,
            update_details=update_details,
        )

    async def process_many(self, requests: Iterable[MeetingRequest]) -> list[MeetingResult]:
        """Process meetings one at a time; a failure is recorded, not raised."""
        results: list[MeetingResult] = []
        for request in requests:
            try:
                results.append(await self.process_meeting(request))
            except Exception as e:
                results.append(
                    MeetingResult(
                        success=False,
                        design_document_url=request.design_document_url,
                        error=str(e),
                    )
                )
        return results
