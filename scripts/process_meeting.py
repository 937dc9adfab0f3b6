#!/usr/bin/env python3
"""CLI script to fold a meeting summary into its Confluence design document.

Usage:
    uv run python scripts/process_meeting.py \
        --url "https://acme.atlassian.net/wiki/spaces/ENG/pages/123456/Design" \
        --summary-file notes.md [--transcript-file transcript.txt]

    echo "Agreed to switch to gRPC. Action: Bob to update the API section" | \
        uv run python scripts/process_meeting.py --url ... --summary-file -

Reads credentials from the environment or the .env file in the project root.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure project root is on sys.path so we can import src.review_bot
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


def read_text(path: str | None) -> str:
    if not path:
        return ""
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


async def process(url: str, summary: str, transcript: str) -> int:
    """Run the meeting pipeline once. Returns the process exit code."""
    from src.review_bot.api.middleware.logging import configure_structlog
    from src.review_bot.config import get_settings, validate_settings
    from src.review_bot.core.errors import ConfigurationError
    from src.review_bot.meetings.schemas import MeetingRequest
    from src.review_bot.meetings.summarizer import MeetingSummarizer

    settings = get_settings()
    configure_structlog(settings)
    try:
        validate_settings(settings)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    summarizer = MeetingSummarizer.from_settings(settings)
    request = MeetingRequest(
        design_document_url=url,
        meeting_summary=summary,
        meeting_transcript=transcript,
    )
    try:
        result = await summarizer.process_meeting(request)
    except Exception as e:
        print(f"Meeting processing failed: {e}", file=sys.stderr)
        return 1
    finally:
        await summarizer.aclose()

    print(f"Summary: {result.summary}")
    if result.action_items:
        print("Action items:")
        for item in result.action_items:
            print(f"  - {item}")
    if result.updated:
        print(f"Design document updated: {(result.update_details or {}).get('url', url)}")
    else:
        print("No updates were needed")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Update a design document from meeting notes")
    parser.add_argument("--url", required=True, help="Confluence design document URL")
    parser.add_argument("--summary-file", required=True, help="Meeting summary file ('-' for stdin)")
    parser.add_argument("--transcript-file", default=None, help="Optional meeting transcript file")
    args = parser.parse_args()

    summary = read_text(args.summary_file).strip()
    if not summary:
        parser.error("meeting summary is empty")

    sys.exit(asyncio.run(process(args.url, summary, read_text(args.transcript_file))))


if __name__ == "__main__":
    main()
