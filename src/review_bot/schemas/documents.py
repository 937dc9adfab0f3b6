"""Pydantic schemas for the upstream entities the bot reads and writes.

Snapshots only: nothing here is persisted, each instance lives for the
duration of one review or meeting run.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.review_bot.services.html_sanitizer import html_to_text


class DesignDocument(BaseModel):
    """Read-only snapshot of a Confluence page in storage format."""

    page_id: str
    url: str
    title: str = ""
    version: int = Field(..., ge=1, description="Remote version number at read time")
    status: str = "current"
    body_storage_html: str = ""

    @property
    def text_content(self) -> str:
        """Plain-text body, used as model input."""
        return html_to_text(self.body_storage_html)


class PageVersion(BaseModel):
    """Cheap read taken immediately before every write."""

    page_id: str
    version: int
    title: str = ""
    status: str = "current"
    content_html: str = ""


class PullRequestChangeset(BaseModel):
    """Pull request metadata plus its unified diff."""

    number: int
    title: str = ""
    description: str = ""
    diff_text: str = ""
