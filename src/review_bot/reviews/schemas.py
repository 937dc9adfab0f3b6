"""Pydantic schemas for PR review results."""

from __future__ import annotations

from pydantic import BaseModel


class ReviewResult(BaseModel):
    """Outcome of one PR review run."""

    success: bool
    pr_number: int
    design_doc_url: str | None = None
    analysis: str | None = None
    message: str = ""
    error: str | None = None
