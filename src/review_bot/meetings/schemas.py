"""Pydantic v2 schemas for the meeting pipeline."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MeetingRequest(BaseModel):
    """Input for one meeting run, as submitted by the web form or CLI."""

    model_config = ConfigDict(populate_by_name=True)

    design_document_url: str = Field(..., alias="confluence_design_document_url")
    meeting_summary: str
    meeting_transcript: str = ""


class MeetingAnalysisResult(BaseModel):
    """Model analysis of a meeting; JSON keys are camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    summary: str = ""
    design_changes: list[str] = Field(default_factory=list, alias="designChanges")
    action_items: list[str] = Field(default_factory=list, alias="actionItems")
    should_update: bool = Field(False, alias="shouldUpdate")
    updated_content_html: str = Field("", alias="updatedContent")
    reasoning: str = ""

    @field_validator("design_changes", "action_items", mode="before")
    @classmethod
    def _coerce_items(cls, value: Any) -> list[str]:
        """Accept a single string or structured items (e.g. {"task": ..., "owner": ...})."""
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        items: list[str] = []
        for item in value:
            if isinstance(item, dict):
                items.append(", ".join(f"{k}: {v}" for k, v in item.items()))
            else:
                items.append(str(item))
        return items

    @field_validator("summary", "updated_content_html", "reasoning", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class MeetingResult(BaseModel):
    """Outcome of one meeting run."""

    success: bool
    design_document_url: str
    summary: str = ""
    action_items: list[str] = Field(default_factory=list)
    design_changes: list[str] = Field(default_factory=list)
    reasoning: str = ""
    updated: bool = False
    update_details: dict[str, Any] | None = None
    error: str | None = None
