"""Prompt templates and per-task model profiles.

A PromptProfile bundles the strategy parameters that differ between tasks
(system prompt, token limit, temperature) so one ModelClient serves both
PR reviews and meeting analysis.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.review_bot.schemas.documents import DesignDocument, PullRequestChangeset

# Diffs beyond this are truncated before being sent to the model
MAX_DIFF_CHARS = 60_000
MAX_DOCUMENT_CHARS = 30_000


@dataclass(frozen=True)
class PromptProfile:
    """Strategy parameters for one kind of model call."""

    name: str
    system_prompt: str
    max_tokens: int
    temperature: float


REVIEW_SYSTEM_PROMPT = """\
You are a concise pull request reviewer. Compare code changes against the
design document and surface only what matters.

Rules:
- Keep reviews under 300 words
- Use bullet points and emojis (❌⚠️✅💡)
- Focus on conflicts with the design and missing requirements
- Give 2-3 specific, actionable recommendations
- Skip minor style notes

Format the answer as a GitHub PR comment with clear sections."""

MEETING_SYSTEM_PROMPT = """\
You maintain technical design documents. Given the current document and the
notes of a meeting about it, decide whether the meeting changed the design
and, if so, write a new section describing the changes.

Always answer with a single JSON object and nothing else. The section you
write may only use these HTML tags: h3, h4, p, ul, ol, li, strong, em, br."""

REVIEW_PROFILE = PromptProfile(
    name="review",
    system_prompt=REVIEW_SYSTEM_PROMPT,
    max_tokens=500,
    temperature=0.3,
)

MEETING_PROFILE = PromptProfile(
    name="meeting",
    system_prompt=MEETING_SYSTEM_PROMPT,
    max_tokens=2000,
    temperature=0.2,
)


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + f"\n... [truncated {len(text) - limit} characters]"


def build_review_prompt(changeset: PullRequestChangeset, document: DesignDocument) -> str:
    """Embed the PR diff and the document text into the review template."""
    return f"""\
Review this pull request against the design document. Report key issues only.

## Design Document
Title: {document.title or "N/A"}
Content: {_truncate(document.text_content, MAX_DOCUMENT_CHARS) or "No content available"}

## PR Changes
Title: {changeset.title or "N/A"}
```diff
{_truncate(changeset.diff_text, MAX_DIFF_CHARS) or "No diff available"}
```

## Instructions
Keep it brief and cover only:
- ❌ Critical issues or conflicts with the design
- ⚠️ Missing key requirements
- ✅ Major positives (if any)
- 💡 Top 2-3 actionable recommendations

Stay under 300 words. Use bullet points. Be direct."""


def build_meeting_prompt(
    document: DesignDocument,
    meeting_summary: str,
    meeting_transcript: str = "",
) -> str:
    """Embed the meeting notes and request a JSON analysis object."""
    transcript_block = meeting_transcript.strip() or "No transcript provided"
    return f"""\
## Design Document
Title: {document.title or "N/A"}
Content: {_truncate(document.text_content, MAX_DOCUMENT_CHARS) or "No content available"}

## Meeting Summary
{meeting_summary.strip()}

## Meeting Transcript
{_truncate(transcript_block, MAX_DOCUMENT_CHARS)}

## Instructions
Analyse the meeting against the design document and respond with JSON only:
{{
  "summary": "two or three sentence summary of the meeting",
  "designChanges": ["each design decision or change agreed in the meeting"],
  "actionItems": ["each follow-up task, with owner if mentioned"],
  "shouldUpdate": true,
  "updatedContent": "HTML section to append to the document, empty if shouldUpdate is false",
  "reasoning": "why the document does or does not need an update"
}}

Set "shouldUpdate" to false when the meeting did not change the design."""


def format_review_comment(analysis: str, design_doc_url: str) -> str:
    """Wrap a model review as a Markdown PR comment."""
    return (
        "## 🔍 Design Review\n\n"
        f"**Against:** [Design Document]({design_doc_url}) | **Bot:** AI Review\n\n"
        f"{analysis}\n\n"
        "---\n"
        "*Auto-generated review comparing PR changes with design document*"
    )
