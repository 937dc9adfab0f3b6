"""Normalize model responses from different wire formats to plain text.

Chat-completions (OpenAI, Azure OpenAI, litellm ModelResponse) and the Azure
"responses" endpoint return structurally different JSON. ``extract_content``
is the single place that knows about both; callers only ever see a string.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

EXTRACTION_ERROR = "Error: Could not extract content from response"


def _to_plain(raw: Any) -> Any:
    """Convert SDK objects (pydantic / litellm) to plain dicts."""
    if hasattr(raw, "model_dump"):
        return raw.model_dump()
    return raw


def _from_choices(data: dict[str, Any]) -> str | None:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    message = (choices[0] or {}).get("message") or {}
    content = message.get("content")
    return content if isinstance(content, str) else None


def _from_output(data: dict[str, Any]) -> str | None:
    output = data.get("output")
    if not isinstance(output, list) or not output:
        return None

    for item in output:
        if not isinstance(item, dict) or item.get("type") != "message":
            continue
        for part in item.get("content") or []:
            if isinstance(part, dict) and part.get("type") == "output_text":
                text = part.get("text")
                if isinstance(text, str):
                    return text

    first = output[0]
    content = first.get("content") if isinstance(first, dict) else None
    if isinstance(content, str):
        return content
    if isinstance(content, list) and content:
        head = content[0]
        text = head.get("text") if isinstance(head, dict) else None
        if isinstance(text, str):
            return text
    return None


def extract_content(raw: Any) -> str:
    """Return the text content of a model response.

    Recognized shapes, in order: ``choices[0].message.content``; the
    responses ``output[]`` array; flat ``{"response": ...}`` or
    ``{"text": ...}``; a raw string. Anything else is returned as
    pretty-printed JSON so nothing is silently dropped. Never raises.
    """
    try:
        data = _to_plain(raw)

        if isinstance(data, str):
            return data

        if isinstance(data, dict):
            for extractor in (_from_choices, _from_output):
                content = extractor(data)
                if content is not None:
                    return content
            for key in ("response", "text"):
                if isinstance(data.get(key), str):
                    return data[key]

        logger.warning("llm.unrecognized_response_shape", type=type(data).__name__)
        return json.dumps(data, indent=2, default=str)
    except Exception as e:
        logger.error("llm.response_extraction_failed", error=str(e))
        return EXTRACTION_ERROR
