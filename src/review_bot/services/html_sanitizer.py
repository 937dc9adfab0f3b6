"""HTML fragment sanitizer for Confluence storage-format bodies.

Model output and meeting notes are untrusted. Before they are appended to a
design document everything is escaped, then a small allow-list of
structural tags is re-opened. Anything else (scripts, iframes, macros)
stays as inert text.
"""

from __future__ import annotations

import html
import re

import structlog

logger = structlog.get_logger(__name__)

ALLOWED_TAGS: tuple[str, ...] = (
    "h1", "h2", "h3", "h4", "h5", "h6",
    "p", "ul", "ol", "li", "strong", "em",
    "br", "hr", "div", "span",
)
# Attributes kept on re-opened tags; event handlers and styles never survive
ALLOWED_ATTRIBUTES = frozenset({"class", "title"})
VOID_TAGS = frozenset({"br", "hr", "img"})

EMPTY_FALLBACK = "<p>No content provided</p>"

_UNESCAPED_AMP = re.compile(r"&(?!(?:[a-zA-Z][a-zA-Z0-9]*|#\d+|#[xX][0-9a-fA-F]+);)")
# Quoted attribute values may hold an escaped ``&gt;``; the tag ends at the first one outside quotes
_REOPEN = re.compile(
    r"&lt;(/?)(" + "|".join(ALLOWED_TAGS) + r")\b"
    r"""((?:"[^"]*"|'[^']*'|[^&"'])*?)(/?)&gt;""",
    re.IGNORECASE,
)
_ATTRIBUTE = re.compile(
    r"""([^\s"'/=]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=`]+)))?"""
)
_ANY_TAG = re.compile(r"<[^>]+>")
_OPEN_TAG = re.compile(r"<([a-zA-Z][a-zA-Z0-9]*)\b[^>]*>")
_CLOSE_TAG = re.compile(r"</([a-zA-Z][a-zA-Z0-9]*)\s*>")


def _kept_attributes(raw: str) -> str:
    kept = []
    for match in _ATTRIBUTE.finditer(raw):
        name = match.group(1).lower()
        if name not in ALLOWED_ATTRIBUTES:
            continue
        value = next((group for group in match.group(2, 3, 4) if group is not None), "")
        value = value.replace('"', "&quot;")
        kept.append(f' {name}="{value}"')
    return "".join(kept)


def _reopen(match: re.Match[str]) -> str:
    closing, tag, attributes, self_closing = match.groups()
    if closing:
        return f"</{tag}>"
    return f"<{tag}{_kept_attributes(attributes)}{self_closing}>"


def _is_balanced(fragment: str) -> bool:
    opening = 0
    for match in _OPEN_TAG.finditer(fragment):
        if match.group(1).lower() in VOID_TAGS or match.group(0).endswith("/>"):
            continue
        opening += 1
    closing = sum(
        1 for match in _CLOSE_TAG.finditer(fragment) if match.group(1).lower() not in VOID_TAGS
    )
    return opening == closing


def sanitize_html(raw: object) -> str:
    """Escape an untrusted fragment and re-open the allow-listed tags.

    Never raises. Plain text is wrapped in a paragraph, and fragments whose
    opening/closing tag counts disagree are wrapped in a single ``<div>``.
    """
    if not isinstance(raw, str) or not raw.strip():
        return EMPTY_FALLBACK

    try:
        escaped = _UNESCAPED_AMP.sub("&amp;", raw)
        escaped = escaped.replace("<", "&lt;").replace(">", "&gt;")
        result = _REOPEN.sub(_reopen, escaped)

        if not _ANY_TAG.search(result):
            return f"<p>{result}</p>"

        if not _is_balanced(result):
            logger.warning("sanitizer.unbalanced_fragment", length=len(result))
            result = f"<div>{result}</div>"

        return result
    except Exception as e:
        logger.error("sanitizer.failed", error=str(e))
        return f"<p>Error processing content: {html.escape(str(e))}</p>"


def html_to_text(markup: str) -> str:
    """Plain-text view of a storage-format body, whitespace collapsed."""
    if not markup:
        return ""
    text = _ANY_TAG.sub(" ", markup)
    text = text.replace("&nbsp;", " ")
    text = html.unescape(text)
    return re.sub(r"\s+", " ", text).strip()
