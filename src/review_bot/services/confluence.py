"""Async client for the Confluence Cloud REST API (v2).

Reads design documents and appends sections to them using the page
``version.number`` for optimistic concurrency: every write sends the
version read just before it plus one, and a stale version comes back as a
409 which is raised as VersionConflictError (no retry, no merge).

Transient failures (transport errors, 429, 5xx) are retried with the shared
tenacity policy from src.review_bot.core.retry.
"""

from __future__ import annotations

import html
import re
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog
from tenacity.wait import wait_base

from src.review_bot.config import Settings
from src.review_bot.core.errors import NotFoundError, PageNotFoundError, ServiceError
from src.review_bot.core.http import decode_json, raise_for_status, transport_error
from src.review_bot.core.retry import build_retrying
from src.review_bot.schemas.documents import DesignDocument, PageVersion
from src.review_bot.services.html_sanitizer import html_to_text, sanitize_html

logger = structlog.get_logger(__name__)

SERVICE = "confluence"

# Ordered, first match wins
PAGE_ID_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/pages/(\d+)/"),
    re.compile(r"pageId=(\d+)"),
    re.compile(r"/(\d+)/[^/]*$"),
)


def extract_page_id(url: str | None) -> str | None:
    """Pull the numeric page ID out of a Confluence page URL."""
    if not url:
        return None
    for pattern in PAGE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def _body_html(data: dict[str, Any]) -> str:
    """Storage body of a page payload, falling back to the view body."""
    for container in (data.get("content") or {}, data):
        body = container.get("body") or {}
        for representation in ("storage", "view"):
            value = (body.get(representation) or {}).get("value")
            if value:
                return value
    return ""


class ConfluenceClient:
    """Async client for Confluence pages.

    All configuration is passed in explicitly; use ``from_settings`` to build
    one from the application Settings.

    Args:
        domain: Atlassian site host, e.g. ``acme.atlassian.net``.
        email: Account email used for Basic auth.
        api_token: Atlassian API token.
        timeout: Per-request timeout in seconds.
        max_attempts: Attempts per call for retryable failures.
        retry_wait: Backoff override (tests pass ``wait_none()``).
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        domain: str,
        email: str,
        api_token: str,
        *,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_wait: wait_base | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._domain = domain
        self._base_url = f"https://{domain}/wiki/api/v2"
        self._auth = httpx.BasicAuth(email, api_token)
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> ConfluenceClient:
        return cls(
            settings.ATLASSIAN_DOMAIN,
            settings.ATLASSIAN_EMAIL,
            settings.ATLASSIAN_API_TOKEN,
            timeout=settings.HTTP_TIMEOUT,
            max_attempts=settings.HTTP_MAX_RETRIES,
            **kwargs,
        )

    def _client(self) -> httpx.AsyncClient:
        """Create a new httpx client bound to the v2 API."""
        return httpx.AsyncClient(
            base_url=self._base_url,
            auth=self._auth,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        not_found: type[NotFoundError] = NotFoundError,
        not_found_message: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        async for attempt in build_retrying(self._max_attempts, self._retry_wait):
            with attempt:
                try:
                    async with self._client() as client:
                        response = await client.request(method, path, **kwargs)
                except httpx.TransportError as exc:
                    raise transport_error(exc, SERVICE) from exc
                raise_for_status(
                    response,
                    SERVICE,
                    not_found=not_found,
                    not_found_message=not_found_message,
                )
                return response

    async def _get_page_payload(self, page_id: str) -> dict[str, Any]:
        response = await self._request(
            "GET",
            f"/pages/{page_id}",
            params={"body-format": "storage"},
            not_found=PageNotFoundError,
            not_found_message=f"Confluence page {page_id} not found",
        )
        return decode_json(response, SERVICE)

    # ── Reads ────────────────────────────────────────────────────────────────

    async def fetch_page(self, url: str) -> DesignDocument:
        """Fetch a design document by its page URL.

        Raises:
            PageNotFoundError: No page ID in the URL, or the page does not exist.
            UnauthorizedError: Credentials rejected.
        """
        page_id = extract_page_id(url)
        if page_id is None:
            raise PageNotFoundError(
                f"Could not extract a page ID from URL: {url}",
                service=SERVICE,
                details={"url": url},
            )

        data = await self._get_page_payload(page_id)
        document = DesignDocument(
            page_id=str(data.get("id") or page_id),
            url=url,
            title=data.get("title", ""),
            version=(data.get("version") or {}).get("number", 1),
            status=data.get("status") or "current",
            body_storage_html=_body_html(data),
        )
        logger.info(
            "confluence.page_fetched",
            page_id=document.page_id,
            title=document.title,
            version=document.version,
        )
        return document

    def extract_text(self, document: DesignDocument | dict[str, Any]) -> str:
        """Plain text of a document snapshot or a raw page payload."""
        if isinstance(document, DesignDocument):
            return document.text_content
        return html_to_text(_body_html(document))

    async def get_version(self, page_id: str) -> PageVersion:
        """Read the current version, title, status and body of a page."""
        data = await self._get_page_payload(page_id)
        return PageVersion(
            page_id=page_id,
            version=(data.get("version") or {}).get("number", 1),
            title=data.get("title", ""),
            status=data.get("status") or "current",
            content_html=_body_html(data),
        )

    # ── Writes ───────────────────────────────────────────────────────────────

    async def update_page(
        self,
        page_id: str,
        content_html: str,
        title: str,
        current_version: int,
        status: str = "current",
        message: str | None = None,
    ) -> dict[str, Any]:
        """Replace the page body, sending ``current_version + 1``.

        Raises:
            VersionConflictError: ``current_version`` is stale (HTTP 409).
            UpstreamValidationError: Confluence rejected the body (HTTP 400);
                its field errors are on ``details``.
        """
        payload = {
            "id": page_id,
            "type": "page",
            "status": status,
            "title": title,
            "body": {
                "storage": {
                    "value": content_html,
                    "representation": "storage",
                }
            },
            "version": {
                "number": current_version + 1,
                "message": message or "Updated by design review bot",
            },
        }
        response = await self._request(
            "PUT",
            f"/pages/{page_id}",
            json=payload,
            not_found=PageNotFoundError,
            not_found_message=f"Confluence page {page_id} not found",
        )
        data = decode_json(response, SERVICE)
        logger.info(
            "confluence.page_updated",
            page_id=page_id,
            version=current_version + 1,
        )
        return data

    async def append_to_page(
        self,
        url: str,
        additional_html: str,
        section_title: str,
    ) -> dict[str, Any]:
        """Append a sanitized, timestamped section after the existing body.

        Existing content is kept verbatim as the prefix of the new body.

        Returns:
            Dict with page_id, version (the new one), title and url.
        """
        page_id = extract_page_id(url)
        if page_id is None:
            raise PageNotFoundError(
                f"Could not extract a page ID from URL: {url}",
                service=SERVICE,
                details={"url": url},
            )

        current = await self.get_version(page_id)
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        section = (
            f"<h2>{html.escape(section_title)} - {timestamp}</h2>"
            f"{sanitize_html(additional_html)}"
            "<hr/>"
        )

        data = await self.update_page(
            page_id,
            current.content_html + section,
            current.title,
            current.version,
            status=current.status,
            message=f"{section_title} ({timestamp})",
        )

        webui = (data.get("_links") or {}).get("webui")
        return {
            "page_id": page_id,
            "version": (data.get("version") or {}).get("number", current.version + 1),
            "title": data.get("title", current.title),
            "url": f"https://{self._domain}/wiki{webui}" if webui else url,
        }

    async def check_connection(self) -> bool:
        """True if the credentials can list spaces."""
        try:
            await self._request("GET", "/spaces", params={"limit": 1})
        except ServiceError as e:
            logger.warning("confluence.connection_failed", error=str(e), status_code=e.status_code)
            return False
        return True

    async def aclose(self) -> None:
        """Release client resources. Safe to call more than once.

        Each request opens its own ``httpx.AsyncClient``, so nothing is pooled.
        """
        logger.debug("confluence.client_closed", domain=self._domain)
