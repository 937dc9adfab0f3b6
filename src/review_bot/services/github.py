"""Async client for the GitHub REST API (v3).

Fetches pull request metadata and unified diffs and posts issue comments.
Shares the retry policy and error mapping used by the Confluence client.
"""

from __future__ import annotations

import re
from typing import Any

import httpx
import structlog
from tenacity.wait import wait_base

from src.review_bot.config import Settings
from src.review_bot.core.errors import ServiceError
from src.review_bot.core.http import decode_json, raise_for_status, transport_error
from src.review_bot.core.retry import build_retrying
from src.review_bot.schemas.documents import PullRequestChangeset

logger = structlog.get_logger(__name__)

SERVICE = "github"
USER_AGENT = "design-review-bot/0.1.0"
JSON_ACCEPT = "application/vnd.github.v3+json"
DIFF_ACCEPT = "application/vnd.github.v3.diff"

# Ordered, case-insensitive, first match wins
DESIGN_DOC_URL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"confluence_design_document_url[:\s]*(\S+)", re.IGNORECASE),
    re.compile(r"confluence[_\s]*design[_\s]*document[_\s]*url[:\s]*(\S+)", re.IGNORECASE),
    re.compile(r"design[_\s]*document[_\s]*url[:\s]*(\S+)", re.IGNORECASE),
    re.compile(r"confluence[_\s]*url[:\s]*(\S+)", re.IGNORECASE),
)


def extract_design_doc_url(description: str | None) -> str | None:
    """Find the design document link in a PR description."""
    if not description:
        return None
    for pattern in DESIGN_DOC_URL_PATTERNS:
        match = pattern.search(description)
        if match:
            return match.group(1).strip()
    return None


def has_design_doc_url(description: str | None) -> bool:
    return extract_design_doc_url(description) is not None


class GitHubClient:
    """Async client for one GitHub repository.

    Args:
        token: Personal access or app token.
        owner: Repository owner (user or org).
        repo: Repository name.
        api_url: API root, override for GitHub Enterprise.
        timeout: Per-request timeout in seconds.
        max_attempts: Attempts per call for retryable failures.
        retry_wait: Backoff override (tests pass ``wait_none()``).
        transport: Optional httpx transport for tests.
    """

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        *,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_wait: wait_base | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self._base_url = api_url.rstrip("/")
        self._headers = {
            "Authorization": f"token {token}",
            "Accept": JSON_ACCEPT,
            "User-Agent": USER_AGENT,
        }
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> GitHubClient:
        return cls(
            settings.GITHUB_TOKEN,
            settings.GITHUB_REPO_OWNER,
            settings.GITHUB_REPO_NAME,
            api_url=settings.GITHUB_API_URL,
            timeout=settings.HTTP_TIMEOUT,
            max_attempts=settings.HTTP_MAX_RETRIES,
            **kwargs,
        )

    @property
    def repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    def _client(self) -> httpx.AsyncClient:
        """Create a new httpx client with the auth headers."""
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
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
                raise_for_status(response, SERVICE, not_found_message=not_found_message)
                return response

    async def get_pull_request(self, number: int) -> PullRequestChangeset:
        """Fetch PR title, description and unified diff.

        Raises:
            NotFoundError: The PR does not exist in this repository.
        """
        path = f"{self.repo_path}/pulls/{number}"
        not_found = f"PR #{number} not found in {self.owner}/{self.repo}"

        meta_response = await self._request("GET", path, not_found_message=not_found)
        meta = decode_json(meta_response, SERVICE)

        diff_response = await self._request(
            "GET",
            path,
            headers={"Accept": DIFF_ACCEPT},
            not_found_message=not_found,
        )

        changeset = PullRequestChangeset(
            number=meta.get("number", number),
            title=meta.get("title") or "",
            description=meta.get("body") or "",
            diff_text=diff_response.text,
        )
        logger.info(
            "github.pull_request_fetched",
            pr_number=number,
            title=changeset.title,
            diff_chars=len(changeset.diff_text),
        )
        return changeset

    async def post_comment(self, number: int, body: str) -> dict[str, Any]:
        """Post an issue comment on the PR."""
        response = await self._request(
            "POST",
            f"{self.repo_path}/issues/{number}/comments",
            json={"body": body},
            not_found_message=f"PR #{number} not found in {self.owner}/{self.repo}",
        )
        data = decode_json(response, SERVICE)
        logger.info("github.comment_posted", pr_number=number, comment_id=data.get("id"))
        return data

    async def check_connection(self) -> bool:
        """True if the token authenticates."""
        try:
            await self._request("GET", "/user")
        except ServiceError as e:
            logger.warning("github.connection_failed", error=str(e), status_code=e.status_code)
            return False
        return True

    async def aclose(self) -> None:
        """Release client resources. Safe to call more than once."""
        logger.debug("github.client_closed", repository=f"{self.owner}/{self.repo}")
