"""Model client for OpenAI-compatible, Azure OpenAI and Azure "responses" endpoints.

One configurable ModelClient serves every task; what differs between a PR
review and a meeting analysis (system prompt, token limit, temperature)
travels in a PromptProfile.

Two endpoint families are supported:
- chat: standard chat-completions, dispatched through a LiteLLM Router
  (``openai/<model>`` or ``azure/<deployment>``)
- responses: the Azure ``/openai/responses`` endpoint, which has no system
  role and is called directly over httpx with an ``api-key`` header

Both return through ``extract_content`` so callers only ever see text.
"""

from __future__ import annotations

import re
from datetime import date
from enum import Enum
from typing import Any
from urllib.parse import urlparse

import httpx
import structlog
from litellm import Router
from tenacity.wait import wait_base

from src.review_bot.config import Settings
from src.review_bot.core.http import decode_json, raise_for_status, transport_error
from src.review_bot.core.monitoring import track_llm_call
from src.review_bot.core.retry import build_retrying
from src.review_bot.schemas.documents import DesignDocument, PullRequestChangeset
from src.review_bot.services.llm_response import extract_content
from src.review_bot.services.prompts import (
    MEETING_PROFILE,
    REVIEW_PROFILE,
    PromptProfile,
    build_meeting_prompt,
    build_review_prompt,
)

logger = structlog.get_logger(__name__)

SERVICE = "llm"
ROUTER_MODEL_NAME = "review-bot"

# Azure versions from this date accept max_completion_tokens
COMPLETION_TOKENS_SINCE = date(2024, 8, 1)

# Models that reject any temperature other than their default
FIXED_TEMPERATURE_MODELS: dict[str, float] = {
    "gpt-5-nano": 1.0,
}

_API_VERSION_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


class ApiFamily(str, Enum):
    CHAT = "chat"
    RESPONSES = "responses"


# ── Endpoint helpers ─────────────────────────────────────────────────────────


def is_azure_url(base_url: str) -> bool:
    host = urlparse(base_url).hostname or ""
    return host.endswith("azure.com")


def normalize_azure_base_url(base_url: str) -> str:
    """Canonical Azure endpoint for a configured base URL.

    ``*.cognitiveservices.azure.com`` and ``*.openai.azure.com`` are kept.
    Any other Azure host is rewritten to ``https://{resource}.openai.azure.com``
    where ``resource`` is the first host label. Trailing slashes are stripped.
    """
    url = base_url.rstrip("/")
    host = urlparse(url).hostname or ""
    if host.endswith("cognitiveservices.azure.com") or host.endswith("openai.azure.com"):
        return url
    if host.endswith("azure.com"):
        resource = host.split(".")[0]
        return f"https://{resource}.openai.azure.com"
    return url


def detect_api_family(base_url: str, configured: str = "auto") -> ApiFamily:
    """Pick the endpoint family; ``auto`` means responses for cognitiveservices hosts."""
    value = (configured or "auto").strip().lower()
    if value != "auto":
        return ApiFamily(value)
    host = urlparse(base_url).hostname or ""
    if host.endswith("cognitiveservices.azure.com"):
        return ApiFamily.RESPONSES
    return ApiFamily.CHAT


def parse_api_version(api_version: str | None) -> date | None:
    """Date part of an Azure API version (``2024-08-01-preview``), or None."""
    match = _API_VERSION_DATE.match((api_version or "").strip())
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def uses_completion_token_param(api_version: str | None, azure: bool) -> bool:
    """True when the token limit must be sent as ``max_completion_tokens``."""
    if not azure:
        return False
    released = parse_api_version(api_version)
    return released is not None and released >= COMPLETION_TOKENS_SINCE


def temperature_for(model: str, requested: float) -> float:
    return FIXED_TEMPERATURE_MODELS.get(model.lower(), requested)


# ── Model Client ─────────────────────────────────────────────────────────────


class ModelClient:
    """Completion client configured for a single model endpoint.

    Args:
        api_key: Provider API key.
        model: Model name (OpenAI) or fallback deployment name (Azure).
        base_url: Provider base URL; an ``azure.com`` host switches to Azure.
        api_version: Azure API version.
        deployment: Azure deployment name; defaults to ``model``.
        api_family: ``auto``, ``chat`` or ``responses``.
        timeout: Per-call timeout in seconds.
        max_retries: Attempts for transient failures.
        router: Pre-built LiteLLM Router (tests inject a mock).
        retry_wait: Backoff override for the responses endpoint.
        transport: httpx transport for the responses endpoint (tests).
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4",
        base_url: str = "https://api.openai.com/v1",
        api_version: str = "2024-02-15-preview",
        deployment: str | None = None,
        api_family: str = "auto",
        timeout: float = 60.0,
        max_retries: int = 3,
        router: Any = None,
        retry_wait: wait_base | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self.azure = is_azure_url(base_url)
        self.base_url = normalize_azure_base_url(base_url) if self.azure else base_url.rstrip("/")
        self.api_version = api_version
        self.deployment = deployment or model
        self.family = detect_api_family(self.base_url, api_family)
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_wait = retry_wait
        self._transport = transport
        self._router = router

        logger.info(
            "llm.client_configured",
            azure=self.azure,
            family=self.family.value,
            model=self.wire_model,
            base_url=self.base_url,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> ModelClient:
        return cls(
            settings.OPENAI_API_KEY,
            model=settings.LLM_MODEL,
            base_url=settings.OPENAI_BASE_URL,
            api_version=settings.AZURE_OPENAI_API_VERSION,
            deployment=settings.deployment_name,
            api_family=settings.LLM_API_FAMILY,
            timeout=settings.LLM_TIMEOUT,
            max_retries=settings.LLM_MAX_RETRIES,
            **kwargs,
        )

    @property
    def wire_model(self) -> str:
        """Model identifier sent in the request body."""
        return self.deployment if self.azure else self.model

    @property
    def router(self) -> Router:
        """LiteLLM Router for the chat family, built on first use."""
        if self._router is None:
            if self.azure:
                params = {
                    "model": f"azure/{self.deployment}",
                    "api_key": self._api_key,
                    "api_base": self.base_url,
                    "api_version": self.api_version,
                }
            else:
                params = {
                    "model": f"openai/{self.model}",
                    "api_key": self._api_key,
                    "api_base": self.base_url,
                }
            self._router = Router(
                model_list=[{"model_name": ROUTER_MODEL_NAME, "litellm_params": params}],
                num_retries=self._max_retries,
                timeout=self._timeout,
            )
        return self._router

    # ── Request bodies ──────────────────────────────────────────────────────

    def build_chat_request(self, profile: PromptProfile, user_prompt: str) -> dict[str, Any]:
        """Chat-completions body: system + user messages."""
        token_param = (
            "max_completion_tokens"
            if uses_completion_token_param(self.api_version, self.azure)
            else "max_tokens"
        )
        return {
            "model": self.wire_model,
            "messages": [
                {"role": "system", "content": profile.system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature_for(self.model, profile.temperature),
            token_param: profile.max_tokens,
        }

    def build_responses_request(self, profile: PromptProfile, user_prompt: str) -> dict[str, Any]:
        """Responses body; the format has no system role so both prompts share one message."""
        return {
            "model": self.wire_model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "input_text",
                            "text": f"{profile.system_prompt}\n\nUser Query: {user_prompt}",
                        }
                    ],
                }
            ],
        }

    # ── Dispatch ────────────────────────────────────────────────────────────

    async def _post_responses(self, body: dict[str, Any]) -> Any:
        url = f"{self.base_url}/openai/responses"
        async for attempt in build_retrying(self._max_retries, self._retry_wait):
            with attempt:
                try:
                    async with httpx.AsyncClient(
                        timeout=self._timeout, transport=self._transport
                    ) as client:
                        response = await client.post(
                            url,
                            params={"api-version": self.api_version},
                            headers={"api-key": self._api_key, "Content-Type": "application/json"},
                            json=body,
                        )
                except httpx.TransportError as exc:
                    raise transport_error(exc, SERVICE) from exc
                raise_for_status(response, SERVICE)
                return decode_json(response, SERVICE)

    async def complete(self, profile: PromptProfile, user_prompt: str) -> str:
        """Run one completion and return its text content.

        SDK and HTTP errors propagate to the caller.
        """
        logger.info(
            "llm.request_started",
            profile=profile.name,
            family=self.family.value,
            model=self.wire_model,
            prompt_chars=len(user_prompt),
        )
        async with track_llm_call(self.wire_model, self.family.value):
            if self.family == ApiFamily.RESPONSES:
                raw = await self._post_responses(self.build_responses_request(profile, user_prompt))
            else:
                body = self.build_chat_request(profile, user_prompt)
                body["model"] = ROUTER_MODEL_NAME
                raw = await self.router.acompletion(**body)

        content = extract_content(raw)
        logger.info("llm.request_completed", profile=profile.name, content_chars=len(content))
        return content

    async def review_changes(self, changeset: PullRequestChangeset, document: DesignDocument) -> str:
        """Concise code-vs-design review text for a PR."""
        return await self.complete(REVIEW_PROFILE, build_review_prompt(changeset, document))

    async def analyze_meeting(
        self,
        document: DesignDocument,
        meeting_summary: str,
        meeting_transcript: str = "",
    ) -> str:
        """Raw model answer to the meeting analysis prompt (expected to be JSON)."""
        return await self.complete(
            MEETING_PROFILE,
            build_meeting_prompt(document, meeting_summary, meeting_transcript),
        )

    async def aclose(self) -> None:
        """Drop the cached Router; the next chat call builds a fresh one."""
        self._router = None
        logger.debug("llm.client_closed", model=self.wire_model)
