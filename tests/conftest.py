"""Shared fixtures.

Provides:
- settings_factory: fully populated Settings isolated from .env files
- Sample upstream entities (changeset, design document)
- FastAPI test app with mock orchestrators on app.state
- Async HTTP client bound to the app via ASGITransport
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.review_bot.config import Settings
from src.review_bot.main import create_app
from src.review_bot.schemas.documents import DesignDocument, PullRequestChangeset

DOC_URL = "https://acme.atlassian.net/wiki/spaces/ENG/pages/123456/Payments+Design"

BASE_SETTINGS = {
    "GITHUB_TOKEN": "ghp_test",
    "GITHUB_REPO_OWNER": "acme",
    "GITHUB_REPO_NAME": "payments",
    "ATLASSIAN_API_TOKEN": "atl_test",
    "ATLASSIAN_DOMAIN": "acme.atlassian.net",
    "ATLASSIAN_EMAIL": "bot@acme.com",
    "OPENAI_API_KEY": "sk-test",
    "WEBHOOK_SECRET": "",
}


@pytest.fixture
def settings_factory():
    """Build Settings from test values plus overrides, ignoring any .env file."""

    def _make(**overrides) -> Settings:
        values = {**BASE_SETTINGS, **overrides}
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(settings_factory) -> Settings:
    return settings_factory()


@pytest.fixture
def changeset() -> PullRequestChangeset:
    return PullRequestChangeset(
        number=42,
        title="Add refund endpoint",
        description=f"Implements refunds.\n\nconfluence_design_document_url: {DOC_URL}\n",
        diff_text="diff --git a/api.py b/api.py\n+def refund(): ...\n",
    )


@pytest.fixture
def design_document() -> DesignDocument:
    return DesignDocument(
        page_id="123456",
        url=DOC_URL,
        title="Payments Design",
        version=5,
        status="current",
        body_storage_html="<h1>Payments</h1><p>Refunds go through the ledger service.</p>",
    )


@pytest.fixture
def mock_reviewer() -> MagicMock:
    reviewer = MagicMock()
    reviewer.review_pr = AsyncMock()
    reviewer.check_connections = AsyncMock(return_value={"github": True, "confluence": True})
    reviewer.aclose = AsyncMock()
    return reviewer


@pytest.fixture
def mock_summarizer() -> MagicMock:
    summarizer = MagicMock()
    summarizer.process_meeting = AsyncMock()
    summarizer.aclose = AsyncMock()
    return summarizer


@pytest.fixture
def app(settings, mock_reviewer, mock_summarizer):
    """FastAPI app with mock orchestrators (lifespan is not run by ASGITransport)."""
    application = create_app(settings)
    application.state.pr_reviewer = mock_reviewer
    application.state.meeting_summarizer = mock_summarizer
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
