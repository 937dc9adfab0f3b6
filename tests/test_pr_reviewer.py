"""Unit tests for the PR review pipeline with mocked clients."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.review_bot.core.errors import PageNotFoundError
from src.review_bot.reviews.reviewer import MISSING_DOC_MESSAGE, PRReviewer, missing_doc_comment

DOC_URL = "https://acme.atlassian.net/wiki/spaces/ENG/pages/123456/Payments+Design"


@pytest.fixture
def github(changeset):
    client = MagicMock()
    client.get_pull_request = AsyncMock(return_value=changeset)
    client.post_comment = AsyncMock(return_value={"id": 1})
    client.check_connection = AsyncMock(return_value=True)
    return client


@pytest.fixture
def confluence(design_document):
    client = MagicMock()
    client.fetch_page = AsyncMock(return_value=design_document)
    client.check_connection = AsyncMock(return_value=False)
    return client


@pytest.fixture
def llm():
    client = MagicMock()
    client.review_changes = AsyncMock(return_value="- ✅ Refund endpoint matches the design")
    return client


@pytest.fixture
def reviewer(github, confluence, llm) -> PRReviewer:
    return PRReviewer(github, confluence, llm)


async def test_review_posts_formatted_comment(reviewer, github, confluence, llm, changeset, design_document):
    result = await reviewer.review_pr(42)

    assert result.success is True
    assert result.pr_number == 42
    assert result.design_doc_url == DOC_URL
    assert result.analysis == "- ✅ Refund endpoint matches the design"

    confluence.fetch_page.assert_awaited_once_with(DOC_URL)
    llm.review_changes.assert_awaited_once_with(changeset, design_document)

    pr_number, body = github.post_comment.call_args.args
    assert pr_number == 42
    assert body.startswith("## 🔍 Design Review")
    assert f"[Design Document]({DOC_URL})" in body
    assert "- ✅ Refund endpoint matches the design" in body


async def test_missing_design_doc_posts_notice_and_returns_failure(reviewer, github, confluence, changeset):
    github.get_pull_request.return_value = changeset.model_copy(update={"description": "No link"})

    result = await reviewer.review_pr(42)

    assert result.success is False
    assert result.message == MISSING_DOC_MESSAGE
    github.post_comment.assert_awaited_once_with(42, missing_doc_comment())
    confluence.fetch_page.assert_not_awaited()


async def test_failure_posts_error_comment_and_reraises(reviewer, github, confluence):
    confluence.fetch_page.side_effect = PageNotFoundError("Confluence page 123456 not found")

    with pytest.raises(PageNotFoundError):
        await reviewer.review_pr(42)

    body = github.post_comment.call_args.args[1]
    assert body.startswith("## ❌ Review Failed")
    assert "Confluence page 123456 not found" in body


async def test_error_comment_failure_reraises_review_error(reviewer, github, llm):
    llm.review_changes.side_effect = RuntimeError("model unavailable")
    github.post_comment.side_effect = RuntimeError("github down")

    with pytest.raises(RuntimeError, match="model unavailable"):
        await reviewer.review_pr(42)


async def test_review_many_is_sequential_and_captures_failures(reviewer, github, changeset):
    github.get_pull_request.side_effect = [
        changeset,
        RuntimeError("PR #2 not found"),
        changeset.model_copy(update={"number": 3}),
    ]

    results = await reviewer.review_many([1, 2, 3])

    assert [r.pr_number for r in results] == [1, 2, 3]
    assert [r.success for r in results] == [True, False, True]
    assert results[1].error == "PR #2 not found"


async def test_check_connections(reviewer):
    assert await reviewer.check_connections() == {"github": True, "confluence": False}


async def test_aclose_closes_every_client_and_can_repeat(reviewer, github, confluence, llm):
    for client in (github, confluence, llm):
        client.aclose = AsyncMock()

    await reviewer.aclose()
    await reviewer.aclose()

    for client in (github, confluence, llm):
        assert client.aclose.await_count == 2
