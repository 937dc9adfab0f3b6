"""Tests for the GitHub webhook endpoint.

Uses the ASGI test client with a mock PRReviewer on app.state; signatures
are computed with the same helper GitHub's format is verified against.
"""

from __future__ import annotations

import json
from urllib.parse import urlencode

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.review_bot.core.security import compute_signature
from src.review_bot.main import create_app
from src.review_bot.reviews.schemas import ReviewResult

SECRET = "s3cret"
DOC_URL = "https://acme.atlassian.net/wiki/spaces/ENG/pages/123456/Payments+Design"


def _pr_payload(action: str = "opened", body: str | None = None) -> dict:
    return {
        "action": action,
        "number": 42,
        "pull_request": {
            "number": 42,
            "body": body if body is not None else f"confluence_design_document_url: {DOC_URL}",
        },
        "repository": {"full_name": "acme/payments"},
    }


@pytest_asyncio.fixture
async def signed_client(settings_factory, mock_reviewer):
    app = create_app(settings_factory(WEBHOOK_SECRET=SECRET))
    app.state.pr_reviewer = mock_reviewer
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _deliver(client: AsyncClient, event: str, payload: dict, *, secret: str | None = SECRET):
    body = json.dumps(payload).encode()
    headers = {"X-GitHub-Event": event, "Content-Type": "application/json"}
    if secret:
        headers["X-Hub-Signature-256"] = compute_signature(body, secret)
    return await client.post("/webhook", content=body, headers=headers)


# ── Signature verification ───────────────────────────────────────────────────


async def test_ping_with_valid_signature(signed_client):
    response = await _deliver(signed_client, "ping", {"zen": "Keep it simple", "hook_id": 1})
    assert response.status_code == 200
    assert response.json()["message"] == "pong"
    assert "timestamp" in response.json()


async def test_invalid_signature_is_rejected(signed_client, mock_reviewer):
    response = await _deliver(signed_client, "pull_request", _pr_payload(), secret="wrong")
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid signature"}
    mock_reviewer.review_pr.assert_not_awaited()


async def test_missing_signature_is_rejected(signed_client):
    response = await _deliver(signed_client, "ping", {}, secret=None)
    assert response.status_code == 401


async def test_skip_flag_disables_signature_check(settings_factory, mock_reviewer):
    app = create_app(
        settings_factory(WEBHOOK_SECRET=SECRET, WEBHOOK_SKIP_SIGNATURE_VALIDATION=True)
    )
    app.state.pr_reviewer = mock_reviewer
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await _deliver(ac, "ping", {}, secret=None)
    assert response.status_code == 200


async def test_no_secret_configured_accepts_unsigned(client):
    response = await _deliver(client, "ping", {}, secret=None)
    assert response.status_code == 200


# ── pull_request events ──────────────────────────────────────────────────────


async def test_opened_pr_is_reviewed(signed_client, mock_reviewer):
    mock_reviewer.review_pr.return_value = ReviewResult(
        success=True, pr_number=42, design_doc_url=DOC_URL, analysis="ok"
    )

    response = await _deliver(signed_client, "pull_request", _pr_payload("synchronize"))

    assert response.status_code == 200
    assert response.json()["message"] == "PR #42 reviewed successfully"
    assert response.json()["designDocUrl"] == DOC_URL
    mock_reviewer.review_pr.assert_awaited_once_with(42)


async def test_review_with_warning(signed_client, mock_reviewer):
    mock_reviewer.review_pr.return_value = ReviewResult(
        success=False, pr_number=42, message="No confluence design document URL found"
    )

    response = await _deliver(signed_client, "pull_request", _pr_payload("edited"))

    assert response.json()["message"] == "PR #42 review completed with warnings"
    assert response.json()["warning"] == "No confluence design document URL found"


@pytest.mark.parametrize("action", ["closed", "labeled", "reopened"])
async def test_other_actions_are_ignored(signed_client, mock_reviewer, action):
    response = await _deliver(signed_client, "pull_request", _pr_payload(action))
    assert response.status_code == 200
    assert response.json() == {"message": f"PR action {action} ignored"}
    mock_reviewer.review_pr.assert_not_awaited()


async def test_pr_without_design_doc_is_skipped(signed_client, mock_reviewer):
    response = await _deliver(signed_client, "pull_request", _pr_payload(body="Just a fix"))

    data = response.json()
    assert data["message"] == "PR #42 skipped - no design document URL found"
    assert "confluence_design_document_url" in data["hint"]
    mock_reviewer.review_pr.assert_not_awaited()


async def test_review_failure_returns_500(signed_client, mock_reviewer):
    mock_reviewer.review_pr.side_effect = RuntimeError("Confluence unreachable")

    response = await _deliver(signed_client, "pull_request", _pr_payload())

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to review PR #42"
    assert response.json()["message"] == "Confluence unreachable"


async def test_form_encoded_payload(signed_client, mock_reviewer):
    mock_reviewer.review_pr.return_value = ReviewResult(success=True, pr_number=42, design_doc_url=DOC_URL)
    body = urlencode({"payload": json.dumps(_pr_payload())}).encode()

    response = await signed_client.post(
        "/webhook",
        content=body,
        headers={
            "X-GitHub-Event": "pull_request",
            "Content-Type": "application/x-www-form-urlencoded",
            "X-Hub-Signature-256": compute_signature(body, SECRET),
        },
    )

    assert response.status_code == 200
    mock_reviewer.review_pr.assert_awaited_once_with(42)


# ── Other events ─────────────────────────────────────────────────────────────


async def test_pull_request_review_event_is_acknowledged(signed_client):
    response = await _deliver(signed_client, "pull_request_review", {"action": "submitted"})
    assert response.json() == {"message": "PR review events not currently processed"}


async def test_unknown_event_is_not_handled(signed_client):
    response = await _deliver(signed_client, "issues", {"action": "opened"})
    assert response.json() == {"message": "Event issues not handled"}


async def test_garbage_body_is_treated_as_empty(client):
    response = await client.post(
        "/webhook",
        content=b"not json at all",
        headers={"X-GitHub-Event": "ping", "Content-Type": "text/plain"},
    )
    assert response.status_code == 200


async def test_custom_webhook_path(settings_factory, mock_reviewer):
    app = create_app(settings_factory(WEBHOOK_PATH="/hooks/github"))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await _deliver(ac, "ping", {}, secret=None)
        assert response.status_code == 404
        response = await ac.post("/hooks/github", json={}, headers={"X-GitHub-Event": "ping"})
        assert response.status_code == 200
