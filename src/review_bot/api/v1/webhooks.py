"""GitHub webhook receiver.

Verifies ``X-Hub-Signature-256`` when a secret is configured, then
dispatches on ``X-GitHub-Event``:
- ping: pong
- pull_request (opened / synchronize / edited): run the design review
- pull_request_review: acknowledged, not processed
- anything else: acknowledged as not handled

The review runs inline so the response reports its outcome; GitHub's
10 second delivery timeout only marks the delivery as failed in the UI.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qs

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from src.review_bot.api.deps import get_app_settings, get_pr_reviewer
from src.review_bot.core.security import verify_github_signature
from src.review_bot.services.github import has_design_doc_url

logger = structlog.get_logger(__name__)

REVIEWABLE_ACTIONS = frozenset({"opened", "synchronize", "edited"})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_webhook_body(body: bytes) -> dict[str, Any]:
    """Decode a JSON or ``payload=<json>`` form-encoded delivery; ``{}`` if neither."""
    if not body:
        return {}
    text = body.decode("utf-8", errors="replace")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        form = parse_qs(text)
        if "payload" not in form:
            logger.warning("webhook.unparsable_body", body_chars=len(text))
            return {}
        try:
            data = json.loads(form["payload"][0])
        except json.JSONDecodeError:
            logger.warning("webhook.unparsable_form_payload")
            return {}
    return data if isinstance(data, dict) else {}


async def _handle_pull_request(request: Request, payload: dict[str, Any]) -> JSONResponse | dict:
    action = payload.get("action")
    pr_number = payload.get("number") or (payload.get("pull_request") or {}).get("number")
    repo_name = (payload.get("repository") or {}).get("full_name")
    log = logger.bind(pr_number=pr_number, action=action, repository=repo_name)
    log.info("webhook.pull_request_received")

    if action not in REVIEWABLE_ACTIONS:
        log.info("webhook.pull_request_ignored")
        return {"message": f"PR action {action} ignored"}

    pr_body = (payload.get("pull_request") or {}).get("body") or ""
    if not has_design_doc_url(pr_body):
        log.info("webhook.pull_request_skipped")
        return {
            "message": f"PR #{pr_number} skipped - no design document URL found",
            "hint": "Add confluence_design_document_url to PR description to trigger review",
        }

    if not isinstance(pr_number, int):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Pull request payload has no PR number",
        )

    reviewer = get_pr_reviewer(request)
    try:
        result = await reviewer.review_pr(pr_number)
    except Exception as e:
        log.error("webhook.review_failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": f"Failed to review PR #{pr_number}",
                "message": str(e),
                "timestamp": _now(),
            },
        )

    if result.success:
        return {
            "message": f"PR #{pr_number} reviewed successfully",
            "designDocUrl": result.design_doc_url,
            "timestamp": _now(),
        }
    return {
        "message": f"PR #{pr_number} review completed with warnings",
        "warning": result.message,
        "timestamp": _now(),
    }


async def github_webhook(request: Request):
    """Receive one GitHub webhook delivery."""
    settings = get_app_settings(request)
    body = await request.body()

    if settings.WEBHOOK_SECRET and not settings.WEBHOOK_SKIP_SIGNATURE_VALIDATION:
        signature = request.headers.get("X-Hub-Signature-256")
        if not verify_github_signature(body, signature, settings.WEBHOOK_SECRET):
            logger.warning("webhook.invalid_signature", has_signature=bool(signature))
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "Invalid signature"},
            )

    event = request.headers.get("X-GitHub-Event", "")
    payload = parse_webhook_body(body)

    if event == "ping":
        logger.info("webhook.ping", hook_id=payload.get("hook_id"))
        return {"message": "pong", "timestamp": _now()}
    if event == "pull_request":
        return await _handle_pull_request(request, payload)
    if event == "pull_request_review":
        return {"message": "PR review events not currently processed"}

    logger.info("webhook.event_not_handled", github_event=event)
    return {"message": f"Event {event} not handled"}


def create_webhook_router(path: str) -> APIRouter:
    """Router serving the webhook at the configured path."""
    router = APIRouter(tags=["webhooks"])
    router.add_api_route(path, github_webhook, methods=["POST"])
    return router
