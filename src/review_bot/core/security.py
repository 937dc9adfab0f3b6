"""GitHub webhook signature verification."""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` signature GitHub sends for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_github_signature(body: bytes, signature_header: str | None, secret: str) -> bool:
    """Check an ``X-Hub-Signature-256`` header against the raw request body.

    Uses a constant-time comparison. A missing or malformed header fails.
    """
    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        return False
    expected = compute_signature(body, secret)
    return hmac.compare_digest(expected, signature_header)
