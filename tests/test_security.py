"""Tests for GitHub webhook signature verification."""

from __future__ import annotations

from src.review_bot.core.security import compute_signature, verify_github_signature

BODY = b'{"zen": "Design for failure."}'


def test_compute_signature_format():
    signature = compute_signature(BODY, "secret")
    assert signature.startswith("sha256=")
    assert len(signature) == len("sha256=") + 64


def test_valid_signature():
    assert verify_github_signature(BODY, compute_signature(BODY, "secret"), "secret")


def test_wrong_secret_or_tampered_body():
    signature = compute_signature(BODY, "secret")
    assert not verify_github_signature(BODY, signature, "other")
    assert not verify_github_signature(BODY + b" ", signature, "secret")


def test_missing_or_malformed_header():
    assert not verify_github_signature(BODY, None, "secret")
    assert not verify_github_signature(BODY, "", "secret")
    assert not verify_github_signature(BODY, "sha1=abc", "secret")
