#!/usr/bin/env python3
"""CLI script to review one or more pull requests against their design documents.

Usage:
    uv run python scripts/review_pr.py 123
    uv run python scripts/review_pr.py 123 124 125

Reads credentials from the environment or the .env file in the project root.
Each PR gets a review comment (or a missing-design-document notice).
Exits non-zero if any review fails.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure project root is on sys.path so we can import src.review_bot
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid PR number: {value}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"PR number must be positive: {value}")
    return number


async def review(pr_numbers: list[int]) -> int:
    """Review the given PRs sequentially. Returns the process exit code."""
    from src.review_bot.api.middleware.logging import configure_structlog
    from src.review_bot.config import get_settings, validate_settings
    from src.review_bot.core.errors import ConfigurationError
    from src.review_bot.reviews.reviewer import PRReviewer

    settings = get_settings()
    configure_structlog(settings)
    try:
        validate_settings(settings)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    reviewer = PRReviewer.from_settings(settings)
    try:
        return await _review_with(reviewer, pr_numbers)
    finally:
        await reviewer.aclose()


async def _review_with(reviewer, pr_numbers: list[int]) -> int:
    connections = await reviewer.check_connections()
    failed_connections = [name for name, ok in connections.items() if not ok]
    if failed_connections:
        print(f"Could not connect to: {', '.join(failed_connections)}", file=sys.stderr)
        return 2

    if len(pr_numbers) == 1:
        pr_number = pr_numbers[0]
        try:
            result = await reviewer.review_pr(pr_number)
        except Exception as e:
            print(f"Review of PR #{pr_number} failed: {e}", file=sys.stderr)
            return 1
        if result.success:
            print(f"Review posted to PR #{pr_number}")
            print(f"Design document: {result.design_doc_url}")
        else:
            print(f"PR #{pr_number} completed with warnings: {result.message}")
        return 0

    results = await reviewer.review_many(pr_numbers)
    successful = [r for r in results if r.success]
    failed = [r for r in results if not r.success]

    print("Review summary:")
    print(f"  Total PRs:  {len(results)}")
    print(f"  Successful: {len(successful)}")
    print(f"  Failed:     {len(failed)}")
    for result in failed:
        print(f"  PR #{result.pr_number}: {result.error or result.message}")

    return 1 if any(r.error for r in failed) else 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Review pull requests against their Confluence design documents",
    )
    parser.add_argument(
        "pr_numbers",
        nargs="+",
        type=positive_int,
        metavar="PR_NUMBER",
        help="Pull request number(s); several are reviewed one at a time",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(review(args.pr_numbers)))


if __name__ == "__main__":
    main()
