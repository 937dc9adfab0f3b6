"""PRReviewer: review a pull request against its design document.

Pipeline (strictly sequential):
1. Fetch PR metadata and unified diff from GitHub
2. Extract the design document URL from the PR description
3. Fetch the design document from Confluence
4. Ask the model for a concise code-vs-design review
5. Post the review as a PR comment

A PR without a design document link gets a notice comment and a
``success=False`` result. Any other failure gets a best-effort error
comment and is re-raised.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from src.review_bot.config import Settings
from src.review_bot.core.monitoring import record_pipeline_run
from src.review_bot.reviews.schemas import ReviewResult
from src.review_bot.services.confluence import ConfluenceClient
from src.review_bot.services.github import GitHubClient, extract_design_doc_url
from src.review_bot.services.llm import ModelClient
from src.review_bot.services.prompts import format_review_comment

logger = structlog.get_logger(__name__)

MISSING_DOC_MESSAGE = (
    "No confluence design document URL found in PR description. "
    "Please add confluence_design_document_url to the PR description."
)


def missing_doc_comment(message: str = MISSING_DOC_MESSAGE) -> str:
    return f"## ⚠️ Missing Design Document\n\n{message}"


def review_failed_comment(error: BaseException) -> str:
    return (
        "## ❌ Review Failed\n\n"
        "Failed to complete the design document review due to an error:\n\n"
        f"```\n{error}\n```\n\n"
        "Please check the configuration and try again."
    )


class PRReviewer:
    """Orchestrates one review per PR using explicitly provided clients.

    Args:
        github: Client for the repository under review.
        confluence: Client for design documents.
        llm: Model client used for the review text.
    """

    def __init__(
        self,
        github: GitHubClient,
        confluence: ConfluenceClient,
        llm: ModelClient,
    ) -> None:
        self.github = github
        self.confluence = confluence
        self.llm = llm

    @classmethod
    def from_settings(cls, settings: Settings) -> PRReviewer:
        return cls(
            GitHubClient.from_settings(settings),
            ConfluenceClient.from_settings(settings),
            ModelClient.from_settings(settings),
        )

    async def check_connections(self) -> dict[str, bool]:
        """Connectivity of both upstream APIs (used by readiness checks)."""
        return {
            "github": await self.github.check_connection(),
            "confluence": await self.confluence.check_connection(),
        }

    async def aclose(self) -> None:
        """Close every client; safe to call more than once."""
        await self.github.aclose()
        await self.confluence.aclose()
        await self.llm.aclose()

    async def review_pr(self, pr_number: int) -> ReviewResult:
        """Run the full review pipeline for one PR."""
        log = logger.bind(pr_number=pr_number)
        log.info("review.started")

        try:
            changeset = await self.github.get_pull_request(pr_number)

            design_doc_url = extract_design_doc_url(changeset.description)
            if not design_doc_url:
                log.warning("review.design_doc_missing")
                await self.github.post_comment(pr_number, missing_doc_comment())
                record_pipeline_run("review", "missing_design_doc")
                return ReviewResult(
                    success=False,
                    pr_number=pr_number,
                    message=MISSING_DOC_MESSAGE,
                )

            document = await self.confluence.fetch_page(design_doc_url)
            analysis = await self.llm.review_changes(changeset, document)

            await self.github.post_comment(
                pr_number,
                format_review_comment(analysis, design_doc_url),
            )
        except Exception as e:
            log.error("review.failed", error=str(e), error_type=type(e).__name__)
            record_pipeline_run("review", "error")
            try:
                await self.github.post_comment(pr_number, review_failed_comment(e))
            except Exception as comment_error:
                log.error("review.error_comment_failed", error=str(comment_error))
            raise

        log.info("review.completed", design_doc_url=design_doc_url)
        record_pipeline_run("review", "success")
        return ReviewResult(
            success=True,
            pr_number=pr_number,
            design_doc_url=design_doc_url,
            analysis=analysis,
            message="PR review completed and comment posted successfully",
        )

    async def review_many(self, pr_numbers: Iterable[int]) -> list[ReviewResult]:
        """Review PRs one at a time; a failure is recorded, not raised."""
        results: list[ReviewResult] = []
        for pr_number in pr_numbers:
            try:
                results.append(await self.review_pr(pr_number))
            except Exception as e:
                results.append(
                    ReviewResult(success=False, pr_number=pr_number, error=str(e))
                )
        return results
