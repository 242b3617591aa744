"""
PR Review Processor Module

This module runs the review pipeline for one pull request event:
fetch the diff, generate a review, post it as a comment.

Design Decisions:
- Steps are strictly sequential; each needs the previous step's output
- A failure at any step stops the pipeline; there is no partial success
- No retries and no deduplication: a replayed event posts again
"""

from typing import Optional

import httpx

from review_relay.config import Settings
from review_relay.logging_config import get_logger
from review_relay.models import InboundEvent, ReviewOutcome
from review_relay.services.ai_engine import AIReviewEngine, GenerationError
from review_relay.services.github_client import (
    CommentPostError,
    DiffFetchError,
    GitHubClient,
)

logger = get_logger(__name__)


class ReviewProcessorError(Exception):
    """Raised when any step of the review pipeline fails."""
    pass


class PRReviewProcessor:
    """
    Orchestrates the PR review process.

    Usage:
        processor = PRReviewProcessor(event, settings, http_client)
        outcome = await processor.process()
    """

    def __init__(
        self,
        event: InboundEvent,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
        delivery_id: Optional[str] = None
    ):
        self.event = event
        self.settings = settings
        self.delivery_id = delivery_id
        self.github_client = GitHubClient(settings, http_client)
        self.ai_engine = AIReviewEngine(settings, http_client)
        self.log = logger.bind(
            delivery_id=delivery_id,
            repo=event.repo_name,
            pr_number=event.pr_number
        )

    async def process(self) -> ReviewOutcome:
        """
        Execute the complete review process.

        Returns:
            ReviewOutcome describing what was posted

        Raises:
            ReviewProcessorError: If any step fails; the cause is chained
        """
        pull_request = self.event.pull_request
        self.log.info("Starting PR review process", action=self.event.action)

        try:
            diff = await self.github_client.fetch_diff(pull_request.diff_url)
            review = await self.ai_engine.generate_review(diff)
            comment_body = await self.github_client.post_comment(
                pull_request.comments_url,
                review.text
            )
        except (DiffFetchError, GenerationError, CommentPostError) as e:
            self.log.error(
                "PR review process failed",
                error=str(e),
                error_type=type(e).__name__
            )
            raise ReviewProcessorError(f"Review process failed: {e}") from e

        self.log.info(
            "PR review completed successfully",
            diff_length=len(diff),
            used_fallback=review.used_fallback
        )

        return ReviewOutcome(
            diff_length=len(diff),
            review=review,
            comment_body=comment_body
        )


async def process_pr_review(
    event: InboundEvent,
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
    delivery_id: Optional[str] = None
) -> ReviewOutcome:
    """Convenience wrapper used by the webhook handler."""
    processor = PRReviewProcessor(event, settings, http_client, delivery_id)
    return await processor.process()
