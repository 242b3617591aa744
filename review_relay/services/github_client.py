"""
GitHub API Client Module

This module provides the client the relay uses to talk to GitHub:
fetching a pull request diff and posting an issue comment.

Design Decisions:
- Use httpx for async HTTP requests
- Authenticate with a static token from settings
- URLs come from the webhook payload; the client never builds API paths
- Any non-2xx response is a failure; there are no retries
"""

from typing import Dict, Optional

import httpx

from review_relay.config import Settings
from review_relay.logging_config import get_logger

logger = get_logger(__name__)

DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"
JSON_MEDIA_TYPE = "application/vnd.github.v3+json"

COMMENT_BANNER = "🤖 **AI Review:**"


class GitHubAPIError(Exception):
    """Custom exception for GitHub API errors."""
    def __init__(self, message: str, status_code: int = None, response_body: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class DiffFetchError(GitHubAPIError):
    """Raised when the pull request diff cannot be retrieved."""
    pass


class CommentPostError(GitHubAPIError):
    """Raised when the review comment cannot be posted."""
    pass


def format_comment(review_text: str) -> str:
    """Wrap review text in the markdown template posted to the PR."""
    return f"{COMMENT_BANNER}\n{review_text}"


class GitHubClient:
    """
    Async GitHub client for the two calls the relay makes.

    Usage:
        async with httpx.AsyncClient() as http:
            client = GitHubClient(settings, http)
            diff = await client.fetch_diff(diff_url)
            await client.post_comment(comments_url, "Looks good")
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the GitHub client.

        Args:
            settings: Application settings carrying the GitHub token
            http_client: Shared client; a short-lived one is opened per
                request when omitted
        """
        self.settings = settings
        self._http_client = http_client

    def _get_headers(self, accept: str) -> Dict[str, str]:
        """Get authenticated headers for API requests."""
        return {
            "Authorization": f"token {self.settings.github_token}",
            "Accept": accept,
        }

    async def _request(
        self,
        method: str,
        url: str,
        accept: str,
        error_cls: type,
        **kwargs
    ) -> httpx.Response:
        """
        Make an authenticated request and fail on anything but 2xx.

        Raises:
            error_cls: On transport errors or non-2xx responses
        """
        headers = self._get_headers(accept)

        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method, url, headers=headers, **kwargs
                )
            else:
                async with httpx.AsyncClient(timeout=self.settings.http_timeout) as client:
                    response = await client.request(
                        method, url, headers=headers, **kwargs
                    )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(
                "GitHub request failed",
                method=method,
                url=url,
                error=str(e),
                error_type=type(e).__name__
            )
            raise error_cls(f"GitHub request failed: {e}") from e

        if not response.is_success:
            error_body = response.text
            logger.error(
                "GitHub API error",
                method=method,
                url=url,
                status_code=response.status_code,
                error=error_body[:500]
            )
            raise error_cls(
                f"GitHub API error: {response.status_code}",
                status_code=response.status_code,
                response_body=error_body
            )

        return response

    async def fetch_diff(self, diff_url: str) -> str:
        """
        Fetch the unified diff of a pull request.

        Args:
            diff_url: diff_url from the webhook payload

        Returns:
            Raw diff text

        Raises:
            DiffFetchError: If the diff cannot be retrieved
        """
        logger.info("Fetching PR diff", url=diff_url)

        response = await self._request("GET", diff_url, DIFF_MEDIA_TYPE, DiffFetchError)
        diff = response.text

        logger.info("Fetched PR diff", url=diff_url, diff_length=len(diff))
        return diff

    async def post_comment(self, comments_url: str, review_text: str) -> str:
        """
        Post review text as a comment on the pull request.

        Args:
            comments_url: comments_url from the webhook payload
            review_text: Text produced by the AI reviewer

        Returns:
            The comment body that was posted

        Raises:
            CommentPostError: If GitHub does not accept the comment
        """
        body = format_comment(review_text)

        logger.info("Posting review comment", url=comments_url, body_length=len(body))

        await self._request(
            "POST",
            comments_url,
            JSON_MEDIA_TYPE,
            CommentPostError,
            json={"body": body}
        )

        logger.info("Review comment posted", url=comments_url)
        return body
