"""
Services Package

This package contains the outbound service clients:
- github_client: diff retrieval and comment posting
- ai_engine: AI review generation
"""

from review_relay.services.ai_engine import AIReviewEngine, GenerationError
from review_relay.services.github_client import (
    CommentPostError,
    DiffFetchError,
    GitHubAPIError,
    GitHubClient,
)

__all__ = [
    "AIReviewEngine",
    "GenerationError",
    "GitHubClient",
    "GitHubAPIError",
    "DiffFetchError",
    "CommentPostError",
]
