"""
Data Models Module

This module defines the Pydantic models used throughout the application.

Design Decisions:
- Validate the inbound webhook payload instead of indexing into raw dicts
- Only the fields the relay uses are required; everything else is ignored
- Models are immutable: an event is received once and discarded after handling
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError


# =============================================================================
# Enums
# =============================================================================

class PRAction(str, Enum):
    """Pull request actions that trigger a review."""
    OPENED = "opened"
    SYNCHRONIZE = "synchronize"


# =============================================================================
# GitHub Webhook Models
# =============================================================================

class MalformedEventError(ValueError):
    """Raised when a webhook payload does not have the expected shape."""
    pass


class RepositoryRef(BaseModel):
    """Repository information, used for log context only."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    full_name: Optional[str] = None


class PullRequestRef(BaseModel):
    """
    The parts of a pull request the relay needs.

    Attributes:
        diff_url: URL returning the pull request as a unified diff
        comments_url: Issue comments URL for the pull request
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    diff_url: str
    comments_url: str
    number: Optional[int] = None
    title: Optional[str] = None
    html_url: Optional[str] = None


class InboundEvent(BaseModel):
    """A pull_request webhook event."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    action: str
    pull_request: Optional[PullRequestRef] = None
    number: Optional[int] = None
    repository: Optional[RepositoryRef] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "InboundEvent":
        """
        Validate a decoded JSON payload into an event that can be reviewed.

        Raises:
            MalformedEventError: If the payload is not an object, or the
                pull request reference is missing or incomplete
        """
        if not isinstance(payload, dict):
            raise MalformedEventError("Payload must be a JSON object")

        try:
            event = cls.model_validate(payload)
        except ValidationError as e:
            raise MalformedEventError(f"Invalid event payload: {e}") from e

        if event.pull_request is None:
            raise MalformedEventError("Payload has no pull_request")

        return event

    @property
    def repo_name(self) -> Optional[str]:
        return self.repository.full_name if self.repository else None

    @property
    def pr_number(self) -> Optional[int]:
        if self.number is not None:
            return self.number
        return self.pull_request.number if self.pull_request else None


# =============================================================================
# Review Models
# =============================================================================

class ReviewResult(BaseModel):
    """
    Text produced by the AI reviewer.

    used_fallback is True when the response carried no text and the
    fallback message was substituted.
    """
    model_config = ConfigDict(frozen=True)

    text: str
    used_fallback: bool = False


class ReviewOutcome(BaseModel):
    """Result of one complete pass through the review pipeline."""
    model_config = ConfigDict(frozen=True)

    diff_length: int
    review: ReviewResult
    comment_body: str
