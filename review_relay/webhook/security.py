"""
Webhook Security Module

This module handles verification of GitHub webhook payloads and
filtering of the events the relay acts on.

Design Decisions:
- Use constant-time comparison to prevent timing attacks
- Verify the signature before the body is parsed or trusted
- Fail closed: a missing header or missing secret is a rejection
- Only the SHA-256 signature header is accepted
"""

import hashlib
import hmac
from typing import Any, Optional

from fastapi import Request

from review_relay.logging_config import get_logger
from review_relay.models import PRAction

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="

PULL_REQUEST_EVENT = "pull_request"
REVIEWABLE_ACTIONS = {action.value for action in PRAction}


class WebhookSignatureError(Exception):
    """Raised when a webhook delivery cannot be authenticated."""
    pass


def compute_signature(secret: str, body: bytes) -> str:
    """Return the X-Hub-Signature-256 value for a body."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_webhook_signature(
    raw_body: bytes,
    signature_header: Optional[str],
    secret: Optional[str]
) -> None:
    """
    Verify the GitHub webhook signature.

    GitHub sends "sha256=<hex digest>" in the X-Hub-Signature-256
    header, computed with HMAC-SHA256 over the exact request body.

    Args:
        raw_body: Raw request body bytes
        signature_header: Value of the signature header, if any
        secret: Shared webhook secret

    Raises:
        WebhookSignatureError: If the header or secret is missing, or the
            signature does not match
    """
    if not secret:
        logger.error("Webhook secret is not configured, rejecting delivery")
        raise WebhookSignatureError("Webhook secret not configured")

    if not signature_header:
        logger.warning("Missing webhook signature header")
        raise WebhookSignatureError("Missing webhook signature")

    expected = compute_signature(secret, raw_body)

    # compare_digest tolerates unequal lengths without an early exit on content
    if not hmac.compare_digest(signature_header.encode(), expected.encode()):
        logger.warning("Webhook signature mismatch")
        raise WebhookSignatureError("Invalid webhook signature")

    logger.debug("Webhook signature verified successfully")


def should_process_event(
    event_type: Optional[str],
    action: Any
) -> bool:
    """
    Decide whether a webhook event should be reviewed.

    Only pull request actions "opened" and "synchronize" are reviewed.
    A missing event type header is tolerated; a different event type
    is not. An action that is not a string is never reviewable.
    """
    if event_type and event_type != PULL_REQUEST_EVENT:
        logger.debug("Ignoring non-PR event", event_type=event_type)
        return False

    if not isinstance(action, str) or action not in REVIEWABLE_ACTIONS:
        logger.debug("Ignoring PR action", action=action)
        return False

    return True


def extract_delivery_id(request: Request) -> Optional[str]:
    """
    Extract the webhook delivery ID from headers.

    Used as log context for every step of a delivery.
    """
    return request.headers.get("X-GitHub-Delivery")
