"""
Webhook Handler Module

This module defines the FastAPI endpoints for GitHub webhooks.

Design Decisions:
- Verify the signature before parsing the body
- In background mode, return 200 immediately and review afterwards
  (GitHub times out deliveries after 10 seconds)
- In synchronous mode, report pipeline failures as 500
"""

import json
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from review_relay.config import Settings
from review_relay.logging_config import get_logger
from review_relay.models import InboundEvent, MalformedEventError
from review_relay.webhook.processor import ReviewProcessorError, process_pr_review
from review_relay.webhook.security import (
    SIGNATURE_HEADER,
    WebhookSignatureError,
    extract_delivery_id,
    should_process_event,
    verify_webhook_signature,
)

logger = get_logger(__name__)

router = APIRouter(tags=["webhook"])


def _app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _app_http_client(request: Request) -> Optional[httpx.AsyncClient]:
    return getattr(request.app.state, "http_client", None)


@router.post("/webhook", status_code=status.HTTP_200_OK, response_class=PlainTextResponse)
async def github_webhook(
    request: Request,
    background_tasks: BackgroundTasks
) -> PlainTextResponse:
    """
    GitHub webhook endpoint.

    Validates the webhook signature, filters the event, then either
    queues the review for background processing or runs it inline.

    Raises:
        HTTPException: 401 on signature failure, 400 on a malformed
            payload, 500 on pipeline failure in synchronous mode
    """
    settings = _app_settings(request)
    delivery_id = extract_delivery_id(request)

    logger.info(
        "Received GitHub webhook",
        delivery_id=delivery_id,
        remote_addr=request.client.host if request.client else "unknown"
    )

    raw_body = await request.body()

    # Step 1: Verify webhook signature (security critical)
    try:
        verify_webhook_signature(
            raw_body,
            request.headers.get(SIGNATURE_HEADER),
            settings.webhook_secret
        )
    except WebhookSignatureError as e:
        logger.warning(
            "Rejected webhook delivery",
            delivery_id=delivery_id,
            reason=str(e)
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )

    # Step 2: Parse the payload
    try:
        payload: Any = json.loads(raw_body) if raw_body else {}
    except ValueError as e:
        logger.error("Failed to parse webhook payload", delivery_id=delivery_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON payload"
        )

    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Payload must be a JSON object"
        )

    # Step 3: Filter by event type and action
    event_type = request.headers.get("X-GitHub-Event")
    action = payload.get("action")
    if not should_process_event(event_type, action):
        logger.info(
            "Ignoring webhook event",
            delivery_id=delivery_id,
            event_type=event_type,
            action=action
        )
        return PlainTextResponse("Event ignored")

    # Step 4: Validate the payload
    try:
        event = InboundEvent.from_payload(payload)
    except MalformedEventError as e:
        logger.error("Invalid webhook payload", delivery_id=delivery_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid payload: {e}"
        )

    http_client = _app_http_client(request)

    logger.info(
        "Processing PR review",
        delivery_id=delivery_id,
        repo=event.repo_name,
        pr_number=event.pr_number,
        action=event.action,
        background=settings.background_processing
    )

    # Step 5a: Queue background processing
    if settings.background_processing:
        background_tasks.add_task(
            _process_review_with_error_handling,
            event,
            settings,
            http_client,
            delivery_id
        )
        return PlainTextResponse("Processing in background")

    # Step 5b: Run inline and surface failures
    try:
        await process_pr_review(event, settings, http_client, delivery_id)
    except ReviewProcessorError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    return PlainTextResponse("Review posted")


async def _process_review_with_error_handling(
    event: InboundEvent,
    settings: Settings,
    http_client: Optional[httpx.AsyncClient],
    delivery_id: Optional[str]
) -> None:
    """
    Run the review after the response has been sent.

    There is no caller left to report to, so failures are logged
    and not re-raised.
    """
    try:
        outcome = await process_pr_review(event, settings, http_client, delivery_id)
    except Exception as e:
        logger.error(
            "Background review processing failed",
            delivery_id=delivery_id,
            error=str(e),
            error_type=type(e).__name__
        )
        return

    logger.info(
        "Background review completed",
        delivery_id=delivery_id,
        used_fallback=outcome.review.used_fallback
    )


@router.get("/webhook/health")
async def webhook_health() -> Dict[str, str]:
    """Health check endpoint for the webhook service."""
    return {"status": "healthy", "service": "webhook"}
