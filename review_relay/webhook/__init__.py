"""
Webhook Package

This package contains webhook handling components:
- handler: FastAPI route handlers
- security: Webhook signature verification and event filtering
- processor: PR review pipeline
"""

from review_relay.webhook.handler import router

__all__ = ["router"]
