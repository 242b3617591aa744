"""
Application Runner

This script is the entry point for running the application.
Use: python run.py  (or the installed `review-relay` command)
"""

import uvicorn

from review_relay.config import get_settings


def main():
    """Run the application with uvicorn."""
    settings = get_settings()

    uvicorn.run(
        "review_relay.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
        access_log=settings.log_requests
    )


if __name__ == "__main__":
    main()
