"""
Test Configuration

Pytest configuration and fixtures for the test suite.
Outbound HTTP is served by httpx.MockTransport; nothing leaves the process.
"""

import json
from typing import AsyncGenerator, Generator, List, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from review_relay.config import Settings
from review_relay.main import create_app
from review_relay.webhook.security import compute_signature

WEBHOOK_SECRET = "test_secret"
GITHUB_TOKEN = "test-github-token"
LLM_API_KEY = "test-llm-key"

DIFF_URL = "https://github.com/octo/widgets/pull/7.diff"
COMMENTS_URL = "https://api.github.com/repos/octo/widgets/issues/7/comments"

SAMPLE_DIFF = '''diff --git a/calc.py b/calc.py
index 83db48f..bf269f4 100644
--- a/calc.py
+++ b/calc.py
@@ -1,5 +1,7 @@
 def average(nums):
-    return sum(nums) / len(nums)
+    if not nums:
+        return 0
+    data = {"total": sum(nums)}
+    return data["total"] / len(nums)
'''

GENERATED_REVIEW = "Consider raising ValueError on empty input instead of returning 0."


class FakeUpstream:
    """
    Stand-in for GitHub and the generation API.

    Each service has a status code and body that tests can change, or a
    transport error to raise. Every request is recorded in order.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.diff_status = 200
        self.diff_text = SAMPLE_DIFF
        self.diff_error: Optional[Exception] = None
        self.ai_status = 200
        self.ai_body: object = {
            "candidates": [{"content": {"parts": [{"text": GENERATED_REVIEW}]}}]
        }
        self.ai_error: Optional[Exception] = None
        self.comment_status = 201
        self.comment_error: Optional[Exception] = None

    @staticmethod
    def kind_of(request: httpx.Request) -> str:
        if request.url.path.endswith(":generateContent"):
            return "ai"
        if request.url.path.endswith(".diff"):
            return "diff"
        if request.url.path.endswith("/comments"):
            return "comment"
        return "unknown"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        kind = self.kind_of(request)

        if kind == "diff":
            if self.diff_error:
                raise self.diff_error
            return httpx.Response(self.diff_status, text=self.diff_text)

        if kind == "ai":
            if self.ai_error:
                raise self.ai_error
            if isinstance(self.ai_body, (dict, list)):
                return httpx.Response(self.ai_status, json=self.ai_body)
            return httpx.Response(self.ai_status, text=str(self.ai_body))

        if kind == "comment":
            if self.comment_error:
                raise self.comment_error
            return httpx.Response(self.comment_status, json={"id": 1})

        return httpx.Response(404, text="not found")

    def calls(self, kind: str) -> List[httpx.Request]:
        return [r for r in self.requests if self.kind_of(r) == kind]

    def comment_bodies(self) -> List[str]:
        return [json.loads(r.content)["body"] for r in self.calls("comment")]

    def prompts(self) -> List[str]:
        return [
            json.loads(r.content)["contents"][0]["parts"][0]["text"]
            for r in self.calls("ai")
        ]


def make_settings(**overrides) -> Settings:
    values = {
        "webhook_secret": WEBHOOK_SECRET,
        "github_token": GITHUB_TOKEN,
        "llm_api_key": LLM_API_KEY,
        "background_processing": True,
        "log_json_format": False,
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def signed_headers(body: bytes, secret: str = WEBHOOK_SECRET, **extra) -> dict:
    headers = {
        "Content-Type": "application/json",
        "X-Hub-Signature-256": compute_signature(secret, body),
        "X-GitHub-Event": "pull_request",
        "X-GitHub-Delivery": "delivery-1",
    }
    headers.update(extra)
    return headers


@pytest.fixture
def settings() -> Settings:
    """Settings with test credentials, background mode on."""
    return make_settings()


@pytest.fixture
def upstream() -> FakeUpstream:
    """Fake GitHub and AI API recording every request."""
    return FakeUpstream()


@pytest_asyncio.fixture
async def mock_http(upstream: FakeUpstream) -> AsyncGenerator[httpx.AsyncClient, None]:
    """An AsyncClient wired to the fake upstream, for service-level tests."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as client:
        yield client


@pytest.fixture
def client(settings: Settings, upstream: FakeUpstream) -> Generator[TestClient, None, None]:
    """Create a test client for the app in background mode."""
    app = create_app(settings, transport=httpx.MockTransport(upstream.handler))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sync_client(upstream: FakeUpstream) -> Generator[TestClient, None, None]:
    """Create a test client for the app in synchronous mode."""
    app = create_app(
        make_settings(background_processing=False),
        transport=httpx.MockTransport(upstream.handler)
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_pr_payload() -> dict:
    """Sample pull request webhook payload."""
    return {
        "action": "opened",
        "number": 7,
        "pull_request": {
            "id": 123456789,
            "number": 7,
            "state": "open",
            "title": "Handle empty input in average",
            "html_url": "https://github.com/octo/widgets/pull/7",
            "diff_url": DIFF_URL,
            "comments_url": COMMENTS_URL,
            "draft": False,
        },
        "repository": {
            "id": 111,
            "name": "widgets",
            "full_name": "octo/widgets",
        },
        "sender": {"login": "testuser", "id": 12345},
    }
