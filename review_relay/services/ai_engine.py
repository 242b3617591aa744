"""
AI Review Engine Module

This module handles the AI-powered code review through the Gemini
generateContent REST API.

Design Decisions:
- Send the raw diff verbatim; no truncation, chunking or token budgeting
- A response without text is not an error: substitute a fallback message
- Transport errors, non-2xx responses and non-JSON bodies are errors
"""

from typing import Any, Dict, Optional

import httpx

from review_relay.config import Settings
from review_relay.logging_config import get_logger
from review_relay.models import ReviewResult

logger = get_logger(__name__)

FALLBACK_REVIEW = "No feedback from AI."


class GenerationError(Exception):
    """Custom exception for AI review errors."""
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class AIReviewEngine:
    """
    AI-powered code review engine.

    Usage:
        engine = AIReviewEngine(settings, http_client)
        result = await engine.generate_review(diff)
    """

    PROMPT_TEMPLATE = """
You are a senior software engineer reviewing a pull request.

Analyze the code diff below and provide concise, constructive feedback:
- Point out bugs or logic issues.
- Suggest improvements for clarity, performance, or security.
- If everything looks good, reply with: "✅ Looks good to me."

```diff
{diff}
```
"""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        """Initialize the AI review engine."""
        self.settings = settings
        self._http_client = http_client

    def build_prompt(self, diff: str) -> str:
        """Embed the diff, unmodified, in the review prompt."""
        # str.format would choke on braces inside the diff
        return self.PROMPT_TEMPLATE.replace("{diff}", diff, 1)

    def build_request_body(self, prompt: str) -> Dict[str, Any]:
        return {"contents": [{"parts": [{"text": prompt}]}]}

    async def generate_review(self, diff: str) -> ReviewResult:
        """
        Ask the model to review a diff.

        Args:
            diff: Raw unified diff text

        Returns:
            ReviewResult with the generated text, or the fallback message
            when the response carries none

        Raises:
            GenerationError: If the request fails or the response is not JSON
        """
        prompt = self.build_prompt(diff)

        logger.info(
            "Sending code review request to AI",
            model=self.settings.llm_model,
            prompt_length=len(prompt)
        )

        try:
            response = await self._post(prompt)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(
                "AI request failed",
                model=self.settings.llm_model,
                error=str(e),
                error_type=type(e).__name__
            )
            raise GenerationError(f"AI request failed: {e}") from e

        if not response.is_success:
            logger.error(
                "AI API error",
                model=self.settings.llm_model,
                status_code=response.status_code,
                error=response.text[:500]
            )
            raise GenerationError(
                f"AI API error: {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Failed to parse AI response as JSON", error=str(e))
            raise GenerationError(f"Invalid JSON response: {e}") from e

        text = extract_review_text(data)
        if text is None:
            logger.warning(
                "AI response had no text, using fallback",
                model=self.settings.llm_model
            )
            return ReviewResult(text=FALLBACK_REVIEW, used_fallback=True)

        logger.info("AI review completed", review_length=len(text))
        return ReviewResult(text=text)

    async def _post(self, prompt: str) -> httpx.Response:
        # The key travels as a query parameter; keep it out of log fields
        kwargs = {
            "params": {"key": self.settings.llm_api_key or ""},
            "json": self.build_request_body(prompt),
        }
        if self._http_client is not None:
            return await self._http_client.post(self.settings.generation_url, **kwargs)

        async with httpx.AsyncClient(timeout=self.settings.http_timeout) as client:
            return await client.post(self.settings.generation_url, **kwargs)


def extract_review_text(data: Any) -> Optional[str]:
    """
    Pull candidates[0].content.parts[0].text out of a generateContent response.

    Returns None when any level is missing, has the wrong type, or the
    text is empty.
    """
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None

    if not isinstance(text, str) or not text:
        return None
    return text
