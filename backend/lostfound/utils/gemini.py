"""Gemini client used for item descriptions and lost/found matching.

Every call is a single ``generate_content`` request wrapped in a small
retry loop: only HTTP 503 (model overloaded / temporarily unavailable)
is retried, with a fixed delay. Timeouts and all other errors surface on
the first failure. After the last attempt the original error is raised.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from google import genai
from google.genai import errors, types

from lostfound.config import Settings

logger = structlog.get_logger()

SERVICE_UNAVAILABLE = 503

DESCRIBE_PROMPT = (
    "Describe this object clearly for a lost and found system. "
    "Mention color, size, brand, visible text, and unique features."
)

DESCRIBE_CONFIG = types.GenerateContentConfig(temperature=0.4, max_output_tokens=200)
MATCH_CONFIG = types.GenerateContentConfig(temperature=0.2)


def extract_text(response: types.GenerateContentResponse) -> str:
    """Join the text parts of the first candidate. Empty string if there are none."""
    if not response.candidates:
        return ""
    content = response.candidates[0].content
    if content is None or content.parts is None:
        return ""
    return "\n".join(part.text for part in content.parts if part.text is not None)


def is_service_unavailable(exc: BaseException) -> bool:
    return isinstance(exc, errors.APIError) and exc.code == SERVICE_UNAVAILABLE


class GeminiClient:
    def __init__(
        self,
        client: genai.Client,
        *,
        model: str,
        timeout_seconds: float = 30.0,
        max_attempts: int = 3,
        retry_delay_seconds: float = 1.5,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._client = client
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> GeminiClient:
        client = genai.Client(
            api_key=settings.gemini_api_key,
            http_options=types.HttpOptions(timeout=int(settings.gemini_timeout_seconds * 1000)),
        )
        return cls(
            client,
            model=settings.gemini_model,
            timeout_seconds=settings.gemini_timeout_seconds,
            max_attempts=settings.gemini_max_attempts,
            retry_delay_seconds=settings.gemini_retry_delay_seconds,
        )

    async def generate(self, contents: list[Any], config: types.GenerateContentConfig) -> str:
        """Send one request, retrying on 503 only. Returns the response text."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                # SDK call is sync; run it off the event loop with a hard deadline
                async with asyncio.timeout(self.timeout_seconds):
                    response = await asyncio.to_thread(
                        self._client.models.generate_content,
                        model=self.model,
                        contents=contents,
                        config=config,
                    )
            except Exception as exc:
                retrying = is_service_unavailable(exc) and attempt < self.max_attempts
                logger.warning(
                    "gemini_call_failed",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    status=getattr(exc, "code", None),
                    error_type=type(exc).__name__,
                    retrying=retrying,
                )
                if not retrying:
                    raise
            else:
                return extract_text(response)
            await asyncio.sleep(self.retry_delay_seconds)
        raise AssertionError("unreachable")  # pragma: no cover

    async def describe_image(self, image_bytes: bytes, mime_type: str) -> str:
        """Ask the model for a lost-and-found description of one photo."""
        contents = [
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
            DESCRIBE_PROMPT,
        ]
        text = await self.generate(contents, DESCRIBE_CONFIG)
        logger.info("gemini_description_generated", chars=len(text), mime_type=mime_type)
        return text

    async def complete_text(self, prompt: str) -> str:
        return await self.generate([prompt], MATCH_CONFIG)
