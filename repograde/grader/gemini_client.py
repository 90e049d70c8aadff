"""Gemini generateContent client."""

import logging
import os
import time
from typing import Any

import httpx

from repograde.consts import ENV_GEMINI_API_KEY, GEMINI_API_URL
from repograde.errors import ConfigurationError, ModelUnavailableError
from repograde.grader.model_client import ModelClient
from repograde.models.model_evaluation import ModelResponse
from repograde.models.model_settings import GradingSettings

logger = logging.getLogger(__name__)


def _extract_text(candidate: dict[str, Any]) -> str:
    """Join the text parts of a candidate, skipping thought parts."""
    parts = (candidate.get("content") or {}).get("parts") or []
    return "".join(
        part.get("text", "")
        for part in parts
        if isinstance(part, dict) and not part.get("thought")
    )


class GeminiClient(ModelClient):
    """Calls the Gemini REST API over httpx."""

    BASE_URL = GEMINI_API_URL

    def __init__(
        self,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Gemini client.

        Args:
            api_key: API key. None = read from env (GEMINI_API_KEY).
            transport: Optional httpx transport (tests inject a MockTransport).

        Raises:
            ConfigurationError: If no API key is available.
        """
        self.api_key = api_key or os.getenv(ENV_GEMINI_API_KEY, "").strip()
        if not self.api_key:
            raise ConfigurationError(f"{ENV_GEMINI_API_KEY} is not configured")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def provider_name(self) -> str:
        return "gemini"

    async def _get_client(self, timeout: float) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                timeout=httpx.Timeout(timeout),
                headers={
                    "Content-Type": "application/json",
                    "x-goog-api-key": self.api_key,
                },
                transport=self._transport,
            )
        return self._client

    async def generate(self, prompt: str, settings: GradingSettings) -> ModelResponse:
        client = await self._get_client(settings.timeout_seconds)
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": settings.temperature,
                "maxOutputTokens": settings.max_output_tokens,
            },
        }

        start = time.monotonic()
        try:
            response = await client.post(f"/models/{settings.model}:generateContent", json=body)
        except httpx.TimeoutException as e:
            raise ModelUnavailableError(
                f"Gemini request timed out after {settings.timeout_seconds}s", details=str(e)
            ) from e
        except httpx.HTTPError as e:
            raise ModelUnavailableError("Gemini request failed", details=str(e)) from e
        latency_ms = int((time.monotonic() - start) * 1000)

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            message = (data.get("error") or {}).get("message") if isinstance(data, dict) else None
            logger.error(f"Gemini API error {response.status_code}: {message or response.text[:200]}")
            raise ModelUnavailableError(
                f"Gemini API error: HTTP {response.status_code}",
                details=message or response.text[:500],
            )

        if not isinstance(data, dict):
            raise ModelUnavailableError(
                "Gemini returned an unexpected response body", details=response.text[:500]
            )

        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            logger.warning(f"Gemini returned no candidates (blockReason={block_reason})")
            return ModelResponse(text="", finish_reason=block_reason, model=settings.model, raw=data)

        candidate = candidates[0]
        usage_metadata = data.get("usageMetadata") or {}
        usage = {
            "input_tokens": usage_metadata.get("promptTokenCount", 0),
            "output_tokens": usage_metadata.get("candidatesTokenCount", 0),
        }
        logger.info(
            f"Gemini {settings.model} finished in {latency_ms}ms "
            f"(finishReason={candidate.get('finishReason')}, "
            f"in={usage['input_tokens']}, out={usage['output_tokens']})"
        )
        return ModelResponse(
            text=_extract_text(candidate),
            finish_reason=candidate.get("finishReason"),
            model=data.get("modelVersion") or settings.model,
            usage=usage,
            raw=data,
        )

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
