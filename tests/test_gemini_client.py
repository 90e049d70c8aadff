"""Tests for the Gemini client."""

import json

import httpx
import pytest

from repograde.errors import ConfigurationError, ModelUnavailableError
from repograde.grader.gemini_client import GeminiClient
from repograde.models.model_settings import GradingSettings


def _gemini_payload(text: str, finish_reason: str = "STOP") -> dict:
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": text}]},
                "finishReason": finish_reason,
            }
        ],
        "usageMetadata": {"promptTokenCount": 120, "candidatesTokenCount": 45},
        "modelVersion": "gemini-2.5-flash-001",
    }


def _client(handler) -> GeminiClient:
    return GeminiClient(api_key="test-key", transport=httpx.MockTransport(handler))


class TestGeminiClient:
    """Tests for GeminiClient."""

    def test_requires_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            GeminiClient()

    def test_api_key_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        assert GeminiClient().api_key == "env-key"

    @pytest.mark.asyncio
    async def test_request_shape(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_gemini_payload("{}"))

        client = _client(handler)
        settings = GradingSettings(model="gemini-test", temperature=0.3, max_output_tokens=512)
        await client.generate("grade this", settings)
        await client.aclose()

        request = seen[0]
        assert request.url.path == "/v1beta/models/gemini-test:generateContent"
        assert request.headers["x-goog-api-key"] == "test-key"
        body = json.loads(request.content)
        assert body["contents"] == [{"role": "user", "parts": [{"text": "grade this"}]}]
        assert body["generationConfig"] == {"temperature": 0.3, "maxOutputTokens": 512}

    @pytest.mark.asyncio
    async def test_parses_response(self) -> None:
        client = _client(lambda request: httpx.Response(200, json=_gemini_payload('{"a": 1}')))
        response = await client.generate("p", GradingSettings())
        await client.aclose()

        assert response.text == '{"a": 1}'
        assert response.finish_reason == "STOP"
        assert response.model == "gemini-2.5-flash-001"
        assert response.usage == {"input_tokens": 120, "output_tokens": 45}
        assert not response.is_truncated

    @pytest.mark.asyncio
    async def test_skips_thought_parts(self) -> None:
        payload = _gemini_payload("answer")
        payload["candidates"][0]["content"]["parts"].insert(0, {"text": "thinking...", "thought": True})
        client = _client(lambda request: httpx.Response(200, json=payload))
        response = await client.generate("p", GradingSettings())
        await client.aclose()
        assert response.text == "answer"

    @pytest.mark.asyncio
    async def test_max_tokens_reported(self) -> None:
        client = _client(
            lambda request: httpx.Response(200, json=_gemini_payload('{"summ', "MAX_TOKENS"))
        )
        response = await client.generate("p", GradingSettings())
        await client.aclose()
        assert response.is_truncated

    @pytest.mark.asyncio
    async def test_no_candidates(self) -> None:
        payload = {"promptFeedback": {"blockReason": "SAFETY"}}
        client = _client(lambda request: httpx.Response(200, json=payload))
        response = await client.generate("p", GradingSettings())
        await client.aclose()
        assert response.text == ""
        assert response.finish_reason == "SAFETY"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[{"candidates": []}], "ok", 42])
    async def test_non_object_body(self, body) -> None:
        client = _client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(ModelUnavailableError, match="unexpected response body"):
            await client.generate("p", GradingSettings())
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 429, 500, 503])
    async def test_http_error(self, status: int) -> None:
        client = _client(
            lambda request: httpx.Response(status, json={"error": {"message": "quota exceeded"}})
        )
        with pytest.raises(ModelUnavailableError) as exc_info:
            await client.generate("p", GradingSettings())
        await client.aclose()
        assert exc_info.value.details == "quota exceeded"

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = _client(handler)
        with pytest.raises(ModelUnavailableError, match="timed out"):
            await client.generate("p", GradingSettings())
        await client.aclose()

    @pytest.mark.asyncio
    async def test_connect_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = _client(handler)
        with pytest.raises(ModelUnavailableError):
            await client.generate("p", GradingSettings())
        await client.aclose()
