import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from cbt.services.ai_grading import (
    AIGradingError,
    GeminiGradingProvider,
    UnconfiguredGradingProvider,
    parse_suggestion,
)


def _gemini_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _response(status_code, body):
    request = httpx.Request("POST", "https://example.test/models/m:generateContent")
    return httpx.Response(status_code, json=body, request=request)


def test_parse_suggestion_clamps_out_of_range_scores():
    assert parse_suggestion({"score": 45, "feedback": "Great"}, 30).score == 30
    assert parse_suggestion('{"score": -2, "feedback": "Off topic"}', 30).score == 0
    assert parse_suggestion({"score": "21.5"}, 30).score == 21.5
    assert parse_suggestion({"score": 12}, 30).feedback == ""


@pytest.mark.parametrize("raw", [
    "not json",
    "[]",
    {"feedback": "no score"},
    {"score": "many"},
    {"score": True},
    {"score": float("nan")},
    {"score": float("inf")},
])
def test_parse_suggestion_rejects_malformed_replies(raw):
    with pytest.raises(AIGradingError):
        parse_suggestion(raw, 30)


@pytest.mark.asyncio
async def test_gemini_provider_parses_structured_reply():
    provider = GeminiGradingProvider(api_key="test-key", model="gemini-test", base_url="https://example.test")
    reply = _response(200, _gemini_body(json.dumps({"score": 24, "feedback": "Clear comparison."})))

    with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=reply)) as post:
        suggestion = await provider.suggest_grade("Explain TCP vs UDP", "TCP is reliable", 30)

    assert suggestion.score == 24
    assert suggestion.feedback == "Clear comparison."
    args, kwargs = post.call_args
    assert args[0] == "https://example.test/models/gemini-test:generateContent"
    assert kwargs["params"] == {"key": "test-key"}
    prompt = kwargs["json"]["contents"][0]["parts"][0]["text"]
    assert "Max Points: 30" in prompt
    assert "TCP is reliable" in prompt


@pytest.mark.asyncio
async def test_gemini_provider_maps_http_errors():
    provider = GeminiGradingProvider(api_key="test-key", base_url="https://example.test")
    reply = _response(503, {"error": "overloaded"})

    with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=reply)):
        with pytest.raises(AIGradingError):
            await provider.suggest_grade("q", "a", 10)


@pytest.mark.asyncio
async def test_gemini_provider_maps_network_errors():
    provider = GeminiGradingProvider(api_key="test-key", base_url="https://example.test")
    failure = httpx.ConnectError("connection refused")

    with patch.object(httpx.AsyncClient, "post", new=AsyncMock(side_effect=failure)):
        with pytest.raises(AIGradingError):
            await provider.suggest_grade("q", "a", 10)


@pytest.mark.asyncio
async def test_gemini_provider_rejects_unexpected_shape():
    provider = GeminiGradingProvider(api_key="test-key", base_url="https://example.test")
    reply = _response(200, {"candidates": []})

    with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=reply)):
        with pytest.raises(AIGradingError):
            await provider.suggest_grade("q", "a", 10)


def test_gemini_provider_requires_key(monkeypatch):
    monkeypatch.setattr("cbt.services.ai_grading.settings.GEMINI_API_KEY", None)

    with pytest.raises(ValueError):
        GeminiGradingProvider()


@pytest.mark.asyncio
async def test_unconfigured_provider_always_fails():
    with pytest.raises(AIGradingError):
        await UnconfiguredGradingProvider().suggest_grade("q", "a", 10)
