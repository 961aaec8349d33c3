"""Tests for the analysis proxy against a mocked provider."""

import json

import httpx
import pytest

from analysis import PROVIDERS, AnalysisError, StockAnalyst, select_provider


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_provider_priority(settings):
    assert select_provider(settings) is None

    settings.openai_api_key = "o"
    assert select_provider(settings) == (PROVIDERS["openai"], "o")
    settings.xai_api_key = "x"
    assert select_provider(settings) == (PROVIDERS["xai"], "x")
    settings.groq_api_key = "g"
    assert select_provider(settings) == (PROVIDERS["groq"], "g")


@pytest.mark.asyncio
async def test_analyze_posts_chat_completion():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=completion('{"comparison": "close call"}'))

    analyst = StockAnalyst(PROVIDERS["groq"], "secret", transport=httpx.MockTransport(handler))
    result = await analyst.analyze(["Apple", "Microsoft"])
    await analyst.aclose()

    assert result == {"comparison": "close call"}
    assert seen["url"] == "https://api.groq.com/openai/v1/chat/completions"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"]["model"] == "llama-3.3-70b-versatile"
    assert seen["body"]["response_format"] == {"type": "json_object"}
    assert "Apple, Microsoft" in seen["body"]["messages"][1]["content"]


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(500, json={"error": "boom"}),
    httpx.Response(200, json=completion("this is not json")),
    httpx.Response(200, json={"unexpected": True}),
])
async def test_analyze_failures_raise_analysis_error(response):
    analyst = StockAnalyst(PROVIDERS["openai"], "k", transport=httpx.MockTransport(lambda request: response))
    with pytest.raises(AnalysisError):
        await analyst.analyze(["Tesla"])
    await analyst.aclose()
