"""LLM-backed stock comparison, proxied to an OpenAI-compatible API.

The provider is chosen from whichever API key is configured, in priority
order Groq, xAI, OpenAI. All three expose the same ``/chat/completions``
contract, so one ``httpx.AsyncClient`` covers them. When no key is set the
analyst is simply absent and the HTTP route answers 503.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from config import Settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful stock market analyst who provides clear, honest, and "
    "actionable investment guidance. Always respond with valid JSON."
)

USER_PROMPT = """You are a knowledgeable stock market analyst. A user is interested in investing and wants to compare these companies: {companies}.

Please provide a comprehensive analysis in JSON format with the following structure:
{{
  "companies": [
    {{
      "name": "Company Name",
      "overview": "Brief overview of the company and its business",
      "strengths": ["3-4 key strengths"],
      "risks": ["3-4 key risks or concerns"]
    }}
  ],
  "comparison": "A paragraph comparing these companies and their relative positions in the market",
  "recommendations": [
    "Step 1: Specific action item",
    "Step 2: Specific action item",
    "Step 3: Specific action item",
    "Step 4: Specific action item"
  ],
  "disclaimer": "Standard investment disclaimer"
}}

Provide practical, actionable recommendations. Be honest about risks. Focus on helping a retail investor make informed decisions."""


class AnalysisError(Exception):
    """The provider call failed or returned something that is not JSON."""


@dataclass(frozen=True)
class Provider:
    name: str
    base_url: str
    model: str


PROVIDERS = {
    "groq": Provider("groq", "https://api.groq.com/openai/v1", "llama-3.3-70b-versatile"),
    "xai": Provider("xai", "https://api.x.ai/v1", "grok-beta"),
    "openai": Provider("openai", "https://api.openai.com/v1", "gpt-4o-mini"),
}


def select_provider(settings: Settings) -> Optional[tuple[Provider, str]]:
    """Return ``(provider, api_key)`` for the first configured key, else None."""
    for name, key in (("groq", settings.groq_api_key),
                      ("xai", settings.xai_api_key),
                      ("openai", settings.openai_api_key)):
        if key:
            return PROVIDERS[name], key
    return None


class StockAnalyst:
    def __init__(self, provider: Provider, api_key: str,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: float = 60.0):
        self.provider = provider
        self._client = httpx.AsyncClient(
            base_url=provider.base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> Optional["StockAnalyst"]:
        selected = select_provider(settings)
        if selected is None:
            return None
        provider, key = selected
        return cls(provider, key, **kwargs)

    def build_request(self, companies: List[str]) -> Dict[str, Any]:
        return {
            "model": self.provider.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": USER_PROMPT.format(companies=", ".join(companies))},
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0.7,
        }

    async def analyze(self, companies: List[str]) -> Dict[str, Any]:
        try:
            resp = await self._client.post("/chat/completions", json=self.build_request(companies))
            resp.raise_for_status()
            content = resp.json()["choices"][0]["message"]["content"]
            return json.loads(content)
        except httpx.HTTPError as e:
            raise AnalysisError(f"{self.provider.name} request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise AnalysisError(f"{self.provider.name} returned an unusable response: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()
