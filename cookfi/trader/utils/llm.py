"""
Thin client for an OpenAI-compatible chat completions endpoint.

Used for trade decisions (large model) and alert copy (small model).
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from cookfi.trader.config import LLMConfig, RateLimitConfig
from cookfi.trader.utils.logger import get_logger
from cookfi.trader.utils.rate_limiter import RateLimiter

logger = get_logger(__name__)


class LLMError(Exception):
    """The completion endpoint returned nothing usable."""


class LLMClient:
    """
    Sends single-turn prompts and returns the assistant message.

    Every call goes through a shared rate limiter so the decision step's
    fan-out cannot burst past the provider's per-minute budget.
    """

    def __init__(
        self,
        api_key: str,
        settings: LLMConfig | None = None,
        rate_limit: RateLimitConfig | None = None,
    ):
        self.api_key = api_key
        self.settings = settings or LLMConfig()
        limits = rate_limit or RateLimitConfig()
        self.rate_limiter = RateLimiter(
            max_calls=limits.openai_requests_per_minute,
            period_seconds=60,
            name="llm",
        )

    async def _post_completion(self, payload: dict[str, Any]) -> dict[str, Any]:
        await self.rate_limiter.acquire()
        async with httpx.AsyncClient(timeout=self.settings.timeout) as client:
            resp = await client.post(
                f"{self.settings.base_url.rstrip('/')}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
            resp.raise_for_status()
            return resp.json()

    async def complete(
        self,
        prompt: str,
        *,
        small: bool = False,
        json_mode: bool = False,
        system: str | None = None,
    ) -> str:
        """Return the text of the first choice for ``prompt``."""
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload: dict[str, Any] = {
            "model": self.settings.small_model if small else self.settings.model,
            "messages": messages,
            "max_tokens": self.settings.max_tokens,
            "temperature": self.settings.temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        data = await self._post_completion(payload)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Malformed completion response: {e}") from e
        if not content:
            raise LLMError("Empty completion")
        return content.strip()

    async def complete_json(self, prompt: str, *, small: bool = False) -> dict[str, Any]:
        """Complete in JSON mode and parse the result into a dict."""
        content = await self.complete(prompt, small=small, json_mode=True)
        try:
            parsed = json.loads(_strip_code_fence(content))
        except json.JSONDecodeError as e:
            raise LLMError(f"Completion is not valid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise LLMError("Completion JSON is not an object")
        return parsed


def _strip_code_fence(text: str) -> str:
    """Drop a ```json ... ``` wrapper some models add even in JSON mode."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()
