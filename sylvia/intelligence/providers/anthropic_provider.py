"""
Anthropic provider (anthropic SDK, Messages API).
"""

from __future__ import annotations

import json
from typing import Any

import anthropic

from sylvia.config import AIConfig
from sylvia.errors import ExtractionError
from sylvia.intelligence.providers.base import JSON_ONLY_INSTRUCTION, AIProvider


class AnthropicProvider(AIProvider):
    name = "anthropic"

    def __init__(self, api_key: str, config: AIConfig):
        super().__init__(api_key, config)
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
        )

    async def generate_json(self, prompt: str, schema: dict[str, Any]) -> str:
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=self.config.max_tokens,
                system=JSON_ONLY_INSTRUCTION,
                messages=[
                    {
                        "role": "user",
                        "content": f"{prompt}\n\nJSON schema:\n{json.dumps(schema)}",
                    }
                ],
            )
        except anthropic.APIError as e:
            raise ExtractionError(f"anthropic request failed: {e}", provider=self.name) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise ExtractionError("anthropic returned an empty response", provider=self.name)
        return text

    async def close(self) -> None:
        await self._client.close()


__all__ = ["AnthropicProvider"]
