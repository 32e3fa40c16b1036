"""
OpenAI and OpenRouter providers (openai SDK).

OpenRouter speaks the OpenAI chat completions protocol, so it reuses the same
client pointed at its own base URL. It only gets `json_object` mode since
structured-output support varies across the models it routes to.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import openai

from sylvia.config import AIConfig
from sylvia.errors import ExtractionError
from sylvia.intelligence.providers.base import JSON_ONLY_INSTRUCTION, AIProvider

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenAIProvider(AIProvider):
    name = "openai"
    use_json_schema = True

    def __init__(self, api_key: str, config: AIConfig):
        super().__init__(api_key, config)
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=self._base_url(),
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
        )

    def _base_url(self) -> str | None:
        return self.config.base_url

    def _response_format(self, schema: dict[str, Any]) -> dict[str, Any]:
        if not self.use_json_schema:
            return {"type": "json_object"}
        return {
            "type": "json_schema",
            "json_schema": {"name": "processing_result", "schema": schema, "strict": False},
        }

    async def generate_json(self, prompt: str, schema: dict[str, Any]) -> str:
        messages = [{"role": "system", "content": JSON_ONLY_INSTRUCTION}]
        if not self.use_json_schema:
            # json_object mode only sees the schema through the prompt
            prompt = f"{prompt}\n\nJSON schema:\n{json.dumps(schema)}"
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format=self._response_format(schema),
                max_completion_tokens=self.config.max_tokens,
            )
        except openai.APIError as e:
            raise ExtractionError(f"{self.name} request failed: {e}", provider=self.name) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ExtractionError(f"{self.name} returned an empty response", provider=self.name)
        return content

    async def close(self) -> None:
        await self._client.close()


class OpenRouterProvider(OpenAIProvider):
    name = "openrouter"
    use_json_schema = False

    def _base_url(self) -> str | None:
        return self.config.base_url or OPENROUTER_BASE_URL


__all__ = ["OPENROUTER_BASE_URL", "OpenAIProvider", "OpenRouterProvider"]
