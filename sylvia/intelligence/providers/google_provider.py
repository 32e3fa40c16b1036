"""
Google Gemini provider (generateContent REST endpoint over httpx).
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from sylvia.config import AIConfig
from sylvia.errors import ExtractionError
from sylvia.intelligence.providers.base import JSON_ONLY_INSTRUCTION, AIProvider

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GoogleProvider(AIProvider):
    name = "google"

    def __init__(self, api_key: str, config: AIConfig, client: httpx.AsyncClient | None = None):
        super().__init__(api_key, config)
        self._client = client or httpx.AsyncClient(
            timeout=config.timeout_seconds,
            transport=httpx.AsyncHTTPTransport(retries=config.max_retries),
        )

    @property
    def endpoint(self) -> str:
        base = (self.config.base_url or GEMINI_BASE_URL).rstrip("/")
        return f"{base}/models/{self.model}:generateContent"

    async def generate_json(self, prompt: str, schema: dict[str, Any]) -> str:
        body = {
            "systemInstruction": {"parts": [{"text": JSON_ONLY_INSTRUCTION}]},
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": f"{prompt}\n\nJSON schema:\n{json.dumps(schema)}"}],
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "maxOutputTokens": self.config.max_tokens,
            },
        }

        try:
            response = await self._client.post(
                self.endpoint,
                json=body,
                headers={"x-goog-api-key": self.api_key},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ExtractionError(
                f"google request failed with HTTP {e.response.status_code}", provider=self.name
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ExtractionError(f"google request failed: {e}", provider=self.name) from e

        text = self._candidate_text(data)
        if not text:
            raise ExtractionError("google returned an empty response", provider=self.name)
        return text

    @staticmethod
    def _candidate_text(data: Any) -> str:
        if not isinstance(data, dict):
            return ""
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["GEMINI_BASE_URL", "GoogleProvider"]
