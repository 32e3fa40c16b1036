"""
AI Provider interface

Every backend answers one question: given a prompt and a JSON schema, return
the model's raw JSON text. Transport errors, HTTP errors and empty answers are
raised as ExtractionError carrying the provider name. Parsing the text is the
Extraction Engine's job, not the provider's.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from sylvia.config import AIConfig

JSON_ONLY_INSTRUCTION = (
    "You are a memory post-processing agent. Respond with a single JSON object "
    "and nothing else."
)


class AIProvider(ABC):
    """Base class for JSON-producing model backends."""

    name: str = "base"

    def __init__(self, api_key: str, config: AIConfig):
        self.api_key = api_key
        self.config = config

    @property
    def model(self) -> str:
        return self.config.model

    @abstractmethod
    async def generate_json(self, prompt: str, schema: dict[str, Any]) -> str:
        """
        Ask the model for a JSON object matching `schema`.

        Returns:
            Raw response text

        Raises:
            ExtractionError: call failed or returned no content
        """

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""

    async def __aenter__(self) -> AIProvider:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"


__all__ = ["JSON_ONLY_INSTRUCTION", "AIProvider"]
