"""
Configuration models for the Sylvia core (args/sylvia.yaml).

Every component receives its settings explicitly: the Extraction Engine gets an
`AIConfig`, the Context Selector a `ContextConfig`, the stores a database path.
Nothing in the core reads provider, model or key settings from ambient state.

Values of the form "${ENV_VAR}" are expanded from the environment at load time,
so API keys can stay out of the YAML file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from sylvia import CONFIG_PATH, PROJECT_ROOT

logger = logging.getLogger(__name__)

ProviderName = Literal["openai", "openrouter", "google", "anthropic"]


# =============================================================================
# Sections
# =============================================================================

class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    database_path: str = Field(default="data/sylvia.db")


class AIConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    provider: ProviderName = Field(default="openai")
    model: str = Field(default="gpt-5-mini-2025-08-07")
    api_keys: list[str] = Field(default_factory=list)
    base_url: Optional[str] = None
    timeout_seconds: float = Field(default=60.0, gt=0)
    max_retries: int = Field(default=2, ge=0, le=10)
    max_tokens: int = Field(default=4096, ge=1)
    max_prompt_items: int = Field(default=50, ge=1)
    max_snippet_chars: int = Field(default=4000, ge=200)

    @field_validator("api_keys", mode="before")
    @classmethod
    def _split_keys(cls, value: Any) -> Any:
        # A single env var may carry a comma-separated credential pool
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, list):
            flattened: list[str] = []
            for item in value:
                if isinstance(item, str):
                    flattened.extend(part.strip() for part in item.split(","))
            return [key for key in flattened if key]
        return value


class ContextConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    limit: int = Field(default=10, ge=1)
    max_keywords: int = Field(default=12, ge=1)
    history_turns: int = Field(default=12, ge=0)
    max_history_tags: int = Field(default=12, ge=0)
    prioritized_tag_limit: int = Field(default=10, ge=0)
    min_keyword_length: int = Field(default=4, ge=1)
    primer_tags_per_line: int = Field(default=4, ge=0)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    level: str = Field(default="INFO")
    json_output: bool = Field(default=False)


class SylviaConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    storage: StorageConfig = Field(default_factory=StorageConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def database_file(self) -> Path:
        path = Path(self.storage.database_path)
        return path if path.is_absolute() else PROJECT_ROOT / path


# =============================================================================
# Loading
# =============================================================================

def _expand_env_vars(value: Any) -> Any:
    """Recursively expand ${ENV_VAR} references in config values."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            return os.getenv(value[2:-1], "")
        return value
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    return value


def load_config(config_path: Path | str | None = None) -> SylviaConfig:
    """
    Load and validate the Sylvia configuration.

    Args:
        config_path: YAML file to read (default: args/sylvia.yaml)

    Returns:
        SylviaConfig, populated with defaults when the file is missing
    """
    path = Path(config_path) if config_path else CONFIG_PATH
    if not path.exists():
        logger.warning(f"Config file not found: {path}, using defaults")
        return SylviaConfig()

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return SylviaConfig.model_validate(_expand_env_vars(raw))


__all__ = [
    "AIConfig",
    "ContextConfig",
    "LoggingConfig",
    "ProviderName",
    "StorageConfig",
    "SylviaConfig",
    "load_config",
]
