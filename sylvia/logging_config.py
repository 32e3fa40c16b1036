"""
Structured logging for the Sylvia core, using structlog over stdlib logging.

Console rendering during development, JSON lines when SYLVIA_LOG_FORMAT=json
(or `logging.json_output: true` in args/sylvia.yaml). The HTTP client loggers
used by the AI providers are held at WARNING so request chatter does not drown
out extraction and routing events.

Usage:
    from sylvia.config import load_config
    from sylvia.logging_config import setup_logging, get_logger

    setup_logging(load_config().logging)
    logger = get_logger(__name__)
    logger.info("memory_applied", memory_id=12, destinations=3)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from sylvia.config import LoggingConfig

# Loggers emitted by the provider SDKs
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic")


def _resolve(config: LoggingConfig | None) -> tuple[str, bool]:
    env_level = os.environ.get("SYLVIA_LOG_LEVEL")
    env_format = os.environ.get("SYLVIA_LOG_FORMAT", "").lower()

    level = env_level or (config.level if config else "INFO")
    if env_format:
        json_output = env_format == "json"
    else:
        json_output = bool(config.json_output) if config else False
    return level, json_output


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog and the root stdlib logger. Environment variables win over config."""
    level, json_output = _resolve(config)
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.contextvars.bind_contextvars(service="sylvia")


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["NOISY_LOGGERS", "get_logger", "setup_logging"]
