"""
Batch Processor: extraction + apply over many memories

Runs memories concurrently with at most one in-flight model call per
configured credential. Each credential owns one ExtractionEngine; a memory
borrows an idle engine for its extraction and gives it back before applying.

A failed extraction is retried once on a different credential (when more than
one is configured). Failures never abort the batch: every memory gets a
BatchOutcome, in the order the ids were given.

Usage:
    processor = BatchProcessor.from_config(config.ai, router, load_context)
    outcomes = await processor.process([12, 13, 14])
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from sylvia.config import AIConfig
from sylvia.errors import ApplicationError, ExtractionError
from sylvia.intelligence.extractor import ExtractionEngine
from sylvia.intelligence.models import ExtractionContext, ProcessingResult
from sylvia.intelligence.router import ApplicationReport, ApplicationRouter

logger = logging.getLogger(__name__)


class OutcomeStatus(StrEnum):
    APPLIED = "applied"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class BatchOutcome:
    memory_id: int
    status: OutcomeStatus
    attempts: int = 0
    result: ProcessingResult | None = None
    report: ApplicationReport | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "memory_id": self.memory_id,
            "status": str(self.status),
            "attempts": self.attempts,
            "report": self.report.to_dict() if self.report else None,
            "error": self.error,
        }


class CredentialPool:
    """Idle engines, handed out one per caller. `exclude` skips a given engine."""

    def __init__(self, engines: list[ExtractionEngine]):
        if not engines:
            raise ExtractionError("No API credentials configured")
        self._engines = list(engines)
        self._idle = list(engines)
        self._available = asyncio.Condition()

    def __len__(self) -> int:
        return len(self._engines)

    async def acquire(self, exclude: ExtractionEngine | None = None) -> ExtractionEngine:
        def pick() -> ExtractionEngine | None:
            for engine in self._idle:
                if engine is not exclude:
                    return engine
            return None

        async with self._available:
            await self._available.wait_for(lambda: pick() is not None)
            engine = pick()
            self._idle.remove(engine)
            return engine

    async def release(self, engine: ExtractionEngine) -> None:
        async with self._available:
            self._idle.append(engine)
            self._available.notify_all()

    async def close(self) -> None:
        for engine in self._engines:
            await engine.close()


class BatchProcessor:
    def __init__(
        self,
        engines: list[ExtractionEngine],
        router: ApplicationRouter,
        context_loader: Callable[[], ExtractionContext],
    ):
        self.pool = CredentialPool(engines)
        self.router = router
        self.context_loader = context_loader

    @classmethod
    def from_config(
        cls,
        config: AIConfig,
        router: ApplicationRouter,
        context_loader: Callable[[], ExtractionContext],
    ) -> BatchProcessor:
        """One engine per configured API key."""
        if not config.api_keys:
            raise ExtractionError("No API credentials configured", provider=config.provider)
        engines = [ExtractionEngine(config, api_key=key) for key in config.api_keys]
        return cls(engines, router, context_loader)

    async def process(self, memory_ids: list[int]) -> list[BatchOutcome]:
        """Extract and apply every memory; outcomes follow the order of `memory_ids`."""
        if not memory_ids:
            return []
        context = self.context_loader()
        logger.info(f"Processing {len(memory_ids)} memories across {len(self.pool)} credential(s)")
        outcomes = await asyncio.gather(*(self._process_one(memory_id, context) for memory_id in memory_ids))

        failed = sum(1 for outcome in outcomes if outcome.status == OutcomeStatus.FAILED)
        if failed:
            logger.warning(f"Batch finished with {failed}/{len(outcomes)} failed memories")
        return list(outcomes)

    async def _process_one(self, memory_id: int, context: ExtractionContext) -> BatchOutcome:
        memory = self.router.memories.get_memory(memory_id)
        if memory is None:
            return BatchOutcome(memory_id, OutcomeStatus.FAILED, error=f"Memory {memory_id} does not exist")

        outcome = BatchOutcome(memory_id, OutcomeStatus.FAILED)
        failed_engine: ExtractionEngine | None = None
        max_attempts = 2 if len(self.pool) > 1 else 1

        while outcome.attempts < max_attempts and outcome.result is None:
            engine = await self.pool.acquire(exclude=failed_engine)
            outcome.attempts += 1
            try:
                outcome.result = await engine.extract(memory, context)
            except ExtractionError as e:
                logger.warning(f"Extraction attempt {outcome.attempts} for memory {memory_id} failed: {e}")
                outcome.error = str(e)
                failed_engine = engine
            finally:
                await self.pool.release(engine)

        if outcome.result is None:
            return outcome

        try:
            outcome.report = await self.router.apply(memory_id, outcome.result)
        except ApplicationError as e:
            outcome.error = str(e)
            return outcome

        outcome.error = None
        if outcome.report.ok:
            outcome.status = OutcomeStatus.APPLIED
        else:
            outcome.status = OutcomeStatus.PARTIAL
            outcome.error = "; ".join(f"{err.destination}: {err.error}" for err in outcome.report.errors)
        return outcome

    async def close(self) -> None:
        await self.pool.close()


__all__ = ["BatchOutcome", "BatchProcessor", "CredentialPool", "OutcomeStatus"]
