"""
Error taxonomy for the memory core.

    SylviaError
    ├── ValidationError   malformed memory or tags at the ingestion interface
    ├── ExtractionError   AI call failed, or its top-level response was not JSON
    └── ApplicationError  target memory missing, or destination writes failed
"""

from __future__ import annotations

from dataclasses import dataclass


class SylviaError(Exception):
    """Base class for all core errors."""


class ValidationError(SylviaError):
    """Raised when a memory, tag list or record fails validation."""


class ExtractionError(SylviaError):
    """Raised when intelligence extraction cannot produce a result."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


@dataclass
class DestinationError:
    """A single destination-store failure inside an apply."""

    destination: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"destination": self.destination, "error": self.error}


class ApplicationError(SylviaError):
    """Raised when a processing result cannot be (fully) applied."""

    def __init__(
        self,
        message: str,
        memory_id: int | None = None,
        errors: list[DestinationError] | None = None,
    ):
        super().__init__(message)
        self.memory_id = memory_id
        self.errors = errors or []


__all__ = [
    "ApplicationError",
    "DestinationError",
    "ExtractionError",
    "SylviaError",
    "ValidationError",
]
