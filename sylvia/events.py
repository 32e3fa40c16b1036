"""
Change Notification Bus

Process-wide publish/subscribe for "something changed, re-fetch" signals.
Pages and other collaborators subscribe to the event names below; the core
emits them after its writes. Events carry no payload.

Usage:
    from sylvia.events import ChangeEvent, EventBus

    bus = EventBus()
    unsubscribe = bus.subscribe(ChangeEvent.MEMORIES_UPDATED, refresh_memory_list)
    ...
    unsubscribe()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum

logger = logging.getLogger(__name__)


class ChangeEvent(StrEnum):
    """Event names consumed by external pages."""

    MEMORIES_UPDATED = "memories-updated"
    PERFORMER_MEMORIES_UPDATED = "performer-memories-updated"
    BRAND_DATA_UPDATED = "brand-data-updated"
    CLIENT_DATA_UPDATED = "client-data-updated"
    PERFORMERS_UPDATED = "performers-updated"
    PERFORMER_INTERACTIONS_UPDATED = "performer-interactions-updated"
    INTELLIGENCE_LOG_UPDATED = "intelligence-log-updated"


Handler = Callable[[], None]


class EventBus:
    """
    Synchronous observer registry.

    Handlers run in subscription order on the emitting call. A failing handler
    is logged and skipped; it never interrupts the write that triggered it.
    """

    def __init__(self) -> None:
        self._handlers: dict[ChangeEvent, list[Handler]] = {}

    def subscribe(self, event: ChangeEvent | str, handler: Handler) -> Callable[[], None]:
        """
        Register a handler for an event.

        Returns:
            Callable that removes the subscription
        """
        key = ChangeEvent(event)
        self._handlers.setdefault(key, []).append(handler)

        def unsubscribe() -> None:
            self.unsubscribe(key, handler)

        return unsubscribe

    def unsubscribe(self, event: ChangeEvent | str, handler: Handler) -> None:
        handlers = self._handlers.get(ChangeEvent(event), [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: ChangeEvent | str) -> int:
        """
        Notify every subscriber of an event.

        Returns:
            Number of handlers that ran without raising
        """
        key = ChangeEvent(event)
        delivered = 0
        for handler in list(self._handlers.get(key, [])):
            try:
                handler()
                delivered += 1
            except Exception as e:
                name = getattr(handler, "__name__", repr(handler))
                logger.warning(f"Handler {name} failed for {key.value}: {e}")
        return delivered

    def subscriber_count(self, event: ChangeEvent | str) -> int:
        return len(self._handlers.get(ChangeEvent(event), []))


__all__ = ["ChangeEvent", "EventBus", "Handler"]
