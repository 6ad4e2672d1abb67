"""
Event Bus Infrastructure

Architectural Intent:
- In-memory event bus implementation for publishing deployment events
- Supports async subscription handlers
- A failing handler is logged and does not stop delivery to the others
"""

import logging
from typing import Callable, Awaitable
from redeploy.domain.events.event_base import DomainEvent

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[DomainEvent], Awaitable[None]]]] = {}

    async def publish(self, events: list[DomainEvent]) -> None:
        for event in events:
            for handler in self._handlers.get(type(event), []):
                try:
                    await handler(event)
                except Exception as e:
                    logger.error("Handler for %s failed: %s", event.event_type, e)

    def subscribe(
        self, event_type: type, handler: Callable[[DomainEvent], Awaitable[None]]
    ) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
