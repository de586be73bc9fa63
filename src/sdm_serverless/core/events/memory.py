"""
Single-process event bus.

Nothing is persisted: :meth:`InMemoryEventBus.publish` awaits every matching
handler before it returns. An exception raised by a handler is logged and
recorded on :attr:`InMemoryEventBus.failures` instead of reaching the
publisher, so one failing subscriber never hides another one's delivery.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass

from sdm_serverless.core.events import Event, EventHandler
from sdm_serverless.core.logging import get_logger

__all__ = ["InMemoryEventBus", "HandlerFailure"]

logger = get_logger(__name__)


@dataclass(frozen=True)
class HandlerFailure:
    """An exception raised by one subscriber while handling ``event``."""

    subscription_id: str
    event: Event
    error: BaseException


class InMemoryEventBus:
    """Delivers events to subscribers registered in this process.

    Handlers subscribed to the same event run concurrently under
    :func:`asyncio.gather`. A failure in one of them is captured and does not
    cancel the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, tuple[str, EventHandler]] = {}
        self._ids = itertools.count(1)
        self._closed = False
        self.failures: list[HandlerFailure] = []

    @property
    def subscription_count(self) -> int:
        return len(self._handlers)

    async def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Register ``handler`` for ``event_type`` (``*`` and ``prefix.*`` allowed)."""
        subscription_id = f"sub-{next(self._ids)}"
        self._handlers[subscription_id] = (event_type, handler)
        logger.debug("event_bus.subscribed", subscription_id=subscription_id, pattern=event_type)
        return subscription_id

    async def unsubscribe(self, subscription_id: str) -> None:
        self._handlers.pop(subscription_id, None)

    async def publish(self, event: Event) -> None:
        if self._closed:
            logger.debug("event_bus.closed", event_type=event.event_type)
            return

        targets = [
            (subscription_id, handler)
            for subscription_id, (pattern, handler) in list(self._handlers.items())
            if event.matches(pattern)
        ]
        if not targets:
            logger.debug("event_bus.no_subscribers", event_type=event.event_type)
            return

        await asyncio.gather(*(self._deliver(sid, handler, event) for sid, handler in targets))

    async def _deliver(self, subscription_id: str, handler: EventHandler, event: Event) -> None:
        try:
            await handler(event)
        except Exception as exc:
            logger.error(
                "event_bus.handler_failed",
                subscription_id=subscription_id,
                event_type=event.event_type,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            self.failures.append(HandlerFailure(subscription_id, event, exc))

    async def close(self) -> None:
        """Drop all subscriptions; later publishes are ignored."""
        self._closed = True
        self._handlers.clear()
