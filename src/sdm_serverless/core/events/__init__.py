"""Goal events and the bus they arrive on.

The automation platform announces goal-state changes through a subscription;
inside the worker each notification is an :class:`Event` whose payload is the
raw goal record. Anything that satisfies :class:`EventBus` can carry them.
:mod:`.memory` holds a single-process bus::

    bus = InMemoryEventBus()
    await bus.subscribe("sdm_goal.*", on_goal)
    await bus.publish(Event(event_type=GOAL_REQUESTED, source="ledger", payload=goal))
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
    "GOAL_REQUESTED",
]

GOAL_REQUESTED = "sdm_goal.requested"


def _new_event_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class Event:
    """One notification delivered to subscribers.

    ``event_type`` is dotted (``sdm_goal.requested``) so subscribers can
    listen on a whole family with ``sdm_goal.*``.
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)
    correlation_id: str | None = None
    event_id: str = field(default_factory=_new_event_id)

    def matches(self, pattern: str) -> bool:
        """``*`` matches everything, ``family.*`` a family, anything else exactly."""
        if pattern == "*":
            return True
        family, dot, star = pattern.rpartition(".")
        if dot and star == "*":
            return self.event_type.startswith(f"{family}.")
        return self.event_type == pattern


EventHandler = Callable[[Event], Awaitable[None]]


@runtime_checkable
class EventBus(Protocol):
    async def publish(self, event: Event) -> None: ...

    async def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Returns the subscription id to pass to :meth:`unsubscribe`."""
        ...

    async def unsubscribe(self, subscription_id: str) -> None: ...

    async def close(self) -> None: ...
