"""Serverless extension pack.

Installs the serverless fulfillment handler on a worker: every
``sdm_goal.requested`` event is parsed into a :class:`GoalEvent` and handed
to :func:`fulfill_goal` with the worker's dispatch context.

Example::

    pack = serverless_support(ctx)
    await pack.configure(bus)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sdm_serverless import __version__
from sdm_serverless.core.events import GOAL_REQUESTED, Event, EventBus
from sdm_serverless.core.logging import get_logger
from sdm_serverless.execution.context import DispatchContext
from sdm_serverless.execution.dispatcher import fulfill_goal
from sdm_serverless.goals.models import GoalEvent, HandlerOutcome

logger = get_logger(__name__)


class ServerlessFulfillGoalOnRequested:
    """Event handler dispatching requested goals to this worker's serverless deploys.

    The bus discards handler return values; callers that need the
    :class:`HandlerOutcome` of one delivery call :meth:`handle` directly.
    """

    name = "ServerlessFulfillGoalOnRequested"

    def __init__(self, ctx: DispatchContext) -> None:
        self.ctx = ctx

    async def __call__(self, event: Event) -> None:
        await self.handle(event)

    async def handle(self, event: Event) -> HandlerOutcome:
        goal = GoalEvent.from_payload(event.payload)
        outcome = await fulfill_goal(goal, self.ctx)
        logger.debug(
            "extension.goal_handled",
            handler=self.name,
            goal=goal.unique_name,
            code=outcome.code,
        )
        return outcome


@dataclass
class ExtensionPack:
    """A named bundle of event subscriptions added to a worker."""

    name: str
    vendor: str
    version: str
    description: str
    handlers: dict[str, ServerlessFulfillGoalOnRequested] = field(default_factory=dict)
    subscriptions: list[str] = field(default_factory=list)

    async def configure(self, bus: EventBus) -> None:
        """Subscribe every handler of this pack on ``bus``."""
        for event_type, handler in self.handlers.items():
            subscription_id = await bus.subscribe(event_type, handler)
            self.subscriptions.append(subscription_id)
            logger.info(
                "extension.configured",
                pack=self.name,
                event_type=event_type,
                handler=handler.name,
            )


def serverless_support(ctx: DispatchContext) -> ExtensionPack:
    """Extension pack fulfilling serverless deploy goals scheduled for this worker."""
    return ExtensionPack(
        name="sdm-serverless",
        vendor="sdm",
        version=__version__,
        description="Deploy projects via Serverless.com",
        handlers={GOAL_REQUESTED: ServerlessFulfillGoalOnRequested(ctx)},
    )
