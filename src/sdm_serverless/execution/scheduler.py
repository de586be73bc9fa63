"""Scheduler Registry: ordered delegation to external executors.

A goal scheduler takes over a goal instead of running it in this process
(for example by launching a cluster job). Several schedulers may be
registered; registration order is their priority.

ARCHITECTURE
────────────
::

    SchedulerRegistry([A, B, C])
      └── .select_scheduler(invocation)
            A.supports? ── no ──► B.supports? ── yes ──► B   (C never asked)

    No schedulers ⇒ always None (pure direct-execution mode).
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING

from sdm_serverless.core.logging import get_logger
from sdm_serverless.goals.protocols import GoalScheduler

if TYPE_CHECKING:
    from sdm_serverless.execution.context import GoalInvocation

logger = get_logger(__name__)


class SchedulerRegistry:
    """Holds goal schedulers in priority order.

    Accepts nothing, a single scheduler, or a sequence of schedulers; a
    single scheduler is stored as a one-element list.
    """

    def __init__(self, schedulers: GoalScheduler | Sequence[GoalScheduler] | None = None) -> None:
        if schedulers is None:
            self._schedulers: list[GoalScheduler] = []
        elif isinstance(schedulers, Sequence):
            self._schedulers = list(schedulers)
        else:
            self._schedulers = [schedulers]

    def register(self, scheduler: GoalScheduler) -> None:
        """Append a scheduler with the lowest priority so far."""
        self._schedulers.append(scheduler)

    @property
    def schedulers(self) -> tuple[GoalScheduler, ...]:
        return tuple(self._schedulers)

    async def select_scheduler(self, invocation: GoalInvocation) -> GoalScheduler | None:
        """First scheduler, in registration order, that supports ``invocation``.

        Schedulers are asked one at a time; once one claims the goal the
        remaining ones are not queried.
        """
        for scheduler in self._schedulers:
            if await scheduler.supports(invocation):
                logger.debug(
                    "scheduler.selected",
                    scheduler=type(scheduler).__name__,
                    goal=invocation.event.unique_name,
                )
                return scheduler
        return None

    def __len__(self) -> int:
        return len(self._schedulers)

    def __iter__(self) -> Iterator[GoalScheduler]:
        return iter(self._schedulers)
