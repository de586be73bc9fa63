"""Implementation Registry: fulfillment name → goal implementation lookup.

A goal event names the implementation that must run it through
``fulfillment.name``. Goals register their implementations at startup
(:meth:`ServerlessDeploy.with_registration`); the dispatcher resolves them
at dispatch time.

ARCHITECTURE
────────────
::

    ImplementationRegistry
      ├── .register(implementation)      ─ append (duplicates are kept)
      ├── .find_by_goal_event(event)     ─ exactly-one lookup
      ├── .names()                       ─ registered names, in order
      └── .has(name)                     ─ existence check

Duplicate names are not rejected at registration time: two goals may be
configured with the same fulfillment name by mistake, and that mistake
surfaces as :class:`MultipleImplementationsError` when a goal with that
name is dispatched.
"""

from __future__ import annotations

from dataclasses import dataclass

from sdm_serverless.core.errors import ImplementationNotFoundError, MultipleImplementationsError
from sdm_serverless.core.logging import get_logger
from sdm_serverless.goals.definition import GoalDefinition
from sdm_serverless.goals.models import GoalEvent
from sdm_serverless.goals.protocols import GoalExecutor

logger = get_logger(__name__)


@dataclass(frozen=True)
class GoalImplementation:
    """A named way of fulfilling a goal in-process."""

    name: str
    goal: GoalDefinition
    goal_executor: GoalExecutor
    description: str | None = None


class ImplementationRegistry:
    """Injectable implementation registry.

    Example:
        >>> registry = ImplementationRegistry()
        >>> registry.register(GoalImplementation("team-x-serverless-deploy", goal, executor))
        >>> registry.find_by_goal_event(event).name
        'team-x-serverless-deploy'
    """

    def __init__(self, implementations: list[GoalImplementation] | None = None):
        self._implementations: list[GoalImplementation] = list(implementations or [])

    def register(self, implementation: GoalImplementation) -> None:
        self._implementations.append(implementation)
        logger.debug(
            "implementation.registered",
            name=implementation.name,
            goal=implementation.goal.unique_name,
        )

    def has(self, name: str) -> bool:
        return any(i.name == name for i in self._implementations)

    def names(self) -> list[str]:
        return [i.name for i in self._implementations]

    def find(self, name: str) -> list[GoalImplementation]:
        """All implementations registered under ``name``."""
        return [i for i in self._implementations if i.name == name]

    def find_by_goal_event(self, event: GoalEvent) -> GoalImplementation:
        """Resolve the single implementation for ``event.fulfillment.name``.

        Raises:
            ImplementationNotFoundError: No implementation has that name
            MultipleImplementationsError: More than one has that name
        """
        name = event.fulfillment.name
        matches = self.find(name)
        if not matches:
            raise ImplementationNotFoundError(name, known=self.names()).with_context(
                goal=event.unique_name,
                fulfillment=name,
            )
        if len(matches) > 1:
            raise MultipleImplementationsError(name, goal=event.unique_name).with_context(
                goal=event.unique_name,
                fulfillment=name,
            )
        return matches[0]

    def unregister(self, name: str) -> bool:
        """Remove every implementation named ``name``; True if any were removed."""
        before = len(self._implementations)
        self._implementations = [i for i in self._implementations if i.name != name]
        return len(self._implementations) != before

    def clear(self) -> None:
        """Clear all implementations (for testing)."""
        self._implementations.clear()

    def __len__(self) -> int:
        return len(self._implementations)
