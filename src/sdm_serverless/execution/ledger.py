"""In-memory goal ledger.

The production ledger is an external service; this implementation keeps
goal records and every write in memory so the dispatcher can be driven end
to end by the CLI harness and the tests.

Example:
    >>> ledger = InMemoryGoalLedger()
    >>> ledger.add(event)
    >>> await ledger.update_goal(event, GoalPatch(state=GoalState.IN_PROCESS))
    >>> ledger.get(event).state
    <GoalState.IN_PROCESS: 'in_process'>
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from sdm_serverless.core.logging import get_logger
from sdm_serverless.core.settings import SdmSettings
from sdm_serverless.goals.models import GoalEvent, GoalPatch

logger = get_logger(__name__)


def _key(event: GoalEvent) -> tuple[str, str]:
    return (event.goal_set_id, event.unique_name)


@dataclass(frozen=True)
class LedgerWrite:
    """One recorded ``update_goal`` call."""

    goal_set_id: str
    unique_name: str
    patch: GoalPatch
    timestamp: datetime


class InMemoryGoalLedger:
    """Goal records keyed by ``(goal_set_id, unique_name)`` plus a write history."""

    def __init__(self) -> None:
        self._goals: dict[tuple[str, str], GoalEvent] = {}
        self._canceled: set[tuple[str, str]] = set()
        self.writes: list[LedgerWrite] = []

    def add(self, event: GoalEvent) -> None:
        """Store ``event`` as the current record for its goal."""
        self._goals[_key(event)] = event

    def get(self, event: GoalEvent) -> GoalEvent | None:
        return self._goals.get(_key(event))

    def cancel(self, event: GoalEvent) -> None:
        """Mark the goal canceled, as an operator would through the platform."""
        self._canceled.add(_key(event))

    def writes_for(self, event: GoalEvent) -> list[GoalPatch]:
        key = _key(event)
        return [w.patch for w in self.writes if (w.goal_set_id, w.unique_name) == key]

    # ── GoalLedger protocol ─────────────────────────────────────────

    async def update_goal(self, event: GoalEvent, patch: GoalPatch) -> None:
        key = _key(event)
        self.writes.append(LedgerWrite(key[0], key[1], patch, datetime.now(UTC)))

        current = self._goals.get(key, event)
        changes = {
            name: getattr(patch, name)
            for name in GoalPatch.model_fields
            if getattr(patch, name) is not None
        }
        self._goals[key] = current.model_copy(update=changes)
        logger.debug(
            "ledger.goal_updated",
            goal=event.unique_name,
            goal_set_id=event.goal_set_id,
            state=patch.state.value,
        )

    async def is_canceled(self, event: GoalEvent) -> bool:
        return _key(event) in self._canceled

    async def cancelable_goal(self, event: GoalEvent, settings: SdmSettings) -> bool:
        return settings.cancelable
