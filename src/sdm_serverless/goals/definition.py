"""Goal definitions and state descriptions."""

from __future__ import annotations

from dataclasses import dataclass, replace

from sdm_serverless.goals.models import GoalState

INDEPENDENT_OF_ENVIRONMENT = "0-code/"


@dataclass(frozen=True)
class GoalDefinition:
    """Static description of a goal: its names and the text shown per state."""

    unique_name: str
    display_name: str
    environment: str = INDEPENDENT_OF_ENVIRONMENT
    working_description: str | None = None
    completed_description: str | None = None
    failed_description: str | None = None
    waiting_for_approval_description: str | None = None
    waiting_for_pre_approval_description: str | None = None
    stopped_description: str | None = None
    canceled_description: str | None = None
    retry_feasible: bool = False

    def named(self, unique_name: str) -> GoalDefinition:
        """Copy of this definition under another unique name."""
        return replace(self, unique_name=unique_name)


_DESCRIPTION_FIELDS = {
    GoalState.IN_PROCESS: "working_description",
    GoalState.SUCCESS: "completed_description",
    GoalState.FAILURE: "failed_description",
    GoalState.WAITING_FOR_APPROVAL: "waiting_for_approval_description",
    GoalState.WAITING_FOR_PRE_APPROVAL: "waiting_for_pre_approval_description",
    GoalState.STOPPED: "stopped_description",
    GoalState.CANCELED: "canceled_description",
}

_STATE_WORDING = {
    GoalState.PLANNED: "planned",
    GoalState.REQUESTED: "requested",
    GoalState.IN_PROCESS: "in process",
    GoalState.WAITING_FOR_APPROVAL: "waiting for approval",
    GoalState.APPROVED: "approved",
    GoalState.WAITING_FOR_PRE_APPROVAL: "waiting to start",
    GoalState.PRE_APPROVED: "start approved",
    GoalState.SUCCESS: "completed",
    GoalState.FAILURE: "failed",
    GoalState.STOPPED: "stopped",
    GoalState.CANCELED: "canceled",
    GoalState.SKIPPED: "skipped",
}


def description_from_state(goal: GoalDefinition, state: GoalState) -> str:
    """Human-readable description of ``goal`` in ``state``.

    Uses the definition's own text for the state when it has one, otherwise
    ``"<display name> <state wording>"``.
    """
    field_name = _DESCRIPTION_FIELDS.get(state)
    if field_name is not None:
        text = getattr(goal, field_name)
        if text:
            return text
    return f"{goal.display_name} {_STATE_WORDING[state]}"
