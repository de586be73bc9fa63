"""Goal records exchanged with the ledger.

Pydantic v2 models for the goal-state records that arrive on a subscription
and the patches written back to the ledger. Wire payloads use camelCase
(``uniqueName``, ``goalSetId``, ``externalUrls``); the models accept both
camelCase and snake_case and dump camelCase with ``by_alias=True``.

Key Concepts:
    GoalEvent: A point-in-time record of one goal for one push. Frozen:
        ``fulfillment.name`` is fixed at scheduling time and the mutable
        fields (state, phase, description, url, external_urls) change only
        through ledger writes, never in place.
    GoalPatch: The mutable subset the dispatcher writes to the ledger.
    ExecutionResult: Outcome of a scheduler or an in-process execution.
        Optional fields are read through :func:`result_state`,
        :func:`result_phase` and :func:`result_description` so defaults are
        explicit.
    HandlerOutcome: Transport-level outcome of a dispatch. ``code`` is 0 for
        every handled event, including goals that failed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GoalState(str, Enum):
    """Goal states as recorded by the ledger."""

    PLANNED = "planned"
    REQUESTED = "requested"
    IN_PROCESS = "in_process"
    WAITING_FOR_APPROVAL = "waiting_for_approval"
    APPROVED = "approved"
    WAITING_FOR_PRE_APPROVAL = "waiting_for_pre_approval"
    PRE_APPROVED = "pre_approved"
    SUCCESS = "success"
    FAILURE = "failure"
    STOPPED = "stopped"
    CANCELED = "canceled"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (GoalState.SUCCESS, GoalState.FAILURE)


class FulfillmentMethod(str, Enum):
    """How a goal gets fulfilled."""

    SDM = "sdm"
    SIDE_EFFECT = "side-effect"
    OTHER = "other"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class Repo(_WireModel):
    owner: str
    name: str
    provider_id: str | None = None


class Push(_WireModel):
    repo: Repo


class Provenance(_WireModel):
    """One entry of a goal's provenance trail."""

    registration: str
    version: str | None = None
    name: str | None = None
    ts: int = 0


class Fulfillment(_WireModel):
    method: FulfillmentMethod
    name: str


class ExternalUrl(_WireModel):
    label: str | None = None
    url: str


class GoalEvent(_WireModel):
    """A goal record for a single push."""

    id: str | None = None
    """Transient ledger-assigned identifier"""

    unique_name: str
    name: str
    goal_set: str
    goal_set_id: str
    environment: str

    push: Push
    branch: str
    sha: str

    fulfillment: Fulfillment
    provenance: list[Provenance] = Field(default_factory=list)

    state: GoalState = GoalState.REQUESTED
    phase: str | None = None
    description: str | None = None
    url: str | None = None
    external_urls: list[ExternalUrl] = Field(default_factory=list)

    signature: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> GoalEvent:
        """Parse a subscription payload (either a goal or ``{"SdmGoal": [goal]}``)."""
        if "SdmGoal" in payload:
            goals = payload["SdmGoal"]
            if not goals:
                raise ValueError("Subscription payload carries no SdmGoal records")
            payload = goals[0]
        return cls.model_validate(payload)

    def origin(self) -> Provenance | None:
        """Earliest provenance entry, i.e. the SDM that planned this goal."""
        if not self.provenance:
            return None
        return min(self.provenance, key=lambda p: p.ts)


class GoalPatch(_WireModel):
    """State change written to the ledger for one goal."""

    state: GoalState
    phase: str | None = None
    description: str | None = None
    url: str | None = None
    external_urls: list[ExternalUrl] | None = None


class ExecutionResult(_WireModel):
    """Result of scheduling or executing a goal."""

    code: int = 0
    state: GoalState | None = None
    phase: str | None = None
    description: str | None = None
    url: str | None = None
    external_urls: list[ExternalUrl] | None = None
    message: str | None = None

    @property
    def failed(self) -> bool:
        return self.code != 0


def result_state(result: ExecutionResult | None, default: GoalState) -> GoalState:
    """State carried by ``result``, or ``default`` when it carries none."""
    if result is None or result.state is None:
        return default
    return result.state


def result_phase(result: ExecutionResult | None, default: str | None) -> str | None:
    if result is None or not result.phase:
        return default
    return result.phase


def result_description(result: ExecutionResult | None, default: str | None) -> str | None:
    if result is None or not result.description:
        return default
    return result.description


class HandlerOutcome(_WireModel):
    """Transport-level outcome of handling one goal event."""

    code: int = 0
    message: str | None = None
    state: GoalState | None = None
    phase: str | None = None
    description: str | None = None
    url: str | None = None
    external_urls: list[ExternalUrl] | None = None

    @classmethod
    def success(cls) -> HandlerOutcome:
        return cls(code=0)

    @classmethod
    def handled(cls, result: ExecutionResult | None) -> HandlerOutcome:
        """Carry ``result`` through while reporting the event as handled."""
        if result is None:
            return cls(code=0)
        return cls(**result.model_dump(exclude={"code"}), code=0)


class RepoRef(_WireModel):
    """Reference to the repository and revision a goal runs against."""

    owner: str
    repo: str
    sha: str
    branch: str | None = None
    provider_id: str | None = None

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def from_goal(cls, event: GoalEvent) -> RepoRef:
        return cls(
            owner=event.push.repo.owner,
            repo=event.push.repo.name,
            sha=event.sha,
            branch=event.branch,
            provider_id=event.push.repo.provider_id,
        )
