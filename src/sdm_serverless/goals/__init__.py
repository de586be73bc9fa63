"""Goal records, definitions, implementations and collaborator protocols."""

from sdm_serverless.goals.definition import GoalDefinition, description_from_state
from sdm_serverless.goals.implementations import GoalImplementation, ImplementationRegistry
from sdm_serverless.goals.models import (
    ExecutionResult,
    ExternalUrl,
    Fulfillment,
    FulfillmentMethod,
    GoalEvent,
    GoalPatch,
    GoalState,
    HandlerOutcome,
    Provenance,
    Push,
    Repo,
    RepoRef,
)

__all__ = [
    "GoalDefinition",
    "description_from_state",
    "GoalImplementation",
    "ImplementationRegistry",
    "ExecutionResult",
    "ExternalUrl",
    "Fulfillment",
    "FulfillmentMethod",
    "GoalEvent",
    "GoalPatch",
    "GoalState",
    "HandlerOutcome",
    "Provenance",
    "Push",
    "Repo",
    "RepoRef",
]
