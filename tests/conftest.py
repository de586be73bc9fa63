"""
Shared pytest fixtures for sdm-serverless tests.

This module provides:
- Settings for a worker named ``team-x``
- A goal event factory (goals planned by another SDM and targeted at team-x)
- A fully wired in-memory DispatchContext
- Fake schedulers that record whether they were asked

Usage:
    async def test_something(make_goal, make_ctx):
        ctx = make_ctx()
        outcome = await fulfill_goal(make_goal(), ctx)
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from sdm_serverless.core.settings import SdmSettings
from sdm_serverless.execution import (
    DispatchContext,
    GoalExecutionBackend,
    GoalRepoRefResolver,
    InMemoryGoalLedger,
    InMemoryLogFactory,
    SchedulerRegistry,
    SigningDisabledVerifier,
    StaticCredentialsResolver,
)
from sdm_serverless.goals.definition import GoalDefinition
from sdm_serverless.goals.implementations import GoalImplementation, ImplementationRegistry
from sdm_serverless.goals.models import ExecutionResult, GoalEvent

WORKER = "team-x"
FULFILLMENT = "team-x-serverless-deploy"


# =============================================================================
# Settings and goals
# =============================================================================


@pytest.fixture
def settings() -> SdmSettings:
    return SdmSettings(name=WORKER, version="1.4.0")


@pytest.fixture
def goal_definition() -> GoalDefinition:
    return GoalDefinition(
        unique_name="deploy-dev",
        display_name="deploy to dev",
        working_description="Deploying to dev",
        completed_description="Deployed to dev",
        failed_description="Deploy to dev failed",
    )


def goal_payload(**overrides: Any) -> dict[str, Any]:
    """Wire-format (camelCase) goal record."""
    payload: dict[str, Any] = {
        "id": "ledger-1",
        "uniqueName": "deploy-dev",
        "name": "deploy",
        "goalSet": "build-and-deploy",
        "goalSetId": "gs-42",
        "environment": "1-staging/",
        "push": {"repo": {"owner": "acme", "name": "api", "providerId": "gh"}},
        "branch": "main",
        "sha": "4f2a9c1",
        "fulfillment": {"method": "sdm", "name": FULFILLMENT},
        "provenance": [
            {"registration": "planner-sdm", "version": "2.0.0", "name": "Planner", "ts": 100},
            {"registration": WORKER, "version": "1.4.0", "name": "Worker", "ts": 200},
        ],
        "state": "requested",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_goal() -> Callable[..., GoalEvent]:
    """Factory for goal events; keyword overrides use wire (camelCase) names."""

    def _make(**overrides: Any) -> GoalEvent:
        return GoalEvent.model_validate(goal_payload(**overrides))

    return _make


# =============================================================================
# Dispatch context
# =============================================================================


@pytest.fixture
def goal_executor() -> AsyncMock:
    return AsyncMock(return_value=ExecutionResult(code=0))


@pytest.fixture
def make_ctx(settings, goal_definition, goal_executor) -> Callable[..., DispatchContext]:
    """Factory for a wired in-memory context; keyword overrides replace fields."""

    def _make(**overrides: Any) -> DispatchContext:
        ledger = overrides.pop("ledger", None) or InMemoryGoalLedger()
        implementations = overrides.pop("implementations", None)
        if implementations is None:
            implementations = ImplementationRegistry(
                [GoalImplementation(FULFILLMENT, goal_definition, goal_executor)]
            )
        ctx = DispatchContext(
            settings=settings,
            ledger=ledger,
            implementations=implementations,
            execution_backend=GoalExecutionBackend(ledger),
            verifier=SigningDisabledVerifier(),
            repo_ref_resolver=GoalRepoRefResolver(),
            credentials_resolver=StaticCredentialsResolver({"token": "secret"}),
            log_factory=InMemoryLogFactory(),
        )
        return dataclasses.replace(ctx, **overrides) if overrides else ctx

    return _make


class FakeScheduler:
    """Scheduler with a fixed ``supports`` answer and ``schedule`` result."""

    def __init__(
        self,
        supports: bool,
        result: ExecutionResult | None = None,
        error: Exception | None = None,
    ) -> None:
        self._supports = supports
        self._result = result
        self._error = error
        self.supports_calls = 0
        self.schedule_calls = 0

    async def supports(self, invocation) -> bool:
        self.supports_calls += 1
        return self._supports

    async def schedule(self, invocation) -> ExecutionResult | None:
        self.schedule_calls += 1
        if self._error is not None:
            raise self._error
        return self._result


@pytest.fixture
def schedulers() -> Callable[..., SchedulerRegistry]:
    def _make(*items: FakeScheduler) -> SchedulerRegistry:
        return SchedulerRegistry(list(items))

    return _make


@pytest.fixture
def fake_scheduler() -> type[FakeScheduler]:
    return FakeScheduler


@pytest.fixture
def wire_goal() -> Callable[..., dict[str, Any]]:
    """Factory for raw wire payloads (what a subscription delivers)."""
    return goal_payload
