"""Tests for sdm_serverless.serverless.extension: wiring onto the event bus."""

from __future__ import annotations

import pytest

from sdm_serverless import __version__
from sdm_serverless.core.errors import ImplementationNotFoundError
from sdm_serverless.core.events import GOAL_REQUESTED, Event
from sdm_serverless.core.events.memory import InMemoryEventBus
from sdm_serverless.goals.implementations import ImplementationRegistry
from sdm_serverless.goals.models import GoalState
from sdm_serverless.serverless.extension import ServerlessFulfillGoalOnRequested, serverless_support


@pytest.fixture
def bus():
    return InMemoryEventBus()


class TestServerlessSupport:
    def test_pack_metadata(self, make_ctx):
        pack = serverless_support(make_ctx())

        assert pack.name == "sdm-serverless"
        assert pack.version == __version__
        assert isinstance(pack.handlers[GOAL_REQUESTED], ServerlessFulfillGoalOnRequested)

    @pytest.mark.asyncio
    async def test_configure_subscribes(self, make_ctx, bus):
        pack = serverless_support(make_ctx())

        await pack.configure(bus)

        assert bus.subscription_count == 1
        assert len(pack.subscriptions) == 1

    @pytest.mark.asyncio
    async def test_requested_goal_dispatched(self, make_ctx, make_goal, wire_goal, bus, goal_executor):
        ctx = make_ctx()
        pack = serverless_support(ctx)
        await pack.configure(bus)

        await bus.publish(Event(event_type=GOAL_REQUESTED, source="test", payload={"SdmGoal": [wire_goal()]}))

        goal_executor.assert_awaited_once()
        assert [p.state for p in ctx.ledger.writes_for(make_goal())] == [
            GoalState.IN_PROCESS,
            GoalState.SUCCESS,
        ]

    @pytest.mark.asyncio
    async def test_other_events_ignored(self, make_ctx, wire_goal, bus, goal_executor):
        pack = serverless_support(make_ctx())
        await pack.configure(bus)

        await bus.publish(Event(event_type="sdm_goal.completed", source="test", payload=wire_goal()))

        goal_executor.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dispatch_errors_reach_the_bus(self, make_ctx, wire_goal, bus):
        pack = serverless_support(make_ctx(implementations=ImplementationRegistry()))
        await pack.configure(bus)

        await bus.publish(Event(event_type=GOAL_REQUESTED, source="test", payload=wire_goal()))

        assert len(bus.failures) == 1
        assert isinstance(bus.failures[0].error, ImplementationNotFoundError)


class TestServerlessFulfillGoalOnRequested:
    @pytest.mark.asyncio
    async def test_handle_returns_outcome(self, make_ctx, wire_goal, goal_executor):
        handler = ServerlessFulfillGoalOnRequested(make_ctx())

        outcome = await handler.handle(Event(event_type=GOAL_REQUESTED, source="test", payload=wire_goal()))

        assert outcome.code == 0
        goal_executor.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_keeps_no_state_between_deliveries(self, make_ctx, wire_goal, bus, goal_executor):
        ctx = make_ctx()
        pack = serverless_support(ctx)
        await pack.configure(bus)
        side_effect = {"method": "side-effect", "name": "team-x-serverless-deploy"}

        for i in range(500):
            payload = wire_goal(uniqueName=f"deploy-{i}", fulfillment=side_effect)
            await bus.publish(Event(event_type=GOAL_REQUESTED, source="test", payload=payload))

        assert vars(pack.handlers[GOAL_REQUESTED]) == {"ctx": ctx}
        assert bus.failures == []
        goal_executor.assert_not_awaited()
