"""Tests for sdm_serverless.execution.scheduler.SchedulerRegistry."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from sdm_serverless.execution.scheduler import SchedulerRegistry


@pytest.fixture
def invocation(make_goal):
    inv = MagicMock()
    inv.event = make_goal()
    return inv


class TestConstruction:
    def test_empty(self):
        assert len(SchedulerRegistry()) == 0
        assert SchedulerRegistry().schedulers == ()

    def test_single_scheduler_normalized(self, fake_scheduler):
        scheduler = fake_scheduler(True)
        registry = SchedulerRegistry(scheduler)
        assert registry.schedulers == (scheduler,)

    def test_sequence_keeps_order(self, fake_scheduler):
        items = [fake_scheduler(False), fake_scheduler(True)]
        registry = SchedulerRegistry(items)
        assert list(registry) == items

    def test_register_appends(self, fake_scheduler):
        first, second = fake_scheduler(False), fake_scheduler(True)
        registry = SchedulerRegistry(first)
        registry.register(second)
        assert registry.schedulers == (first, second)

    def test_source_list_not_aliased(self, fake_scheduler):
        items = [fake_scheduler(False)]
        registry = SchedulerRegistry(items)
        items.append(fake_scheduler(True))
        assert len(registry) == 1


class TestSelectScheduler:
    @pytest.mark.asyncio
    async def test_empty_registry(self, invocation):
        assert await SchedulerRegistry().select_scheduler(invocation) is None

    @pytest.mark.asyncio
    async def test_none_supports(self, invocation, fake_scheduler):
        items = [fake_scheduler(False), fake_scheduler(False)]
        assert await SchedulerRegistry(items).select_scheduler(invocation) is None
        assert [s.supports_calls for s in items] == [1, 1]

    @pytest.mark.asyncio
    async def test_first_claimant_stops_the_scan(self, invocation, fake_scheduler):
        a, b, c = fake_scheduler(False), fake_scheduler(True), fake_scheduler(True)

        selected = await SchedulerRegistry([a, b, c]).select_scheduler(invocation)

        assert selected is b
        assert c.supports_calls == 0

    @pytest.mark.asyncio
    async def test_selection_is_repeatable(self, invocation, fake_scheduler):
        registry = SchedulerRegistry([fake_scheduler(False), fake_scheduler(True), fake_scheduler(True)])

        first = await registry.select_scheduler(invocation)
        second = await registry.select_scheduler(invocation)

        assert first is second is registry.schedulers[1]
