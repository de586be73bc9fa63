"""Tests for sdm_serverless.execution.logs progress log sinks."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from sdm_serverless.execution.logs import (
    InMemoryLogFactory,
    LoggingProgressLog,
    StringCapturingProgressLog,
    WriteToAllProgressLog,
)
from sdm_serverless.goals.protocols import LogFactory, ProgressLog


class TestStringCapturingProgressLog:
    def test_newline_terminated(self):
        log = StringCapturingProgressLog()
        log.write("one")
        log.write("two\n")
        assert log.log == "one\ntwo\n"
        assert log.lines == ["one", "two"]

    @pytest.mark.asyncio
    async def test_flush_and_close(self):
        log = StringCapturingProgressLog()
        await log.flush()
        await log.flush()
        await log.close()
        assert log.flushed == 2
        assert log.closed is True

    def test_satisfies_protocol(self):
        assert isinstance(StringCapturingProgressLog(), ProgressLog)
        assert isinstance(LoggingProgressLog("x"), ProgressLog)


class TestWriteToAllProgressLog:
    @pytest.mark.asyncio
    async def test_fans_out(self):
        a, b = StringCapturingProgressLog(), StringCapturingProgressLog()
        log = WriteToAllProgressLog("all", a, b)

        log.write("hello")
        await log.flush()
        await log.close()

        assert a.lines == b.lines == ["hello"]
        assert a.flushed == b.flushed == 1
        assert a.closed and b.closed

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_stop_the_others(self):
        broken = StringCapturingProgressLog("broken")
        broken.flush = AsyncMock(side_effect=OSError("log service down"))
        broken.close = AsyncMock(side_effect=OSError("log service down"))
        after = StringCapturingProgressLog()
        log = WriteToAllProgressLog("all", broken, after)

        with pytest.raises(OSError, match="log service down"):
            await log.flush()
        with pytest.raises(OSError, match="log service down"):
            await log.close()

        assert after.flushed == 1
        assert after.closed

    def test_first_url(self):
        log = WriteToAllProgressLog(
            "all",
            LoggingProgressLog("console"),
            StringCapturingProgressLog(url="memory://a"),
            StringCapturingProgressLog(url="memory://b"),
        )
        assert log.url == "memory://a"

    def test_no_url(self):
        assert WriteToAllProgressLog("all", LoggingProgressLog("console")).url is None

    def test_nested(self):
        inner = StringCapturingProgressLog(url="memory://inner")
        outer = WriteToAllProgressLog("outer", WriteToAllProgressLog("inner", inner))
        outer.write("x")
        assert inner.lines == ["x"]
        assert outer.url == "memory://inner"


class TestInMemoryLogFactory:
    @pytest.mark.asyncio
    async def test_one_log_per_goal(self, make_goal, make_ctx):
        factory = InMemoryLogFactory(base_url="memory://logs/")
        goal = make_goal()

        log = await factory.create_log(make_ctx(), goal)

        assert log.url == "memory://logs/gs-42/deploy-dev"
        assert factory.log_for(goal) is log
        assert factory.log_for(make_goal(uniqueName="other")) is None

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryLogFactory(), LogFactory)
