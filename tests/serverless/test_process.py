"""Tests for sdm_serverless.serverless.process.run_process."""

from __future__ import annotations

import asyncio
import os
import sys

import pytest

from sdm_serverless.core.errors import ProcessExecutionError
from sdm_serverless.execution.logs import StringCapturingProgressLog
from sdm_serverless.serverless.process import ProcessResult, run_process

pytestmark = pytest.mark.slow


class TestRunProcess:
    @pytest.mark.asyncio
    async def test_streams_output_into_log(self):
        log = StringCapturingProgressLog()

        result = await run_process(sys.executable, ["-c", "print('one'); print('two')"], log=log)

        assert result.ok
        assert result.exit_code == 0
        assert log.lines == ["one", "two"]
        assert result.output.splitlines() == ["one", "two"]

    @pytest.mark.asyncio
    async def test_stderr_merged(self):
        result = await run_process(
            sys.executable, ["-c", "import sys; sys.stderr.write('oops\\n'); sys.exit(4)"]
        )

        assert not result.ok
        assert result.exit_code == 4
        assert "oops" in result.output

    @pytest.mark.asyncio
    async def test_env_and_working_dir(self, tmp_path):
        script = "import os; print(os.environ['SLS_STAGE']); print(os.getcwd())"

        result = await run_process(
            sys.executable, ["-c", script], env={"SLS_STAGE": "dev"}, working_dir=tmp_path
        )

        stage, cwd = result.output.splitlines()
        assert stage == "dev"
        assert cwd == str(tmp_path.resolve())

    @pytest.mark.asyncio
    async def test_command_line_recorded(self):
        result = await run_process(sys.executable, ["-c", "pass"])
        assert result.command.endswith("-c pass")

    @pytest.mark.asyncio
    async def test_missing_command(self, tmp_path):
        missing = str(tmp_path / "no-such-serverless")

        with pytest.raises(ProcessExecutionError) as exc_info:
            await run_process(missing, ["deploy"])

        assert exc_info.value.context.command == f"{missing} deploy"
        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.asyncio
    async def test_line_longer_than_stream_limit(self):
        log = StringCapturingProgressLog()
        script = "import sys; sys.stdout.write('x' * 200000 + '\\n'); print('done')"

        result = await run_process(sys.executable, ["-c", script], log=log)

        assert result.ok
        assert log.lines == ["x" * 200000, "done"]
        assert len(result.output) == 200006

    @pytest.mark.asyncio
    async def test_trailing_partial_line_written(self):
        log = StringCapturingProgressLog()

        await run_process(sys.executable, ["-c", "import sys; sys.stdout.write('no newline')"], log=log)

        assert log.lines == ["no newline"]

    @pytest.mark.asyncio
    async def test_cancel_terminates_child(self):
        log = StringCapturingProgressLog()
        script = "import os, time; print(os.getpid(), flush=True); time.sleep(60)"
        task = asyncio.create_task(run_process(sys.executable, ["-c", script], log=log))

        for _ in range(200):
            if log.lines:
                break
            await asyncio.sleep(0.05)
        pid = int(log.lines[0])

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)


class TestProcessResult:
    def test_ok(self):
        assert ProcessResult("x", 0, "").ok
        assert not ProcessResult("x", 1, "").ok
