"""Child process execution with output streamed into a progress log."""

from __future__ import annotations

import asyncio
import codecs
import shlex
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from sdm_serverless.core.errors import ProcessExecutionError
from sdm_serverless.core.logging import get_logger
from sdm_serverless.goals.protocols import ProgressLog

logger = get_logger(__name__)

READ_CHUNK_SIZE = 64 * 1024
KILL_TIMEOUT = 5.0


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and combined stdout/stderr of a finished process."""

    command: str
    exit_code: int
    output: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


async def run_process(
    command: str,
    args: Sequence[str],
    env: Mapping[str, str] | None = None,
    working_dir: Path | None = None,
    log: ProgressLog | None = None,
) -> ProcessResult:
    """Run ``command args...`` and wait for it to exit.

    stdout and stderr are merged and written to ``log`` line by line as they
    arrive. A non-zero exit is reported in the result, not raised.

    Raises:
        ProcessExecutionError: The process could not be started
    """
    cmdline = shlex.join([command, *args])
    logger.debug("process.starting", command=cmdline, cwd=str(working_dir) if working_dir else None)

    try:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=str(working_dir) if working_dir else None,
            env=dict(env) if env is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        raise ProcessExecutionError(cmdline, cause=e) from e

    assert proc.stdout is not None
    try:
        output = await _read_output(proc.stdout, log)
        exit_code = await proc.wait()
    finally:
        if proc.returncode is None:
            await _terminate(proc, cmdline)

    logger.debug("process.finished", command=cmdline, exit_code=exit_code)
    return ProcessResult(command=cmdline, exit_code=exit_code, output=output)


async def _read_output(stream: asyncio.StreamReader, log: ProgressLog | None) -> str:
    # Lines can be longer than the stream buffer limit, so split chunks here
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    chunks: list[str] = []
    pending = ""
    while True:
        data = await stream.read(READ_CHUNK_SIZE)
        text = decoder.decode(data, final=not data)
        chunks.append(text)
        if log is not None:
            pending += text
            while "\n" in pending:
                line, _, pending = pending.partition("\n")
                log.write(line + "\n")
        if not data:
            break
    if log is not None and pending:
        log.write(pending)
    return "".join(chunks)


async def _terminate(proc: asyncio.subprocess.Process, cmdline: str) -> None:
    """SIGTERM, then SIGKILL if the process outlives :data:`KILL_TIMEOUT`."""
    logger.warning("process.terminating", command=cmdline, pid=proc.pid)
    try:
        proc.terminate()
        try:
            await asyncio.wait_for(proc.wait(), timeout=KILL_TIMEOUT)
        except TimeoutError:
            proc.kill()
            await proc.wait()
    except ProcessLookupError:
        pass
