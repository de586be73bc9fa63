"""Progress logs: sinks for the human-readable log of a goal.

ARCHITECTURE
────────────
::

    WriteToAllProgressLog("deploy-dev")
      ├── LoggingProgressLog         ─ lines → structlog (worker output)
      └── <log factory sink>         ─ lines → persisted log (has a url)

    StringCapturingProgressLog       ─ lines → in-memory text (``.log``)
    InMemoryLogFactory               ─ LogFactory handing out capturing logs

Every sink implements :class:`~sdm_serverless.goals.protocols.ProgressLog`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sdm_serverless.core.logging import get_logger
from sdm_serverless.goals.models import GoalEvent
from sdm_serverless.goals.protocols import ProgressLog

if TYPE_CHECKING:
    from sdm_serverless.execution.context import DispatchContext

logger = get_logger(__name__)


class LoggingProgressLog:
    """Forwards every line to the worker's own structured log."""

    def __init__(self, name: str, level: str = "debug") -> None:
        self.name = name
        self._level = level

    @property
    def url(self) -> str | None:
        return None

    def write(self, line: str) -> None:
        getattr(logger, self._level)("progress_log.line", log=self.name, line=line.rstrip("\n"))

    async def flush(self) -> None:
        pass

    async def close(self) -> None:
        pass

    def is_available(self) -> bool:
        return True


class StringCapturingProgressLog:
    """Keeps everything written in memory; read it back through :attr:`log`."""

    def __init__(self, name: str = "StringCapturingProgressLog", url: str | None = None) -> None:
        self.name = name
        self._url = url
        self._chunks: list[str] = []
        self.flushed = 0
        self.closed = False

    @property
    def url(self) -> str | None:
        return self._url

    @property
    def log(self) -> str:
        return "".join(self._chunks)

    @property
    def lines(self) -> list[str]:
        return self.log.splitlines()

    def write(self, line: str) -> None:
        self._chunks.append(line if line.endswith("\n") else line + "\n")

    async def flush(self) -> None:
        self.flushed += 1

    async def close(self) -> None:
        self.closed = True

    def is_available(self) -> bool:
        return True


class WriteToAllProgressLog:
    """Fans every call out to several progress logs."""

    def __init__(self, name: str, *logs: ProgressLog) -> None:
        self.name = name
        self.logs: tuple[ProgressLog, ...] = logs

    @property
    def url(self) -> str | None:
        """First url offered by any of the underlying logs."""
        for log in self.logs:
            if log.url:
                return log.url
        return None

    def write(self, line: str) -> None:
        for log in self.logs:
            log.write(line)

    async def flush(self) -> None:
        await self._on_every_log("flush")

    async def close(self) -> None:
        """Close every sink, then re-raise the first error any of them raised."""
        await self._on_every_log("close")

    async def _on_every_log(self, method: str) -> None:
        errors: list[Exception] = []
        for log in self.logs:
            try:
                await getattr(log, method)()
            except Exception as e:
                logger.warning(
                    "progress_log.sink_failed",
                    log=self.name,
                    sink=getattr(log, "name", type(log).__name__),
                    method=method,
                    error=str(e),
                )
                errors.append(e)
        if errors:
            raise errors[0]

    def is_available(self) -> bool:
        return any(log.is_available() for log in self.logs)


class InMemoryLogFactory:
    """Log factory that keeps one :class:`StringCapturingProgressLog` per goal.

    Logs are keyed by ``(goal_set_id, unique_name)`` so tests and the CLI
    harness can read back what a dispatch wrote.
    """

    def __init__(self, base_url: str = "memory://logs") -> None:
        self._base_url = base_url.rstrip("/")
        self.logs: dict[tuple[str, str], StringCapturingProgressLog] = {}

    async def create_log(self, ctx: DispatchContext, event: GoalEvent) -> ProgressLog:
        key = (event.goal_set_id, event.unique_name)
        log = StringCapturingProgressLog(
            name=event.name,
            url=f"{self._base_url}/{event.goal_set_id}/{event.unique_name}",
        )
        self.logs[key] = log
        return log

    def log_for(self, event: GoalEvent) -> StringCapturingProgressLog | None:
        return self.logs.get((event.goal_set_id, event.unique_name))
