"""
Progress reporting - bracketed start/end framing around a goal execution.

Every execution written to a progress log is wrapped in two blocks so a
reader can find where the goal started, on which commit, and how it ended::

    /--
    Start: 2026-10-18 09:14:03.120
    Repository: team-x/api/main
    Sha: 4f2a9c1
    Goal: deploy (deploy-dev)
    Environment: code/
    GoalSet: build-and-deploy - 0d9e...
    SDM: team-x:1.4.0
    \\--
    ... execution output ...
    /--
    Result: {"code": 0}
    Duration: 1m 12s 40ms
    Finish: 2026-10-18 09:15:15.160
    \\--

The start block is followed by a flush, the end block by a close of the log.
Durations use ``time.perf_counter`` so wall-clock adjustments never produce
negative values.
"""

from __future__ import annotations

import json
import re
import time
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from sdm_serverless.core.errors import SdmError
from sdm_serverless.core.settings import SdmSettings
from sdm_serverless.goals.models import GoalEvent
from sdm_serverless.goals.protocols import ProgressLog

OPEN = "/--"
CLOSE = "\\--"

_ENVIRONMENT_ORDER = re.compile(r"^\d+-")


def format_date(when: datetime | None = None) -> str:
    """``yyyy-mm-dd HH:MM:SS.mmm`` in local time."""
    when = when or datetime.now()
    return when.strftime("%Y-%m-%d %H:%M:%S.") + f"{when.microsecond // 1000:03d}"


def format_duration(milliseconds: float) -> str:
    """Render a duration like ``1h 2m 3s 4ms``, dropping leading zero units."""
    total = max(0, int(round(milliseconds)))
    hours, rest = divmod(total, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds, millis = divmod(rest, 1000)

    parts = [(hours, "h"), (minutes, "m"), (seconds, "s")]
    while parts and parts[0][0] == 0:
        parts.pop(0)
    rendered = [f"{value}{unit}" for value, unit in parts]
    rendered.append(f"{millis}ms")
    return " ".join(rendered)


def environment_label(environment: str) -> str:
    """Strip the ordering prefix from an environment (``0-code/`` → ``code/``)."""
    return _ENVIRONMENT_ORDER.sub("", environment, count=1)


def serialize_result(result: Any) -> str:
    """Serialize an execution result or error for the end block."""
    if isinstance(result, BaseModel):
        return result.model_dump_json(indent=2, exclude_none=True, by_alias=True)
    if isinstance(result, SdmError):
        return json.dumps(result.to_dict(), indent=2)
    if isinstance(result, BaseException):
        return json.dumps({"error_type": type(result).__name__, "message": str(result)}, indent=2)
    return json.dumps(result, indent=2, default=str)


async def report_start(event: GoalEvent, log: ProgressLog, settings: SdmSettings) -> None:
    """Write the start block for ``event`` and flush the log."""
    log.write(OPEN)
    log.write(f"Start: {format_date()}")
    log.write(f"Repository: {event.push.repo.owner}/{event.push.repo.name}/{event.branch}")
    log.write(f"Sha: {event.sha}")
    log.write(f"Goal: {event.name} ({event.unique_name})")
    log.write(f"Environment: {environment_label(event.environment)}")
    log.write(f"GoalSet: {event.goal_set} - {event.goal_set_id}")
    log.write(f"SDM: {settings.name}:{settings.version}")
    log.write(CLOSE)
    await log.flush()


async def report_end_and_close(result: Any, start: float, log: ProgressLog) -> float:
    """Write the end block and close the log.

    Args:
        result: ExecutionResult, error, or anything JSON-serializable
        start: ``time.perf_counter()`` value taken when execution began

    Returns:
        Elapsed seconds between ``start`` and the end block
    """
    elapsed = time.perf_counter() - start
    log.write(OPEN)
    log.write(f"Result: {serialize_result(result)}")
    log.write(f"Duration: {format_duration(elapsed * 1000)}")
    log.write(f"Finish: {format_date()}")
    log.write(CLOSE)
    await log.close()
    return elapsed
