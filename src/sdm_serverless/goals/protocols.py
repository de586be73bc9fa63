"""Collaborator protocols: everything the dispatcher talks to.

The dispatcher owns no I/O of its own. Goal state lives in an external
ledger, signatures and credentials are resolved by the platform, and logs
are created by a log factory. Each collaborator is a ``typing.Protocol`` so
any object with the right async methods satisfies it, no base class
required.

ARCHITECTURE
────────────
::

    GoalLedger           ─ update_goal / is_canceled / cancelable_goal
    SignatureVerifier    ─ verify (raises on a bad signature)
    RepoRefResolver      ─ repo_ref_from_goal
    CredentialsResolver  ─ resolve_credentials
    LogFactory           ─ create_log → ProgressLog
    ProgressLog          ─ write / flush / close / url
    GoalScheduler        ─ supports / schedule (delegated execution)
    ExecutionBackend     ─ execute (direct execution)
    ProjectLoader        ─ load (checked-out project directory)

Related modules:
    execution/context.py: DispatchContext bundles these per worker
    execution/dispatcher.py: the only consumer of the full set
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sdm_serverless.core.settings import GoalSigningSettings, SdmSettings
from sdm_serverless.goals.models import ExecutionResult, GoalEvent, GoalPatch, RepoRef

if TYPE_CHECKING:
    from sdm_serverless.execution.context import DispatchContext, GoalInvocation
    from sdm_serverless.goals.implementations import GoalImplementation

GoalExecutor = Callable[["GoalInvocation"], Awaitable[ExecutionResult]]
"""An async function that runs a goal in-process and returns its result."""


@runtime_checkable
class ProgressLog(Protocol):
    """Sink for the human-readable log of one goal execution."""

    name: str

    @property
    def url(self) -> str | None:
        """Where the persisted log can be viewed, if anywhere."""
        ...

    def write(self, line: str) -> None:
        ...

    async def flush(self) -> None:
        ...

    async def close(self) -> None:
        ...

    def is_available(self) -> bool:
        ...


@runtime_checkable
class GoalLedger(Protocol):
    """System of record for goal state.

    Conditional writes are the ledger's job: two workers racing on one goal
    are arbitrated there, not in this package.
    """

    async def update_goal(self, event: GoalEvent, patch: GoalPatch) -> None:
        ...

    async def is_canceled(self, event: GoalEvent) -> bool:
        ...

    async def cancelable_goal(self, event: GoalEvent, settings: SdmSettings) -> bool:
        ...


@runtime_checkable
class SignatureVerifier(Protocol):
    async def verify(self, event: GoalEvent, signing: GoalSigningSettings, ctx: DispatchContext) -> None:
        """Return normally for an acceptable goal, raise otherwise."""
        ...


@runtime_checkable
class RepoRefResolver(Protocol):
    def repo_ref_from_goal(self, event: GoalEvent) -> RepoRef:
        ...


@runtime_checkable
class CredentialsResolver(Protocol):
    async def resolve_credentials(self, ctx: DispatchContext, repo_ref: RepoRef) -> Any:
        ...


@runtime_checkable
class LogFactory(Protocol):
    async def create_log(self, ctx: DispatchContext, event: GoalEvent) -> ProgressLog:
        ...


@runtime_checkable
class GoalScheduler(Protocol):
    """Hands goal execution to an external executor instead of running it here."""

    async def supports(self, invocation: GoalInvocation) -> bool:
        ...

    async def schedule(self, invocation: GoalInvocation) -> ExecutionResult | None:
        ...


@runtime_checkable
class ExecutionBackend(Protocol):
    async def execute(self, implementation: GoalImplementation, invocation: GoalInvocation) -> ExecutionResult:
        ...


@runtime_checkable
class ProjectLoader(Protocol):
    async def load(self, invocation: GoalInvocation) -> Path:
        """Return a directory holding the project checked out at the goal's sha."""
        ...
