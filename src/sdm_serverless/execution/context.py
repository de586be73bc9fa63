"""Dispatch context and goal invocation.

``DispatchContext`` is built once per worker and holds its settings and
collaborators. ``GoalInvocation`` is built fresh for every goal event and
discarded when the dispatch returns, so concurrent dispatches never share
mutable state.

ARCHITECTURE
────────────
::

    DispatchContext  (one per worker, read-only during dispatch)
      ├── settings                ─ SdmSettings
      ├── ledger                  ─ GoalLedger
      ├── implementations         ─ ImplementationRegistry
      ├── schedulers              ─ SchedulerRegistry
      ├── execution_backend       ─ ExecutionBackend
      ├── verifier                ─ SignatureVerifier
      ├── repo_ref_resolver       ─ RepoRefResolver
      ├── credentials_resolver    ─ CredentialsResolver
      ├── log_factory             ─ LogFactory
      └── project_loader          ─ ProjectLoader (optional)

    GoalInvocation  (one per event)
      event, goal, progress_log, repo_ref, credentials, context
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sdm_serverless.core.settings import SdmSettings
from sdm_serverless.execution.identity import REGISTRATION_SUFFIX, identity_token
from sdm_serverless.execution.scheduler import SchedulerRegistry
from sdm_serverless.goals.definition import GoalDefinition
from sdm_serverless.goals.implementations import ImplementationRegistry
from sdm_serverless.goals.models import GoalEvent, RepoRef
from sdm_serverless.goals.protocols import (
    CredentialsResolver,
    ExecutionBackend,
    GoalLedger,
    LogFactory,
    ProgressLog,
    ProjectLoader,
    RepoRefResolver,
    SignatureVerifier,
)


@dataclass(frozen=True)
class DispatchContext:
    """Settings and collaborators of one worker instance."""

    settings: SdmSettings
    ledger: GoalLedger
    implementations: ImplementationRegistry
    execution_backend: ExecutionBackend
    verifier: SignatureVerifier
    repo_ref_resolver: RepoRefResolver
    credentials_resolver: CredentialsResolver
    log_factory: LogFactory
    schedulers: SchedulerRegistry = field(default_factory=SchedulerRegistry)
    project_loader: ProjectLoader | None = None
    registration_suffix: str = REGISTRATION_SUFFIX

    @property
    def identity_token(self) -> str:
        """Token a goal's fulfillment name must contain to target this worker."""
        return identity_token(self.settings, suffix=self.registration_suffix)


@dataclass
class GoalInvocation:
    """Everything a scheduler or goal executor needs to run one goal."""

    event: GoalEvent
    goal: GoalDefinition
    progress_log: ProgressLog
    repo_ref: RepoRef
    credentials: Any
    context: DispatchContext

    @property
    def settings(self) -> SdmSettings:
        return self.context.settings
