"""Goal fulfillment: dispatch, scheduling, in-process execution and progress logs.

Usage::

    from sdm_serverless.execution import DispatchContext, fulfill_goal

    outcome = await fulfill_goal(GoalEvent.from_payload(payload), ctx)
"""

from sdm_serverless.execution.context import DispatchContext, GoalInvocation
from sdm_serverless.execution.dispatcher import fulfill_goal, is_goal_relevant
from sdm_serverless.execution.executor import GoalExecutionBackend
from sdm_serverless.execution.identity import RemoteExecution, identity_token, registration_name
from sdm_serverless.execution.ledger import InMemoryGoalLedger
from sdm_serverless.execution.logs import (
    InMemoryLogFactory,
    LoggingProgressLog,
    StringCapturingProgressLog,
    WriteToAllProgressLog,
)
from sdm_serverless.execution.progress import report_end_and_close, report_start
from sdm_serverless.execution.scheduler import SchedulerRegistry
from sdm_serverless.execution.support import (
    DirectoryProjectLoader,
    GoalRepoRefResolver,
    SigningDisabledVerifier,
    StaticCredentialsResolver,
)

__all__ = [
    "DispatchContext",
    "GoalInvocation",
    "fulfill_goal",
    "is_goal_relevant",
    "GoalExecutionBackend",
    "RemoteExecution",
    "identity_token",
    "registration_name",
    "InMemoryGoalLedger",
    "InMemoryLogFactory",
    "LoggingProgressLog",
    "StringCapturingProgressLog",
    "WriteToAllProgressLog",
    "report_end_and_close",
    "report_start",
    "SchedulerRegistry",
    "DirectoryProjectLoader",
    "GoalRepoRefResolver",
    "SigningDisabledVerifier",
    "StaticCredentialsResolver",
]
