"""In-process goal execution backend.

Runs a goal implementation's executor in the current process and records
the goal's progress in the ledger:

::

    execute(implementation, invocation)
      ├── ledger ← in_process  (working description, log url)
      ├── await implementation.goal_executor(invocation)
      │     ├── code == 0   → ledger ← result state or success
      │     ├── code != 0   → ledger ← failure
      │     └── raises      → ledger ← failure, error re-raised
      └── return ExecutionResult

State, phase, description and url carried by the result take precedence
over the defaults derived from the goal definition.
"""

from __future__ import annotations

from sdm_serverless.core.logging import get_logger
from sdm_serverless.execution.context import GoalInvocation
from sdm_serverless.goals.definition import description_from_state
from sdm_serverless.goals.implementations import GoalImplementation
from sdm_serverless.goals.models import (
    ExecutionResult,
    GoalPatch,
    GoalState,
    result_description,
    result_state,
)
from sdm_serverless.goals.protocols import GoalLedger

logger = get_logger(__name__)


class GoalExecutionBackend:
    """Default :class:`~sdm_serverless.goals.protocols.ExecutionBackend`."""

    name = "in_process"

    def __init__(self, ledger: GoalLedger) -> None:
        self._ledger = ledger

    async def execute(self, implementation: GoalImplementation, invocation: GoalInvocation) -> ExecutionResult:
        event = invocation.event
        goal = invocation.goal
        log_url = invocation.progress_log.url

        await self._ledger.update_goal(
            event,
            GoalPatch(
                state=GoalState.IN_PROCESS,
                description=description_from_state(goal, GoalState.IN_PROCESS),
                url=log_url,
            ),
        )
        logger.info("goal.executing", implementation=implementation.name, goal=event.unique_name)

        try:
            result = await implementation.goal_executor(invocation)
        except Exception as e:
            logger.error(
                "goal.execution_failed",
                implementation=implementation.name,
                goal=event.unique_name,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            await self._ledger.update_goal(
                event,
                GoalPatch(
                    state=GoalState.FAILURE,
                    description=description_from_state(goal, GoalState.FAILURE),
                    url=log_url,
                ),
            )
            raise

        if result is None:
            result = ExecutionResult(code=0)

        state = GoalState.FAILURE if result.failed else result_state(result, GoalState.SUCCESS)
        await self._ledger.update_goal(
            event,
            GoalPatch(
                state=state,
                phase=result.phase,
                description=result_description(result, description_from_state(goal, state)),
                url=result.url or log_url,
                external_urls=result.external_urls,
            ),
        )
        logger.info(
            "goal.executed",
            implementation=implementation.name,
            goal=event.unique_name,
            state=state.value,
            code=result.code,
        )
        return result
