"""Fulfillment Dispatcher: decides whether and how this worker runs a goal.

``fulfill_goal`` handles one goal-state event. It is a plain coroutine: all
collaborators arrive through the :class:`DispatchContext` argument and all
state lives in local variables, so any number of dispatches can run
concurrently on one event loop.

ARCHITECTURE
────────────
::

    fulfill_goal(event, ctx)
      1. planned by this worker?        ── yes ──► skip (default handler runs it)
      2. identity token in fulfillment? ── no  ──► skip
      3. verifier.verify(...)            (raises on a bad signature)
      4. cancelable and canceled?       ── yes ──► skip
      5. method side-effect             ──────────► skip
         method other                   ──────────► ledger ← failure, done
      6. implementations.find_by_goal_event  (raises on 0 or >1 matches)
      7. schedulers.select_scheduler
           claimed ─► schedule ─► ledger ← scheduled / failure ─► end block
      8. otherwise ─► start block ─► execution_backend.execute ─► end block

Outcomes
────────
Skips and goal failures return ``HandlerOutcome(code=0)``: the event was
handled even when the goal did not succeed, and the goal's failure lives in
the ledger. Only configuration faults (steps 3 and 6) and errors raised by
the execution backend or a scheduler propagate to the transport.

Related modules:
    scheduler.py: SchedulerRegistry used in step 7
    executor.py: default ExecutionBackend used in step 8
    progress.py: start/end framing
"""

from __future__ import annotations

import dataclasses
import time

from sdm_serverless.core.logging import LogContext, get_logger
from sdm_serverless.execution.context import DispatchContext, GoalInvocation
from sdm_serverless.execution.logs import LoggingProgressLog, WriteToAllProgressLog
from sdm_serverless.execution.progress import report_end_and_close, report_start
from sdm_serverless.goals.definition import description_from_state
from sdm_serverless.goals.implementations import GoalImplementation
from sdm_serverless.goals.models import (
    FulfillmentMethod,
    GoalEvent,
    GoalPatch,
    GoalState,
    HandlerOutcome,
    result_description,
    result_phase,
    result_state,
)
from sdm_serverless.goals.protocols import GoalScheduler

logger = get_logger(__name__)

SCHEDULED_PHASE = "scheduled"


def is_goal_relevant(event: GoalEvent, registration: str) -> bool:
    """True when the goal was planned by ``registration`` (or has no provenance).

    Such goals belong to the worker's default fulfillment handler.
    """
    origin = event.origin()
    if origin is None:
        return True
    return origin.registration == registration


async def fulfill_goal(event: GoalEvent, ctx: DispatchContext) -> HandlerOutcome:
    """Handle one goal-state event on this worker.

    Raises:
        SignatureVerificationError: The verifier rejected the goal
        ImplementationNotFoundError: No implementation carries the fulfillment name
        MultipleImplementationsError: Several implementations carry it
        Exception: Anything the execution backend or a scheduler raised
    """
    settings = ctx.settings

    async with LogContext(
        goal=event.unique_name,
        goal_set_id=event.goal_set_id,
        fulfillment=event.fulfillment.name,
    ):
        if is_goal_relevant(event, settings.registration_name):
            logger.debug("dispatch.skipped", reason="default_handler")
            return HandlerOutcome.success()

        if ctx.identity_token not in event.fulfillment.name:
            logger.debug("dispatch.skipped", reason="not_targeted", identity=ctx.identity_token)
            return HandlerOutcome.success()

        await ctx.verifier.verify(event, settings.goal_signing, ctx)

        if await ctx.ledger.cancelable_goal(event, settings) and await ctx.ledger.is_canceled(event):
            logger.debug("dispatch.skipped", reason="canceled")
            return HandlerOutcome.success()

        if event.fulfillment.method == FulfillmentMethod.SIDE_EFFECT:
            logger.debug("dispatch.skipped", reason="side_effect", method=event.fulfillment.method.value)
            return HandlerOutcome.success()
        if event.fulfillment.method == FulfillmentMethod.OTHER:
            await ctx.ledger.update_goal(
                event,
                GoalPatch(
                    state=GoalState.FAILURE,
                    description=f"No fulfillment for {event.unique_name}",
                ),
            )
            logger.warning("dispatch.no_fulfillment", method=event.fulfillment.method.value)
            return HandlerOutcome.success()

        implementation = ctx.implementations.find_by_goal_event(event)

        repo_ref = ctx.repo_ref_resolver.repo_ref_from_goal(event)
        credentials = await ctx.credentials_resolver.resolve_credentials(ctx, repo_ref)
        progress_log = WriteToAllProgressLog(
            event.name,
            LoggingProgressLog(event.name, "debug"),
            await ctx.log_factory.create_log(ctx, event),
        )

        invocation = GoalInvocation(
            event=event,
            goal=implementation.goal,
            progress_log=progress_log,
            repo_ref=repo_ref,
            credentials=credentials,
            context=ctx,
        )

        scheduler = await ctx.schedulers.select_scheduler(invocation)
        if scheduler is not None:
            return await _schedule(scheduler, invocation)
        return await _execute(implementation, invocation)


async def _schedule(scheduler: GoalScheduler, invocation: GoalInvocation) -> HandlerOutcome:
    ledger = invocation.context.ledger
    log = invocation.progress_log

    start = time.perf_counter()
    try:
        result = await scheduler.schedule(invocation)
    except Exception as e:
        logger.error("dispatch.schedule_failed", error_type=type(e).__name__, error_message=str(e))
        await report_end_and_close(e, start, log)
        raise

    if result is not None and result.failed:
        patch = GoalPatch(
            state=GoalState.FAILURE,
            description="Failed to schedule goal",
            url=log.url,
        )
    else:
        state = result_state(result, GoalState.IN_PROCESS)
        patch = GoalPatch(
            state=state,
            phase=result_phase(result, SCHEDULED_PHASE),
            description=result_description(result, description_from_state(invocation.goal, state)),
            url=log.url,
            external_urls=result.external_urls if result is not None else None,
        )
    await ledger.update_goal(invocation.event, patch)
    await report_end_and_close(result, start, log)

    logger.info("dispatch.scheduled", scheduler=type(scheduler).__name__, state=patch.state.value)
    return HandlerOutcome.handled(result)


async def _execute(implementation: GoalImplementation, invocation: GoalInvocation) -> HandlerOutcome:
    # The ledger id belongs to the record this event was read from, not to
    # the records written while executing it.
    invocation = dataclasses.replace(invocation, event=invocation.event.model_copy(update={"id": None}))
    ctx = invocation.context
    log = invocation.progress_log

    await report_start(invocation.event, log, ctx.settings)
    start = time.perf_counter()

    try:
        result = await ctx.execution_backend.execute(implementation, invocation)
    except Exception as e:
        await report_end_and_close(e, start, log)
        logger.error(
            "dispatch.execution_failed",
            implementation=implementation.name,
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise

    elapsed = await report_end_and_close(result, start, log)
    logger.info(
        "dispatch.executed",
        implementation=implementation.name,
        code=result.code,
        duration_ms=round(elapsed * 1000, 2),
    )
    return HandlerOutcome.handled(result)
