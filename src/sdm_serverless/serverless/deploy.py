"""Serverless.com deploy goal.

Deploys a project with the ``serverless`` CLI, either on the SDM that
planned the goal or, with :class:`RemoteExecution`, on another SDM
registration (typically to cross a security zone or use stage-specific
credentials). The goal must be defined on both SDMs; only one schedules it.

Key Concepts:
    ServerlessDeployDetails: How to run the deploy (command, arguments,
        config file, environment, access key, smoke tests, remote target).
    ServerlessDeploy: The goal. ``with_registration`` registers an
        implementation under the fulfillment name derived from the details.
    serverless_deploy(): Builds the goal executor that runs
        ``serverless deploy`` (and optionally ``serverless test``).

Example::

    dev = ServerlessDeploy().with_registration(
        ServerlessDeployDetails(deploy_args={"stage": "dev"}),
        settings,
        implementations,
    )
"""

from __future__ import annotations

import os
import re
from collections.abc import Awaitable, Callable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from sdm_serverless.core.errors import InvalidConfigError, MissingConfigError
from sdm_serverless.core.logging import get_logger
from sdm_serverless.core.settings import SdmSettings
from sdm_serverless.execution.context import GoalInvocation
from sdm_serverless.execution.identity import RemoteExecution, identity_token, registration_name
from sdm_serverless.execution.logs import StringCapturingProgressLog, WriteToAllProgressLog
from sdm_serverless.goals.definition import GoalDefinition
from sdm_serverless.goals.implementations import GoalImplementation, ImplementationRegistry
from sdm_serverless.goals.models import ExecutionResult, ExternalUrl
from sdm_serverless.goals.protocols import GoalExecutor
from sdm_serverless.serverless.process import run_process

logger = get_logger(__name__)

ServerlessConfigLocator = Callable[[Path], Awaitable[str]]

SERVERLESS_GOAL = GoalDefinition(
    unique_name="serverless-deploy",
    display_name="deploying via Serverless.com",
    working_description="Deploying via Serverless.com",
    completed_description="Deployed via Serverless.com",
    failed_description="Deployment via Serverless.com failed",
    waiting_for_approval_description="Waiting for deployment approval",
    waiting_for_pre_approval_description="Waiting to start Serverless.com deployment",
    stopped_description="Deployment via Serverless.com stopped",
    canceled_description="Deployment via Serverless.com cancelled",
    retry_feasible=True,
)

ACCESS_KEY_ENV = "SERVERLESS_ACCESS_KEY"
TEST_CONFIG_FILE = "serverless.test.yml"

_DASHBOARD_URL = re.compile(r"Serverless Dashboard(.*)(https://[0-9A-Za-z./-]+)")
_PHASE_LINE = re.compile(r"Serverless: (.*)", re.IGNORECASE)
_ANSI = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


class ServerlessDeployDetails(BaseModel):
    """How a serverless deploy is run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    cmd: str | None = None
    """Full path to the serverless command (default: ``serverless`` on PATH)"""

    access_key: str | None = None
    """Serverless access key; ``SERVERLESS_ACCESS_KEY`` in the environment wins"""

    deploy_args: dict[str, str] = Field(default_factory=dict)
    run_test: bool = False
    """Run ``serverless test`` after deploying when serverless.test.yml exists"""

    test_args: dict[str, str] = Field(default_factory=dict)
    serverless_config: str | ServerlessConfigLocator | None = None
    """Config file path, or an async function locating it in the project"""

    env_vars: dict[str, str] = Field(default_factory=dict)
    remote_execution: RemoteExecution | None = None

    @property
    def command(self) -> str:
        return self.cmd or "serverless"


class ServerlessDeploy:
    """Goal that deploys a project with the serverless CLI."""

    def __init__(self, unique_name: str | None = None, definition: GoalDefinition = SERVERLESS_GOAL) -> None:
        self.definition = definition.named(unique_name) if unique_name else definition
        self.implementations: list[GoalImplementation] = []

    def with_registration(
        self,
        details: ServerlessDeployDetails,
        settings: SdmSettings,
        registry: ImplementationRegistry,
    ) -> ServerlessDeploy:
        """Register an implementation of this goal for ``details``."""
        implementation = GoalImplementation(
            name=registration_name(settings, details.remote_execution),
            goal=self.definition,
            goal_executor=serverless_deploy(details),
            description=self.definition.display_name,
        )
        registry.register(implementation)
        self.implementations.append(implementation)
        return self


def build_args(args: dict[str, str]) -> list[str]:
    """``{"stage": "dev"}`` → ``["--stage=dev"]``."""
    return [f"--{key}={value}" for key, value in args.items()]


async def find_serverless_config(project_dir: Path, details: ServerlessDeployDetails) -> str:
    """Resolve the serverless config path from a fixed string or a locator.

    Raises:
        InvalidConfigError: The locator did not produce a string
    """
    config = details.serverless_config
    if callable(config):
        config = await config(project_dir)
    if not isinstance(config, str):
        raise InvalidConfigError(
            "serverless_config",
            config,
            f"Serverless Config Path must be a string! Got {type(config).__name__}!",
        )
    return config


def serverless_env(details: ServerlessDeployDetails) -> dict[str, str]:
    """Environment for serverless commands: process env, extra vars, access key."""
    env = {**os.environ, **details.env_vars}
    access_key = os.environ.get(ACCESS_KEY_ENV) or details.access_key
    if access_key:
        env[ACCESS_KEY_ENV] = access_key
    return env


def parse_dashboard_url(output: str) -> str | None:
    """Dashboard URL printed by Serverless Enterprise, if any."""
    match = _DASHBOARD_URL.search(output)
    return match.group(2) if match else None


def serverless_phase(output: str) -> str | None:
    """Text of the last ``Serverless: ...`` line, without ANSI colours."""
    phases = _PHASE_LINE.findall(_ANSI.sub("", output))
    if not phases:
        return None
    return phases[-1].strip() or None


def serverless_deploy(details: ServerlessDeployDetails) -> GoalExecutor:
    """Goal executor running ``serverless deploy`` for ``details``."""

    async def execute(invocation: GoalInvocation) -> ExecutionResult:
        event = invocation.event
        stage = details.remote_execution.stage if details.remote_execution else None
        token = identity_token(invocation.settings, stage=stage)
        if token not in event.fulfillment.name:
            logger.debug(
                "serverless.not_targeted",
                goal=event.unique_name,
                fulfillment=event.fulfillment.name,
            )
            return ExecutionResult(code=0, state=event.state)

        loader = invocation.context.project_loader
        if loader is None:
            raise MissingConfigError("project_loader").with_context(goal=event.unique_name)
        project_dir = await loader.load(invocation)

        progress_log = invocation.progress_log
        progress_log.write("Starting Serverless deploy")
        captured = StringCapturingProgressLog()
        combined = WriteToAllProgressLog("combinedLog", progress_log, captured)

        if not (os.environ.get(ACCESS_KEY_ENV) or details.access_key):
            progress_log.write(
                "Warning: No Serverless credentials supplied, relying on pre-existing host configuration..."
            )

        config = (
            ["--config", await find_serverless_config(project_dir, details)]
            if details.serverless_config
            else []
        )
        env = serverless_env(details)

        deployed = await run_process(
            details.command,
            ["deploy", *config, *build_args(details.deploy_args)],
            env=env,
            working_dir=project_dir,
            log=combined,
        )
        if not deployed.ok:
            return ExecutionResult(
                code=deployed.exit_code,
                message=f"{deployed.command} exited with code {deployed.exit_code}",
            )

        external_urls: list[ExternalUrl] = []
        dashboard = parse_dashboard_url(captured.log)
        if dashboard:
            external_urls.append(ExternalUrl(label="Dashboard", url=dashboard))
        else:
            logger.warning("serverless.dashboard_url_missing", goal=event.unique_name)

        if details.run_test and (project_dir / TEST_CONFIG_FILE).exists():
            progress_log.write("Serverless: Starting Tests...")
            tested = await run_process(
                details.command,
                ["test", *build_args(details.test_args)],
                env=env,
                working_dir=project_dir,
                log=combined,
            )
            if not tested.ok:
                return ExecutionResult(
                    code=tested.exit_code,
                    message=f"{tested.command} exited with code {tested.exit_code}",
                )

        return ExecutionResult(
            code=0,
            phase=serverless_phase(captured.log),
            external_urls=external_urls,
        )

    return execute
