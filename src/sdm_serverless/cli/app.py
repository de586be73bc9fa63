"""
Root Typer application for the sdm-serverless CLI.

``identity`` prints the fulfillment token this worker answers to.
``dispatch`` runs one goal event through an in-memory worker (ledger and log
factory in process) against a project on disk.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer

from sdm_serverless import __version__
from sdm_serverless.cli.utils import console, err_console, load_payload, print_writes
from sdm_serverless.core.errors import SdmError
from sdm_serverless.core.events import GOAL_REQUESTED, Event
from sdm_serverless.core.logging import configure_from_settings
from sdm_serverless.core.settings import SdmSettings
from sdm_serverless.execution import (
    DirectoryProjectLoader,
    DispatchContext,
    GoalExecutionBackend,
    GoalRepoRefResolver,
    InMemoryGoalLedger,
    InMemoryLogFactory,
    RemoteExecution,
    SigningDisabledVerifier,
    StaticCredentialsResolver,
    identity_token,
)
from sdm_serverless.goals.implementations import ImplementationRegistry
from sdm_serverless.goals.models import GoalEvent
from sdm_serverless.serverless import (
    ServerlessDeploy,
    ServerlessDeployDetails,
    serverless_support,
)

app = typer.Typer(
    name="sdm-serverless",
    help="sdm-serverless: fulfill Serverless.com deploy goals.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"sdm-serverless {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """sdm-serverless CLI: inspect worker identity and dispatch goal events."""


@app.command("identity")
def identity(
    stage: str | None = typer.Option(None, "--stage", help="Remote stage served by this worker"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the fulfillment token and registration of this worker."""
    settings = SdmSettings()
    if stage:
        settings = settings.model_copy(update={"remote_stage": stage})

    token = identity_token(settings)
    info = {
        "name": settings.name,
        "registration": settings.registration_name,
        "remote_stage": settings.remote_stage,
        "identity_token": token,
    }
    if json_out:
        console.print_json(json.dumps(info))
        return
    console.print("[bold]Worker identity[/bold]")
    console.print(f"  Name:          {info['name']}")
    console.print(f"  Registration:  {info['registration']}")
    console.print(f"  Remote stage:  {info['remote_stage'] or '-'}")
    console.print(f"  Token:         [cyan]{token}[/cyan]")


@app.command("dispatch")
def dispatch(
    event_file: Path = typer.Argument(..., help="JSON goal event (a goal or {\"SdmGoal\": [goal]})"),
    project_dir: Path = typer.Option(Path("."), "--project-dir", "-d", help="Checked-out project"),
    cmd: str | None = typer.Option(None, "--cmd", help="Path to the serverless command"),
    stage: str | None = typer.Option(None, "--stage", help="Deploy stage passed as --stage"),
    remote: str | None = typer.Option(
        None, "--remote", help="Registration name of the remote worker (requires --stage)"
    ),
    show_log: bool = typer.Option(False, "--log", help="Print the goal's progress log"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Dispatch one goal event through an in-memory worker."""
    settings = SdmSettings()
    configure_from_settings(settings)

    payload = load_payload(event_file)
    try:
        event = GoalEvent.from_payload(payload)
    except ValueError as e:
        err_console.print(f"[bold red]Invalid goal event:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if remote and not stage:
        err_console.print("[bold red]--remote requires --stage[/bold red]")
        raise typer.Exit(code=1)

    details = ServerlessDeployDetails(
        cmd=cmd,
        deploy_args={"stage": stage} if stage else {},
        remote_execution=RemoteExecution(registration_name=remote, stage=stage) if remote else None,
    )
    implementations = ImplementationRegistry()
    ServerlessDeploy().with_registration(details, settings, implementations)

    ledger = InMemoryGoalLedger()
    ledger.add(event)
    log_factory = InMemoryLogFactory()
    ctx = _context(settings, implementations, project_dir, ledger, log_factory)

    handler = serverless_support(ctx).handlers[GOAL_REQUESTED]
    request = Event(event_type=GOAL_REQUESTED, source="cli", payload=payload)
    try:
        outcome = asyncio.run(handler.handle(request))
    except SdmError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        print_writes(ledger.writes)
        raise typer.Exit(code=1) from e
    except Exception as e:
        err_console.print(f"[bold red]Error[/bold red] ({type(e).__name__}): {e}")
        print_writes(ledger.writes)
        raise typer.Exit(code=1) from e

    log = log_factory.log_for(event)

    if json_out:
        console.print_json(
            json.dumps(
                {
                    "outcome": outcome.model_dump(mode="json", by_alias=True, exclude_none=True),
                    "writes": [
                        w.patch.model_dump(mode="json", by_alias=True, exclude_none=True)
                        for w in ledger.writes
                    ],
                }
            )
        )
        return

    console.print(f"[bold]Outcome[/bold]: code {outcome.code}")
    print_writes(ledger.writes)
    if show_log and log is not None:
        console.print("[bold]Progress log[/bold]")
        console.print(log.log, markup=False, highlight=False)


def _context(
    settings: SdmSettings,
    implementations: ImplementationRegistry,
    project_dir: Path,
    ledger: InMemoryGoalLedger,
    log_factory: InMemoryLogFactory,
) -> DispatchContext:
    return DispatchContext(
        settings=settings,
        ledger=ledger,
        implementations=implementations,
        execution_backend=GoalExecutionBackend(ledger),
        verifier=SigningDisabledVerifier(),
        repo_ref_resolver=GoalRepoRefResolver(),
        credentials_resolver=StaticCredentialsResolver(),
        log_factory=log_factory,
        project_loader=DirectoryProjectLoader(project_dir),
    )
