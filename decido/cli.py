"""Decido CLI — Typer + Rich terminal interface.

Commands: resolve, stage, reconcile, config.
Every command is a thin front end over the pure resolver and scheduler;
nothing here reads or writes a decision store.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

import typer
from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from decido import __version__
from decido.consent.reconcile import ReconcileKind, plan_reconciliation
from decido.consent.scheduler import compute_schedule
from decido.decision_log import DecisionLog
from decido.errors import DecidoError
from decido.resolution.consent import validate_consent_duration
from decido.resolution.resolver import resolve
from decido.resolution.taxonomy import result_label
from decido.schemas.consent import ConsentDecision, ConsentStepMode
from decido.schemas.decision import Ballot, DecisionResult, ResolutionContext
from decido.settings import WorkflowConfig, default_config_path, load_workflow_config

console = Console()

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="decido",
    help="Decision resolution and staged consent workflow engine.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    name="config",
    help="Show workflow configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


class ResolveRequest(BaseModel):
    """JSON document accepted by ``decido resolve``."""

    method: str
    ballots: list[Ballot] = Field(default_factory=list)
    context: ResolutionContext | None = None


_DECISIONS = TypeAdapter(list[ConsentDecision])


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"decido {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log workflow decisions to the terminal.",
    ),
) -> None:
    """Decido — decision resolution and staged consent workflow engine."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


# ── Helpers ──────────────────────────────────────────────────────


def _load_config() -> WorkflowConfig:
    """Load workflow config, exit on error."""
    try:
        return load_workflow_config()
    except (FileNotFoundError, DecidoError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _read_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Cannot read {path}:[/red] {e}")
        raise typer.Exit(1) from None


def _parse_instant(value: str, option: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid {option}:[/red] '{value}' is not an ISO 8601 date")
        raise typer.Exit(1) from None


def _result_style(result: DecisionResult) -> str:
    """Return a Rich style string for a decision result."""
    return {
        DecisionResult.APPROVED: "bold green",
        DecisionResult.REJECTED: "bold red",
        DecisionResult.BLOCKED: "bold bright_red",
        DecisionResult.WITHDRAWN: "bold yellow",
    }[result]


# ── decido resolve ───────────────────────────────────────────────


@app.command("resolve")
def resolve_command(
    path: Path = typer.Argument(..., help="JSON file with method, ballots, and context"),
) -> None:
    """Compute the final result of a decision from a JSON snapshot."""
    try:
        request = ResolveRequest.model_validate(_read_json(path))
    except ValidationError as e:
        console.print(f"[red]Invalid decision file:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    try:
        resolution = resolve(request.method, request.ballots, request.context)
    except DecidoError as e:
        console.print(f"[red]{type(e).__name__}:[/red] {e}")
        raise typer.Exit(1) from None

    style = _result_style(resolution.result)
    console.print(Panel(
        f"[{style}]{result_label(resolution.result)}[/{style}]",
        title=f"{resolution.method} decision",
        expand=False,
    ))

    if resolution.weighted_score is not None:
        console.print(f"Weighted score: {resolution.weighted_score:g}")

    if resolution.consent_tally is not None:
        tally = resolution.consent_tally
        console.print(
            f"No objection: {tally.no_objection}  Objection: {tally.objection}  "
            f"No position: {tally.no_position}  Not voted: {tally.not_voted}"
        )

    if resolution.proposal_tally is not None:
        table = Table(title="Proposal Votes")
        table.add_column("Proposal", style="cyan")
        table.add_column("Votes", justify="right")
        for proposal_id, count in resolution.proposal_tally.counts.items():
            table.add_row(proposal_id, str(count))
        console.print(table)

    if resolution.ranking:
        table = Table(title="Majority Judgment Ranking", show_lines=True)
        table.add_column("Rank", justify="right", style="bold")
        table.add_column("Proposal", style="cyan")
        table.add_column("Majority Mention")
        table.add_column("Profile", style="dim")
        for entry in resolution.ranking:
            profile = ", ".join(f"{m}: {n}" for m, n in entry.profile.items())
            table.add_row(
                str(entry.rank),
                entry.title or entry.proposal_id,
                entry.majority_mention,
                profile,
            )
        console.print(table)


# ── decido stage ─────────────────────────────────────────────────


@app.command()
def stage(
    start: str = typer.Option(..., "--start", help="Launch date (ISO 8601)"),
    end: str = typer.Option(..., "--end", help="Deadline (ISO 8601)"),
    mode: ConsentStepMode = typer.Option(
        ConsentStepMode.DISTINCT, "--mode", "-m", help="Consent step mode",
    ),
    now: str | None = typer.Option(None, "--now", help="Instant to evaluate (default: now)"),
) -> None:
    """Show the current stage and stage windows of a consent decision."""
    start_at = _parse_instant(start, "--start")
    end_at = _parse_instant(end, "--end")
    at = _parse_instant(now, "--now") if now else datetime.now(start_at.tzinfo)

    try:
        schedule = compute_schedule(start_at, end_at, mode, at)
    except DecidoError as e:
        console.print(f"[red]{type(e).__name__}:[/red] {e}")
        raise typer.Exit(1) from None

    config = _load_config()
    if not validate_consent_duration(start_at, end_at, config.min_consent_duration):
        console.print(
            f"[yellow]Warning:[/yellow] window is shorter than "
            f"{config.consent_min_duration_days} day(s)"
        )

    table = Table(title=f"Consent Stages ({mode})", show_lines=True)
    table.add_column("Stage", style="bold cyan")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Active", justify="center")

    for window in schedule.windows.values():
        active = "[green]●[/green]" if window.stage == schedule.stage else ""
        table.add_row(
            window.stage,
            window.start.isoformat(),
            window.end.isoformat(),
            active,
        )

    console.print(table)
    console.print(f"\nCurrent stage: [bold]{schedule.stage}[/bold]")


# ── decido reconcile ─────────────────────────────────────────────


@app.command()
def reconcile(
    path: Path = typer.Argument(..., help="JSON list of open consent decisions"),
    now: str | None = typer.Option(None, "--now", help="Instant to evaluate (default: now)"),
    log: bool = typer.Option(
        False, "--log", help="Append the planned events to the decision log",
    ),
) -> None:
    """Plan one reconciliation run over a snapshot of consent decisions."""
    try:
        decisions = _DECISIONS.validate_python(_read_json(path))
    except ValidationError as e:
        console.print(f"[red]Invalid decisions file:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    at = _parse_instant(now, "--now") if now else datetime.now(UTC)
    plan = plan_reconciliation(decisions, at)

    table = Table(title="Reconciliation Plan", show_lines=True)
    table.add_column("Decision", style="bold cyan")
    table.add_column("Action")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Result / Notify")

    for action in plan.actions:
        if action.kind == ReconcileKind.CLOSE:
            detail = str(action.update.result)
        else:
            recipients = action.notification.recipients if action.notification else []
            detail = f"{len(recipients)} recipient(s)"
        table.add_row(
            action.decision_id,
            action.kind,
            action.from_stage or "-",
            action.to_stage,
            detail,
        )

    console.print(table)
    console.print(
        f"\n[dim]{len(plan.actions)} action(s), {len(plan.skipped)} skipped, "
        f"{len(plan.failed)} failed[/dim]"
    )
    for decision_id, reason in plan.failed.items():
        console.print(f"[red]{decision_id}:[/red] {reason}")

    if log:
        config = _load_config()
        decision_log = DecisionLog(Path(config.log_dir))
        for action in plan.actions:
            for event in action.events:
                decision_log.record(event)
        console.print(f"[dim]Events logged to {decision_log.events_file}[/dim]")

    if plan.failed:
        raise typer.Exit(1)


# ── decido config ────────────────────────────────────────────────


@config_app.command("show")
def config_show() -> None:
    """Show current workflow configuration."""
    config = _load_config()

    table = Table(title="Workflow Configuration", show_header=False, show_lines=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("Config File", str(default_config_path()))
    table.add_row("Reconcile Interval", f"{config.reconcile_interval_minutes} min")
    table.add_row("Min Consent Duration", f"{config.consent_min_duration_days} days")
    table.add_row("Decision Log Dir", config.log_dir)

    console.print(table)
