"""Ballotflow CLI: Typer + Rich terminal interface.

Every workflow and data operation is a command that loads the ballot from
the SQLite store, applies the operation on behalf of ``--as CALLER``, and
saves the new state together with the events it emitted. A rejected
operation is reported and nothing is saved.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from ballotflow import __version__
from ballotflow.engine.ballot import BallotEngine
from ballotflow.errors import BallotError
from ballotflow.events import BallotEventEmitter
from ballotflow.persistence.database import close_db, init_db
from ballotflow.persistence.export import export_json, export_markdown
from ballotflow.persistence.store import BallotStore
from ballotflow.schemas.ballot import BallotSnapshot
from ballotflow.schemas.workflow import WorkflowStatus
from ballotflow.settings import BallotSettings, load_settings

console = Console()

app = typer.Typer(
    name="ballotflow",
    help="Single-organizer ballot workflow: register, propose, vote, tally.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@dataclass
class CliState:
    """Options shared by all commands, resolved in the app callback."""

    db_path: str


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"ballotflow {__version__}")
        raise typer.Exit()


# ── App Callback ────────────────────────────────────────────────


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    db: str = typer.Option(
        None, "--db",
        help="SQLite database path (overrides the configured db_path)",
    ),
    config: Path = typer.Option(
        None, "--config",
        help="Path to a ballotflow TOML config file",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log debug output to stderr",
    ),
) -> None:
    """Ballotflow: single-organizer ballot workflow engine."""
    settings = _load_settings(config)
    _configure_logging(logging.DEBUG if verbose else settings.log_level_value)
    ctx.obj = CliState(db_path=db or settings.db_path)


# ── Helpers ──────────────────────────────────────────────────────


def _load_settings(config_path: Path | None) -> BallotSettings:
    """Load settings, exit on error."""
    try:
        return load_settings(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _configure_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _status_style(status: WorkflowStatus) -> str:
    """Return a Rich style string for a workflow status."""
    if status is WorkflowStatus.VOTES_TALLIED:
        return "bold green"
    if status in (
        WorkflowStatus.PROPOSALS_REGISTRATION_STARTED,
        WorkflowStatus.VOTING_SESSION_STARTED,
    ):
        return "bold yellow"
    return "cyan"


def _with_store(ctx: typer.Context, action: Callable[[BallotStore], Any]) -> Any:
    """Open the store, await ``action(store)``, and close the store."""
    state: CliState = ctx.obj

    async def _run():
        db = await init_db(state.db_path)
        try:
            return await action(BallotStore(db))
        finally:
            await close_db(db)

    return asyncio.run(_run())


def _apply(
    ctx: typer.Context,
    ballot_id: str,
    operation: Callable[[BallotEngine], Any],
) -> tuple[BallotEngine, Any]:
    """Load a ballot, run ``operation`` on it, and save the result.

    Exits with status 1 when the ballot does not exist or the engine
    rejects the operation.
    """

    async def _action(store: BallotStore):
        async with store.transaction():
            snapshot = await store.get_ballot(ballot_id)
            if snapshot is None:
                return None, None
            emitter = BallotEventEmitter()
            engine = BallotEngine.from_snapshot(snapshot, emitter=emitter)
            result = operation(engine)
            await store.save_ballot(engine.snapshot(), emitter.history)
        return engine, result

    try:
        engine, result = _with_store(ctx, _action)
    except BallotError as e:
        console.print(f"[red]Rejected:[/red] {e}")
        raise typer.Exit(1) from None

    if engine is None:
        console.print(f"[red]Ballot not found:[/red] {ballot_id}")
        raise typer.Exit(1)
    return engine, result


def _load_snapshot(ctx: typer.Context, ballot_id: str) -> BallotSnapshot:
    """Fetch a ballot snapshot, exit if it does not exist."""

    async def _action(store: BallotStore):
        return await store.get_ballot(ballot_id)

    snapshot = _with_store(ctx, _action)
    if snapshot is None:
        console.print(f"[red]Ballot not found:[/red] {ballot_id}")
        raise typer.Exit(1)
    return snapshot


def _print_transition(engine: BallotEngine) -> None:
    status = engine.status
    console.print(
        f"Ballot [cyan]{engine.ballot_id[:8]}[/cyan] is now "
        f"[{_status_style(status)}]{status.label}[/] ({int(status)})"
    )


_BALLOT_ARG = typer.Argument(..., help="Ballot ID or prefix (min 4 chars)")
_CALLER_OPT = typer.Option(..., "--as", help="Identity of the caller")


# ── ballotflow create ───────────────────────────────────────────


@app.command()
def create(
    ctx: typer.Context,
    admin: str = typer.Option(..., "--admin", help="Identity of the ballot administrator"),
    ballot_id: str = typer.Option(None, "--id", help="Explicit ballot ID (default: UUID)"),
) -> None:
    """Create a new ballot in the voter-registration phase."""
    engine = BallotEngine(admin, ballot_id=ballot_id)

    async def _action(store: BallotStore):
        async with store.transaction():
            if await store.resolve_ballot_id(engine.ballot_id) == engine.ballot_id:
                return False
            await store.save_ballot(engine.snapshot())
        return True

    if not _with_store(ctx, _action):
        console.print(f"[red]Ballot already exists:[/red] {engine.ballot_id}")
        raise typer.Exit(1)

    console.print(f"[green]Ballot created:[/green] {engine.ballot_id}")


# ── Workflow transitions ─────────────────────────────────────────


@app.command("start-proposals")
def start_proposals(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
    caller: str = _CALLER_OPT,
) -> None:
    """Open proposal registration (admin)."""
    engine, _ = _apply(ctx, ballot_id, lambda e: e.start_proposals_registering(caller))
    _print_transition(engine)


@app.command("end-proposals")
def end_proposals(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
    caller: str = _CALLER_OPT,
) -> None:
    """Close proposal registration (admin)."""
    engine, _ = _apply(ctx, ballot_id, lambda e: e.end_proposals_registering(caller))
    _print_transition(engine)


@app.command("start-voting")
def start_voting(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
    caller: str = _CALLER_OPT,
) -> None:
    """Open the voting session (admin)."""
    engine, _ = _apply(ctx, ballot_id, lambda e: e.start_voting_session(caller))
    _print_transition(engine)


@app.command("end-voting")
def end_voting(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
    caller: str = _CALLER_OPT,
) -> None:
    """Close the voting session (admin)."""
    engine, _ = _apply(ctx, ballot_id, lambda e: e.end_voting_session(caller))
    _print_transition(engine)


@app.command()
def tally(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
    caller: str = _CALLER_OPT,
) -> None:
    """Tally the votes and announce the winner (admin)."""
    engine, winner_id = _apply(ctx, ballot_id, lambda e: e.tally_votes(caller))
    _print_transition(engine)
    winner = engine.get_winner()
    result = engine.tally
    note = ""
    if result is not None and result.is_tie:
        note = f" [dim](tie between {result.tied_options}, earliest wins)[/dim]"
    console.print(
        f"[bold green]Winner:[/bold green] proposal {winner_id} "
        f"({winner.description}, {winner.vote_count} votes){note}"
    )


# ── Data operations ──────────────────────────────────────────────


@app.command("add-voter")
def add_voter(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
    identity: str = typer.Argument(..., help="Identity of the voter to register"),
    caller: str = _CALLER_OPT,
) -> None:
    """Register a voter (admin)."""
    _apply(ctx, ballot_id, lambda e: e.add_voter(caller, identity))
    console.print(f"[green]Voter registered:[/green] {identity}")


@app.command("add-proposal")
def add_proposal(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
    description: str = typer.Argument(..., help="Proposal description"),
    caller: str = _CALLER_OPT,
) -> None:
    """Submit a proposal (voter)."""
    _, proposal_id = _apply(ctx, ballot_id, lambda e: e.add_proposal(caller, description))
    console.print(f"[green]Proposal registered:[/green] {proposal_id}")


@app.command()
def vote(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
    proposal_id: int = typer.Argument(..., help="ID of the proposal to vote for"),
    caller: str = _CALLER_OPT,
) -> None:
    """Cast a vote (voter)."""
    _apply(ctx, ballot_id, lambda e: e.set_vote(caller, proposal_id))
    console.print(f"[green]Vote recorded:[/green] {caller} → proposal {proposal_id}")


# ── Read commands ────────────────────────────────────────────────


@app.command()
def voter(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
    identity: str = typer.Argument(..., help="Identity of the voter to look up"),
    caller: str = _CALLER_OPT,
) -> None:
    """Show one voter record (voter)."""
    snapshot = _load_snapshot(ctx, ballot_id)
    engine = BallotEngine.from_snapshot(snapshot)
    try:
        record = engine.get_voter(caller, identity)
    except BallotError as e:
        console.print(f"[red]Rejected:[/red] {e}")
        raise typer.Exit(1) from None

    table = Table(title=f"Voter: {record.identity}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Registered", "yes" if record.is_registered else "no")
    table.add_row("Voted", "yes" if record.has_voted else "no")
    if record.has_voted:
        table.add_row("Proposal", str(record.voted_proposal_id))
    console.print(table)


@app.command()
def show(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
) -> None:
    """Show full ballot details."""
    snapshot = _load_snapshot(ctx, ballot_id)

    meta = Table(title=f"Ballot: {snapshot.ballot_id}", show_header=False, show_lines=True)
    meta.add_column("Field", style="bold")
    meta.add_column("Value")
    meta.add_row("Admin", snapshot.admin)
    meta.add_row(
        "Status",
        Text(
            f"{snapshot.status.label} ({int(snapshot.status)})",
            style=_status_style(snapshot.status),
        ),
    )
    meta.add_row("Created", snapshot.created_at.isoformat())
    meta.add_row("Updated", snapshot.updated_at.isoformat())
    votes_cast = sum(1 for v in snapshot.voters.values() if v.has_voted)
    meta.add_row("Voters", f"{len(snapshot.voters)} ({votes_cast} voted)")
    if snapshot.winning_proposal_id is not None:
        meta.add_row("Winner", str(snapshot.winning_proposal_id))
    console.print(meta)

    if snapshot.proposals:
        console.print()
        proposals = Table(title="Proposals")
        proposals.add_column("ID", justify="right", style="cyan")
        proposals.add_column("Description")
        proposals.add_column("Votes", justify="right")
        for p in snapshot.proposals:
            style = "bold green" if p.id == snapshot.winning_proposal_id else ""
            proposals.add_row(str(p.id), Text(p.description, style=style), str(p.vote_count))
        console.print(proposals)


@app.command("list")
def list_ballots(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", help="Max ballots to show"),
) -> None:
    """Show recent ballots."""

    async def _action(store: BallotStore):
        return await store.list_ballots(limit=limit)

    summaries = _with_store(ctx, _action)

    if not summaries:
        console.print("[dim]No ballots found.[/dim]")
        return

    table = Table(title=f"Ballots ({len(summaries)} shown)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Admin")
    table.add_column("Status")
    table.add_column("Voters", justify="right")
    table.add_column("Proposals", justify="right")
    table.add_column("Votes", justify="right")
    table.add_column("Winner", justify="right")

    for s in summaries:
        table.add_row(
            s.ballot_id[:8],
            s.admin,
            Text(s.status.label, style=_status_style(s.status)),
            str(s.voter_count),
            str(s.proposal_count),
            str(s.votes_cast),
            "-" if s.winning_proposal_id is None else str(s.winning_proposal_id),
        )

    console.print(table)


@app.command()
def events(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
) -> None:
    """Show the event history of a ballot."""
    snapshot = _load_snapshot(ctx, ballot_id)

    async def _action(store: BallotStore):
        return await store.list_events(snapshot.ballot_id)

    history = _with_store(ctx, _action)
    if not history:
        console.print("[dim]No events recorded.[/dim]")
        return

    table = Table(title=f"Events: {snapshot.ballot_id[:8]}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Event", style="cyan")
    table.add_column("Data")
    for i, event in enumerate(history, start=1):
        data = ", ".join(f"{k}={v}" for k, v in event.data.items())
        table.add_row(str(i), event.type.value, data)
    console.print(table)


@app.command()
def export(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
    fmt: str = typer.Option(
        "markdown", "--format", "-f",
        help="Export format: json or markdown",
    ),
) -> None:
    """Export a ballot as JSON or Markdown."""
    snapshot = _load_snapshot(ctx, ballot_id)

    if fmt == "json":
        console.print_json(export_json(snapshot))
    elif fmt == "markdown":
        console.print(
            export_markdown(snapshot), markup=False, highlight=False, soft_wrap=True,
        )
    else:
        console.print(f"[red]Invalid format:[/red] '{fmt}'. Choose json or markdown.")
        raise typer.Exit(1) from None


@app.command()
def delete(
    ctx: typer.Context,
    ballot_id: str = _BALLOT_ARG,
    yes: bool = typer.Option(
        False, "--yes", "-y",
        help="Skip confirmation prompt",
    ),
) -> None:
    """Delete a ballot and its history."""
    if not yes:
        confirm = typer.confirm(
            f"Delete ballot {ballot_id}? This cannot be undone."
        )
        if not confirm:
            console.print("[dim]Cancelled.[/dim]")
            return

    async def _action(store: BallotStore):
        return await store.delete_ballot(ballot_id)

    if _with_store(ctx, _action):
        console.print(f"[green]Ballot deleted:[/green] {ballot_id}")
    else:
        console.print(f"[red]Ballot not found:[/red] {ballot_id}")
        raise typer.Exit(1) from None
