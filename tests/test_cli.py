"""Tests for the CLI Interface.

Covers every command via CliRunner against a temporary SQLite database,
including rejected operations, missing ballots, and export formats.
"""

from __future__ import annotations

import asyncio
import json

import pytest
from typer.testing import CliRunner

from ballotflow.cli import app
from ballotflow.persistence.database import close_db, init_db
from ballotflow.persistence.store import BallotStore

# NO_COLOR=1 prevents Rich from injecting ANSI codes inside option names,
# which breaks substring matching in CI (headless, no TTY).
# COLUMNS=200 prevents wrapping that could split a flag across lines.
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})

BALLOT = "ballot-cli-0001"
ADMIN = "admin"
VOTERS = ["alice", "bob", "carol", "dave", "erin"]


# ── Helpers ────────────────────────────────────────────────────────


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "ballots.db")


def _invoke(db_path: str, *args: str):
    return runner.invoke(app, ["--db", db_path, *args])


def _ok(db_path: str, *args: str):
    result = _invoke(db_path, *args)
    assert result.exit_code == 0, result.output
    return result


def _load(db_path: str, ballot_id: str = BALLOT):
    async def _get():
        db = await init_db(db_path)
        store = BallotStore(db)
        snapshot = await store.get_ballot(ballot_id)
        events = await store.list_events(ballot_id)
        await close_db(db)
        return snapshot, events

    return asyncio.run(_get())


def _setup_voting(db_path: str) -> None:
    """Create a ballot with 5 voters and 3 proposals, voting open."""
    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    for identity in VOTERS:
        _ok(db_path, "add-voter", BALLOT, identity, "--as", ADMIN)
    _ok(db_path, "start-proposals", BALLOT, "--as", ADMIN)
    for description in ("First", "Second", "Third"):
        _ok(db_path, "add-proposal", BALLOT, description, "--as", "alice")
    _ok(db_path, "end-proposals", BALLOT, "--as", ADMIN)
    _ok(db_path, "start-voting", BALLOT, "--as", ADMIN)


# ── Basics ─────────────────────────────────────────────────────────


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "ballotflow 0.1.0" in result.output


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("create", "add-voter", "add-proposal", "vote", "tally", "export"):
        assert command in result.output


def test_bad_config_path(tmp_path, db_path):
    result = runner.invoke(
        app, ["--config", str(tmp_path / "missing.toml"), "--db", db_path, "list"],
    )
    assert result.exit_code == 1
    assert "Error loading config" in result.output


# ── create ─────────────────────────────────────────────────────────


def test_create(db_path):
    result = _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    assert f"Ballot created: {BALLOT}" in result.output

    snapshot, _ = _load(db_path)
    assert snapshot.admin == ADMIN
    assert int(snapshot.status) == 0


def test_create_generates_id(db_path):
    result = _ok(db_path, "create", "--admin", ADMIN)
    assert "Ballot created:" in result.output


def test_create_duplicate_id(db_path):
    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    result = _invoke(db_path, "create", "--admin", "someone", "--id", BALLOT)
    assert result.exit_code == 1
    assert "already exists" in result.output


# ── Workflow ───────────────────────────────────────────────────────


def test_full_workflow(db_path):
    _setup_voting(db_path)
    _ok(db_path, "vote", BALLOT, "1", "--as", "alice")
    for identity in VOTERS[1:]:
        _ok(db_path, "vote", BALLOT, "3", "--as", identity)
    _ok(db_path, "end-voting", BALLOT, "--as", ADMIN)

    result = _ok(db_path, "tally", BALLOT, "--as", ADMIN)
    assert "Votes tallied (5)" in result.output
    assert "Winner: proposal 3 (Third, 4 votes)" in result.output

    snapshot, events = _load(db_path)
    assert snapshot.winning_proposal_id == 3
    types = [e.type.value for e in events]
    assert types.count("voter_registered") == 5
    assert types.count("proposal_registered") == 3
    assert types.count("voted") == 5
    assert types.count("workflow_status_change") == 5


def test_tally_reports_tie(db_path):
    _setup_voting(db_path)
    for identity, pid in zip(VOTERS, ["1", "1", "2", "3", "3"]):
        _ok(db_path, "vote", BALLOT, pid, "--as", identity)
    _ok(db_path, "end-voting", BALLOT, "--as", ADMIN)

    result = _ok(db_path, "tally", BALLOT, "--as", ADMIN)
    assert "Winner: proposal 1" in result.output
    assert "tie between [1, 3]" in result.output


def test_add_proposal_prints_id(db_path):
    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    _ok(db_path, "add-voter", BALLOT, "alice", "--as", ADMIN)
    _ok(db_path, "start-proposals", BALLOT, "--as", ADMIN)
    result = _ok(db_path, "add-proposal", BALLOT, "Plant trees", "--as", "alice")
    assert "Proposal registered: 1" in result.output


# ── Rejections ─────────────────────────────────────────────────────


def test_rejected_operation_saves_nothing(db_path):
    _setup_voting(db_path)
    _ok(db_path, "vote", BALLOT, "2", "--as", "bob")
    before, events_before = _load(db_path)

    result = _invoke(db_path, "vote", BALLOT, "1", "--as", "bob")
    assert result.exit_code == 1
    assert "Rejected:" in result.output
    assert "You have already voted" in result.output

    after, events_after = _load(db_path)
    assert after == before
    assert len(events_after) == len(events_before)


def test_non_admin_transition_rejected(db_path):
    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    result = _invoke(db_path, "start-proposals", BALLOT, "--as", "alice")
    assert result.exit_code == 1
    assert "not the ballot administrator" in result.output


def test_wrong_phase_rejected(db_path):
    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    result = _invoke(db_path, "tally", BALLOT, "--as", ADMIN)
    assert result.exit_code == 1
    assert "Current status is not voting session ended" in result.output


def test_missing_ballot(db_path):
    result = _invoke(db_path, "start-proposals", "nope", "--as", ADMIN)
    assert result.exit_code == 1
    assert "Ballot not found" in result.output


# ── Read commands ──────────────────────────────────────────────────


def test_show(db_path):
    _setup_voting(db_path)
    result = _ok(db_path, "show", BALLOT)
    assert BALLOT in result.output
    assert "Voting session started" in result.output
    assert "GENESIS" in result.output
    assert "Third" in result.output


def test_show_by_prefix(db_path):
    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    result = _ok(db_path, "show", BALLOT[:10])
    assert BALLOT in result.output


def test_voter_lookup(db_path):
    _setup_voting(db_path)
    _ok(db_path, "vote", BALLOT, "2", "--as", "bob")
    result = _ok(db_path, "voter", BALLOT, "bob", "--as", "alice")
    assert "Voter: bob" in result.output
    assert "Proposal" in result.output


def test_voter_lookup_requires_voter(db_path):
    _setup_voting(db_path)
    result = _invoke(db_path, "voter", BALLOT, "bob", "--as", ADMIN)
    assert result.exit_code == 1
    assert "You're not a voter" in result.output


def test_list(db_path):
    result = _ok(db_path, "list")
    assert "No ballots found" in result.output

    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    result = _ok(db_path, "list")
    assert BALLOT[:8] in result.output
    assert "Registering voters" in result.output


def test_events(db_path):
    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    result = _ok(db_path, "events", BALLOT)
    assert "No events recorded" in result.output

    _ok(db_path, "add-voter", BALLOT, "alice", "--as", ADMIN)
    result = _ok(db_path, "events", BALLOT)
    assert "voter_registered" in result.output
    assert "voter=alice" in result.output


# ── export ─────────────────────────────────────────────────────────


def test_export_markdown(db_path):
    _setup_voting(db_path)
    result = _ok(db_path, "export", BALLOT)
    assert f"# Ballot Report: {BALLOT}" in result.output
    assert "| 1 | First | 0 |" in result.output


def test_export_json(db_path):
    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    result = _ok(db_path, "export", BALLOT, "--format", "json")
    data = json.loads(result.output)
    assert data["ballot_id"] == BALLOT
    assert data["status"] == 0


def test_export_invalid_format(db_path):
    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    result = _invoke(db_path, "export", BALLOT, "--format", "xml")
    assert result.exit_code == 1
    assert "Invalid format" in result.output


# ── delete ─────────────────────────────────────────────────────────


def test_delete_with_yes(db_path):
    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    result = _ok(db_path, "delete", BALLOT, "--yes")
    assert "Ballot deleted" in result.output
    snapshot, _ = _load(db_path)
    assert snapshot is None


def test_delete_cancelled(db_path):
    _ok(db_path, "create", "--admin", ADMIN, "--id", BALLOT)
    result = runner.invoke(app, ["--db", db_path, "delete", BALLOT], input="n\n")
    assert result.exit_code == 0
    assert "Cancelled" in result.output
    snapshot, _ = _load(db_path)
    assert snapshot is not None


def test_delete_missing(db_path):
    result = _invoke(db_path, "delete", "nope", "--yes")
    assert result.exit_code == 1
    assert "Ballot not found" in result.output
