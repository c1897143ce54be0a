"""SQLite database layer for ballot persistence.

Manages the SQLite database connection and schema creation. Uses
aiosqlite for async access with WAL mode for concurrent read performance.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

# SQL schema for the ballots database
_SCHEMA = """
CREATE TABLE IF NOT EXISTS ballots (
    ballot_id           TEXT PRIMARY KEY,
    admin               TEXT NOT NULL,
    status              INTEGER NOT NULL DEFAULT 0,
    winning_proposal_id INTEGER,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS voters (
    ballot_id         TEXT NOT NULL REFERENCES ballots(ballot_id) ON DELETE CASCADE,
    identity          TEXT NOT NULL,
    is_registered     INTEGER NOT NULL DEFAULT 0,
    has_voted         INTEGER NOT NULL DEFAULT 0,
    voted_proposal_id INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (ballot_id, identity)
);

CREATE TABLE IF NOT EXISTS proposals (
    ballot_id   TEXT NOT NULL REFERENCES ballots(ballot_id) ON DELETE CASCADE,
    proposal_id INTEGER NOT NULL,
    description TEXT NOT NULL,
    vote_count  INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (ballot_id, proposal_id)
);

CREATE TABLE IF NOT EXISTS events (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    ballot_id  TEXT NOT NULL REFERENCES ballots(ballot_id) ON DELETE CASCADE,
    event_type TEXT NOT NULL,
    data_json  TEXT NOT NULL DEFAULT '{}',
    timestamp  REAL NOT NULL DEFAULT 0.0
);

CREATE INDEX IF NOT EXISTS idx_voters_ballot ON voters(ballot_id);
CREATE INDEX IF NOT EXISTS idx_proposals_ballot ON proposals(ballot_id);
CREATE INDEX IF NOT EXISTS idx_events_ballot ON events(ballot_id);
CREATE INDEX IF NOT EXISTS idx_ballots_created ON ballots(created_at);
"""


async def init_db(db_path: str) -> aiosqlite.Connection:
    """Initialize the database connection and create tables if needed.

    Creates parent directories if they don't exist, enables WAL mode
    and foreign keys, then runs the schema DDL.

    Args:
        db_path: Path to the SQLite database file. Supports ~ expansion.

    Returns:
        An open aiosqlite connection ready for use.
    """
    resolved = Path(db_path).expanduser()
    resolved.parent.mkdir(parents=True, exist_ok=True)

    db = await aiosqlite.connect(str(resolved))
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA foreign_keys=ON")
    await db.executescript(_SCHEMA)
    await db.commit()

    logger.info("Ballot database initialized at %s", resolved)
    return db


async def close_db(db: aiosqlite.Connection) -> None:
    """Close the database connection."""
    await db.close()
