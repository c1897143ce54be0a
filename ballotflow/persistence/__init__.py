"""Ballotflow persistence layer.

Provides SQLite-backed storage for ballot snapshots and their event
history, with prefix lookup, listing, export (JSON/Markdown), and deletion.
"""

from ballotflow.persistence.database import close_db, init_db
from ballotflow.persistence.export import export_json, export_markdown
from ballotflow.persistence.store import BallotStore

__all__ = [
    "BallotStore",
    "close_db",
    "export_json",
    "export_markdown",
    "init_db",
]
