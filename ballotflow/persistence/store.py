"""Ballot store for saving, retrieving, listing, and deleting ballots.

Provides the BallotStore class that maps BallotSnapshot and BallotEvent
schemas onto the SQLite tables created by database.init_db().
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime

import aiosqlite

from ballotflow.events import BallotEvent
from ballotflow.schemas.ballot import (
    BallotSnapshot,
    BallotSummary,
    Proposal,
    Voter,
)
from ballotflow.schemas.workflow import WorkflowStatus

logger = logging.getLogger(__name__)

# Shortest prefix accepted in place of a full ballot ID
_MIN_PREFIX = 4


class BallotStore:
    """Persistent ballot store backed by SQLite.

    All methods are async and operate on an aiosqlite connection
    initialized by database.init_db().
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db
        self._db.row_factory = aiosqlite.Row
        self._in_transaction = False

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Hold the database write lock across a load, modify, save cycle.

        Other connections entering ``transaction()`` wait until this one
        finishes, so they always load the state this one saved. Saves
        made inside the block commit together on exit; an exception
        rolls them all back.
        """
        if self._in_transaction:
            raise RuntimeError("BallotStore transaction already in progress")
        await self._db.execute("BEGIN IMMEDIATE")
        self._in_transaction = True
        try:
            yield
        except BaseException:
            await self._db.rollback()
            raise
        else:
            await self._db.commit()
        finally:
            self._in_transaction = False

    async def save_ballot(
        self,
        snapshot: BallotSnapshot,
        events: Iterable[BallotEvent] = (),
    ) -> None:
        """Save a ballot snapshot and append its new events.

        The ballot row is upserted, voter and proposal rows are replaced,
        and events are appended, all in a single transaction.
        """
        await self._db.execute(
            """
            INSERT INTO ballots
                (ballot_id, admin, status, winning_proposal_id,
                 created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(ballot_id) DO UPDATE SET
                admin = excluded.admin,
                status = excluded.status,
                winning_proposal_id = excluded.winning_proposal_id,
                updated_at = excluded.updated_at
            """,
            (
                snapshot.ballot_id,
                snapshot.admin,
                int(snapshot.status),
                snapshot.winning_proposal_id,
                snapshot.created_at.isoformat(),
                snapshot.updated_at.isoformat(),
            ),
        )

        # Clear existing child rows (for upsert)
        for table in ("voters", "proposals"):
            await self._db.execute(
                f"DELETE FROM {table} WHERE ballot_id = ?",  # noqa: S608
                (snapshot.ballot_id,),
            )

        await self._db.executemany(
            """
            INSERT INTO voters
                (ballot_id, identity, is_registered, has_voted, voted_proposal_id)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                (
                    snapshot.ballot_id,
                    voter.identity,
                    int(voter.is_registered),
                    int(voter.has_voted),
                    voter.voted_proposal_id,
                )
                for voter in snapshot.voters.values()
            ],
        )

        await self._db.executemany(
            """
            INSERT INTO proposals
                (ballot_id, proposal_id, description, vote_count)
            VALUES (?, ?, ?, ?)
            """,
            [
                (snapshot.ballot_id, p.id, p.description, p.vote_count)
                for p in snapshot.proposals
            ],
        )

        appended = 0
        for event in events:
            await self._db.execute(
                """
                INSERT INTO events (ballot_id, event_type, data_json, timestamp)
                VALUES (?, ?, ?, ?)
                """,
                (
                    snapshot.ballot_id,
                    event.type.value,
                    json.dumps(event.data),
                    event.timestamp,
                ),
            )
            appended += 1

        await self._commit()
        logger.info(
            "Saved ballot %s (%s, %d new events)",
            snapshot.ballot_id, snapshot.status.name, appended,
        )

    async def get_ballot(self, ballot_id: str) -> BallotSnapshot | None:
        """Retrieve a full ballot snapshot by ID or unique ID prefix.

        Returns None when no ballot matches or the prefix is ambiguous.
        """
        full_id = await self.resolve_ballot_id(ballot_id)
        if not full_id:
            return None

        async with self._db.execute(
            "SELECT * FROM ballots WHERE ballot_id = ?",
            (full_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None

        return await self._row_to_snapshot(row)

    async def list_ballots(
        self, limit: int = 20, offset: int = 0,
    ) -> list[BallotSummary]:
        """List ballots as summaries, most recently created first."""
        sql = """
            SELECT b.*,
                (SELECT COUNT(*) FROM voters v
                    WHERE v.ballot_id = b.ballot_id AND v.is_registered = 1)
                    AS voter_count,
                (SELECT COUNT(*) FROM proposals p
                    WHERE p.ballot_id = b.ballot_id AND p.proposal_id > 0)
                    AS proposal_count,
                (SELECT COUNT(*) FROM voters v
                    WHERE v.ballot_id = b.ballot_id AND v.has_voted = 1)
                    AS votes_cast
            FROM ballots b
            ORDER BY b.created_at DESC
            LIMIT ? OFFSET ?
        """
        summaries: list[BallotSummary] = []
        async with self._db.execute(sql, (limit, offset)) as cursor:
            async for row in cursor:
                summaries.append(BallotSummary(
                    ballot_id=row["ballot_id"],
                    admin=row["admin"],
                    status=WorkflowStatus(row["status"]),
                    voter_count=row["voter_count"],
                    proposal_count=row["proposal_count"],
                    votes_cast=row["votes_cast"],
                    winning_proposal_id=row["winning_proposal_id"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                    updated_at=datetime.fromisoformat(row["updated_at"]),
                ))
        return summaries

    async def list_events(self, ballot_id: str) -> list[BallotEvent]:
        """Return the persisted events of a ballot in emission order."""
        full_id = await self.resolve_ballot_id(ballot_id)
        if not full_id:
            return []

        events: list[BallotEvent] = []
        async with self._db.execute(
            "SELECT * FROM events WHERE ballot_id = ? ORDER BY id",
            (full_id,),
        ) as cursor:
            async for row in cursor:
                events.append(BallotEvent(
                    type=row["event_type"],
                    ballot_id=full_id,
                    timestamp=row["timestamp"],
                    data=json.loads(row["data_json"]),
                ))
        return events

    async def resolve_ballot_id(self, prefix: str) -> str | None:
        """Resolve a ballot ID prefix to a full ballot ID.

        Returns the full ID if exactly one match is found, None otherwise.
        Accepts full IDs as well (exact match always wins).
        """
        async with self._db.execute(
            "SELECT ballot_id FROM ballots WHERE ballot_id = ?",
            (prefix,),
        ) as cursor:
            row = await cursor.fetchone()
        if row:
            return row["ballot_id"]
        if len(prefix) >= _MIN_PREFIX:
            async with self._db.execute(
                "SELECT ballot_id FROM ballots WHERE ballot_id LIKE ?"
                " LIMIT 2",
                (prefix + "%",),
            ) as cursor:
                rows = await cursor.fetchall()
            if len(rows) == 1:
                return rows[0]["ballot_id"]
        return None

    async def delete_ballot(self, ballot_id: str) -> bool:
        """Delete a ballot with its voters, proposals, and events.

        Supports both full IDs and unique prefixes (>= 4 chars).
        Returns True if a ballot was deleted.
        """
        full_id = await self.resolve_ballot_id(ballot_id)
        if not full_id:
            return False
        cursor = await self._db.execute(
            "DELETE FROM ballots WHERE ballot_id = ?",
            (full_id,),
        )
        await self._commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted ballot %s", full_id)
        return deleted

    async def _commit(self) -> None:
        # Inside transaction() the commit happens when the block exits
        if not self._in_transaction:
            await self._db.commit()

    async def _row_to_snapshot(self, row: aiosqlite.Row) -> BallotSnapshot:
        """Convert a ballots row + child rows into a BallotSnapshot."""
        ballot_id = row["ballot_id"]

        voters: dict[str, Voter] = {}
        async with self._db.execute(
            "SELECT * FROM voters WHERE ballot_id = ? ORDER BY rowid",
            (ballot_id,),
        ) as cursor:
            async for vrow in cursor:
                voters[vrow["identity"]] = Voter(
                    identity=vrow["identity"],
                    is_registered=bool(vrow["is_registered"]),
                    has_voted=bool(vrow["has_voted"]),
                    voted_proposal_id=vrow["voted_proposal_id"],
                )

        proposals: list[Proposal] = []
        async with self._db.execute(
            "SELECT * FROM proposals WHERE ballot_id = ? ORDER BY proposal_id",
            (ballot_id,),
        ) as cursor:
            async for prow in cursor:
                proposals.append(Proposal(
                    id=prow["proposal_id"],
                    description=prow["description"],
                    vote_count=prow["vote_count"],
                ))

        return BallotSnapshot(
            ballot_id=ballot_id,
            admin=row["admin"],
            status=WorkflowStatus(row["status"]),
            voters=voters,
            proposals=proposals,
            winning_proposal_id=row["winning_proposal_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
