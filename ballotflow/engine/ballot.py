"""Ballot engine: the workflow state machine.

A BallotEngine owns one ballot: its administrator, voters, proposals,
workflow status, and winner. The administrator drives the workflow
through five transitions; registered voters submit proposals and cast
votes in the phases that allow them.

Every operation takes the calling identity as its first argument, checks
the caller's role, then the workflow phase, then its arguments, and only
then mutates state and emits its event. A rejected operation raises a
``BallotError`` and leaves the engine untouched.
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime
from uuid import uuid4

from ballotflow.engine.access import Role, require_role
from ballotflow.engine.tally import tally_votes
from ballotflow.errors import (
    AlreadyRegisteredError,
    AlreadyVotedError,
    EmptyProposalError,
    InvalidPhaseError,
    ProposalNotFoundError,
)
from ballotflow.events import BallotEventEmitter, EventType
from ballotflow.schemas.ballot import (
    GENESIS_DESCRIPTION,
    BallotSnapshot,
    Proposal,
    Voter,
    VoteTally,
)
from ballotflow.schemas.workflow import (
    ALLOWED_PREDECESSOR,
    TRANSITION_MESSAGES,
    WorkflowStatus,
)

logger = logging.getLogger(__name__)

_VOTER_REGISTRATION_CLOSED = "Voters registration is not open anymore"
_PROPOSALS_NOT_ALLOWED = "Proposals are not allowed yet"
_VOTING_NOT_STARTED = "Voting session haven't started yet"
_NOT_TALLIED = "Votes have not been tallied yet"


class BallotEngine:
    """State machine for a single ballot.

    Operations on one engine are serialized by an internal lock.
    Separate engines share no state and can be used concurrently.

    Args:
        admin: Identity of the ballot administrator.
        ballot_id: Ballot identifier. A new UUID is generated when omitted.
        emitter: Optional event sink receiving one event per accepted
            operation.
    """

    def __init__(
        self,
        admin: str,
        ballot_id: str | None = None,
        emitter: BallotEventEmitter | None = None,
    ) -> None:
        self._ballot_id = ballot_id or str(uuid4())
        self._admin = admin
        self._emitter = emitter
        self._status = WorkflowStatus.REGISTERING_VOTERS
        self._voters: dict[str, Voter] = {}
        self._proposals: list[Proposal] = []
        self._winning_proposal_id: int | None = None
        self._tally: VoteTally | None = None
        self._created_at = datetime.now(UTC)
        self._updated_at = self._created_at
        self._lock = threading.RLock()

    # ── Properties ──────────────────────────────────────────────

    @property
    def ballot_id(self) -> str:
        return self._ballot_id

    @property
    def admin(self) -> str:
        return self._admin

    @property
    def status(self) -> WorkflowStatus:
        """Current workflow phase."""
        return self._status

    @property
    def winning_proposal_id(self) -> int | None:
        """ID of the winning proposal, or None until votes are tallied."""
        return self._winning_proposal_id

    @property
    def tally(self) -> VoteTally | None:
        """Full tally result, or None until votes are tallied."""
        if self._tally is None:
            return None
        return self._tally.model_copy(deep=True)

    # ── Workflow transitions (admin only) ───────────────────────

    def start_proposals_registering(self, caller: str) -> None:
        """Open proposal registration and create the GENESIS proposal."""
        with self._lock:
            self._check_transition(caller, WorkflowStatus.PROPOSALS_REGISTRATION_STARTED)
            self._proposals.append(Proposal(id=0, description=GENESIS_DESCRIPTION))
            self._advance(WorkflowStatus.PROPOSALS_REGISTRATION_STARTED)

    def end_proposals_registering(self, caller: str) -> None:
        """Close proposal registration."""
        with self._lock:
            self._check_transition(caller, WorkflowStatus.PROPOSALS_REGISTRATION_ENDED)
            self._advance(WorkflowStatus.PROPOSALS_REGISTRATION_ENDED)

    def start_voting_session(self, caller: str) -> None:
        """Open the voting session."""
        with self._lock:
            self._check_transition(caller, WorkflowStatus.VOTING_SESSION_STARTED)
            self._advance(WorkflowStatus.VOTING_SESSION_STARTED)

    def end_voting_session(self, caller: str) -> None:
        """Close the voting session."""
        with self._lock:
            self._check_transition(caller, WorkflowStatus.VOTING_SESSION_ENDED)
            self._advance(WorkflowStatus.VOTING_SESSION_ENDED)

    def tally_votes(self, caller: str) -> int:
        """Count the votes, record the winner, and close the ballot.

        Returns:
            ID of the winning proposal.
        """
        with self._lock:
            self._check_transition(caller, WorkflowStatus.VOTES_TALLIED)
            tally = tally_votes(self._proposals)
            self._tally = tally
            self._winning_proposal_id = tally.winner
            self._advance(WorkflowStatus.VOTES_TALLIED)
            logger.info(
                "Ballot %s tallied: winner proposal %d (%d votes)",
                self._ballot_id,
                tally.winner,
                tally.counts.get(tally.winner, 0),
            )
            return tally.winner

    # ── Data operations ────────────────────────────────────────

    def add_voter(self, caller: str, identity: str) -> None:
        """Register ``identity`` as a voter (admin only)."""
        with self._lock:
            require_role(Role.ADMIN, caller, self._admin, self._voters)
            self._require_phase(
                WorkflowStatus.REGISTERING_VOTERS, _VOTER_REGISTRATION_CLOSED,
            )
            existing = self._voters.get(identity)
            if existing is not None and existing.is_registered:
                raise AlreadyRegisteredError(identity)

            self._voters[identity] = Voter(identity=identity, is_registered=True)
            self._touch()
            logger.info("Ballot %s: registered voter %s", self._ballot_id, identity)
            self._emit(EventType.VOTER_REGISTERED, voter=identity)

    def add_proposal(self, caller: str, description: str) -> int:
        """Submit a proposal (voters only).

        The description is stored exactly as given.

        Returns:
            ID assigned to the new proposal.
        """
        with self._lock:
            require_role(Role.VOTER, caller, self._admin, self._voters)
            self._require_phase(
                WorkflowStatus.PROPOSALS_REGISTRATION_STARTED, _PROPOSALS_NOT_ALLOWED,
            )
            if not description or not description.strip():
                raise EmptyProposalError()

            proposal_id = len(self._proposals)
            self._proposals.append(Proposal(id=proposal_id, description=description))
            self._touch()
            logger.info(
                "Ballot %s: %s registered proposal %d",
                self._ballot_id, caller, proposal_id,
            )
            self._emit(EventType.PROPOSAL_REGISTERED, proposal_id=proposal_id)
            return proposal_id

    def set_vote(self, caller: str, proposal_id: int) -> None:
        """Cast the caller's single vote for ``proposal_id`` (voters only)."""
        with self._lock:
            require_role(Role.VOTER, caller, self._admin, self._voters)
            self._require_phase(
                WorkflowStatus.VOTING_SESSION_STARTED, _VOTING_NOT_STARTED,
            )
            voter = self._voters[caller]
            if voter.has_voted:
                raise AlreadyVotedError(caller)
            proposal = self._find_proposal(proposal_id)

            proposal.vote_count += 1
            voter.has_voted = True
            voter.voted_proposal_id = proposal_id
            self._touch()
            logger.info(
                "Ballot %s: %s voted for proposal %d",
                self._ballot_id, caller, proposal_id,
            )
            self._emit(EventType.VOTED, voter=caller, proposal_id=proposal_id)

    # ── Read accessors ─────────────────────────────────────────

    def get_voter(self, caller: str, identity: str) -> Voter:
        """Look up a voter record (voters only).

        An identity that was never registered yields an unregistered
        record rather than an error.
        """
        with self._lock:
            require_role(Role.VOTER, caller, self._admin, self._voters)
            voter = self._voters.get(identity)
            if voter is None:
                return Voter(identity=identity)
            return voter.model_copy()

    def get_proposal(self, caller: str, proposal_id: int) -> Proposal:
        """Look up a proposal by ID (voters only)."""
        with self._lock:
            require_role(Role.VOTER, caller, self._admin, self._voters)
            return self._find_proposal(proposal_id).model_copy()

    def get_proposals(self, caller: str) -> list[Proposal]:
        """Return all proposals in ID order (voters only)."""
        with self._lock:
            require_role(Role.VOTER, caller, self._admin, self._voters)
            return [p.model_copy() for p in self._proposals]

    def get_winner(self) -> Proposal:
        """Return the winning proposal once votes are tallied."""
        with self._lock:
            self._require_phase(WorkflowStatus.VOTES_TALLIED, _NOT_TALLIED)
            return self._find_proposal(self._winning_proposal_id).model_copy()

    # ── Snapshots ──────────────────────────────────────────────

    def snapshot(self) -> BallotSnapshot:
        """Return a deep copy of the complete engine state."""
        with self._lock:
            return BallotSnapshot(
                ballot_id=self._ballot_id,
                admin=self._admin,
                status=self._status,
                voters={k: v.model_copy() for k, v in self._voters.items()},
                proposals=[p.model_copy() for p in self._proposals],
                winning_proposal_id=self._winning_proposal_id,
                created_at=self._created_at,
                updated_at=self._updated_at,
            )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: BallotSnapshot,
        emitter: BallotEventEmitter | None = None,
    ) -> BallotEngine:
        """Rebuild an engine from a snapshot produced by ``snapshot()``.

        Raises:
            ValueError: If the snapshot's proposal IDs are not 0..n-1 or a
                recorded vote or winner refers to a missing proposal.
        """
        snapshot.check_references()
        engine = cls(snapshot.admin, ballot_id=snapshot.ballot_id, emitter=emitter)
        engine._status = snapshot.status
        engine._voters = {k: v.model_copy() for k, v in snapshot.voters.items()}
        engine._proposals = [p.model_copy() for p in snapshot.proposals]
        engine._winning_proposal_id = snapshot.winning_proposal_id
        if snapshot.status is WorkflowStatus.VOTES_TALLIED:
            engine._tally = tally_votes(engine._proposals)
        engine._created_at = snapshot.created_at
        engine._updated_at = snapshot.updated_at
        return engine

    # ── Internals ──────────────────────────────────────────────

    def _check_transition(self, caller: str, target: WorkflowStatus) -> None:
        require_role(Role.ADMIN, caller, self._admin, self._voters)
        self._require_phase(ALLOWED_PREDECESSOR[target], TRANSITION_MESSAGES[target])

    def _require_phase(self, expected: WorkflowStatus, reason: str) -> None:
        if self._status is not expected:
            raise InvalidPhaseError(reason, expected=expected, actual=self._status)

    def _advance(self, target: WorkflowStatus) -> None:
        previous = self._status
        self._status = target
        self._touch()
        logger.info(
            "Ballot %s: %s -> %s", self._ballot_id, previous.name, target.name,
        )
        self._emit(
            EventType.WORKFLOW_STATUS_CHANGE,
            previous_status=int(previous),
            new_status=int(target),
        )

    def _find_proposal(self, proposal_id: object) -> Proposal:
        # bool is an int subclass but never a proposal ID
        if (
            not isinstance(proposal_id, int)
            or isinstance(proposal_id, bool)
            or not 0 <= proposal_id < len(self._proposals)
        ):
            raise ProposalNotFoundError(proposal_id)
        return self._proposals[proposal_id]

    def _touch(self) -> None:
        self._updated_at = datetime.now(UTC)

    def _emit(self, event_type: EventType, **data: object) -> None:
        if self._emitter is not None:
            self._emitter.emit(event_type, ballot_id=self._ballot_id, **data)
