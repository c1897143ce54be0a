"""Ballotflow: single-organizer ballot workflow engine."""

__version__ = "0.1.0"

from ballotflow.engine import BallotEngine, Role, tally_votes
from ballotflow.errors import (
    AlreadyRegisteredError,
    AlreadyVotedError,
    BallotError,
    EmptyProposalError,
    InvalidPhaseError,
    NotAVoterError,
    ProposalNotFoundError,
    UnauthorizedError,
)
from ballotflow.events import BallotEvent, BallotEventEmitter, EventType
from ballotflow.schemas import (
    BallotSnapshot,
    Proposal,
    Voter,
    VoteTally,
    WorkflowStatus,
)

__all__ = [
    # Engine
    "BallotEngine", "Role", "tally_votes",
    # Schemas
    "BallotSnapshot", "Proposal", "Voter", "VoteTally", "WorkflowStatus",
    # Events
    "BallotEvent", "BallotEventEmitter", "EventType",
    # Errors
    "AlreadyRegisteredError",
    "AlreadyVotedError",
    "BallotError",
    "EmptyProposalError",
    "InvalidPhaseError",
    "NotAVoterError",
    "ProposalNotFoundError",
    "UnauthorizedError",
]
