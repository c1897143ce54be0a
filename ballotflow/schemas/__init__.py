"""Ballotflow schema definitions.

All Pydantic v2 models and enums shared by the engine, store, and CLI.
"""

from ballotflow.schemas.ballot import (
    GENESIS_DESCRIPTION,
    BallotSnapshot,
    BallotSummary,
    Proposal,
    Voter,
    VoteTally,
)
from ballotflow.schemas.workflow import (
    ALLOWED_PREDECESSOR,
    TRANSITION_MESSAGES,
    WorkflowStatus,
    can_transition,
    next_status,
)

__all__ = [
    "ALLOWED_PREDECESSOR",
    "BallotSnapshot",
    "BallotSummary",
    "GENESIS_DESCRIPTION",
    "Proposal",
    "TRANSITION_MESSAGES",
    "VoteTally",
    "Voter",
    "WorkflowStatus",
    "can_transition",
    "next_status",
]
