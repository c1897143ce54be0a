"""Ballot state schemas.

Defines the records owned by a ballot engine (Voter, Proposal), the
result of counting votes (VoteTally), the full serializable engine state
(BallotSnapshot), and the lightweight listing row (BallotSummary).
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field, model_validator

from ballotflow.schemas.workflow import WorkflowStatus

GENESIS_DESCRIPTION = "GENESIS"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Voter(BaseModel):
    """A registered voter and the vote they cast, if any."""

    identity: str = Field(description="Opaque caller identity of the voter")
    is_registered: bool = Field(
        default=False, description="Whether the admin registered this identity",
    )
    has_voted: bool = Field(default=False, description="Whether a vote was cast")
    voted_proposal_id: int = Field(
        default=0, ge=0, description="Proposal the voter voted for (0 if none)",
    )


class Proposal(BaseModel):
    """A proposal submitted during the proposal-registration phase."""

    id: int = Field(ge=0, description="Sequential proposal ID (0 = GENESIS)")
    description: str = Field(description="Proposal text as submitted")
    vote_count: int = Field(default=0, ge=0, description="Votes received")


class VoteTally(BaseModel):
    """Result of counting votes across all proposals.

    The winner is the proposal with the most votes; on a tie the
    lowest proposal ID wins.
    """

    counts: dict[int, int] = Field(
        default_factory=dict,
        description="Proposal ID → number of votes received",
    )
    winner: int = Field(
        default=0, description="ID of the winning proposal",
    )
    is_tie: bool = Field(
        default=False, description="Whether several proposals share the top count",
    )
    tied_options: list[int] = Field(
        default_factory=list,
        description="Proposal IDs tied for first place, ascending (empty if no tie)",
    )


class BallotSnapshot(BaseModel):
    """Complete state of one ballot engine.

    Produced by ``BallotEngine.snapshot()`` and accepted by
    ``BallotEngine.from_snapshot()``; this is what the store persists.
    """

    ballot_id: str = Field(description="Unique ballot identifier (UUID)")
    admin: str = Field(description="Identity of the ballot administrator")
    status: WorkflowStatus = Field(
        default=WorkflowStatus.REGISTERING_VOTERS,
        description="Current workflow phase",
    )
    voters: dict[str, Voter] = Field(
        default_factory=dict, description="Identity → voter record",
    )
    proposals: list[Proposal] = Field(
        default_factory=list, description="Proposals in ID order",
    )
    winning_proposal_id: int | None = Field(
        default=None, description="Winner ID, set once votes are tallied",
    )
    created_at: datetime = Field(
        default_factory=_utcnow, description="When the ballot was created",
    )
    updated_at: datetime = Field(
        default_factory=_utcnow, description="When the ballot last changed",
    )

    @model_validator(mode="after")
    def validate_references(self) -> BallotSnapshot:
        self.check_references()
        return self

    def check_references(self) -> None:
        """Raise ValueError unless proposal IDs run 0..n-1 in order and every
        recorded vote and the winner point at an existing proposal.
        """
        ids = [p.id for p in self.proposals]
        if ids != list(range(len(ids))):
            raise ValueError(f"Proposal IDs must be sequential from 0, got {ids}")
        for voter in self.voters.values():
            if voter.has_voted and voter.voted_proposal_id >= len(ids):
                raise ValueError(
                    f"Voter {voter.identity!r} voted for unknown proposal "
                    f"{voter.voted_proposal_id}"
                )
        winner = self.winning_proposal_id
        if winner is not None and not 0 <= winner < len(ids):
            raise ValueError(f"Winning proposal {winner} does not exist")


class BallotSummary(BaseModel):
    """Lightweight ballot summary for listing."""

    ballot_id: str = Field(description="Unique ballot identifier")
    admin: str = Field(description="Ballot administrator")
    status: WorkflowStatus = Field(description="Current workflow phase")
    voter_count: int = Field(default=0, description="Registered voters")
    proposal_count: int = Field(
        default=0, description="Submitted proposals, excluding GENESIS",
    )
    votes_cast: int = Field(default=0, description="Votes cast so far")
    winning_proposal_id: int | None = Field(
        default=None, description="Winner ID if tallied",
    )
    created_at: datetime = Field(description="When the ballot was created")
    updated_at: datetime = Field(description="When the ballot last changed")
