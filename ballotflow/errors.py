"""Ballot operation errors.

Every error rejects the whole operation: the engine state is left exactly
as it was and no event is emitted.
"""

from __future__ import annotations

from ballotflow.schemas.workflow import WorkflowStatus


class BallotError(Exception):
    """Base class for rejected ballot operations."""


class UnauthorizedError(BallotError):
    """Raised when the caller is not the ballot administrator."""

    def __init__(self, caller: str) -> None:
        self.caller = caller
        super().__init__("Caller is not the ballot administrator")


class InvalidPhaseError(BallotError):
    """Raised when an operation is attempted outside its workflow phase."""

    def __init__(
        self,
        reason: str,
        expected: WorkflowStatus,
        actual: WorkflowStatus,
    ) -> None:
        self.reason = reason
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{reason} (expected phase: {expected.label}; "
            f"current phase: {actual.label})"
        )


class AlreadyRegisteredError(BallotError):
    """Raised when the admin registers the same voter twice."""

    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__("Already registered")


class NotAVoterError(BallotError):
    """Raised when a voter-only operation is called by a non-voter."""

    def __init__(self, caller: str) -> None:
        self.caller = caller
        super().__init__("You're not a voter")


class AlreadyVotedError(BallotError):
    """Raised when a voter tries to vote a second time."""

    def __init__(self, voter: str) -> None:
        self.voter = voter
        super().__init__("You have already voted")


class ProposalNotFoundError(BallotError):
    """Raised when a proposal ID does not index an existing proposal."""

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__("Proposal not found")


class EmptyProposalError(BallotError):
    """Raised when a proposal description is empty or blank."""

    def __init__(self) -> None:
        super().__init__("Proposal description cannot be empty")
