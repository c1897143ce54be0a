"""Workflow status schema for the ballot lifecycle.

Defines the six ordered phases of a ballot, the allowed-predecessor table
that governs every transition, and the phase messages reported when an
operation is attempted in the wrong phase.
"""

from __future__ import annotations

from enum import IntEnum


class WorkflowStatus(IntEnum):
    """Phase of the ballot lifecycle.

    Integer-backed so phases compare by their position in the workflow.
    Transitions only ever move forward by exactly one step.
    """

    REGISTERING_VOTERS = 0
    PROPOSALS_REGISTRATION_STARTED = 1
    PROPOSALS_REGISTRATION_ENDED = 2
    VOTING_SESSION_STARTED = 3
    VOTING_SESSION_ENDED = 4
    VOTES_TALLIED = 5

    @property
    def label(self) -> str:
        """Human-readable phase name (e.g. 'Voting session started')."""
        return self.name.replace("_", " ").capitalize()

    @property
    def is_terminal(self) -> bool:
        return self is WorkflowStatus.VOTES_TALLIED


# Target status → the only status it may be entered from
ALLOWED_PREDECESSOR: dict[WorkflowStatus, WorkflowStatus] = {
    WorkflowStatus.PROPOSALS_REGISTRATION_STARTED: WorkflowStatus.REGISTERING_VOTERS,
    WorkflowStatus.PROPOSALS_REGISTRATION_ENDED: WorkflowStatus.PROPOSALS_REGISTRATION_STARTED,
    WorkflowStatus.VOTING_SESSION_STARTED: WorkflowStatus.PROPOSALS_REGISTRATION_ENDED,
    WorkflowStatus.VOTING_SESSION_ENDED: WorkflowStatus.VOTING_SESSION_STARTED,
    WorkflowStatus.VOTES_TALLIED: WorkflowStatus.VOTING_SESSION_ENDED,
}

# Rejection message for each transition target, keyed like ALLOWED_PREDECESSOR
TRANSITION_MESSAGES: dict[WorkflowStatus, str] = {
    WorkflowStatus.PROPOSALS_REGISTRATION_STARTED: (
        "Registering proposals can't be started now"
    ),
    WorkflowStatus.PROPOSALS_REGISTRATION_ENDED: (
        "Registering proposals haven't started yet"
    ),
    WorkflowStatus.VOTING_SESSION_STARTED: (
        "Registering proposals phase is not finished"
    ),
    WorkflowStatus.VOTING_SESSION_ENDED: "Voting session haven't started yet",
    WorkflowStatus.VOTES_TALLIED: "Current status is not voting session ended",
}


def can_transition(current: WorkflowStatus, target: WorkflowStatus) -> bool:
    """Return True if ``target`` may be entered from ``current``."""
    return ALLOWED_PREDECESSOR.get(target) is current


def next_status(current: WorkflowStatus) -> WorkflowStatus | None:
    """Return the status that follows ``current``, or None when terminal."""
    if current.is_terminal:
        return None
    return WorkflowStatus(current + 1)
