"""Ballot engine for Ballotflow.

Provides the workflow state machine, caller role checks, and vote
tallying with earliest-proposal tie resolution.
"""

from ballotflow.engine.access import Role, has_role, require_role
from ballotflow.engine.ballot import BallotEngine
from ballotflow.engine.tally import select_winner, tally_votes

__all__ = [
    "BallotEngine",
    "Role",
    "has_role",
    "require_role",
    "select_winner",
    "tally_votes",
]
