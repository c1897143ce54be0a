"""Vote tallying and winner selection.

The winner is found by scanning proposals in ascending ID order and
keeping the first proposal that reaches the highest vote count, so an
exact tie always goes to the earliest proposal.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ballotflow.schemas.ballot import Proposal, VoteTally

logger = logging.getLogger(__name__)


def select_winner(proposals: Iterable[Proposal]) -> int:
    """Return the ID of the earliest proposal with the most votes.

    Only a strictly higher count replaces the current leader. With no
    votes at all the first proposal scanned (GENESIS, ID 0) wins.
    """
    winner = 0
    best = 0
    for proposal in sorted(proposals, key=lambda p: p.id):
        if proposal.vote_count > best:
            best = proposal.vote_count
            winner = proposal.id
    return winner


def tally_votes(proposals: list[Proposal]) -> VoteTally:
    """Count votes and identify the winner and any tie for first place.

    Args:
        proposals: All proposals of the ballot, including GENESIS.

    Returns:
        VoteTally with counts, winner, and tie info.
    """
    counts = {p.id: p.vote_count for p in sorted(proposals, key=lambda p: p.id)}
    winner = select_winner(proposals)

    if not counts:
        return VoteTally(counts={}, winner=winner, is_tie=False, tied_options=[])

    max_count = max(counts.values())
    leaders = [pid for pid, c in counts.items() if c == max_count]

    if len(leaders) > 1:
        logger.debug("Tie between proposals %s, earliest wins: %d", leaders, winner)
        return VoteTally(
            counts=counts,
            winner=winner,
            is_tie=True,
            tied_options=leaders,
        )

    return VoteTally(counts=counts, winner=winner, is_tie=False, tied_options=[])
