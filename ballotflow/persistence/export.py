"""Ballot export formatters.

Provides JSON and Markdown export functions for ballot snapshots.
"""

from __future__ import annotations

from ballotflow.schemas.ballot import BallotSnapshot


def export_json(snapshot: BallotSnapshot) -> str:
    """Export a ballot snapshot as a formatted JSON string.

    Returns:
        Pretty-printed JSON string of the full ballot state.
    """
    return snapshot.model_dump_json(indent=2)


def export_markdown(snapshot: BallotSnapshot) -> str:
    """Export a ballot snapshot as a human-readable Markdown report.

    Generates sections for ballot metadata, proposals with their vote
    counts, the registered voters, and the result once tallied.

    Returns:
        Markdown-formatted string.
    """
    lines: list[str] = []

    lines.append(f"# Ballot Report: {snapshot.ballot_id}")
    lines.append("")

    # Metadata
    lines.append("## Metadata")
    lines.append("")
    lines.append(f"- **Admin:** {snapshot.admin}")
    lines.append(f"- **Status:** {snapshot.status.label} ({int(snapshot.status)})")
    lines.append(f"- **Created:** {snapshot.created_at.isoformat()}")
    lines.append(f"- **Updated:** {snapshot.updated_at.isoformat()}")
    votes_cast = sum(1 for v in snapshot.voters.values() if v.has_voted)
    lines.append(f"- **Voters:** {len(snapshot.voters)} ({votes_cast} voted)")
    lines.append("")

    # Proposals
    if snapshot.proposals:
        lines.append("## Proposals")
        lines.append("")
        lines.append("| ID | Description | Votes |")
        lines.append("|----|-------------|-------|")
        for p in snapshot.proposals:
            marker = " **(winner)**" if p.id == snapshot.winning_proposal_id else ""
            description = p.description.replace("|", "\\|")
            lines.append(f"| {p.id} | {description}{marker} | {p.vote_count} |")
        lines.append("")

    # Voters
    if snapshot.voters:
        lines.append("## Voters")
        lines.append("")
        for voter in snapshot.voters.values():
            if voter.has_voted:
                lines.append(
                    f"- {voter.identity}: voted for proposal {voter.voted_proposal_id}"
                )
            else:
                lines.append(f"- {voter.identity}: has not voted")
        lines.append("")

    # Result
    if snapshot.winning_proposal_id is not None:
        lines.append("## Result")
        lines.append("")
        winner = next(
            (p for p in snapshot.proposals if p.id == snapshot.winning_proposal_id),
            None,
        )
        if winner is not None:
            lines.append(
                f"Winning proposal: **{winner.id}** ({winner.description}, "
                f"{winner.vote_count} votes)"
            )
        else:
            lines.append(f"Winning proposal: **{snapshot.winning_proposal_id}**")
        lines.append("")

    return "\n".join(lines)
