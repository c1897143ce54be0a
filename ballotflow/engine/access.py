"""Caller role checks.

A caller is an opaque identity. It holds the ADMIN role when it equals the
ballot's administrator, and the VOTER role when it is a registered voter
other than the administrator. The two roles never overlap.
"""

from __future__ import annotations

from enum import StrEnum

from ballotflow.errors import NotAVoterError, UnauthorizedError
from ballotflow.schemas.ballot import Voter


class Role(StrEnum):
    """Capability required by a ballot operation."""

    ADMIN = "admin"
    VOTER = "voter"


def has_role(
    role: Role,
    caller: str,
    admin: str,
    voters: dict[str, Voter],
) -> bool:
    """Return True if ``caller`` holds ``role`` on the ballot."""
    if role is Role.ADMIN:
        return caller == admin
    if caller == admin:
        return False
    voter = voters.get(caller)
    return voter is not None and voter.is_registered


def require_role(
    role: Role,
    caller: str,
    admin: str,
    voters: dict[str, Voter],
) -> None:
    """Raise unless ``caller`` holds ``role``.

    Raises:
        UnauthorizedError: ADMIN required and caller is not the admin.
        NotAVoterError: VOTER required and caller is not a registered voter.
    """
    if has_role(role, caller, admin, voters):
        return
    if role is Role.ADMIN:
        raise UnauthorizedError(caller)
    raise NotAVoterError(caller)
