"""Smoke test: verify the public API imports without error."""


def test_engine_import():
    from ballotflow import BallotEngine, Role, tally_votes
    assert BallotEngine is not None
    assert Role is not None
    assert tally_votes is not None


def test_error_import():
    from ballotflow import (
        AlreadyRegisteredError,
        AlreadyVotedError,
        BallotError,
        EmptyProposalError,
        InvalidPhaseError,
        NotAVoterError,
        ProposalNotFoundError,
        UnauthorizedError,
    )
    for error in (
        AlreadyRegisteredError,
        AlreadyVotedError,
        EmptyProposalError,
        InvalidPhaseError,
        NotAVoterError,
        ProposalNotFoundError,
        UnauthorizedError,
    ):
        assert issubclass(error, BallotError)


def test_persistence_import():
    from ballotflow.persistence import BallotStore, close_db, init_db
    assert BallotStore is not None
    assert init_db is not None
    assert close_db is not None


def test_version():
    from ballotflow import __version__
    assert __version__ == "0.1.0"
