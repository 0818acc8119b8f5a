"""Pytest fixtures shared by the unit and integration tests.

Ledger fixtures are provided at each workflow phase so that tests can start
from the phase they exercise. The authority is "owner"; "account-1".."account-5"
are ordinary principals.
"""

from typing import Callable, List

import pytest

from voting_ledger import VotingLedger

AUTHORITY = "owner"
ACCOUNTS = [AUTHORITY] + [f"account-{i}" for i in range(1, 6)]


@pytest.fixture
def authority() -> str:
    return AUTHORITY


@pytest.fixture
def accounts() -> List[str]:
    """accounts[0] is the authority; accounts[1..5] are ordinary principals."""
    return list(ACCOUNTS)


@pytest.fixture
def ledger() -> VotingLedger:
    """Fresh ledger in RegisteringVoters."""
    return VotingLedger(AUTHORITY)


@pytest.fixture
def registering_proposals(ledger: VotingLedger, accounts: List[str]) -> VotingLedger:
    """accounts[1..4] enrolled, proposal registration open."""
    for subject in accounts[1:5]:
        ledger.enroll(AUTHORITY, subject)
    ledger.start_proposals_registering(AUTHORITY)
    return ledger


@pytest.fixture
def voting(registering_proposals: VotingLedger, accounts: List[str]) -> VotingLedger:
    """Proposals "Test 1".."Test 4" (ids 1..4) registered, voting open."""
    ledger = registering_proposals
    for i, subject in enumerate(accounts[1:5], start=1):
        ledger.add_proposal(subject, f"Test {i}")
    ledger.end_proposals_registering(AUTHORITY)
    ledger.start_voting_session(AUTHORITY)
    return ledger


@pytest.fixture
def voting_ended(voting: VotingLedger, accounts: List[str]) -> VotingLedger:
    """Ballots 1, 1, 2, 3 cast by accounts[1..4], voting closed."""
    voting.vote(accounts[1], 1)
    voting.vote(accounts[2], 1)
    voting.vote(accounts[3], 2)
    voting.vote(accounts[4], 3)
    voting.end_voting_session(AUTHORITY)
    return voting


@pytest.fixture
def assert_unchanged() -> Callable:
    """Return a checker asserting a rejected call left the ledger untouched.

    Usage:
        check = assert_unchanged(ledger)
        with pytest.raises(...): ...
        check()
    """
    def _capture(ledger: VotingLedger) -> Callable[[], None]:
        before = ledger.snapshot()
        event_count = len(ledger.events)

        def _check() -> None:
            assert ledger.snapshot() == before
            assert len(ledger.events) == event_count

        return _check

    return _capture


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "api: mark test as exercising the HTTP service in-process"
    )
    config.addinivalue_line(
        "markers",
        "scenario: mark test as a full voting-session scenario"
    )
