"""Unit tests for ledger notifications and the event log."""

import logging

import pytest

from voting_ledger import (
    EventLog,
    PhaseChanged,
    ProposalRegistered,
    Unauthorized,
    Voted,
    VoterRegistered,
    WorkflowPhase,
)


class TestEventPayloads:
    """Tests for event serialization."""

    def test_voter_registered_to_dict(self):
        assert VoterRegistered(subject="account-1").to_dict() == {
            "event": "voter_registered",
            "subject": "account-1",
        }

    def test_phase_changed_serializes_ordinals(self):
        event = PhaseChanged(
            previous=WorkflowPhase.VOTING_SESSION_STARTED,
            next=WorkflowPhase.VOTING_SESSION_ENDED,
        )
        assert event.to_dict() == {"event": "phase_changed", "previous": 3, "next": 4}

    def test_voted_to_dict(self):
        assert Voted(voter="account-1", proposal_id=2).to_dict() == {
            "event": "voted",
            "voter": "account-1",
            "proposal_id": 2,
        }


class TestEventLog:
    """Tests for EventLog ordering and subscriptions."""

    def test_subscriber_receives_events_in_order(self):
        log = EventLog()
        received = []
        log.subscribe(received.append)

        log.append(VoterRegistered(subject="a"))
        log.append(ProposalRegistered(proposal_id=1))

        assert received == [VoterRegistered(subject="a"), ProposalRegistered(proposal_id=1)]
        assert list(log) == received

    def test_unsubscribe_stops_delivery(self):
        log = EventLog()
        received = []
        unsubscribe = log.subscribe(received.append)

        log.append(VoterRegistered(subject="a"))
        unsubscribe()
        log.append(VoterRegistered(subject="b"))

        assert received == [VoterRegistered(subject="a")]
        assert len(log) == 2

    def test_since_returns_tail(self):
        log = EventLog()
        for subject in ("a", "b", "c"):
            log.append(VoterRegistered(subject=subject))

        assert log.since(1) == [VoterRegistered(subject="b"), VoterRegistered(subject="c")]
        assert log.since(3) == []

    def test_failing_subscriber_does_not_block_others(self, caplog):
        log = EventLog()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        log.subscribe(broken)
        log.subscribe(received.append)

        with caplog.at_level(logging.ERROR, logger="voting_ledger.events"):
            log.append(VoterRegistered(subject="a"))

        assert received == [VoterRegistered(subject="a")]
        assert len(log) == 1
        assert "boom" in caplog.text


class TestLedgerNotifications:
    """One event per successful call, none for rejected ones."""

    def test_full_session_event_stream(self, voting_ended, authority, accounts):
        voting_ended.tally(authority)
        names = [event.name for event in voting_ended.events]

        assert names == (
            ["voter_registered"] * 4
            + ["phase_changed"]
            + ["proposal_registered"] * 4
            + ["phase_changed"] * 2
            + ["voted"] * 4
            + ["phase_changed"] * 2
        )

    def test_subscriber_sees_committed_state(self, voting, accounts):
        seen = []

        def observer(event):
            seen.append(voting.get_one_proposal(accounts[1], event.proposal_id).vote_count)

        voting.subscribe(observer)
        voting.vote(accounts[1], 3)

        assert seen == [1]

    def test_rejected_call_emits_nothing(self, voting, accounts):
        received = []
        voting.subscribe(received.append)

        with pytest.raises(Unauthorized):
            voting.vote(accounts[5], 1)

        assert received == []
