"""
VotingLedger: the aggregate exposing every ledger operation.

The caller principal is an explicit argument of each operation; the ledger
never looks it up from ambient context. Authentication of that principal is
the host's responsibility.
"""
import logging
import threading
from typing import Any, Callable, Dict, List

from .ballot_box import BallotBox
from .events import EventLog, LedgerEvent
from .models import GENESIS_DESCRIPTION, Proposal, Voter, WorkflowPhase
from .registry import ProposalRegistry, VoterRegistry
from .tally import TallyEngine
from .workflow import WorkflowController

logger = logging.getLogger(__name__)


class VotingLedger:
    """
    Permissioned voting session.

    Each public call runs to completion under a single lock: it either
    commits all of its effects and appends one event, or raises a
    LedgerError having changed nothing. The workflow controller is private:
    VotesTallied is reached only through tally().

    Args:
        authority: Principal allowed to enroll voters and advance phases
        genesis_description: Description of the reserved proposal 0
    """

    def __init__(self, authority: str, genesis_description: str = GENESIS_DESCRIPTION):
        self._lock = threading.RLock()
        self.events = EventLog()
        self._workflow = WorkflowController(authority, self.events)
        self.voters = VoterRegistry(self._workflow, self.events)
        self.proposals = ProposalRegistry(
            self._workflow, self.voters, self.events, genesis_description
        )
        self.ballot_box = BallotBox(self._workflow, self.voters, self.proposals, self.events)
        self.tally_engine = TallyEngine(self._workflow, self.proposals)
        logger.info(f"Voting ledger created for authority {authority}")

    @property
    def authority(self) -> str:
        return self._workflow.authority

    # Workflow

    def current_phase(self) -> WorkflowPhase:
        return self._workflow.current_phase()

    def start_proposals_registering(self, caller: str) -> WorkflowPhase:
        with self._lock:
            return self._workflow.start_proposals_registering(caller)

    def end_proposals_registering(self, caller: str) -> WorkflowPhase:
        with self._lock:
            return self._workflow.end_proposals_registering(caller)

    def start_voting_session(self, caller: str) -> WorkflowPhase:
        with self._lock:
            return self._workflow.start_voting_session(caller)

    def end_voting_session(self, caller: str) -> WorkflowPhase:
        with self._lock:
            return self._workflow.end_voting_session(caller)

    # Voters

    def enroll(self, caller: str, subject: str) -> Voter:
        with self._lock:
            return self.voters.enroll(caller, subject)

    def get_voter(self, caller: str, subject: str) -> Voter:
        with self._lock:
            return self.voters.get_voter(caller, subject)

    def voter_count(self) -> int:
        return len(self.voters)

    # Proposals

    def add_proposal(self, caller: str, description: str) -> int:
        with self._lock:
            return self.proposals.add_proposal(caller, description)

    def get_one_proposal(self, caller: str, proposal_id: int) -> Proposal:
        with self._lock:
            return self.proposals.get_one_proposal(caller, proposal_id)

    def get_proposals(self, caller: str) -> List[Proposal]:
        with self._lock:
            return self.proposals.get_proposals(caller)

    def proposal_count(self) -> int:
        return len(self.proposals)

    # Ballots and tally

    def vote(self, caller: str, proposal_id: int) -> Voter:
        with self._lock:
            return self.ballot_box.vote(caller, proposal_id)

    def tally(self, caller: str) -> int:
        with self._lock:
            return self.tally_engine.tally(caller)

    def winning_proposal_id(self) -> int:
        return self.tally_engine.winning_proposal_id()

    # Notifications

    def subscribe(self, callback: Callable[[LedgerEvent], None]) -> Callable[[], None]:
        return self.events.subscribe(callback)

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of the whole ledger state."""
        with self._lock:
            return {
                "phase": int(self._workflow.current_phase()),
                "voters": {
                    subject: voter.to_dict()
                    for subject, voter in self.voters.snapshot().items()
                },
                "proposals": [p.to_dict() for p in self.proposals.snapshot()],
                "winning_proposal_id": self.tally_engine.winning_proposal_id(),
            }
