"""
Voter and proposal registries.

Both registries are read and written only through the principal passed to
each call. Every read or write other than enrollment requires the caller to
be a registered voter; the administrative authority is no exception and must
enroll itself to take part.
"""
import logging
from typing import Dict, List

from .errors import (
    AlreadyRegistered,
    EmptyProposal,
    PhaseViolation,
    ProposalNotFound,
    Unauthorized,
    MSG_ALREADY_REGISTERED,
    MSG_NOT_A_VOTER,
    MSG_PROPOSALS_NOT_ALLOWED,
    MSG_REGISTRATION_CLOSED,
)
from .events import EventLog, ProposalRegistered, VoterRegistered
from .models import ABSENT_VOTER, GENESIS_DESCRIPTION, Proposal, Voter, WorkflowPhase
from .workflow import WorkflowController

logger = logging.getLogger(__name__)


class VoterRegistry:
    """Mapping of principal -> Voter record. Records are never deleted."""

    def __init__(self, workflow: WorkflowController, events: EventLog):
        self._workflow = workflow
        self._events = events
        self._voters: Dict[str, Voter] = {}

    def enroll(self, caller: str, subject: str) -> Voter:
        """
        Register `subject` as a voter.

        Raises:
            Unauthorized: caller is not the administrative authority
            PhaseViolation: voter registration is closed
            AlreadyRegistered: subject is already a voter
        """
        self._workflow.require_authority(caller)
        self._workflow.require_phase(WorkflowPhase.REGISTERING_VOTERS, MSG_REGISTRATION_CLOSED)
        if not subject:
            raise ValueError("subject principal is required")
        if self.is_registered(subject):
            raise AlreadyRegistered(MSG_ALREADY_REGISTERED)

        voter = Voter(is_registered=True)
        self._voters[subject] = voter
        logger.info(f"Voter registered: {subject}")
        self._events.append(VoterRegistered(subject=subject))
        return voter

    def get_voter(self, caller: str, subject: str) -> Voter:
        """Return the record of `subject` (default record if never enrolled)."""
        self.require_voter(caller)
        return self.lookup(subject)

    def is_registered(self, subject: str) -> bool:
        return self.lookup(subject).is_registered

    def require_voter(self, caller: str) -> Voter:
        """Return the caller's record, raising Unauthorized if not enrolled."""
        voter = self.lookup(caller)
        if not voter.is_registered:
            logger.debug(f"Rejected {caller!r}: not a voter")
            raise Unauthorized(MSG_NOT_A_VOTER)
        return voter

    def lookup(self, subject: str) -> Voter:
        return self._voters.get(subject, ABSENT_VOTER)

    def put(self, subject: str, voter: Voter) -> None:
        """Replace an enrolled voter's record (ballot box commit)."""
        self._voters[subject] = voter

    def snapshot(self) -> Dict[str, Voter]:
        return dict(self._voters)

    def __len__(self) -> int:
        return len(self._voters)


class ProposalRegistry:
    """
    Ordered, append-only sequence of proposals.

    Index 0 is the reserved blank/abstain proposal created with the registry,
    so the first proposal submitted by a voter receives identifier 1.
    """

    def __init__(
        self,
        workflow: WorkflowController,
        voters: VoterRegistry,
        events: EventLog,
        genesis_description: str = GENESIS_DESCRIPTION,
    ):
        if not genesis_description:
            raise ValueError("genesis proposal needs a description")
        self._workflow = workflow
        self._voters = voters
        self._events = events
        self._proposals: List[Proposal] = [Proposal(description=genesis_description)]

    def add_proposal(self, caller: str, description: str) -> int:
        """
        Append a proposal and return its identifier.

        Raises:
            Unauthorized: caller is not a voter
            EmptyProposal: description is empty
            PhaseViolation: proposal registration is not open
        """
        self._voters.require_voter(caller)
        if not description:
            raise EmptyProposal()
        self._workflow.require_phase(
            WorkflowPhase.PROPOSALS_REGISTRATION_STARTED, MSG_PROPOSALS_NOT_ALLOWED
        )

        self._proposals.append(Proposal(description=description))
        proposal_id = len(self._proposals) - 1
        logger.info(f"Proposal {proposal_id} registered by {caller}")
        self._events.append(ProposalRegistered(proposal_id=proposal_id))
        return proposal_id

    def get_one_proposal(self, caller: str, proposal_id: int) -> Proposal:
        self._voters.require_voter(caller)
        return self.lookup(proposal_id)

    def get_proposals(self, caller: str) -> List[Proposal]:
        self._voters.require_voter(caller)
        return list(self._proposals)

    def lookup(self, proposal_id: int) -> Proposal:
        """Return the proposal, raising ProposalNotFound when out of bounds."""
        if not self.exists(proposal_id):
            raise ProposalNotFound()
        return self._proposals[proposal_id]

    def exists(self, proposal_id: int) -> bool:
        return 0 <= proposal_id < len(self._proposals)

    def put(self, proposal_id: int, proposal: Proposal) -> None:
        """Replace an existing proposal record (ballot box commit)."""
        self._proposals[proposal_id] = proposal

    def snapshot(self) -> List[Proposal]:
        return list(self._proposals)

    def __len__(self) -> int:
        return len(self._proposals)
