"""Ballot box: one vote per registered voter, committed atomically."""
import logging
from dataclasses import replace

from .errors import DuplicateVote, MSG_VOTING_NOT_STARTED
from .events import EventLog, Voted
from .models import Voter, WorkflowPhase
from .registry import ProposalRegistry, VoterRegistry
from .workflow import WorkflowController

logger = logging.getLogger(__name__)


class BallotBox:
    """Records ballots against the voter and proposal registries."""

    def __init__(
        self,
        workflow: WorkflowController,
        voters: VoterRegistry,
        proposals: ProposalRegistry,
        events: EventLog,
    ):
        self._workflow = workflow
        self._voters = voters
        self._proposals = proposals
        self._events = events

    def vote(self, caller: str, proposal_id: int) -> Voter:
        """
        Cast the caller's single ballot for `proposal_id`.

        Raises:
            Unauthorized: caller is not a voter
            PhaseViolation: the voting session is not open
            DuplicateVote: caller has already voted
            ProposalNotFound: proposal_id does not reference a proposal

        Returns:
            The caller's updated voter record
        """
        voter = self._voters.require_voter(caller)
        self._workflow.require_phase(WorkflowPhase.VOTING_SESSION_STARTED, MSG_VOTING_NOT_STARTED)
        if voter.has_voted:
            raise DuplicateVote()
        proposal = self._proposals.lookup(proposal_id)

        # Both records are built before either is stored; nothing below can raise.
        ballot = replace(voter, has_voted=True, voted_proposal_id=proposal_id)
        counted = replace(proposal, vote_count=proposal.vote_count + 1)
        self._voters.put(caller, ballot)
        self._proposals.put(proposal_id, counted)

        logger.info(f"Vote recorded: voter={caller}, proposal_id={proposal_id}")
        self._events.append(Voted(voter=caller, proposal_id=proposal_id))
        return ballot
