"""
Tally engine.

Plurality count over the proposal sequence. Proposals are scanned in
ascending identifier order and only a strictly greater count replaces the
current leader, so ties go to the lowest identifier. With no ballots at all
the reserved proposal 0 wins.
"""
import logging
from typing import Sequence

from .errors import MSG_NOT_VOTING_ENDED
from .models import GENESIS_PROPOSAL_ID, Proposal, WorkflowPhase
from .registry import ProposalRegistry
from .workflow import WorkflowController

logger = logging.getLogger(__name__)


def plurality_winner(proposals: Sequence[Proposal]) -> int:
    """
    Return the identifier of the proposal with the most votes.

    Args:
        proposals: Proposals in identifier order

    Returns:
        int: Index of the first proposal reaching the highest vote_count
    """
    winning_id = GENESIS_PROPOSAL_ID
    winning_count = 0
    for proposal_id, proposal in enumerate(proposals):
        if proposal.vote_count > winning_count:
            winning_id = proposal_id
            winning_count = proposal.vote_count
    return winning_id


class TallyEngine:
    """Computes and caches the winning proposal once voting has closed."""

    def __init__(self, workflow: WorkflowController, proposals: ProposalRegistry):
        self._workflow = workflow
        self._proposals = proposals
        self._winning_proposal_id = GENESIS_PROPOSAL_ID

    def tally(self, caller: str) -> int:
        """
        Compute the winner, cache it and move the workflow to VotesTallied.

        Raises:
            Unauthorized: caller is not the administrative authority
            PhaseViolation: the voting session has not ended (or was already tallied)
        """
        self._workflow.require_authority(caller)
        self._workflow.require_phase(WorkflowPhase.VOTING_SESSION_ENDED, MSG_NOT_VOTING_ENDED)

        winner = plurality_winner(self._proposals.snapshot())
        self._winning_proposal_id = winner
        logger.info(f"Votes tallied: winning proposal {winner}")
        self._workflow.advance(caller)
        return winner

    def winning_proposal_id(self) -> int:
        """Cached winner; 0 until tally() has run."""
        return self._winning_proposal_id
