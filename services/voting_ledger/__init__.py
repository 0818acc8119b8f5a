"""
Permissioned voting ledger.

This package contains the in-memory core of a voting session:
- Data models (WorkflowPhase, Voter, Proposal)
- Error taxonomy (LedgerError and its subclasses)
- Notifications (events and the EventLog)
- Components (WorkflowController, VoterRegistry, ProposalRegistry,
  BallotBox, TallyEngine) and the VotingLedger aggregate
"""

from .models import (
    WorkflowPhase,
    Voter,
    Proposal,
    GENESIS_DESCRIPTION,
    GENESIS_PROPOSAL_ID,
)
from .errors import (
    LedgerError,
    Unauthorized,
    PhaseViolation,
    InvalidTransition,
    AlreadyRegistered,
    DuplicateVote,
    ProposalNotFound,
    EmptyProposal,
)
from .events import (
    LedgerEvent,
    VoterRegistered,
    ProposalRegistered,
    PhaseChanged,
    Voted,
    EventLog,
)
from .workflow import WorkflowController
from .registry import VoterRegistry, ProposalRegistry
from .ballot_box import BallotBox
from .tally import TallyEngine, plurality_winner
from .ledger import VotingLedger

__all__ = [
    'WorkflowPhase',
    'Voter',
    'Proposal',
    'GENESIS_DESCRIPTION',
    'GENESIS_PROPOSAL_ID',
    'LedgerError',
    'Unauthorized',
    'PhaseViolation',
    'InvalidTransition',
    'AlreadyRegistered',
    'DuplicateVote',
    'ProposalNotFound',
    'EmptyProposal',
    'LedgerEvent',
    'VoterRegistered',
    'ProposalRegistered',
    'PhaseChanged',
    'Voted',
    'EventLog',
    'WorkflowController',
    'VoterRegistry',
    'ProposalRegistry',
    'BallotBox',
    'TallyEngine',
    'plurality_winner',
    'VotingLedger',
]

__version__ = '1.0.0'
