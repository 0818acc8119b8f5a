"""
Core data models for the voting ledger.

This module contains:
- WorkflowPhase: the ordered phases of a voting session
- Voter: per-principal enrollment and ballot status
- Proposal: a registered proposal and its running vote count
"""

from dataclasses import dataclass, asdict
from enum import IntEnum
from typing import Optional, Dict, Any


# Description of the reserved proposal created with every ledger
GENESIS_DESCRIPTION = "GENESIS"

# Identifier of the reserved blank/abstain proposal
GENESIS_PROPOSAL_ID = 0


class WorkflowPhase(IntEnum):
    """Phases of a voting session, in the only order they may occur."""
    REGISTERING_VOTERS = 0
    PROPOSALS_REGISTRATION_STARTED = 1
    PROPOSALS_REGISTRATION_ENDED = 2
    VOTING_SESSION_STARTED = 3
    VOTING_SESSION_ENDED = 4
    VOTES_TALLIED = 5

    @property
    def label(self) -> str:
        """CamelCase name used on the wire (e.g. 'VotingSessionStarted')."""
        return "".join(part.capitalize() for part in self.name.split("_"))

    @property
    def is_terminal(self) -> bool:
        return self is WorkflowPhase.VOTES_TALLIED

    def next(self) -> Optional['WorkflowPhase']:
        """Return the phase that follows this one, or None when terminal."""
        if self.is_terminal:
            return None
        return WorkflowPhase(self.value + 1)


@dataclass(frozen=True)
class Voter:
    """
    Enrollment and ballot status of one principal.

    Attributes:
        is_registered: Set once by the administrative authority
        has_voted: Set once by a successful vote
        voted_proposal_id: Proposal chosen by the vote (meaningless until has_voted)
    """
    is_registered: bool = False
    has_voted: bool = False
    voted_proposal_id: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True)
class Proposal:
    """
    A proposal open to vote.

    Attributes:
        description: Free text supplied by the proposing voter
        vote_count: Number of ballots cast for this proposal
    """
    description: str
    vote_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


# Record returned for principals that were never enrolled
ABSENT_VOTER = Voter()
