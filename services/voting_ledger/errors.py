"""
Rejections raised by the voting ledger.

Every rejection is raised before any state is touched, so a caller that
catches a LedgerError can rely on the ledger being exactly as it was.
"""
from typing import Optional


# Caller-facing messages. Collaborators pattern-match on this wording.
MSG_NOT_A_VOTER = "You're not a voter"
MSG_NOT_OWNER = "caller is not the owner"
MSG_REGISTRATION_CLOSED = "Voters registration is not open yet"
MSG_ALREADY_REGISTERED = "Already registered"
MSG_PROPOSALS_NOT_ALLOWED = "Proposals are not allowed yet"
MSG_EMPTY_PROPOSAL = "You cannot propose nothing"
MSG_PROPOSAL_NOT_FOUND = "Proposal not found"
MSG_VOTING_NOT_STARTED = "Voting session havent started yet"
MSG_ALREADY_VOTED = "You have already voted"
MSG_NOT_VOTING_ENDED = "Current status is not voting session ended"
MSG_CANT_START_PROPOSALS = "Registering proposals cant be started now"
MSG_PROPOSALS_NOT_STARTED = "Registering proposals havent started yet"
MSG_PROPOSALS_NOT_FINISHED = "Registering proposals phase is not finished"
MSG_WORKFLOW_COMPLETE = "Workflow is already complete"


class LedgerError(Exception):
    """Base class for every rejection raised by the ledger."""

    code = "LedgerError"
    default_message = "Operation rejected"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(LedgerError):
    """The caller is not the principal the operation requires."""
    code = "Unauthorized"
    default_message = MSG_NOT_A_VOTER


class PhaseViolation(LedgerError):
    """The operation is not allowed in the current workflow phase."""
    code = "PhaseViolation"


class InvalidTransition(PhaseViolation):
    """The workflow cannot advance from its current phase."""
    code = "InvalidTransition"
    default_message = MSG_WORKFLOW_COMPLETE


class AlreadyRegistered(LedgerError):
    code = "AlreadyRegistered"
    default_message = MSG_ALREADY_REGISTERED


class DuplicateVote(LedgerError):
    code = "DuplicateVote"
    default_message = MSG_ALREADY_VOTED


class ProposalNotFound(LedgerError):
    code = "ProposalNotFound"
    default_message = MSG_PROPOSAL_NOT_FOUND


class EmptyProposal(LedgerError):
    code = "EmptyProposal"
    default_message = MSG_EMPTY_PROPOSAL
