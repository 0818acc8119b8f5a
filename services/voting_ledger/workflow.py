"""
Workflow controller: the phase state machine of a voting session.

The controller owns the session's configuration and phase (the administrative
authority and the current WorkflowPhase). The registries, ballot box and
tally engine hold a reference to it and ask it for authorization and phase
checks before mutating anything.

Phases move forward one step per call and never regress:

    RegisteringVoters -> ProposalsRegistrationStarted -> ProposalsRegistrationEnded
        -> VotingSessionStarted -> VotingSessionEnded -> VotesTallied
"""
import logging
from typing import Type

from .errors import (
    InvalidTransition,
    PhaseViolation,
    Unauthorized,
    MSG_CANT_START_PROPOSALS,
    MSG_NOT_OWNER,
    MSG_PROPOSALS_NOT_FINISHED,
    MSG_PROPOSALS_NOT_STARTED,
    MSG_VOTING_NOT_STARTED,
    MSG_WORKFLOW_COMPLETE,
)
from .events import EventLog, PhaseChanged
from .models import WorkflowPhase

logger = logging.getLogger(__name__)


class WorkflowController:
    """Authority-gated, forward-only phase state machine."""

    def __init__(self, authority: str, events: EventLog):
        if not authority:
            raise ValueError("authority principal is required")
        self._authority = authority
        self._phase = WorkflowPhase.REGISTERING_VOTERS
        self._events = events

    @property
    def authority(self) -> str:
        return self._authority

    def current_phase(self) -> WorkflowPhase:
        return self._phase

    def is_authority(self, caller: str) -> bool:
        return caller == self._authority

    def require_authority(self, caller: str) -> None:
        """Raise Unauthorized unless `caller` is the administrative authority."""
        if not self.is_authority(caller):
            logger.debug(f"Rejected {caller!r}: not the authority")
            raise Unauthorized(MSG_NOT_OWNER)

    def require_phase(
        self,
        expected: WorkflowPhase,
        message: str,
        error: Type[PhaseViolation] = PhaseViolation,
    ) -> None:
        """Raise `error` with `message` unless the current phase is `expected`."""
        if self._phase is not expected:
            logger.debug(
                f"Rejected in phase {self._phase.label}: expected {expected.label}"
            )
            raise error(message)

    def advance(self, caller: str) -> WorkflowPhase:
        """
        Move to the next phase and emit PhaseChanged.

        Raises:
            Unauthorized: caller is not the administrative authority
            InvalidTransition: the current phase is terminal

        Returns:
            The new current phase
        """
        self.require_authority(caller)

        previous = self._phase
        following = previous.next()
        if following is None:
            raise InvalidTransition(MSG_WORKFLOW_COMPLETE)

        self._phase = following
        logger.info(f"Workflow phase changed: {previous.label} -> {following.label}")
        self._events.append(PhaseChanged(previous=previous, next=following))
        return following

    def _advance_from(self, caller: str, expected: WorkflowPhase, message: str) -> WorkflowPhase:
        self.require_authority(caller)
        self.require_phase(expected, message, InvalidTransition)
        return self.advance(caller)

    def start_proposals_registering(self, caller: str) -> WorkflowPhase:
        return self._advance_from(
            caller, WorkflowPhase.REGISTERING_VOTERS, MSG_CANT_START_PROPOSALS
        )

    def end_proposals_registering(self, caller: str) -> WorkflowPhase:
        return self._advance_from(
            caller, WorkflowPhase.PROPOSALS_REGISTRATION_STARTED, MSG_PROPOSALS_NOT_STARTED
        )

    def start_voting_session(self, caller: str) -> WorkflowPhase:
        return self._advance_from(
            caller, WorkflowPhase.PROPOSALS_REGISTRATION_ENDED, MSG_PROPOSALS_NOT_FINISHED
        )

    def end_voting_session(self, caller: str) -> WorkflowPhase:
        return self._advance_from(
            caller, WorkflowPhase.VOTING_SESSION_STARTED, MSG_VOTING_NOT_STARTED
        )
