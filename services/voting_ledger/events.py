"""
Notifications emitted by the ledger.

Each successful state-changing call appends exactly one event to the
ledger's EventLog. Collaborators observe them by iterating the log or by
subscribing a callback.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Iterator, List

from .models import WorkflowPhase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEvent:
    """Base class for ledger notifications."""

    name = "ledger_event"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["event"] = self.name
        return data


@dataclass(frozen=True)
class VoterRegistered(LedgerEvent):
    subject: str

    name = "voter_registered"


@dataclass(frozen=True)
class ProposalRegistered(LedgerEvent):
    proposal_id: int

    name = "proposal_registered"


@dataclass(frozen=True)
class PhaseChanged(LedgerEvent):
    previous: WorkflowPhase
    next: WorkflowPhase

    name = "phase_changed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "previous": int(self.previous),
            "next": int(self.next),
        }


@dataclass(frozen=True)
class Voted(LedgerEvent):
    voter: str
    proposal_id: int

    name = "voted"


Subscriber = Callable[[LedgerEvent], None]


class EventLog:
    """Append-only, ordered record of ledger events with callback delivery."""

    def __init__(self):
        self._events: List[LedgerEvent] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback invoked with every event appended from now on.

        Returns:
            A function that removes the subscription when called.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def append(self, event: LedgerEvent) -> None:
        """Record an event and deliver it to every subscriber."""
        self._events.append(event)
        logger.debug(f"Event #{len(self._events)}: {event}")

        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                # The state change is already committed; a failing observer
                # must not hide the event from the others.
                logger.error(f"Event subscriber {callback!r} failed on {event.name}: {e}",
                             exc_info=True)

    def since(self, offset: int) -> List[LedgerEvent]:
        """Return the events appended after the first `offset` ones."""
        return list(self._events[offset:])

    def __iter__(self) -> Iterator[LedgerEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
