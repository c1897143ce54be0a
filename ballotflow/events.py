"""Ballot event emitter.

Emits a structured event for every accepted ballot operation: voter
registration, proposal registration, vote cast, and workflow status
change. Events are delivered synchronously to registered listeners and
kept in an in-memory history so callers can persist or inspect them.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    """Types of events emitted by a ballot engine."""

    VOTER_REGISTERED = "voter_registered"
    PROPOSAL_REGISTERED = "proposal_registered"
    VOTED = "voted"
    WORKFLOW_STATUS_CHANGE = "workflow_status_change"


class BallotEvent(BaseModel):
    """A single ballot event."""

    type: EventType = Field(description="Event type")
    ballot_id: str = Field(default="", description="Ballot that emitted the event")
    timestamp: float = Field(
        default_factory=time.time,
        description="Unix timestamp when the event occurred",
    )
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Event payload, varies by event type",
    )


# Type alias for event listener callbacks
EventListener = Callable[[BallotEvent], Any]


class BallotEventEmitter:
    """Delivers ballot events to registered listeners.

    The emitter is passed into a ``BallotEngine`` as an optional sink.
    When no emitter is provided the engine still runs; events are simply
    not recorded. Listener exceptions are logged but never propagate, so
    a failing listener cannot undo an operation that already committed.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []
        self._history: list[BallotEvent] = []

    @property
    def history(self) -> list[BallotEvent]:
        """All events emitted so far, oldest first."""
        return list(self._history)

    def add_listener(self, listener: EventListener) -> None:
        """Register a listener to receive ballot events."""
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        """Remove a previously registered listener."""
        self._listeners = [ln for ln in self._listeners if ln is not listener]

    def clear_history(self) -> None:
        """Forget recorded events (e.g. after they have been persisted)."""
        self._history.clear()

    def emit(self, event_type: EventType, ballot_id: str = "", **data: Any) -> BallotEvent:
        """Emit a ballot event to all registered listeners.

        Returns:
            The emitted event.
        """
        event = BallotEvent(type=event_type, ballot_id=ballot_id, data=data)
        self._history.append(event)

        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener error for %s", event_type)

        return event
