"""
Finite state machine for the booking wizard.

Defines the six booking states and explicit transitions with triggers.
Every session follows a deterministic path through the state graph; the
session object decides *whether* a step is allowed (validation), this
module decides *where* it leads.

Usage:
    sm = BookingStateMachine()
    sm.transition(BookingTrigger.DATE_SELECTED)
    assert sm.current_state == BookingState.SELECT_TIME
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from availability_engine.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class BookingState(str, Enum):
    """All possible states in a booking session lifecycle."""
    SELECT_DATE = "select_date"
    SELECT_TIME = "select_time"
    ENTER_DETAILS = "enter_details"
    CONFIRMING = "confirming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingTrigger(str, Enum):
    """Events that cause state transitions."""
    DATE_SELECTED = "date_selected"
    SLOT_CHOSEN = "slot_chosen"
    DETAILS_SUBMITTED = "details_submitted"
    BOOKING_COMMITTED = "booking_committed"
    SLOT_TAKEN = "slot_taken"
    BACK = "back"
    CLOSED = "closed"


TERMINAL_STATES = frozenset({BookingState.COMPLETED, BookingState.CANCELLED})


@dataclass(frozen=True)
class Transition:
    """A single valid state transition."""
    from_state: BookingState
    to_state: BookingState
    trigger: BookingTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: BookingState
    entered_at: datetime
    trigger: Optional[BookingTrigger] = None


class BookingStateMachine:
    """
    Deterministic state machine for one booking session.

    Invalid triggers are rejected with the list of triggers that are
    allowed from the current state.
    """

    TRANSITIONS: list[Transition] = [
        # --- Date selection (re-picking a date always lands on time selection) ---
        Transition(BookingState.SELECT_DATE, BookingState.SELECT_TIME,
                   BookingTrigger.DATE_SELECTED),
        Transition(BookingState.SELECT_TIME, BookingState.SELECT_TIME,
                   BookingTrigger.DATE_SELECTED),
        Transition(BookingState.ENTER_DETAILS, BookingState.SELECT_TIME,
                   BookingTrigger.DATE_SELECTED),

        # --- Forward flow ---
        Transition(BookingState.SELECT_TIME, BookingState.ENTER_DETAILS,
                   BookingTrigger.SLOT_CHOSEN),
        Transition(BookingState.ENTER_DETAILS, BookingState.CONFIRMING,
                   BookingTrigger.DETAILS_SUBMITTED),

        # --- Commit result ---
        Transition(BookingState.CONFIRMING, BookingState.COMPLETED,
                   BookingTrigger.BOOKING_COMMITTED),
        Transition(BookingState.CONFIRMING, BookingState.SELECT_TIME,
                   BookingTrigger.SLOT_TAKEN),

        # --- Back button ---
        Transition(BookingState.SELECT_TIME, BookingState.SELECT_DATE,
                   BookingTrigger.BACK),
        Transition(BookingState.ENTER_DETAILS, BookingState.SELECT_TIME,
                   BookingTrigger.BACK),
        Transition(BookingState.CONFIRMING, BookingState.ENTER_DETAILS,
                   BookingTrigger.BACK),

        # --- Close ---
        Transition(BookingState.SELECT_DATE, BookingState.CANCELLED, BookingTrigger.CLOSED),
        Transition(BookingState.SELECT_TIME, BookingState.CANCELLED, BookingTrigger.CLOSED),
        Transition(BookingState.ENTER_DETAILS, BookingState.CANCELLED, BookingTrigger.CLOSED),
        Transition(BookingState.CONFIRMING, BookingState.CANCELLED, BookingTrigger.CLOSED),
    ]

    def __init__(self, initial: BookingState = BookingState.SELECT_DATE) -> None:
        self._current_state = initial
        self._history: list[StateEntry] = [
            StateEntry(state=initial, entered_at=datetime.now(timezone.utc))
        ]
        self._conflict_count: int = 0

    @property
    def current_state(self) -> BookingState:
        return self._current_state

    @property
    def conflict_count(self) -> int:
        return self._conflict_count

    def _find(self, trigger: BookingTrigger) -> Optional[Transition]:
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                return t
        return None

    def _reject(self, trigger: BookingTrigger) -> InvalidTransitionError:
        valid = [t.value for t in self.get_valid_triggers()]
        return InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def can(self, trigger: BookingTrigger) -> bool:
        return self._find(trigger) is not None

    def ensure(self, trigger: BookingTrigger) -> None:
        """Raise InvalidTransitionError unless the trigger is valid right now."""
        if not self.can(trigger):
            raise self._reject(trigger)

    def require(self, *states: BookingState) -> None:
        """Raise InvalidTransitionError unless the machine is in one of the states."""
        if self._current_state not in states:
            raise InvalidTransitionError(
                f"Operation not allowed in state '{self._current_state.value}'. "
                f"Expected one of: {[s.value for s in states]}"
            )

    def transition(self, trigger: BookingTrigger) -> BookingState:
        """
        Execute a state transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new booking state.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        t = self._find(trigger)
        if t is None:
            raise self._reject(trigger)

        old_state = self._current_state
        self._current_state = t.to_state
        self._history.append(StateEntry(
            state=self._current_state,
            entered_at=datetime.now(timezone.utc),
            trigger=trigger,
        ))

        if trigger == BookingTrigger.SLOT_TAKEN:
            self._conflict_count += 1

        logger.debug(
            "Booking transition: %s -> %s (trigger: %s)",
            old_state.value, self._current_state.value, trigger.value,
        )
        return self._current_state

    def get_valid_triggers(self) -> list[BookingTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        """Return the full state transition history."""
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_state in TERMINAL_STATES
