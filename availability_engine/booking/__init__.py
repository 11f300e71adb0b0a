from availability_engine.booking.contact import validate_contact
from availability_engine.booking.notifier import LoggingNotifier, Notifier
from availability_engine.booking.session import BookingContext, BookingSession, BookingSnapshot
from availability_engine.booking.state_machine import (
    BookingState,
    BookingStateMachine,
    BookingTrigger,
)

__all__ = [
    "BookingContext",
    "BookingSession",
    "BookingSnapshot",
    "BookingState",
    "BookingStateMachine",
    "BookingTrigger",
    "LoggingNotifier",
    "Notifier",
    "validate_contact",
]
