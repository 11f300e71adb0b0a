"""
Typed failures raised by the availability engine.

Only ConflictError changes the booking state machine's path; the rest are
surfaced to the caller as-is.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for every failure the engine raises on purpose."""


class ValidationError(BookingError):
    """Missing or malformed input. Carries field-level messages."""

    def __init__(self, field_errors: dict[str, str], message: Optional[str] = None) -> None:
        self.field_errors = dict(field_errors)
        if message is None:
            message = "; ".join(f"{name}: {msg}" for name, msg in self.field_errors.items())
        super().__init__(message)


class ConflictError(BookingError):
    """The chosen slot was taken between selection and commit."""

    def __init__(self, message: str, slot_id: Optional[str] = None) -> None:
        self.slot_id = slot_id
        super().__init__(message)


class NotFoundError(BookingError):
    """A referenced service, template or professional no longer exists."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} '{identifier}' not found")


class StoreError(BookingError):
    """Transport or query failure in the backing store. Safe to retry."""


class InvalidTransitionError(BookingError):
    """Raised when a transition is not valid from the current state."""
