"""
Post-commit notification hook.

In production this would hand off to the email/WhatsApp delivery service.
Delivery is fire-and-forget: a failed notification never undoes a booking.
"""

import logging
from typing import Optional, Protocol

from availability_engine.schemas.booking_schema import ContactDetails
from availability_engine.schemas.inventory_schema import InventoryEntry

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def __call__(
        self,
        entry: InventoryEntry,
        service_name: str,
        professional_name: Optional[str],
        contact: ContactDetails,
    ) -> None: ...


class LoggingNotifier:
    """Default notifier: records the confirmation in the application log."""

    def __call__(
        self,
        entry: InventoryEntry,
        service_name: str,
        professional_name: Optional[str],
        contact: ContactDetails,
    ) -> None:
        logger.info(
            "Booking %s (%s) for %s: %s on %s %s-%s with %s",
            entry.id, entry.status.value, contact.name, service_name,
            entry.date.isoformat(), f"{entry.start_time:%H:%M}", f"{entry.end_time:%H:%M}",
            professional_name or "any professional",
        )


def notify_safely(
    notifier: Optional[Notifier],
    entry: InventoryEntry,
    service_name: str,
    professional_name: Optional[str],
    contact: ContactDetails,
) -> bool:
    """Invoke the notifier, logging instead of raising on failure.

    Returns:
        True if the notifier ran without raising.
    """
    if notifier is None:
        return False
    try:
        notifier(entry, service_name, professional_name, contact)
    except Exception:
        logger.exception("Notifier failed for inventory entry %s; booking kept", entry.id)
        return False
    return True
