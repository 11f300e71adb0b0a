"""
Availability Resolver

Projects weekly schedule templates onto calendar dates and reconciles them
with inventory entries, considering:
- Weekday coverage of each template
- Occupancy, optionally scoped to one professional
- The same-day cutoff (slots that started too long ago are not bookable)

Every function here is pure given (date, templates, entries, now). "Now"
comes from the injected clock.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from availability_engine.availability.inventory import CalendarInventory
from availability_engine.clock import Clock, SystemClock
from availability_engine.config import AvailabilityConfig, settings
from availability_engine.schemas.availability_schema import DayAvailability, ResolvedSlot
from availability_engine.schemas.inventory_schema import InventoryEntry
from availability_engine.schemas.schedule_schema import ScheduleTemplate

logger = logging.getLogger(__name__)


class AvailabilityResolver:
    """Open slots, day status and quick-jump dates for a set of templates."""

    def __init__(
        self,
        inventory: CalendarInventory,
        clock: Optional[Clock] = None,
        config: Optional[AvailabilityConfig] = None,
    ) -> None:
        self.inventory = inventory
        self.clock = clock or SystemClock()
        self.config = config or settings.availability

    def slots_for_date(
        self, day: date, templates: Iterable[ScheduleTemplate]
    ) -> list[ResolvedSlot]:
        """
        Candidate slots for a date before any occupancy filtering.

        Returns:
            One unoccupied ResolvedSlot per active template covering the
            date's weekday, ordered from earliest to latest start.
        """
        slots = [
            ResolvedSlot(
                slot_id=t.id,
                date=day,
                start_time=t.start_time,
                end_time=t.end_time,
            )
            for t in templates
            if t.is_active and t.applies_on(day)
        ]
        slots.sort(key=lambda s: (s.start_time, s.end_time))
        return slots

    def _cutoff(self, day: date) -> Optional[datetime]:
        """Earliest bookable slot start for the date, or None if no cutoff applies."""
        if day != self.clock.today():
            return None
        return self.clock.now() - timedelta(minutes=self.config.same_day_cutoff_minutes)

    def _past_cutoff(self, slot: ResolvedSlot, cutoff: Optional[datetime]) -> bool:
        if cutoff is None:
            return False
        start = datetime.combine(slot.date, slot.start_time)
        return start < cutoff.replace(tzinfo=None)

    def resolve_slots(
        self,
        day: date,
        templates: Iterable[ScheduleTemplate],
        entries: Iterable[InventoryEntry],
        professional_id: Optional[str] = None,
        unassigned_blocks_all: Optional[bool] = None,
    ) -> list[ResolvedSlot]:
        """Bookable-in-principle slots for the date, each marked occupied or not.

        Slots past the same-day cutoff are left out entirely. Entries for
        other dates are ignored, so a whole prefetched range may be passed.
        """
        day_entries = [e for e in entries if e.date == day]
        cutoff = self._cutoff(day)
        resolved = []
        for slot in self.slots_for_date(day, templates):
            if self._past_cutoff(slot, cutoff):
                continue
            occupied = self.inventory.is_occupied(
                slot, day_entries, professional_id, unassigned_blocks_all
            )
            resolved.append(slot.model_copy(update={"occupied": occupied}))
        return resolved

    def open_slots(
        self,
        day: date,
        templates: Iterable[ScheduleTemplate],
        entries: Iterable[InventoryEntry],
        professional_id: Optional[str] = None,
        unassigned_blocks_all: Optional[bool] = None,
    ) -> list[ResolvedSlot]:
        return [
            s for s in self.resolve_slots(
                day, templates, entries, professional_id, unassigned_blocks_all
            )
            if not s.occupied
        ]

    def classify(self, open_count: int) -> DayAvailability:
        if open_count == 0:
            return DayAvailability.NO_SLOTS
        if open_count <= self.config.low_slots_max:
            return DayAvailability.LOW_SLOTS
        return DayAvailability.AVAILABLE

    def day_status(
        self,
        day: date,
        templates: Iterable[ScheduleTemplate],
        entries: Iterable[InventoryEntry],
        professional_id: Optional[str] = None,
        unassigned_blocks_all: Optional[bool] = None,
    ) -> DayAvailability:
        templates = list(templates)
        if not self.slots_for_date(day, templates):
            return DayAvailability.BLOCKED
        open_count = len(self.open_slots(
            day, templates, entries, professional_id, unassigned_blocks_all
        ))
        return self.classify(open_count)

    def calendar(
        self,
        start: date,
        end: date,
        templates: Iterable[ScheduleTemplate],
        entries: Iterable[InventoryEntry],
        professional_id: Optional[str] = None,
        unassigned_blocks_all: Optional[bool] = None,
    ) -> dict[date, DayAvailability]:
        """
        Day status for every date in an inclusive range.

        Returns:
            dict: {date(2026, 1, 15): DayAvailability.AVAILABLE, ...}
        """
        if start > end:
            raise ValueError(f"Range start {start} is after end {end}")
        templates = list(templates)
        by_date: dict[date, list[InventoryEntry]] = {}
        for entry in entries:
            by_date.setdefault(entry.date, []).append(entry)

        result = {}
        current = start
        while current <= end:
            result[current] = self.day_status(
                current, templates, by_date.get(current, []),
                professional_id, unassigned_blocks_all,
            )
            current += timedelta(days=1)
        return result

    def nearest_available_date(
        self,
        from_date: date,
        templates: Iterable[ScheduleTemplate],
        horizon_days: Optional[int] = None,
    ) -> Optional[date]:
        """First date from from_date (inclusive) that any template covers.

        Coverage only: occupancy is not consulted, so the returned day may
        still turn out fully booked.
        """
        if horizon_days is None:
            horizon_days = self.config.horizon_days
        templates = list(templates)
        for offset in range(horizon_days + 1):
            candidate = from_date + timedelta(days=offset)
            if self.slots_for_date(candidate, templates):
                return candidate
        logger.debug("No template coverage within %d days of %s", horizon_days, from_date)
        return None

    def booking_window(self) -> tuple[date, date]:
        """Inclusive [today, today + horizon] range a session may book into."""
        today = self.clock.today()
        return today, today + timedelta(days=self.config.horizon_days)
