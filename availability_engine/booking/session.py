"""
Booking session: the date -> time -> details -> confirm wizard.

A session is owned by its caller (a request handler, a console, a test)
and is not tied to any rendering lifecycle. Every transition method
returns a serializable BookingSnapshot or raises a typed error:

- ValidationError: state unchanged, show the field messages
- ConflictError: the slot was taken; session is back in SELECT_TIME
- NotFoundError: the service/template/professional vanished; reopen
- StoreError: the store failed; the caller may retry the same call

Usage:
    ctx = BookingContext.build(template_store, directory, InMemoryInventoryStore())
    session = BookingSession.open("svc-haircut", ctx)
    session.select_date(date(2026, 3, 2))
    session.select_slot("tpl-morning")
    session.proceed_to_details()
    session.submit_details({"name": "Ana Rojas", "phone": "+56 9 1234 5678",
                            "identity": "12.345.678-5"})
    snapshot = session.confirm()
"""

import datetime as dt
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from availability_engine.availability.inventory import CalendarInventory, InventoryStore
from availability_engine.availability.professionals import (
    ProfessionalAvailabilityFilter,
    ProfessionalDirectory,
)
from availability_engine.availability.resolver import AvailabilityResolver
from availability_engine.availability.templates import ScheduleTemplateStore
from availability_engine.booking.contact import validate_contact
from availability_engine.booking.notifier import Notifier, notify_safely
from availability_engine.booking.state_machine import (
    BookingState,
    BookingStateMachine,
    BookingTrigger,
)
from availability_engine.clock import Clock
from availability_engine.config import AppConfig, ContactConfig, settings
from availability_engine.errors import ConflictError, NotFoundError, ValidationError
from availability_engine.logging_context import bound_to_session, get_session_logger, session_scope
from availability_engine.schemas.availability_schema import DayAvailability, ResolvedSlot
from availability_engine.schemas.booking_schema import ContactDetails, Professional, Service
from availability_engine.schemas.inventory_schema import InventoryEntry, InventoryStatus
from availability_engine.schemas.schedule_schema import ScheduleTemplate

logger = get_session_logger(__name__)


class RemovedSlot(BaseModel):
    date: dt.date
    slot_id: str


class BookingSnapshot(BaseModel):
    """Serializable view of a session after a transition."""
    session_id: str
    state: BookingState
    service_id: str
    company_id: str
    commit_status: InventoryStatus = InventoryStatus.BOOKED
    selected_date: Optional[dt.date] = None
    selected_slot_id: Optional[str] = None
    selected_professional_id: Optional[str] = None
    contact: Optional[ContactDetails] = None
    removed_slots: list[RemovedSlot] = Field(default_factory=list)
    entry_id: Optional[str] = None
    history: list[BookingState] = Field(default_factory=list)


@dataclass
class BookingContext:
    """Collaborators shared by every session of one process."""
    template_store: ScheduleTemplateStore
    directory: ProfessionalDirectory
    inventory: CalendarInventory
    resolver: AvailabilityResolver
    notifier: Optional[Notifier] = None
    contact_config: ContactConfig = field(default_factory=lambda: settings.contact)

    @classmethod
    def build(
        cls,
        template_store: ScheduleTemplateStore,
        directory: ProfessionalDirectory,
        store: InventoryStore,
        clock: Optional[Clock] = None,
        notifier: Optional[Notifier] = None,
        config: Optional[AppConfig] = None,
    ) -> "BookingContext":
        config = config or settings
        inventory = CalendarInventory(store, config.availability)
        resolver = AvailabilityResolver(inventory, clock, config.availability)
        return cls(
            template_store=template_store,
            directory=directory,
            inventory=inventory,
            resolver=resolver,
            notifier=notifier,
            contact_config=config.contact,
        )


class BookingSession:
    """
    One user's pass through the booking wizard for a single service.

    Occupancy for the whole booking window is fetched once on open; each
    date pick and slot pick re-reads that single date and merges it in.
    The final confirm re-reads the date again and commits through the
    inventory's conditional insert.
    """

    def __init__(
        self,
        ctx: BookingContext,
        service: Service,
        templates: list[ScheduleTemplate],
        candidates: list[Professional],
        occupancy: list[InventoryEntry],
        session_id: str,
        commit_status: InventoryStatus = InventoryStatus.BOOKED,
        machine: Optional[BookingStateMachine] = None,
    ) -> None:
        self.ctx = ctx
        self.service = service
        self.templates = templates
        self.candidates = candidates
        self.session_id = session_id
        self.commit_status = commit_status
        self.filter = ProfessionalAvailabilityFilter(ctx.resolver)
        self._machine = machine or BookingStateMachine()
        self._occupancy = occupancy
        self.selected_date: Optional[dt.date] = None
        self.selected_slot_id: Optional[str] = None
        self.selected_professional_id: Optional[str] = None
        self.contact: Optional[ContactDetails] = None
        self.entry: Optional[InventoryEntry] = None
        self._removed: set[tuple[dt.date, str]] = set()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def open(
        cls,
        service_id: str,
        ctx: BookingContext,
        commit_status: InventoryStatus = InventoryStatus.BOOKED,
        session_id: Optional[str] = None,
    ) -> "BookingSession":
        """Load templates, candidates and the booking window's occupancy once."""
        session_id = session_id or f"BS-{uuid.uuid4().hex[:6].upper()}"
        with session_scope(session_id):
            service = ctx.template_store.get_service(service_id)
            templates = ctx.template_store.templates_for_service(service_id)
            candidates = ctx.directory.candidates_for(service)
            start, end = ctx.resolver.booking_window()
            occupancy = ctx.inventory.for_date_range(service.company_id, start, end)

            logger.info(
                "Booking session opened for service %s: %d templates, %d professionals, "
                "%d occupied entries between %s and %s",
                service.id, len(templates), len(candidates), len(occupancy), start, end,
            )
        return cls(ctx, service, templates, candidates, occupancy, session_id, commit_status)

    @classmethod
    def resume(cls, snapshot: BookingSnapshot, ctx: BookingContext) -> "BookingSession":
        """Rebuild a live session from a snapshot, re-reading templates and occupancy."""
        session = cls.open(
            snapshot.service_id, ctx,
            commit_status=snapshot.commit_status, session_id=snapshot.session_id,
        )
        session._machine = BookingStateMachine(initial=snapshot.state)
        session.selected_date = snapshot.selected_date
        session.selected_slot_id = snapshot.selected_slot_id
        session.selected_professional_id = snapshot.selected_professional_id
        session.contact = snapshot.contact
        session._removed = {(r.date, r.slot_id) for r in snapshot.removed_slots}
        if snapshot.selected_date is not None and not session.is_terminal:
            with session_scope(session.session_id):
                session._refresh_date(snapshot.selected_date)
        return session

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> BookingState:
        return self._machine.current_state

    @property
    def is_terminal(self) -> bool:
        return self._machine.is_terminal()

    @property
    def requires_professional(self) -> bool:
        return bool(self.candidates)

    @property
    def occupancy(self) -> list[InventoryEntry]:
        return list(self._occupancy)

    @property
    def _unassigned_policy(self) -> Optional[bool]:
        return self.service.unassigned_blocks_all

    def _scope(self, professional_id: Optional[str] = None) -> Optional[str]:
        if not self.requires_professional:
            return None
        return professional_id or self.selected_professional_id

    def _require_date(self, day: Optional[dt.date]) -> dt.date:
        day = day or self.selected_date
        if day is None:
            raise ValidationError({"date": "Please choose a date first."})
        return day

    def open_slots(
        self, day: Optional[dt.date] = None, professional_id: Optional[str] = None
    ) -> list[ResolvedSlot]:
        """Open slots for the date (default: the selected one), minus slots lost to a conflict."""
        day = self._require_date(day)
        slots = self.ctx.resolver.open_slots(
            day, self.templates, self._occupancy,
            self._scope(professional_id), self._unassigned_policy,
        )
        return [s for s in slots if (day, s.slot_id) not in self._removed]

    def resolved_slots(self, day: Optional[dt.date] = None) -> list[ResolvedSlot]:
        day = self._require_date(day)
        return self.ctx.resolver.resolve_slots(
            day, self.templates, self._occupancy, self._scope(), self._unassigned_policy,
        )

    def day_status(self, day: dt.date) -> DayAvailability:
        return self.ctx.resolver.day_status(
            day, self.templates, self._occupancy, self._scope(), self._unassigned_policy,
        )

    def calendar(self) -> dict[dt.date, DayAvailability]:
        """Day status for every date of the booking window."""
        start, end = self.ctx.resolver.booking_window()
        return self.ctx.resolver.calendar(
            start, end, self.templates, self._occupancy, self._scope(), self._unassigned_policy,
        )

    def eligible_professionals(self, day: Optional[dt.date] = None) -> list[Professional]:
        day = self._require_date(day)
        return self.filter.eligible_professionals(
            day, self.candidates, self.templates,
            [e for e in self._occupancy if e.date == day], self._unassigned_policy,
        )

    def nearest_available_date(self, from_date: Optional[dt.date] = None) -> Optional[dt.date]:
        today, last = self.ctx.resolver.booking_window()
        from_date = max(from_date or today, today)
        if from_date > last:
            return None
        return self.ctx.resolver.nearest_available_date(
            from_date, self.templates, (last - from_date).days,
        )

    def snapshot(self) -> BookingSnapshot:
        return BookingSnapshot(
            session_id=self.session_id,
            state=self.state,
            service_id=self.service.id,
            company_id=self.service.company_id,
            commit_status=self.commit_status,
            selected_date=self.selected_date,
            selected_slot_id=self.selected_slot_id,
            selected_professional_id=self.selected_professional_id,
            contact=self.contact,
            removed_slots=[
                RemovedSlot(date=d, slot_id=s) for d, s in sorted(self._removed)
            ],
            entry_id=self.entry.id if self.entry else None,
            history=[e.state for e in self._machine.get_history()],
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _refresh_date(self, day: dt.date) -> list[InventoryEntry]:
        """Replace the cached entries of one date with a fresh read."""
        fresh = self.ctx.inventory.for_date(self.service.company_id, day)
        self._occupancy = [e for e in self._occupancy if e.date != day] + fresh
        return fresh

    def _template(self, slot_id: str) -> ScheduleTemplate:
        for template in self.templates:
            if template.id == slot_id:
                return template
        raise NotFoundError("Schedule template", slot_id)

    def _live_template(self, slot_id: str) -> ScheduleTemplate:
        """The cached template, re-read from the template store and still active."""
        self._template(slot_id)
        template = self.ctx.template_store.get_template(slot_id)
        if not template.is_active:
            raise NotFoundError("Schedule template", slot_id)
        return template

    def _candidate(self, professional_id: str) -> Professional:
        for professional in self.candidates:
            if professional.id == professional_id:
                return professional
        raise NotFoundError("Professional", professional_id)

    def _open_slot_ids(self) -> set[str]:
        return {s.slot_id for s in self.open_slots()}

    def _sync_professional(self) -> None:
        """Drop an ineligible professional and pre-select the first eligible one."""
        if not self.requires_professional or self.selected_date is None:
            return
        eligible = self.eligible_professionals()
        if self.selected_professional_id not in {p.id for p in eligible}:
            if self.selected_professional_id is not None:
                logger.info(
                    "Professional %s has no open slots on %s; selection cleared",
                    self.selected_professional_id, self.selected_date,
                )
            default = self.filter.default_professional(eligible)
            self.selected_professional_id = default.id if default else None

    def _drop_stale_slot(self) -> None:
        if self.selected_slot_id is not None and self.selected_slot_id not in self._open_slot_ids():
            logger.info("Slot %s no longer open on %s", self.selected_slot_id, self.selected_date)
            self.selected_slot_id = None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @bound_to_session
    def select_date(self, day: dt.date) -> BookingSnapshot:
        self._machine.ensure(BookingTrigger.DATE_SELECTED)
        start, end = self.ctx.resolver.booking_window()
        if not start <= day <= end:
            raise ValidationError(
                {"date": f"Choose a date between {start.isoformat()} and {end.isoformat()}."}
            )
        if self.day_status(day) == DayAvailability.BLOCKED:
            raise ValidationError({"date": f"{self.service.name} is not offered on {day:%A}s."})

        self._refresh_date(day)
        if day != self.selected_date:
            self.selected_slot_id = None
        self.selected_date = day
        self._sync_professional()
        self._drop_stale_slot()

        self._machine.transition(BookingTrigger.DATE_SELECTED)
        logger.debug("Date %s selected (%s)", day, self.day_status(day).value)
        return self.snapshot()

    @bound_to_session
    def select_slot(self, slot_id: str) -> BookingSnapshot:
        self._machine.require(BookingState.SELECT_TIME)
        day = self._require_date(None)
        self._template(slot_id)
        if (day, slot_id) in self._removed:
            raise ValidationError({"slot": "That time was just taken. Please pick another."})

        self._refresh_date(day)
        self._sync_professional()
        if slot_id not in self._open_slot_ids():
            raise ValidationError({"slot": "That time is no longer available."})

        self.selected_slot_id = slot_id
        logger.debug("Slot %s selected on %s", slot_id, day)
        return self.snapshot()

    @bound_to_session
    def select_professional(self, professional_id: str) -> BookingSnapshot:
        self._machine.require(BookingState.SELECT_TIME)
        day = self._require_date(None)
        professional = self._candidate(professional_id)
        if not self.open_slots(day, professional.id):
            raise ValidationError(
                {"professional": f"{professional.name} has no open times on {day.isoformat()}."}
            )

        self.selected_professional_id = professional.id
        self._drop_stale_slot()
        logger.debug("Professional %s selected", professional.id)
        return self.snapshot()

    @bound_to_session
    def proceed_to_details(self) -> BookingSnapshot:
        self._machine.ensure(BookingTrigger.SLOT_CHOSEN)
        errors: dict[str, str] = {}
        if self.selected_slot_id is None:
            errors["slot"] = "Please choose a time."
        if self.requires_professional and self.selected_professional_id is None:
            errors["professional"] = "Please choose a professional."
        if not errors and self.selected_slot_id not in self._open_slot_ids():
            errors["slot"] = "That time is no longer available."
        if errors:
            raise ValidationError(errors)

        self._machine.transition(BookingTrigger.SLOT_CHOSEN)
        return self.snapshot()

    @bound_to_session
    def submit_details(self, contact: Union[ContactDetails, dict[str, Any]]) -> BookingSnapshot:
        self._machine.ensure(BookingTrigger.DETAILS_SUBMITTED)
        self.contact = validate_contact(contact, self.ctx.contact_config)
        self._machine.transition(BookingTrigger.DETAILS_SUBMITTED)
        return self.snapshot()

    def _handle_conflict(self, day: dt.date, slot_id: str, exc: ConflictError) -> None:
        self._removed.add((day, slot_id))
        self.selected_slot_id = None
        self._machine.transition(BookingTrigger.SLOT_TAKEN)
        self._sync_professional()
        logger.warning("Slot %s on %s taken before commit: %s", slot_id, day, exc)

    @bound_to_session
    def confirm(self) -> BookingSnapshot:
        """
        Re-validate the chosen slot against live inventory and commit it.

        Raises:
            ConflictError: slot taken; the session is back in SELECT_TIME
                with that slot removed from the candidates.
            NotFoundError: the template or professional was removed or
                deactivated since the session opened; nothing is written.
            StoreError: the store failed; the session stays in CONFIRMING.
        """
        self._machine.ensure(BookingTrigger.BOOKING_COMMITTED)
        day = self._require_date(None)
        template = self._live_template(self.selected_slot_id)
        professional = None
        if self.selected_professional_id is not None:
            professional = self.ctx.directory.get_professional(self.selected_professional_id)
        professional_id = professional.id if professional else self.ctx.inventory.unassigned_id

        fresh = self._refresh_date(day)
        scope = self.ctx.inventory.conflict_scope(professional_id, self._unassigned_policy)
        if self.ctx.inventory.is_occupied(template.window, fresh, scope, self._unassigned_policy):
            exc = ConflictError(
                f"{template.start_time:%H:%M}-{template.end_time:%H:%M} on {day.isoformat()} "
                "is no longer available",
                slot_id=template.id,
            )
            self._handle_conflict(day, template.id, exc)
            raise exc

        entry = InventoryEntry(
            company_id=self.service.company_id,
            service_id=self.service.id,
            professional_id=professional_id,
            schedule_slot_id=template.id,
            date=day,
            start_time=template.start_time,
            end_time=template.end_time,
            status=self.commit_status,
        )
        try:
            self.entry = self.ctx.inventory.commit(entry, self._unassigned_policy)
        except ConflictError as exc:
            self._refresh_date(day)
            self._handle_conflict(day, template.id, exc)
            raise

        self._occupancy.append(self.entry)
        self._machine.transition(BookingTrigger.BOOKING_COMMITTED)
        logger.info(
            "Booking session %s completed: entry %s (%s)",
            self.session_id, self.entry.id, self.entry.status.value,
        )

        notify_safely(
            self.ctx.notifier, self.entry, self.service.name,
            professional.name if professional else None, self.contact,
        )
        return self.snapshot()

    @bound_to_session
    def back(self) -> BookingSnapshot:
        self._machine.transition(BookingTrigger.BACK)
        return self.snapshot()

    @bound_to_session
    def cancel(self) -> BookingSnapshot:
        """Close the session and discard everything it cached."""
        self._machine.transition(BookingTrigger.CLOSED)
        self._occupancy = []
        self._removed.clear()
        self.selected_date = None
        self.selected_slot_id = None
        self.selected_professional_id = None
        self.contact = None
        logger.info("Booking session %s cancelled", self.session_id)
        return self.snapshot()
