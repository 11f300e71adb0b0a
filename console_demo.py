"""
Offline console demo: walks through the booking wizard with in-memory stores.

Uses the real resolver, inventory, state machine and contact validation
against a small demo salon. No database, no network calls. Designed for
live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario conflict
    python console_demo.py --scenario request
"""

import argparse
from datetime import date, datetime, timedelta
from typing import Optional

from availability_engine.availability.inventory import InMemoryInventoryStore
from availability_engine.availability.professionals import InMemoryProfessionalDirectory
from availability_engine.availability.templates import InMemoryScheduleTemplateStore
from availability_engine.booking import BookingContext, BookingSession, LoggingNotifier
from availability_engine.clock import Clock, FixedClock, SystemClock
from availability_engine.config import settings
from availability_engine.errors import BookingError, ConflictError, ValidationError
from availability_engine.schemas.availability_schema import DayAvailability
from availability_engine.schemas.booking_schema import Professional, Service
from availability_engine.schemas.inventory_schema import InventoryStatus
from availability_engine.schemas.schedule_schema import ScheduleTemplate

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_COMPANY = "demo-salon"

# Calendar day markers, one per DayAvailability
DAY_MARKERS = {
    DayAvailability.BLOCKED: f"{DIM}--{RESET}",
    DayAvailability.NO_SLOTS: f"{RED}xx{RESET}",
    DayAvailability.LOW_SLOTS: f"{YELLOW}lo{RESET}",
    DayAvailability.AVAILABLE: f"{GREEN}ok{RESET}",
}

DEMO_CONTACT = {
    "name": "Ana Rojas",
    "phone": "+56 9 1234 5678",
    "identity": "12.345.678-5",
    "email": "ana@example.com",
}


def build_demo_context(clock: Optional[Clock] = None) -> BookingContext:
    """Seed a small salon: two services, two professionals, a weekly schedule."""
    templates = InMemoryScheduleTemplateStore()
    templates.add_service(Service(
        id="svc-haircut", company_id=DEMO_COMPANY, name="Haircut",
        price=15000, duration_minutes=60, professional_ids=["pro-camila", "pro-diego"],
    ))
    templates.add_service(Service(
        id="svc-consult", company_id=DEMO_COMPANY, name="Style consultation",
        price=0, duration_minutes=30,
    ))

    weekdays = ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY"]
    for hour in (9, 10, 11, 15, 16):
        templates.add_template(
            ScheduleTemplate(
                id=f"tpl-{hour:02d}", company_id=DEMO_COMPANY, days_of_week=weekdays,
                start_time=f"{hour:02d}:00", end_time=f"{hour + 1:02d}:00",
            ),
            "svc-haircut", "svc-consult",
        )
    templates.add_template(
        ScheduleTemplate(
            id="tpl-sat", company_id=DEMO_COMPANY, days_of_week=["SATURDAY"],
            start_time="10:00", end_time="13:00",
        ),
        "svc-haircut",
    )

    directory = InMemoryProfessionalDirectory([
        Professional(id="pro-camila", company_id=DEMO_COMPANY, name="Camila Soto"),
        Professional(id="pro-diego", company_id=DEMO_COMPANY, name="Diego Fuentes"),
    ])
    return BookingContext.build(
        templates, directory, InMemoryInventoryStore(),
        clock=clock or SystemClock(), notifier=LoggingNotifier(),
    )


class ConsoleSession:
    """Drives one BookingSession from the terminal."""

    def __init__(
        self,
        ctx: Optional[BookingContext] = None,
        service_id: str = "svc-haircut",
        commit_status: InventoryStatus = InventoryStatus.BOOKED,
    ) -> None:
        self.ctx = ctx or build_demo_context()
        self.booking = BookingSession.open(service_id, self.ctx, commit_status=commit_status)

    def say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Wizard]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def error(self, exc: BookingError) -> None:
        if isinstance(exc, ValidationError):
            for name, message in exc.field_errors.items():
                print(f"{RED}  ! {name}: {message}{RESET}")
        else:
            print(f"{RED}  ! {exc}{RESET}")

    def show_calendar(self, days: int = 14) -> None:
        calendar = self.booking.calendar()
        start = min(calendar)
        cells = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            cells.append(f"{day:%a %d} {DAY_MARKERS[calendar[day]]}")
        for i in range(0, len(cells), 7):
            print("  " + "  ".join(cells[i:i + 7]))

    def show_slots(self) -> None:
        eligible = self.booking.eligible_professionals()
        if eligible:
            names = ", ".join(p.name for p in eligible)
            self.system_log(f"Professionals with open times: {names}")
        slots = self.booking.open_slots()
        if not slots:
            self.say("No open times on that date.")
            return
        for slot in slots:
            print(f"    {slot.slot_id:<8} {slot.label}")

    def _header(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  AVAILABILITY ENGINE - {title}{RESET}")
        print(f"{BOLD}  Service: {self.booking.service.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _footer(self) -> None:
        snapshot = self.booking.snapshot()
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Session {snapshot.session_id}: {snapshot.state.value}{RESET}")
        print(f"{DIM}  State trace: {' -> '.join(s.value for s in snapshot.history)}{RESET}")
        if snapshot.entry_id:
            print(f"{DIM}  Inventory entry: {snapshot.entry_id}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    # ------------------------------------------------------------------ #
    # Scripted walkthroughs
    # ------------------------------------------------------------------ #

    def run_scenario(self, scenario: str) -> None:
        handler = getattr(self, f"_scenario_{scenario}", None)
        if handler is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return
        self._header(f"Scenario: {scenario}")
        handler()
        self._footer()

    def _walk_to_confirm(self, session: BookingSession) -> Optional[date]:
        # Nearest covered day may already be full or past the cutoff
        day = session.nearest_available_date()
        while day is not None and not session.open_slots(day):
            day = session.nearest_available_date(day + timedelta(days=1))
        if day is None:
            self.say("Nothing bookable in the booking window.")
            return None
        session.select_date(day)
        slot = session.open_slots()[0]
        session.select_slot(slot.slot_id)
        session.proceed_to_details()
        session.submit_details(DEMO_CONTACT)
        self.system_log(
            f"{session.session_id}: {day} {slot.label} with {session.selected_professional_id}"
        )
        return day

    def _scenario_booking(self) -> None:
        self.show_calendar()
        if self._walk_to_confirm(self.booking) is None:
            return
        snapshot = self.booking.confirm()
        self.say(f"Booked! Reference {snapshot.entry_id}.")

    def _scenario_request(self) -> None:
        self.booking.commit_status = InventoryStatus.REQUESTED
        if self._walk_to_confirm(self.booking) is None:
            return
        snapshot = self.booking.confirm()
        self.say(f"Request {snapshot.entry_id} sent. The salon will confirm it.")

    def _scenario_conflict(self) -> None:
        rival = BookingSession.open(self.booking.service.id, self.ctx)
        if self._walk_to_confirm(self.booking) is None:
            return
        self._walk_to_confirm(rival)
        rival.confirm()
        self.system_log(f"{rival.session_id} confirmed first")
        try:
            self.booking.confirm()
        except ConflictError as exc:
            self.error(exc)
            self.say("That time was just taken. Here is what's still open:")
            self.show_slots()

    # ------------------------------------------------------------------ #
    # Interactive mode
    # ------------------------------------------------------------------ #

    def _ask(self, prompt: str) -> Optional[str]:
        answer = input(f"\n{BLUE}[You] {prompt}{RESET} ").strip()
        if answer.lower() in ("quit", "exit", "q"):
            return None
        return answer

    def run(self) -> None:
        self._header("Console Demo")
        self.say("Type 'quit' at any prompt to leave, 'back' to go one step back.")

        while not self.booking.is_terminal:
            state = self.booking.state.value
            self.system_log(f"State: {state}")
            try:
                if not self._step(state):
                    self.booking.cancel()
                    print(f"\n{DIM}Session ended.{RESET}")
                    break
            except BookingError as exc:
                self.error(exc)

        self._footer()

    def _step(self, state: str) -> bool:
        """Run one prompt for the current state; False means the user quit."""
        if state == "select_date":
            self.show_calendar()
            answer = self._ask("Date (YYYY-MM-DD, blank for the nearest open day):")
            if answer is None:
                return False
            if not answer:
                day = self.booking.nearest_available_date()
            else:
                try:
                    day = datetime.strptime(answer, "%Y-%m-%d").date()
                except ValueError:
                    print(f"{RED}  ! date: use the YYYY-MM-DD format, e.g. 2026-03-02{RESET}")
                    return True
            if day is None:
                self.say("Nothing bookable in the booking window.")
                return False
            self.booking.select_date(day)
            return True

        if state == "select_time":
            self.show_slots()
            answer = self._ask("Slot id, 'pro <id>' to pick a professional, or 'next':")
            if answer is None:
                return False
            if answer == "back":
                self.booking.back()
            elif answer.startswith("pro "):
                self.booking.select_professional(answer[4:].strip())
            elif answer == "next":
                self.booking.proceed_to_details()
            else:
                self.booking.select_slot(answer)
            return True

        if state == "enter_details":
            contact = {}
            for name in ("name", "phone", "identity", "email"):
                answer = self._ask(f"{name.capitalize()}:")
                if answer is None:
                    return False
                contact[name] = answer
            self.booking.submit_details(contact)
            return True

        if state == "confirming":
            answer = self._ask("Confirm booking? (yes/back)")
            if answer is None:
                return False
            if answer.lower().startswith("y"):
                snapshot = self.booking.confirm()
                self.say(f"Booked! Reference {snapshot.entry_id}.")
            else:
                self.booking.back()
            return True

        return False


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline booking wizard demo")
    parser.add_argument(
        "--scenario",
        choices=["booking", "conflict", "request"],
        default=None,
        help="Auto-play a scripted walkthrough instead of interactive mode",
    )
    parser.add_argument(
        "--today",
        type=lambda s: datetime.strptime(s, "%Y-%m-%d"),
        default=None,
        help="Pretend the current date is YYYY-MM-DD (08:00 local)",
    )
    args = parser.parse_args()

    clock: Clock = SystemClock()
    if args.today:
        clock = FixedClock(args.today.replace(hour=8))
    ctx = build_demo_context(clock)
    print(f"{DIM}  Engine: {settings.engine_name}{RESET}")

    session = ConsoleSession(ctx)
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
