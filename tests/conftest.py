"""Shared test fixtures and helpers."""

from datetime import date, datetime
from typing import Optional

import pytest

from availability_engine.availability.inventory import CalendarInventory, InMemoryInventoryStore
from availability_engine.availability.professionals import (
    InMemoryProfessionalDirectory,
    ProfessionalAvailabilityFilter,
)
from availability_engine.availability.resolver import AvailabilityResolver
from availability_engine.availability.templates import InMemoryScheduleTemplateStore
from availability_engine.booking.session import BookingContext
from availability_engine.booking.state_machine import BookingStateMachine
from availability_engine.clock import FixedClock
from availability_engine.config import AppConfig, AvailabilityConfig
from availability_engine.schemas.booking_schema import Professional, Service
from availability_engine.schemas.inventory_schema import InventoryEntry, InventoryStatus
from availability_engine.schemas.schedule_schema import ScheduleTemplate

COMPANY = "co-1"
# 2026-03-02 is a Monday
MONDAY = date(2026, 3, 2)
TUESDAY = date(2026, 3, 3)
NOW = datetime(2026, 3, 2, 8, 0)


def make_template(
    template_id: str = "tpl-1",
    days: Optional[list[str]] = None,
    start: str = "09:00",
    end: str = "10:00",
    status: str = "ACTIVE",
) -> ScheduleTemplate:
    """Helper to create a ScheduleTemplate with sensible defaults."""
    return ScheduleTemplate(
        id=template_id,
        company_id=COMPANY,
        days_of_week=days or ["MONDAY"],
        start_time=start,
        end_time=end,
        status=status,
    )


def make_entry(
    start: str = "09:00",
    end: str = "10:00",
    day: date = MONDAY,
    professional_id: str = "pro-1",
    status: InventoryStatus = InventoryStatus.BOOKED,
    service_id: str = "svc-1",
    entry_id: Optional[str] = None,
) -> InventoryEntry:
    """Helper to create an InventoryEntry with sensible defaults."""
    return InventoryEntry(
        id=entry_id,
        company_id=COMPANY,
        service_id=service_id,
        professional_id=professional_id,
        date=day,
        start_time=start,
        end_time=end,
        status=status,
    )


def hourly_templates(count: int, days: Optional[list[str]] = None) -> list[ScheduleTemplate]:
    """``count`` back-to-back one-hour templates starting at 09:00."""
    return [
        make_template(f"tpl-{h:02d}", days, f"{h:02d}:00", f"{h + 1:02d}:00")
        for h in range(9, 9 + count)
    ]


@pytest.fixture
def availability_config():
    return AvailabilityConfig(
        horizon_days=35,
        low_slots_max=3,
        same_day_cutoff_minutes=15,
        unassigned_professional_id="unassigned",
        unassigned_blocks_all=True,
    )


@pytest.fixture
def app_config(availability_config):
    return AppConfig(availability=availability_config)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store():
    return InMemoryInventoryStore()


@pytest.fixture
def inventory(store, availability_config):
    return CalendarInventory(store, availability_config)


@pytest.fixture
def resolver(inventory, clock, availability_config):
    return AvailabilityResolver(inventory, clock, availability_config)


@pytest.fixture
def professional_filter(resolver):
    return ProfessionalAvailabilityFilter(resolver)


@pytest.fixture
def state_machine():
    return BookingStateMachine()


@pytest.fixture
def professionals():
    return [
        Professional(id="pro-1", company_id=COMPANY, name="Camila Soto"),
        Professional(id="pro-2", company_id=COMPANY, name="Diego Fuentes"),
    ]


@pytest.fixture
def template_store():
    templates = InMemoryScheduleTemplateStore()
    templates.add_service(Service(
        id="svc-1", company_id=COMPANY, name="Haircut", price=15000,
        duration_minutes=60, professional_ids=["pro-1", "pro-2"],
    ))
    templates.add_service(Service(id="svc-open", company_id=COMPANY, name="Consultation"))
    for template in hourly_templates(5, ["MONDAY", "WEDNESDAY"]):
        templates.add_template(template, "svc-1", "svc-open")
    templates.add_template(make_template("tpl-sat", ["SATURDAY"], "10:00", "13:00"), "svc-1")
    return templates


@pytest.fixture
def directory(professionals):
    return InMemoryProfessionalDirectory(professionals)


class RecordingNotifier:
    """Notifier double that remembers every call."""

    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple] = []
        self.fail = fail

    def __call__(self, entry, service_name, professional_name, contact) -> None:
        self.calls.append((entry, service_name, professional_name, contact))
        if self.fail:
            raise RuntimeError("SMTP relay unavailable")


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def booking_context(template_store, directory, store, clock, notifier, app_config):
    return BookingContext.build(
        template_store, directory, store, clock=clock, notifier=notifier, config=app_config,
    )


CONTACT = {
    "name": "Ana Rojas",
    "phone": "+56 9 1234 5678",
    "identity": "12.345.678-5",
    "email": "ana@example.com",
}
