"""Tests for schedule template models and the template store."""

import logging
from datetime import date, time

import pytest
from pydantic import ValidationError as ModelValidationError

from availability_engine.availability.templates import InMemoryScheduleTemplateStore
from availability_engine.errors import NotFoundError
from availability_engine.schemas.booking_schema import Service
from availability_engine.schemas.schedule_schema import ScheduleTemplate, TemplateStatus, Weekday
from tests.conftest import COMPANY, MONDAY, make_template


class TestWeekday:
    @pytest.mark.parametrize("day,expected", [
        (date(2026, 3, 2), Weekday.MONDAY),
        (date(2026, 3, 4), Weekday.WEDNESDAY),
        (date(2026, 3, 8), Weekday.SUNDAY),
    ])
    def test_for_date(self, day, expected):
        assert Weekday.for_date(day) == expected


class TestScheduleTemplate:
    def test_parses_times(self):
        template = make_template(start="08:30", end="12:45")
        assert template.start_time == time(8, 30)
        assert template.end_time == time(12, 45)

    def test_lowercase_days_accepted(self):
        template = make_template(days=["monday", "friday"])
        assert template.days_of_week == [Weekday.MONDAY, Weekday.FRIDAY]

    def test_single_day_string_accepted(self):
        template = ScheduleTemplate(
            id="t", company_id=COMPANY, days_of_week="SATURDAY",
            start_time="10:00", end_time="11:00",
        )
        assert template.days_of_week == [Weekday.SATURDAY]

    def test_applies_on(self):
        template = make_template(days=["MONDAY"])
        assert template.applies_on(MONDAY)
        assert not template.applies_on(date(2026, 3, 3))

    def test_inactive(self):
        assert not make_template(status="INACTIVE").is_active
        assert make_template().status == TemplateStatus.ACTIVE

    @pytest.mark.parametrize("start,end", [("10:00", "10:00"), ("11:00", "10:00")])
    def test_rejects_empty_window(self, start, end):
        with pytest.raises(ModelValidationError):
            make_template(start=start, end=end)

    def test_rejects_bad_time(self):
        with pytest.raises(ModelValidationError):
            make_template(start="25:00")

    def test_rejects_unknown_weekday(self):
        with pytest.raises(ModelValidationError):
            make_template(days=["FUNDAY"])

    def test_rejects_no_days(self):
        with pytest.raises(ModelValidationError):
            ScheduleTemplate(
                id="t", company_id=COMPANY, days_of_week=[],
                start_time="10:00", end_time="11:00",
            )


@pytest.fixture
def linked_store():
    templates = InMemoryScheduleTemplateStore()
    templates.add_service(Service(id="svc", company_id=COMPANY, name="Massage"))
    templates.add_template(make_template("a", start="09:00", end="10:00"), "svc")
    templates.add_template(make_template("b", start="10:00", end="11:00", status="INACTIVE"), "svc")
    templates.add_template(make_template("c", start="11:00", end="12:00"), "svc")
    return templates


class TestTemplateStore:
    def test_active_templates_in_link_order(self, linked_store):
        assert [t.id for t in linked_store.templates_for_service("svc")] == ["a", "c"]

    def test_unknown_service(self, linked_store):
        with pytest.raises(NotFoundError):
            linked_store.templates_for_service("nope")

    def test_service_without_templates(self, linked_store):
        linked_store.add_service(Service(id="empty", company_id=COMPANY, name="Empty"))
        assert linked_store.templates_for_service("empty") == []

    def test_missing_template_skipped(self, linked_store, caplog):
        linked_store.remove_template("a")
        with caplog.at_level(logging.WARNING):
            result = linked_store.templates_for_service("svc")
        assert [t.id for t in result] == ["c"]
        assert "missing schedule template a" in caplog.text

    def test_link_is_idempotent(self, linked_store):
        linked_store.link("svc", "a")
        assert [t.id for t in linked_store.templates_for_service("svc")] == ["a", "c"]

    def test_template_shared_between_services(self, linked_store):
        linked_store.add_service(Service(id="svc-2", company_id=COMPANY, name="Facial"))
        linked_store.link("svc-2", "c")
        assert [t.id for t in linked_store.templates_for_service("svc-2")] == ["c"]

    def test_get_template(self, linked_store):
        assert linked_store.get_template("b").status == TemplateStatus.INACTIVE
        with pytest.raises(NotFoundError, match="Schedule template 'zz' not found"):
            linked_store.get_template("zz")
