"""Tests for open slots, day status and nearest-date lookup."""

from datetime import date, datetime, timedelta

import pytest

from availability_engine.availability.resolver import AvailabilityResolver
from availability_engine.clock import FixedClock
from availability_engine.schemas.availability_schema import DayAvailability
from tests.conftest import MONDAY, TUESDAY, hourly_templates, make_entry, make_template


class TestSlotsForDate:
    def test_matching_weekday_only(self, resolver):
        templates = [make_template("mon", ["MONDAY"]), make_template("tue", ["TUESDAY"])]
        slots = resolver.slots_for_date(MONDAY, templates)
        assert [s.slot_id for s in slots] == ["mon"]
        assert slots[0].date == MONDAY
        assert not slots[0].occupied

    def test_sorted_by_start_time(self, resolver):
        templates = [
            make_template("afternoon", start="14:00", end="18:00"),
            make_template("morning", start="09:00", end="13:00"),
        ]
        assert [s.slot_id for s in resolver.slots_for_date(MONDAY, templates)] == [
            "morning", "afternoon",
        ]

    def test_inactive_templates_ignored(self, resolver):
        templates = [make_template(status="INACTIVE")]
        assert resolver.slots_for_date(MONDAY, templates) == []

    def test_no_templates(self, resolver):
        assert resolver.slots_for_date(MONDAY, []) == []


class TestOpenSlots:
    def test_single_day_long_slot(self, resolver):
        templates = [make_template(start="09:00", end="18:00")]
        slots = resolver.open_slots(MONDAY, templates, [])
        assert len(slots) == 1
        assert slots[0].label == "09:00-18:00"
        assert resolver.day_status(MONDAY, templates, []) == DayAvailability.LOW_SLOTS

    def test_booked_hour_occupies_whole_template_slot(self, resolver):
        templates = [make_template(start="09:00", end="18:00")]
        entries = [make_entry("09:00", "10:00", professional_id="pro-1")]
        assert resolver.open_slots(MONDAY, templates, entries, "pro-1") == []
        assert resolver.day_status(MONDAY, templates, entries) == DayAvailability.NO_SLOTS

    def test_other_professional_still_open(self, resolver):
        templates = [make_template()]
        entries = [make_entry(professional_id="pro-1")]
        assert len(resolver.open_slots(MONDAY, templates, entries, "pro-2")) == 1

    def test_entries_for_other_dates_ignored(self, resolver):
        templates = [make_template()]
        entries = [make_entry(day=TUESDAY), make_entry(day=MONDAY + timedelta(days=7))]
        assert len(resolver.open_slots(MONDAY, templates, entries)) == 1

    def test_resolve_slots_marks_occupied(self, resolver):
        templates = hourly_templates(3)
        entries = [make_entry("10:00", "11:00")]
        resolved = resolver.resolve_slots(MONDAY, templates, entries)
        assert [s.occupied for s in resolved] == [False, True, False]


class TestDayStatus:
    @pytest.mark.parametrize("booked,expected", [
        (5, DayAvailability.NO_SLOTS),
        (4, DayAvailability.LOW_SLOTS),
        (3, DayAvailability.LOW_SLOTS),
        (2, DayAvailability.LOW_SLOTS),
        (1, DayAvailability.AVAILABLE),
        (0, DayAvailability.AVAILABLE),
    ])
    def test_thresholds(self, resolver, booked, expected):
        templates = hourly_templates(5)
        entries = [make_entry(f"{h:02d}:00", f"{h + 1:02d}:00") for h in range(9, 9 + booked)]
        assert resolver.day_status(MONDAY, templates, entries) == expected

    def test_blocked_regardless_of_entries(self, resolver):
        templates = hourly_templates(5, ["MONDAY"])
        entries = [make_entry(day=TUESDAY)]
        assert resolver.day_status(TUESDAY, templates, entries) == DayAvailability.BLOCKED
        assert resolver.day_status(TUESDAY, templates, []) == DayAvailability.BLOCKED

    def test_idempotent(self, resolver):
        templates = hourly_templates(4)
        entries = [make_entry("09:00", "09:30")]
        first = resolver.day_status(MONDAY, templates, entries)
        second = resolver.day_status(MONDAY, templates, entries)
        assert first == second == DayAvailability.LOW_SLOTS

    def test_professional_scoped_status(self, resolver):
        templates = hourly_templates(1)
        entries = [make_entry(professional_id="pro-1")]
        assert resolver.day_status(MONDAY, templates, entries, "pro-2") == DayAvailability.LOW_SLOTS
        assert resolver.day_status(MONDAY, templates, entries, "pro-1") == DayAvailability.NO_SLOTS

    def test_classify_respects_configured_threshold(self, inventory, clock, availability_config):
        from dataclasses import replace

        config = replace(availability_config, low_slots_max=1)
        resolver = AvailabilityResolver(inventory, clock, config)
        assert resolver.classify(1) == DayAvailability.LOW_SLOTS
        assert resolver.classify(2) == DayAvailability.AVAILABLE


class TestCalendar:
    def test_covers_every_date(self, resolver):
        templates = hourly_templates(5, ["MONDAY"])
        entries = [make_entry(f"{h:02d}:00", f"{h + 1:02d}:00") for h in range(9, 14)]
        result = resolver.calendar(MONDAY, MONDAY + timedelta(days=7), templates, entries)
        assert len(result) == 8
        assert result[MONDAY] == DayAvailability.NO_SLOTS
        assert result[TUESDAY] == DayAvailability.BLOCKED
        assert result[MONDAY + timedelta(days=7)] == DayAvailability.AVAILABLE

    def test_rejects_inverted_range(self, resolver):
        with pytest.raises(ValueError):
            resolver.calendar(TUESDAY, MONDAY, [], [])


class TestNearestAvailableDate:
    def test_same_day_when_covered(self, resolver):
        assert resolver.nearest_available_date(MONDAY, [make_template()]) == MONDAY

    def test_seventh_day(self, resolver):
        templates = [make_template(days=["SUNDAY"])]
        assert resolver.nearest_available_date(MONDAY, templates) == date(2026, 3, 8)

    def test_ignores_occupancy(self, resolver):
        # Coverage only: a fully booked day is still returned
        templates = [make_template()]
        assert resolver.nearest_available_date(MONDAY, templates) == MONDAY

    def test_none_without_coverage(self, resolver):
        assert resolver.nearest_available_date(MONDAY, []) is None
        assert resolver.nearest_available_date(MONDAY, [make_template(status="INACTIVE")]) is None

    def test_none_past_horizon(self, resolver):
        templates = [make_template(days=["SUNDAY"])]
        assert resolver.nearest_available_date(MONDAY, templates, horizon_days=5) is None
        assert resolver.nearest_available_date(MONDAY, templates, horizon_days=6) == date(2026, 3, 8)


class TestSameDayCutoff:
    def _resolver(self, inventory, availability_config, now: datetime) -> AvailabilityResolver:
        return AvailabilityResolver(inventory, FixedClock(now), availability_config)

    def test_started_slot_excluded(self, inventory, availability_config):
        resolver = self._resolver(inventory, availability_config, datetime(2026, 3, 2, 9, 50))
        templates = [
            make_template("early", start="09:00", end="10:00"),
            make_template("late", start="09:40", end="10:40"),
        ]
        assert [s.slot_id for s in resolver.open_slots(MONDAY, templates, [])] == ["late"]

    def test_cutoff_boundary_is_inclusive(self, inventory, availability_config):
        resolver = self._resolver(inventory, availability_config, datetime(2026, 3, 2, 9, 15))
        templates = [make_template(start="09:00", end="10:00")]
        assert len(resolver.open_slots(MONDAY, templates, [])) == 1

    def test_cutoff_only_applies_today(self, inventory, availability_config):
        resolver = self._resolver(inventory, availability_config, datetime(2026, 3, 1, 23, 0))
        templates = [make_template(start="09:00", end="10:00")]
        assert len(resolver.open_slots(MONDAY, templates, [])) == 1

    def test_cutoff_feeds_day_status(self, inventory, availability_config):
        resolver = self._resolver(inventory, availability_config, datetime(2026, 3, 2, 18, 0))
        templates = hourly_templates(5)
        assert resolver.day_status(MONDAY, templates, []) == DayAvailability.NO_SLOTS

    def test_booking_window(self, resolver):
        start, end = resolver.booking_window()
        assert start == MONDAY
        assert end == MONDAY + timedelta(days=35)
