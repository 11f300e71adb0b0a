"""Computed availability views. Never persisted."""

import datetime as dt
from enum import Enum

from pydantic import BaseModel

from availability_engine.availability.overlap import TimeWindow
from availability_engine.utils import format_hhmm


class DayAvailability(str, Enum):
    """Aggregate status used to color a calendar day."""
    BLOCKED = "blocked"
    NO_SLOTS = "no_slots"
    LOW_SLOTS = "low_slots"
    AVAILABLE = "available"


class ResolvedSlot(BaseModel):
    """A schedule template projected onto one calendar date."""
    slot_id: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    occupied: bool = False

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    @property
    def label(self) -> str:
        return f"{format_hhmm(self.start_time)}-{format_hhmm(self.end_time)}"
