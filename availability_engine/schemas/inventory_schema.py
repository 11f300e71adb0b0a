"""Calendar inventory entry models."""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from availability_engine.availability.overlap import TimeWindow
from availability_engine.utils import parse_hhmm


class InventoryStatus(str, Enum):
    BOOKED = "BOOKED"
    REQUESTED = "REQUESTED"


# Both statuses hold capacity; cancelled entries live outside this engine.
ACTIVE_STATUSES = frozenset({InventoryStatus.BOOKED, InventoryStatus.REQUESTED})


class InventoryEntry(BaseModel):
    """One reservation claim on a professional's time for a calendar date."""

    id: Optional[str] = None
    company_id: str
    service_id: str
    professional_id: str
    schedule_slot_id: Optional[str] = None
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    status: InventoryStatus = InventoryStatus.BOOKED
    created_at: Optional[dt.datetime] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, value):
        return parse_hhmm(value)

    @model_validator(mode="after")
    def _check_window(self) -> "InventoryEntry":
        if self.start_time >= self.end_time:
            raise ValueError(
                f"start_time {self.start_time:%H:%M} must be before end_time {self.end_time:%H:%M}"
            )
        return self

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)
