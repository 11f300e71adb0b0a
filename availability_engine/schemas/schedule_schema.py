"""Weekly schedule template models."""

import datetime as dt
from enum import Enum

from pydantic import BaseModel, field_validator, model_validator

from availability_engine.availability.overlap import TimeWindow
from availability_engine.utils import parse_hhmm


class Weekday(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def for_date(cls, day: dt.date) -> "Weekday":
        # Member order matches date.weekday(): Monday == 0
        return list(cls)[day.weekday()]


class TemplateStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ScheduleTemplate(BaseModel):
    """A recurring weekly availability window, e.g. Mon/Wed 09:00-13:00."""

    id: str
    company_id: str
    days_of_week: list[Weekday]
    start_time: dt.time
    end_time: dt.time
    status: TemplateStatus = TemplateStatus.ACTIVE

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, value):
        return parse_hhmm(value)

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _normalize_days(cls, value):
        if isinstance(value, (str, Weekday)):
            value = [value]
        return [v.upper() if isinstance(v, str) else v for v in value]

    @model_validator(mode="after")
    def _check_shape(self) -> "ScheduleTemplate":
        if not self.days_of_week:
            raise ValueError("a schedule template needs at least one weekday")
        if self.start_time >= self.end_time:
            raise ValueError(
                f"start_time {self.start_time:%H:%M} must be before end_time {self.end_time:%H:%M}"
            )
        return self

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    @property
    def is_active(self) -> bool:
        return self.status == TemplateStatus.ACTIVE

    def applies_on(self, day: dt.date) -> bool:
        return Weekday.for_date(day) in self.days_of_week
