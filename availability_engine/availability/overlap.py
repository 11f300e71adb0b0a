"""
Overlap Detection

Half-open interval predicate used for every conflict check in the engine.
A window [start, end) touches but does not overlap [end, later).
"""

from datetime import time
from typing import NamedTuple


class TimeWindow(NamedTuple):
    """A same-day [start, end) window of time-of-day values."""

    start: time
    end: time

    def validate(self) -> "TimeWindow":
        if self.start >= self.end:
            raise ValueError(
                f"Invalid window {self.start:%H:%M}-{self.end:%H:%M}: start must be before end"
            )
        return self


def overlaps(a: TimeWindow, b: TimeWindow) -> bool:
    """
    Return True when two windows share any instant.

    Args:
        a: first (start, end) pair, start < end
        b: second (start, end) pair, start < end

    Raises:
        ValueError: if either window is empty or inverted.
    """
    a = TimeWindow(*a).validate()
    b = TimeWindow(*b).validate()
    return a.start < b.end and b.start < a.end
