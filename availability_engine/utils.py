"""Shared utilities used across the availability engine."""

import re
from datetime import datetime, time
from typing import Union

TIME_FORMAT = "%H:%M"


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("+56 9 1234 5678")
        '+56912345678'
        >>> normalize_phone("(09) 1234-5678")
        '0912345678'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def parse_hhmm(value: Union[str, time]) -> time:
    """Parse an ``HH:MM`` string into a ``datetime.time``.

    Values that are already ``time`` objects are returned unchanged.
    Raises ValueError for anything that is not a valid 24h clock time.
    """
    if isinstance(value, time):
        return value
    try:
        return datetime.strptime(value.strip(), TIME_FORMAT).time()
    except (ValueError, AttributeError):
        raise ValueError(f"Invalid time (expected HH:MM): {value!r}") from None


def format_hhmm(value: time) -> str:
    return value.strftime(TIME_FORMAT)
