"""Parsing of human-readable durations.

Used for configuration values such as ``"1 Day"`` or ``"30 Days"`` and for
time labels such as ``"Time: <2 Hours"``.
"""

import re
from datetime import timedelta

UNIT_SECONDS = {
    "second": 1,
    "minute": 60,
    "hour": 60 * 60,
    "day": 24 * 60 * 60,
    "week": 7 * 24 * 60 * 60,
    "month": 30 * 24 * 60 * 60,
    "year": 365 * 24 * 60 * 60,
}

_DURATION_PATTERN = re.compile(
    r"^\s*<?\s*(\d+(?:\.\d+)?)\s*(second|minute|hour|day|week|month|year)s?\s*$",
    re.IGNORECASE,
)


def parse_duration(text: str) -> timedelta:
    """Parse ``"<amount> <unit>"`` into a timedelta.

    Units may be singular or plural and in any case. A leading ``<`` is
    accepted so time labels can be passed with their prefix stripped.

    Raises:
        ValueError: If the text is not a recognized duration
    """
    match = _DURATION_PATTERN.match(text)
    if not match:
        raise ValueError(f"Invalid duration: {text!r}")
    amount = float(match.group(1))
    unit = match.group(2).lower()
    return timedelta(seconds=amount * UNIT_SECONDS[unit])


def is_duration(text: str) -> bool:
    return _DURATION_PATTERN.match(text) is not None
