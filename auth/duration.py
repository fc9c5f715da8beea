"""
auth/duration.py -- Human-readable TTL strings ("15m", "7d") to seconds.

A year is exactly 365 days; there is no leap adjustment and no compound form
("1h30m" is rejected).
"""

from __future__ import annotations

import re

from auth.errors import InvalidDurationFormat

_UNIT_SECONDS: dict[str, int] = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 60 * 60 * 24,
    "w": 60 * 60 * 24 * 7,
    "y": 60 * 60 * 24 * 365,
}

_DURATION_RE = re.compile(r"(\d+)([a-zA-Z])", re.ASCII)


def parse_duration(value: str) -> int:
    """Convert "<integer><unit>" to integer seconds.

    >>> parse_duration("15m")
    900
    >>> parse_duration("2y")
    63072000

    Raises InvalidDurationFormat for a non-string, a missing or non-numeric
    magnitude, or a unit outside s/m/h/d/w/y.
    """
    if not isinstance(value, str):
        raise InvalidDurationFormat(f"Duration must be a string, got {type(value).__name__}")
    match = _DURATION_RE.fullmatch(value)
    if match is None:
        raise InvalidDurationFormat(f"Invalid duration {value!r}: expected <integer><unit>")
    magnitude, unit = match.groups()
    if unit not in _UNIT_SECONDS:
        raise InvalidDurationFormat(f"Invalid duration unit {unit!r} in {value!r}")
    return int(magnitude) * _UNIT_SECONDS[unit]
