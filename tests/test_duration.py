"""Unit tests for auth/duration.py -- TTL string parsing."""

import pytest

from auth.duration import parse_duration
from auth.errors import InvalidDurationFormat


@pytest.mark.parametrize(
    "value, seconds",
    [
        ("30s", 30),
        ("15m", 900),
        ("1h", 3600),
        ("7d", 604800),
        ("2w", 1209600),
        ("2y", 63072000),
        ("0s", 0),
    ],
)
def test_valid_durations(value, seconds):
    assert parse_duration(value) == seconds


def test_year_is_365_days():
    assert parse_duration("1y") == 365 * parse_duration("1d")


@pytest.mark.parametrize("value", ["15x", "15", "m", "", "1.5h", "-5m", "15 m", "1h30m", "15M", "15m\n"])
def test_invalid_durations(value):
    with pytest.raises(InvalidDurationFormat):
        parse_duration(value)


def test_non_string_rejected():
    with pytest.raises(InvalidDurationFormat):
        parse_duration(900)


def test_invalid_duration_is_a_value_error():
    with pytest.raises(ValueError):
        parse_duration("15x")
