"""Unit tests for core/config.py -- signing secret and TTL policy.

Settings are built with _env_file=None and explicit keyword arguments so the
DEBUG=true set by conftest does not leak into production-mode checks.
"""

import pytest

from auth.duration import parse_duration
from auth.errors import InvalidDurationFormat
from core.config import Settings

GOOD_ACCESS = "a" * 32
GOOD_REFRESH = "b" * 32


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


def test_debug_generates_distinct_secrets():
    s = _settings(debug=True, access_token_secret="", refresh_token_secret="")
    assert len(s.access_token_secret) >= 32
    assert len(s.refresh_token_secret) >= 32
    assert s.access_token_secret != s.refresh_token_secret


def test_production_requires_secrets():
    with pytest.raises(ValueError, match="ACCESS_TOKEN_SECRET"):
        _settings(debug=False, access_token_secret="", refresh_token_secret=GOOD_REFRESH)


def test_short_secret_rejected():
    with pytest.raises(ValueError, match="at least 32"):
        _settings(debug=False, access_token_secret="short", refresh_token_secret=GOOD_REFRESH)


def test_identical_secrets_rejected():
    with pytest.raises(ValueError, match="must differ"):
        _settings(debug=False, access_token_secret=GOOD_ACCESS, refresh_token_secret=GOOD_ACCESS)


def test_invalid_ttl_rejected():
    with pytest.raises(ValueError, match="ACCESS_TOKEN_TTL"):
        _settings(
            debug=False,
            access_token_secret=GOOD_ACCESS,
            refresh_token_secret=GOOD_REFRESH,
            access_token_ttl="15x",
        )


def test_defaults():
    s = _settings(debug=False, access_token_secret=GOOD_ACCESS, refresh_token_secret=GOOD_REFRESH)
    assert s.access_token_ttl == "15m"
    assert s.refresh_token_ttl == "7d"
    assert s.secure_cookies is False


@pytest.mark.parametrize(
    "value",
    ["30s", "15m", "1h", "7d", "2w", "2y", "0s", "15x", "15", "m", "", "1.5h", "-5m", "15 m", "1h30m", "15M", "15m\n"],
)
def test_ttl_check_agrees_with_parse_duration(value):
    try:
        parse_duration(value)
        parses = True
    except InvalidDurationFormat:
        parses = False

    kwargs = dict(debug=False, access_token_secret=GOOD_ACCESS, refresh_token_secret=GOOD_REFRESH)
    if parses:
        assert _settings(access_token_ttl=value, **kwargs).access_token_ttl == value
    else:
        with pytest.raises(ValueError, match="ACCESS_TOKEN_TTL"):
            _settings(access_token_ttl=value, **kwargs)
