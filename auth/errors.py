"""
auth/errors.py -- Exception taxonomy for the token and session core.

TokenError subclasses are raised by TokenEngine.verify(). They never cross the
SessionManager.validate_access() / validate_refresh() boundary -- those collapse
every TokenError into None so request guards have one "is authenticated" check.

SessionError subclasses name the reasons a renewal can fail. SessionManager.renew()
reports them as RenewalFailure values (reason = class name) instead of raising,
because callers redirect differently on a failed renewal than on a plain
invalid access token.

Storage errors (sqlalchemy.exc.*) are deliberately absent: there is no fallback
session store, so they propagate unchanged.

Layer rule: stdlib only.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all token and session failures."""


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------


class TokenError(AuthError):
    """A presented token could not be accepted."""


class MalformedToken(TokenError):
    """Not a string, or not three non-empty dot-separated segments."""


class InvalidSignature(TokenError):
    """Signature segment does not match the recomputed HMAC."""


class MalformedPayload(TokenError):
    """Payload segment is not base64url-encoded JSON object."""


class TokenExpired(TokenError):
    """The exp claim lies in the past."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class InvalidDurationFormat(AuthError, ValueError):
    """A TTL string is not <integer><unit> with unit in s/m/h/d/w/y."""


# ---------------------------------------------------------------------------
# Session rotation
# ---------------------------------------------------------------------------


class SessionError(AuthError):
    """A refresh-token renewal was refused."""


class RefreshNotFound(SessionError):
    """Token verified but is no longer the stored refresh token for its account."""


class AccountNotFound(SessionError):
    """The account named by the token's id claim does not exist."""


class RenewalConflict(SessionError):
    """A concurrent renewal replaced the stored token first."""
