"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the session
manager do the work.

Layer rule: stdlib only.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Student:
    """An account that can sign in to the admission portal.

    email is the login name and is stored lower-cased. hashed_password is a
    bcrypt hash; the plaintext is never persisted.
    """

    email: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass
class SessionRecord:
    """The single live refresh token for one student.

    One row per student_id. A new login or a renewal overwrites token in place;
    sign-out deletes the row by the literal token value.
    """

    student_id: int
    token: str
    updated_at: str | None = None


@dataclass(frozen=True)
class CredentialPair:
    """Access and refresh tokens minted together from the same identity claims."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class RenewedSession:
    """Successful result of SessionManager.renew()."""

    access_token: str
    refresh_token: str
    student_id: int


@dataclass(frozen=True)
class RenewalFailure:
    """Refused renewal.

    error is the message shown to clients ("Refresh token is not valid",
    "Student not found"). reason is the name of the auth.errors class that
    describes the cause, e.g. "RefreshNotFound" or "TokenExpired".
    """

    error: str
    reason: str
