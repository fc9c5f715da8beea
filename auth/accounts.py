"""
auth/accounts.py -- Password hashing and student signup / login checks.

Security design decisions:
  Passwords: bcrypt, used directly (no passlib wrapper). Its cost factor makes
       brute-force of low-entropy secrets expensive.

  Timing equalization: authenticate_student() always runs one bcrypt check,
       against _DUMMY_HASH when the email is unknown, so response time does not
       reveal whether an account exists.

  Messages: login failures distinguish "No such email exists" from "Password
       is incorrect" and carry a `path` naming the form field, which the
       signup/login pages use to place the message next to the right input.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import bcrypt
from sqlalchemy.exc import IntegrityError

from auth.models import Student
from auth.store import StudentStore

_EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[A-Za-z]{2,}")
_MIN_PASSWORD = 8
_MAX_PASSWORD = 128


@dataclass(frozen=True)
class AccountProblem:
    """A signup or login attempt that was refused, tied to a form field."""

    error: str
    path: str  # "email" or "password"


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes and recent releases raise on longer
    input, so the encoded password is cut to 72 bytes here and in
    verify_password().
    """
    return bcrypt.hashpw(plain.encode("utf-8")[:72], bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


_DUMMY_HASH: str = hash_password("admission_timing_dummy")


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def validate_email(email: str) -> str | None:
    """Return an error message for an unusable email, or None if it is fine."""
    if not email:
        return "Email is required"
    if len(email) > 255 or not _EMAIL_RE.fullmatch(email):
        return "Please enter a valid email"
    return None


def validate_password(password: str) -> str | None:
    """Return an error message for a weak password, or None if it is acceptable."""
    if not password:
        return "Password is required"
    if len(password) < _MIN_PASSWORD:
        return f"Password must be at least {_MIN_PASSWORD} characters long"
    if len(password) > _MAX_PASSWORD:
        return f"Password must be at most {_MAX_PASSWORD} characters long"
    if not re.search(r"[A-Za-z]", password) or not re.search(r"\d", password):
        return "Password must contain at least one letter and one digit"
    return None


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------


def register_student(store: StudentStore, email: str, password: str) -> Student | AccountProblem:
    """Create a student account after validating email and password.

    The duplicate-email check runs before validation so an existing address is
    reported as taken even if it would fail today's format rules.
    """
    email = normalize_email(email)
    if store.get_by_email(email) is not None:
        return AccountProblem(error="That email is already in use", path="email")
    problem = validate_email(email)
    if problem:
        return AccountProblem(error=problem, path="email")
    problem = validate_password(password)
    if problem:
        return AccountProblem(error=problem, path="password")

    student = Student(email=email, hashed_password=hash_password(password))
    try:
        student.id = store.create_student(student)
    except IntegrityError:
        # Concurrent signup with the same email won the insert.
        return AccountProblem(error="That email is already in use", path="email")
    return student


def authenticate_student(store: StudentStore, email: str, password: str) -> Student | AccountProblem:
    """Check email/password with timing equalization."""
    student = store.get_by_email(normalize_email(email))
    if student is None:
        verify_password(password, _DUMMY_HASH)
        return AccountProblem(error="No such email exists", path="email")
    if not verify_password(password, student.hashed_password):
        return AccountProblem(error="Password is incorrect", path="password")
    return student
