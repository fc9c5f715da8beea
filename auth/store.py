"""
auth/store.py -- SQLAlchemy Core persistence layer for students and sessions.

Pattern: Repository + Data Mapper.
StudentStore and SessionStore are the repositories; _row_to_student /
_row_to_session are the mappers. The session manager and route code never
touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Rotation atomicity:
  SessionStore.replace_token() is a single conditional UPDATE
  (WHERE student_id = ? AND token = ?). Two concurrent renewals presenting the
  same refresh token both pass verification, but only the first UPDATE matches
  a row; the second sees rowcount == 0 and is reported as a conflict. No
  in-process lock is needed.

DB path: auth/admission_auth.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import SessionRecord, Student

logger = logging.getLogger("admission.auth")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'admission_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_students = Table(
    "students",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_refresh_tokens = Table(
    "refresh_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("student_id", Integer, nullable=False, unique=True),  # one live session per student
    Column("token", Text, nullable=False, unique=True),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    _metadata.create_all(engine)
    return engine


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------


class StudentStore:
    """Repository for Student accounts.

    Usage:
        store = StudentStore()
        sid = store.create_student(Student(email="a@b.c", hashed_password=hash_password("secret1")))
        student = store.get_by_email("a@b.c")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        self.engine: Engine = _make_engine(db_url)

    def create_student(self, student: Student) -> int:
        """Insert a new student and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        Callers treat that as a duplicate signup that raced past the
        get_by_email() pre-check.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _students.insert().values(
                    email=student.email,
                    hashed_password=student.hashed_password,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> Student | None:
        """Look up a student by exact (already normalized) email. None if absent."""
        with self.engine.connect() as conn:
            row = conn.execute(_students.select().where(_students.c.email == email)).fetchone()
        return _row_to_student(row) if row is not None else None

    def get_by_id(self, student_id: int) -> Student | None:
        """Look up a student by primary key. None if absent."""
        with self.engine.connect() as conn:
            row = conn.execute(_students.select().where(_students.c.id == student_id)).fetchone()
        return _row_to_student(row) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Sessions (refresh tokens)
# ---------------------------------------------------------------------------


class SessionStore:
    """Repository for the single live refresh token of each student.

    Lookups and deletes are keyed on the literal token string; writes are
    keyed on student_id.
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        self.engine: Engine = _make_engine(db_url)

    def get_by_student_id(self, student_id: int) -> SessionRecord | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                _refresh_tokens.select().where(_refresh_tokens.c.student_id == student_id)
            ).fetchone()
        return _row_to_session(row) if row is not None else None

    def get_by_token(self, token: str) -> SessionRecord | None:
        """Return the session holding exactly this refresh token, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(_refresh_tokens.select().where(_refresh_tokens.c.token == token)).fetchone()
        return _row_to_session(row) if row is not None else None

    def upsert(self, student_id: int, token: str) -> None:
        """Store token as the student's live refresh token, replacing any previous one.

        UPDATE first, INSERT if nothing matched. If a concurrent login inserted
        the row between the two statements, the UNIQUE(student_id) constraint
        rejects our INSERT and we fall back to UPDATE -- last writer wins, and
        the table never holds two rows for one student.
        """
        stamp = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _refresh_tokens.update()
                .where(_refresh_tokens.c.student_id == student_id)
                .values(token=token, updated_at=stamp)
            )
            if result.rowcount > 0:
                return
        try:
            with self.engine.begin() as conn:
                conn.execute(_refresh_tokens.insert().values(student_id=student_id, token=token, updated_at=stamp))
        except IntegrityError:
            logger.info("Concurrent session write for student %s; updating instead", student_id)
            with self.engine.begin() as conn:
                conn.execute(
                    _refresh_tokens.update()
                    .where(_refresh_tokens.c.student_id == student_id)
                    .values(token=token, updated_at=stamp)
                )

    def replace_token(self, student_id: int, old_token: str, new_token: str) -> bool:
        """Atomically swap old_token for new_token (compare-and-swap).

        Returns True if the student's stored token was still old_token and has
        been replaced, False if another writer got there first.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                _refresh_tokens.update()
                .where((_refresh_tokens.c.student_id == student_id) & (_refresh_tokens.c.token == old_token))
                .values(token=new_token, updated_at=_now_iso())
            )
        return result.rowcount > 0

    def delete_by_token(self, token: str) -> bool:
        """Delete the session holding this token. Returns True if a row was removed."""
        with self.engine.begin() as conn:
            result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.token == token))
        return result.rowcount > 0

    def count_for_student(self, student_id: int) -> int:
        """Number of session rows for a student -- 0 or 1 by construction.

        Inspection helper for tests and operators; no request path calls it.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_refresh_tokens).where(_refresh_tokens.c.student_id == student_id)
            ).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_student(row) -> Student:
    return Student(
        id=row.id,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )


def _row_to_session(row) -> SessionRecord:
    return SessionRecord(
        student_id=row.student_id,
        token=row.token,
        updated_at=row.updated_at,
    )
