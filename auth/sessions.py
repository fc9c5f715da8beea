"""
auth/sessions.py -- Access/refresh credential pairs with rotate-on-use refresh.

Lifecycle per student:
    NoSession --create_session--> Active --renew--> Active (old refresh dead)
    Active --end_session--> NoSession

Rotation: every successful renew() replaces the stored refresh token. A
refresh token that is cryptographically valid and unexpired is still refused
once the store no longer holds it, so a stolen refresh token stops working as
soon as its owner (or the thief) uses it once.

Each token carries a random jti alongside the identity claims. Without it, two
pairs minted for the same student within one clock second would be
byte-identical and a rotation could hand back the token it was meant to retire.

SessionManager holds no module-level state. api/main.py builds one instance in
the lifespan and stores it on app.state.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from auth.errors import AccountNotFound, RefreshNotFound, RenewalConflict, TokenError
from auth.models import CredentialPair, RenewalFailure, RenewedSession
from auth.store import SessionStore, StudentStore
from auth.tokens import TokenEngine

logger = logging.getLogger("admission.auth")

INVALID_REFRESH_MESSAGE = "Refresh token is not valid"
STUDENT_NOT_FOUND_MESSAGE = "Student not found"
REFRESH_ALREADY_USED_MESSAGE = "Refresh token was already used"


class SessionManager:
    """Issues, renews and ends student sessions.

    Args:
        engine:         TokenEngine used for both token kinds.
        students:       Account lookups for renewal.
        sessions:       Persistent store of the live refresh token per student.
        access_secret:  HMAC key for access tokens.
        refresh_secret: HMAC key for refresh tokens. Must differ from
                        access_secret so one kind never verifies as the other.
        access_ttl:     Duration string, e.g. "15m".
        refresh_ttl:    Duration string, e.g. "7d".
    """

    def __init__(
        self,
        engine: TokenEngine,
        students: StudentStore,
        sessions: SessionStore,
        access_secret: str,
        refresh_secret: str,
        access_ttl: str = "15m",
        refresh_ttl: str = "7d",
    ) -> None:
        if access_secret == refresh_secret:
            raise ValueError("access_secret and refresh_secret must differ")
        self._engine = engine
        self._students = students
        self._sessions = sessions
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def _mint(self, identity: Mapping[str, Any]) -> CredentialPair:
        claims = {"id": identity["id"], "email": identity["email"]}
        access = self._engine.issue({**claims, "jti": uuid.uuid4().hex}, self._access_secret, self._access_ttl)
        refresh = self._engine.issue({**claims, "jti": uuid.uuid4().hex}, self._refresh_secret, self._refresh_ttl)
        return CredentialPair(access_token=access, refresh_token=refresh)

    def create_session(self, identity: Mapping[str, Any]) -> CredentialPair:
        """Mint a credential pair for identity {"id", "email"} and persist its refresh token.

        Any previous refresh token of the same student is overwritten, so a new
        login silently ends the older session.
        """
        pair = self._mint(identity)
        self._sessions.upsert(identity["id"], pair.refresh_token)
        logger.info("Session created for student %s", identity["id"])
        return pair

    # ------------------------------------------------------------------
    # Renew
    # ------------------------------------------------------------------

    def renew(self, refresh_token: str) -> RenewedSession | RenewalFailure:
        """Exchange a live refresh token for a new pair, retiring the old one.

        Never raises for token problems; storage errors propagate.
        """
        try:
            claims = self._engine.verify(refresh_token, self._refresh_secret)
        except TokenError as exc:
            logger.debug("Refresh rejected: %s", type(exc).__name__)
            return RenewalFailure(error=INVALID_REFRESH_MESSAGE, reason=type(exc).__name__)

        record = self._sessions.get_by_token(refresh_token)
        if record is None or record.student_id != claims.get("id"):
            logger.warning("Refresh token for student %s is not the stored one", claims.get("id"))
            return RenewalFailure(error=INVALID_REFRESH_MESSAGE, reason=RefreshNotFound.__name__)

        student = self._students.get_by_id(record.student_id)
        if student is None:
            return RenewalFailure(error=STUDENT_NOT_FOUND_MESSAGE, reason=AccountNotFound.__name__)

        pair = self._mint({"id": student.id, "email": student.email})
        if not self._sessions.replace_token(student.id, refresh_token, pair.refresh_token):
            logger.warning("Concurrent renewal for student %s lost the race", student.id)
            return RenewalFailure(error=REFRESH_ALREADY_USED_MESSAGE, reason=RenewalConflict.__name__)

        logger.info("Session rotated for student %s", student.id)
        return RenewedSession(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            student_id=student.id,
        )

    # ------------------------------------------------------------------
    # End
    # ------------------------------------------------------------------

    def end_session(self, refresh_token: str) -> bool:
        """Delete the session holding this refresh token.

        Returns False when no such session exists; calling twice is harmless.
        """
        if not refresh_token:
            return False
        removed = self._sessions.delete_by_token(refresh_token)
        if removed:
            logger.info("Session ended")
        return removed

    # ------------------------------------------------------------------
    # Validate
    # ------------------------------------------------------------------

    def validate_access(self, token: str | None) -> dict[str, Any] | None:
        """Claims of a valid access token, or None. Never raises TokenError."""
        return self._validate(token, self._access_secret, "access")

    def validate_refresh(self, token: str | None) -> dict[str, Any] | None:
        """Claims of a valid refresh token, or None. Does not consult the store."""
        return self._validate(token, self._refresh_secret, "refresh")

    def _validate(self, token: str | None, secret: str, kind: str) -> dict[str, Any] | None:
        if not token:
            return None
        try:
            return self._engine.verify(token, secret)
        except TokenError as exc:
            logger.debug("Rejected %s token: %s", kind, type(exc).__name__)
            return None
