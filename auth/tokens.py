"""
auth/tokens.py -- Self-contained HS256 token engine.

Security design decisions:
  Format: base64url(header) "." base64url(payload) "." base64url(HMAC-SHA256).
       The header is always {"alg":"HS256","typ":"JWT"} and is never read back
       during verification -- the algorithm is fixed, so there is nothing for
       an attacker to negotiate ("alg": "none" tricks do not apply).

  Order of checks in verify(): structure, then signature, then payload
       decoding, then expiry. The payload is only parsed once the signature
       proves it came from us, so a tampered segment always fails as
       InvalidSignature and never reaches the JSON parser.

  Signature comparison is constant-time (hmac.compare_digest) to avoid leaking
       how many leading characters of a forged signature were correct.

  Clock: injected as a zero-argument callable returning epoch seconds. Tests
       pass a fake clock; production uses epoch_now().

  Determinism: JSON is serialized compactly and in insertion order, so the same
       payload, secret and clock reading always yield the same token.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import binascii
import json
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from auth.codec import b64url_decode, b64url_encode, sign, signatures_match
from auth.duration import parse_duration
from auth.errors import InvalidSignature, MalformedPayload, MalformedToken, TokenExpired

logger = logging.getLogger("admission.auth")

Clock = Callable[[], int]

_HEADER: dict[str, str] = {"alg": "HS256", "typ": "JWT"}


def epoch_now() -> int:
    """Current time as whole epoch seconds."""
    return int(time.time())


def _to_json(data: Mapping[str, Any]) -> bytes:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class TokenEngine:
    """Issues and verifies signed, optionally expiring tokens.

    Usage:
        engine = TokenEngine()
        token = engine.issue({"id": 1, "email": "a@b.c"}, secret, ttl="15m")
        claims = engine.verify(token, secret)   # raises TokenError subclasses
    """

    def __init__(self, clock: Clock = epoch_now) -> None:
        self._clock = clock

    def now(self) -> int:
        return int(self._clock())

    def issue(self, payload: Mapping[str, Any], secret: str, ttl: str | None = None) -> str:
        """Sign payload and return the compact token string.

        iat is always set from the clock; exp is set to iat + ttl seconds when
        ttl is given; without a ttl an exp already in payload is kept as is.
        The caller's mapping is left untouched.

        Raises InvalidDurationFormat if ttl is not a valid duration string.
        """
        now = self.now()
        claims = dict(payload)
        claims["iat"] = now
        if ttl is not None:
            claims["exp"] = now + parse_duration(ttl)

        encoded_header = b64url_encode(_to_json(_HEADER))
        encoded_payload = b64url_encode(_to_json(claims))
        signature = sign(f"{encoded_header}.{encoded_payload}", secret)
        return f"{encoded_header}.{encoded_payload}.{signature}"

    def verify(self, token: str, secret: str) -> dict[str, Any]:
        """Return the payload of a valid token, iat/exp included.

        Raises:
            MalformedToken:   not an ASCII str, or not three non-empty segments.
            InvalidSignature: recomputed signature differs.
            MalformedPayload: payload is not base64url JSON object.
            TokenExpired:     exp is present and strictly before now.
        """
        if not isinstance(token, str):
            raise MalformedToken("Token must be a string")
        if not token.isascii():
            raise MalformedToken("Token must be ASCII")
        segments = token.split(".")
        if len(segments) != 3 or not all(segments):
            raise MalformedToken("Token must have three non-empty segments")
        encoded_header, encoded_payload, signature = segments

        expected = sign(f"{encoded_header}.{encoded_payload}", secret)
        if not signatures_match(expected, signature):
            raise InvalidSignature("Signature mismatch")

        try:
            payload = json.loads(b64url_decode(encoded_payload).decode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            # UnicodeDecodeError and JSONDecodeError are both ValueErrors.
            raise MalformedPayload("Payload is not valid base64url JSON") from exc
        if not isinstance(payload, dict):
            raise MalformedPayload("Payload must be a JSON object")

        exp = payload.get("exp")
        if exp is not None:
            if not isinstance(exp, (int, float)) or isinstance(exp, bool):
                raise MalformedPayload("exp claim must be numeric")
            if exp < self.now():
                raise TokenExpired("Token expired")
        return payload
