"""
auth/codec.py -- base64url codec and HMAC-SHA256 signer for compact tokens.

Wire format pieces only. Nothing here knows about headers, claims or expiry --
auth/tokens.py composes these into issue()/verify().

Layer rule: stdlib only.
"""

from __future__ import annotations

import base64
import hashlib
import hmac


def b64url_encode(data: bytes) -> str:
    """Encode bytes as URL-safe base64 with all '=' padding stripped."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """Decode unpadded URL-safe base64.

    Raises binascii.Error (a ValueError) on characters outside the alphabet or
    an impossible length. Callers treat that as a malformed segment.
    """
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def sign(message: str, secret: str) -> str:
    """Return base64url(HMAC-SHA256(secret, message))."""
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return b64url_encode(digest)


def signatures_match(expected: str, presented: str) -> bool:
    """Constant-time comparison of two encoded signatures."""
    return hmac.compare_digest(expected.encode("ascii", "replace"), presented.encode("ascii", "replace"))
