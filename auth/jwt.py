"""
JWT-style token creation and verification.

Tokens are ``base64url(header).base64url(payload).base64url(signature)``
with an HMAC-SHA256 signature over the first two segments.  The secret is
handed to :class:`TokenCodec` at construction; the application builds one
from ``config.auth_jwt_secret`` at startup.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Any, Callable, Dict, Optional

_HEADER = {"alg": "HS256", "typ": "JWT"}


def b64url_encode(raw: bytes) -> str:
    return urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return urlsafe_b64decode(segment + padding)


def _json_segment(obj: Dict[str, Any]) -> str:
    return b64url_encode(json.dumps(obj, separators=(",", ":")).encode("utf-8"))


def decode_unverified(token: str) -> Optional[Dict[str, Any]]:
    """
    Read the payload of a token without checking its signature.

    Only for callers that are not a trust boundary (the client reading
    its own token's ``exp``).  Returns ``None`` if the token is malformed.
    """
    try:
        parts = token.split(".")
        if len(parts) != 3:
            return None
        payload = json.loads(b64url_decode(parts[1]))
    except (ValueError, TypeError, AttributeError):
        return None
    return payload if isinstance(payload, dict) else None


class TokenCodec:
    def __init__(self, secret: str, clock: Callable[[], float] = time.time):
        if not secret:
            raise ValueError("token signing secret is not configured (AUTH_JWT_SECRET)")
        self._key = secret.encode("utf-8")
        self._clock = clock

    def _sign(self, signing_input: str) -> str:
        sig = hmac.new(self._key, signing_input.encode("ascii"), hashlib.sha256).digest()
        return b64url_encode(sig)

    def issue(self, claims: Dict[str, Any], ttl_seconds: int) -> str:
        """Create a signed token carrying *claims* plus ``iat`` / ``exp``."""
        now = int(self._clock())
        payload = {**claims, "iat": now, "exp": now + int(ttl_seconds)}
        signing_input = _json_segment(_HEADER) + "." + _json_segment(payload)
        return signing_input + "." + self._sign(signing_input)

    def verify(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Return the token's claims, or ``None`` if the token is malformed,
        tampered with, or expired.
        """
        try:
            parts = token.split(".")
            if len(parts) != 3:
                return None
            header_b64, payload_b64, signature_b64 = parts
            expected = self._sign(header_b64 + "." + payload_b64)
            if not hmac.compare_digest(signature_b64.encode("ascii"), expected.encode("ascii")):
                return None
            header = json.loads(b64url_decode(header_b64))
            payload = json.loads(b64url_decode(payload_b64))
        except (ValueError, TypeError, AttributeError, UnicodeError):
            return None

        if not isinstance(header, dict) or header.get("alg") != _HEADER["alg"]:
            return None
        if not isinstance(payload, dict):
            return None
        exp = payload.get("exp")
        if not isinstance(exp, int) or isinstance(exp, bool):
            return None
        if exp < int(self._clock()):
            return None
        return payload
