"""
Password hashing and verification.

Stored format is ``<hex salt>:<hex digest>`` where the digest is
SHA-256 over the UTF-8 password bytes followed by the salt bytes.
A fresh salt is drawn for every call to :meth:`PasswordHasher.hash`.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Tuple

_MIN_SALT_BYTES = 16
_SEPARATOR = ":"


def encode_hash(salt: bytes, digest: bytes) -> str:
    return salt.hex() + _SEPARATOR + digest.hex()


def decode_hash(encoded: str) -> Tuple[bytes, bytes]:
    """Split a stored hash into ``(salt, digest)``. Raises ``ValueError`` if malformed."""
    salt_hex, sep, digest_hex = encoded.partition(_SEPARATOR)
    if not sep or not salt_hex or not digest_hex:
        raise ValueError("missing separator")
    return bytes.fromhex(salt_hex), bytes.fromhex(digest_hex)


def _digest(password: str, salt: bytes) -> bytes:
    return hashlib.sha256(password.encode("utf-8") + salt).digest()


class PasswordHasher:
    def __init__(self, salt_bytes: int = _MIN_SALT_BYTES):
        if salt_bytes < _MIN_SALT_BYTES:
            raise ValueError(f"salt must be at least {_MIN_SALT_BYTES} bytes")
        self.salt_bytes = salt_bytes

    def hash(self, password: str) -> str:
        salt = secrets.token_bytes(self.salt_bytes)
        return encode_hash(salt, _digest(password, salt))

    def verify(self, password: str, encoded: str) -> bool:
        """Check *password* against a stored hash. Malformed input is a mismatch."""
        try:
            salt, expected = decode_hash(encoded)
            actual = _digest(password, salt)
        except (ValueError, TypeError, AttributeError):
            return False
        return hmac.compare_digest(actual, expected)
