"""
Password hashing and login sessions.

Passwords are stored as ``<scrypt hex>.<salt>``.  Sessions live in memory,
keyed by a random cookie value, and expire after ``max_age`` seconds.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import time
import uuid
from dataclasses import dataclass
from typing import Optional

SESSION_COOKIE = "shelfsim_session"

_SCRYPT_N = 16384
_SCRYPT_R = 8
_SCRYPT_P = 1
_KEY_LEN = 64


def _scrypt(password: str, salt: str) -> bytes:
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=_KEY_LEN,
    )


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    return f"{_scrypt(password, salt).hex()}.{salt}"


def verify_password(password: str, stored: str) -> bool:
    """Constant-time check of *password* against a stored hash."""
    hashed, sep, salt = stored.partition(".")
    if not sep or not hashed or not salt:
        return False
    try:
        expected = bytes.fromhex(hashed)
    except ValueError:
        return False
    return hmac.compare_digest(expected, _scrypt(password, salt))


def new_reset_token() -> str:
    return secrets.token_hex(32)


# ------------------------------------------------------------------
# Sessions
# ------------------------------------------------------------------

@dataclass
class _Session:
    user_id: int
    expires_at: float


class SessionStore:
    """In-memory login sessions."""

    def __init__(self, max_age: int = 24 * 60 * 60) -> None:
        self.max_age = max_age
        self._sessions: dict[str, _Session] = {}

    def create(self, user_id: int) -> str:
        self.sweep()
        sid = uuid.uuid4().hex
        self._sessions[sid] = _Session(user_id=user_id, expires_at=time.time() + self.max_age)
        return sid

    def get(self, sid: Optional[str]) -> Optional[int]:
        """User id for a live session, None if unknown or expired."""
        if not sid:
            return None
        session = self._sessions.get(sid)
        if session is None:
            return None
        if session.expires_at < time.time():
            del self._sessions[sid]
            return None
        return session.user_id

    def sweep(self) -> int:
        """Drop every expired session.  Returns how many were dropped."""
        now = time.time()
        expired = [sid for sid, s in self._sessions.items() if s.expires_at < now]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def delete(self, sid: Optional[str]) -> None:
        if sid:
            self._sessions.pop(sid, None)

    def __len__(self) -> int:
        return len(self._sessions)
