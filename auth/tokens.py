"""
auth/tokens.py -- JWT credential codec and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Access tokens carry the user id and role plus
       an expiry; reset tokens carry the user id and a random jti. Every token holds
       a "typ" claim so a password-reset token can never be replayed as an
       access token (and vice versa). Verification returns None on any
       failure -- the gate turns that into a 401.

  Secret: TokenCodec receives the signing key at construction. The key is
       read from Settings once at startup and passed in by api/main.py, so a
       codec built with a different key rejects every token issued before.

  Passwords: bcrypt directly (no passlib wrapper). bcrypt's cost factor makes
       brute-force against a leaked hash expensive.

Layer rule: no imports from api/ or ledger/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

logger = logging.getLogger("autosales.auth")

_ALGORITHM = "HS256"

ACCESS_TOKEN = "access"
RESET_TOKEN = "reset"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes; the API caps passwords at 72
    characters so nothing is silently truncated for ASCII input.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# ---------------------------------------------------------------------------
# Token codec
# ---------------------------------------------------------------------------


class TokenCodec:
    """Signs and verifies bearer tokens with an injected secret.

    Usage:
        codec = TokenCodec(settings.secret_key, access_ttl=5 * 3600, reset_ttl=3600)
        token = codec.issue_access(user_id=1, role="admin")
        claims = codec.verify_access(token)      # {"user_id": 1, "role": "admin", ...} or None
    """

    def __init__(self, secret_key: str, access_ttl: int = 5 * 60 * 60, reset_ttl: int = 60 * 60) -> None:
        if not secret_key:
            raise ValueError("TokenCodec requires a non-empty secret key.")
        self._secret_key = secret_key
        self.access_ttl = access_ttl
        self.reset_ttl = reset_ttl

    def _encode(self, claims: dict, ttl: int) -> str:
        now = datetime.now(timezone.utc)
        payload = dict(claims, iat=now, exp=now + timedelta(seconds=ttl))
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def _decode(self, token: str, token_type: str) -> dict | None:
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError:
            return None
        if payload.get("typ") != token_type or not isinstance(payload.get("user_id"), int):
            return None
        return payload

    def issue_access(self, user_id: int, role: str, expire_seconds: int = 0) -> str:
        """Encode an access token for {user_id, role}.

        expire_seconds overrides the codec default when positive; tests use
        negative values to mint already-expired tokens.
        """
        ttl = expire_seconds if expire_seconds != 0 else self.access_ttl
        return self._encode({"sub": str(user_id), "user_id": user_id, "role": role, "typ": ACCESS_TOKEN}, ttl)

    def verify_access(self, token: str) -> dict | None:
        """Decode an access token. Returns the payload or None on any failure."""
        payload = self._decode(token, ACCESS_TOKEN)
        if payload is None or "role" not in payload:
            return None
        return payload

    def issue_reset(self, user_id: int, expire_seconds: int = 0) -> str:
        ttl = expire_seconds if expire_seconds != 0 else self.reset_ttl
        # jti keeps two resets issued within the same second distinct.
        claims = {"sub": str(user_id), "user_id": user_id, "typ": RESET_TOKEN, "jti": secrets.token_hex(8)}
        return self._encode(claims, ttl)

    def verify_reset(self, token: str) -> dict | None:
        """Decode a password-reset token. Returns the payload or None."""
        return self._decode(token, RESET_TOKEN)
