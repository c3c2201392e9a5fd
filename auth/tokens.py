"""
auth/tokens.py -- JWT issue/verify and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       sub, iat, exp, and a random jti. Verification returns None on any
       failure -- the gate turns that into a uniform 401 so callers cannot
       tell a bad signature from an expired or malformed token.

  Algorithm pinning: decode() passes algorithms=[HS256] explicitly. A token
       whose header claims "none", HS512, or anything else is rejected by
       jose before the signature is even considered, which closes the
       alg-confusion / downgrade hole.

  Expiry: checked here against an injectable clock rather than by jose, so
       the boundary is testable. A token is valid while now <= exp and
       rejected once now > exp.

  Passwords: bcrypt directly (no passlib wrapper). Bcrypt's cost factor also
       gives the credential store its timing equalization [C1].

Layer rule: no imports from api/ or files/.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable

import bcrypt
from jose import JWTError, jwt

from auth.models import TokenClaims

logger = logging.getLogger("tokengate.auth")

ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 3600

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = 12) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt rejects inputs longer than 72 bytes. LoginRequest caps passwords at
    255 characters, and verify_password() treats a bcrypt error as a mismatch.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# Token codec
# ---------------------------------------------------------------------------


class TokenCodec:
    """Issues and verifies signed, self-contained bearer tokens.

    Stateless: the codec never records what it issued and never mutates shared
    state, so one instance is safe to share across request threads.

    Usage:
        codec = TokenCodec(settings.secret_key, ttl_seconds=3600)
        token = codec.issue("admin")
        codec.verify(token)   # -> "admin"
    """

    def __init__(
        self,
        secret_key: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenCodec requires a non-empty secret key.")
        self._secret_key = secret_key
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, subject: str, ttl_seconds: int | None = None) -> str:
        """Encode a signed JWT for subject that expires ttl_seconds from now.

        Args:
            subject:     Username stored as the JWT sub claim.
            ttl_seconds: Token lifetime. None uses the codec default.
        """
        duration = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        now = int(self._clock())
        payload = {
            "sub": subject,
            "iat": now,
            "exp": now + duration,
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def decode(self, token: str) -> TokenClaims | None:
        """Verify a JWT and return its claims, or None on any failure.

        Parse errors, signature mismatches, foreign algorithms, missing claims
        and expiry all collapse to None.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError:
            return None

        subject = payload.get("sub")
        expires_at = payload.get("exp")
        issued_at = payload.get("iat", 0)
        token_id = payload.get("jti")
        if not isinstance(subject, str) or not subject:
            return None
        # Every token we issue carries a jti; revocation depends on it.
        if not isinstance(token_id, str) or not token_id:
            return None
        if not _is_timestamp(expires_at) or not _is_timestamp(issued_at):
            return None
        if self._clock() > expires_at:
            return None

        return TokenClaims(
            subject=subject,
            issued_at=int(issued_at),
            expires_at=int(expires_at),
            token_id=token_id,
        )

    def verify(self, token: str) -> str | None:
        """Return the token's subject if it verifies, otherwise None."""
        claims = self.decode(token)
        return claims.subject if claims is not None else None


def _is_timestamp(value: object) -> bool:
    # bool is an int subclass; a JSON true must not pass as a timestamp.
    return isinstance(value, (int, float)) and not isinstance(value, bool)
