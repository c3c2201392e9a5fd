"""
auth/gate.py -- Request admission: bearer extraction, revocation, verification.

AuthGate.admit() runs a fixed sequence for every protected request:

  1. Extract   -- "Authorization: Bearer <token>" must be present and well formed.
  2. Revoked?  -- a set lookup of the raw token string.
  3. Verify    -- TokenCodec signature, algorithm and expiry checks, then a
                 second lookup by the token's jti.
  4. Admit     -- return the Identity for the route handler.

The revocation check deliberately comes before verification: a logged-out
token is still cryptographically valid until it expires, and the set lookup
is what overrides that valid signature.

Each rejection is its own exception class so tests and logs can tell them
apart. At the wire they all become HTTP 401 (see auth/dependencies.py).

Layer rule: no imports from api/ or files/.
"""

from __future__ import annotations

import logging

from auth.models import Identity
from auth.revocation import RevocationSet
from auth.tokens import TokenCodec

logger = logging.getLogger("tokengate.auth")

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AuthenticationError(Exception):
    """Base class for every reason the gate refuses a request."""

    code = "unauthorized"
    default_message = "Authentication required."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingCredentials(AuthenticationError):
    """No Authorization header, or not in "Bearer <token>" form."""

    code = "auth_missing"
    default_message = "Missing authorization header"


class TokenRevoked(AuthenticationError):
    """The token was logged out."""

    code = "token_revoked"
    default_message = "Token has been invalidated"


class InvalidToken(AuthenticationError):
    """Bad signature, foreign algorithm, expired, or unparseable. Never says which."""

    code = "invalid_token"
    default_message = "Invalid token"


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------


def extract_bearer_token(authorization: str | None) -> str:
    """Return the raw token from an Authorization header value.

    The scheme is matched case-insensitively (RFC 7235); an empty token after
    the scheme counts as a malformed header.
    """
    if not authorization:
        raise MissingCredentials()
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise MissingCredentials("Invalid authorization format")
    return token


class AuthGate:
    """Composes the token codec and the revocation set into one admission check."""

    def __init__(self, codec: TokenCodec, revocations: RevocationSet) -> None:
        self.codec = codec
        self.revocations = revocations

    def admit(self, authorization: str | None) -> Identity:
        """Return the caller's Identity or raise an AuthenticationError subclass."""
        token = extract_bearer_token(authorization)

        if self.revocations.is_revoked(token):
            logger.info("Rejected revoked token")
            raise TokenRevoked()

        claims = self.codec.decode(token)
        if claims is None:
            logger.debug("Rejected token that failed verification")
            raise InvalidToken()

        # jose accepts several spellings of one signature (non-zero padding
        # bits, trailing "=" or junk), so the raw-string lookup alone can miss.
        if self.revocations.is_revoked(claims.token_id):
            logger.info("Rejected revoked token presented in altered form")
            raise TokenRevoked()

        return Identity(
            username=claims.subject,
            token=token,
            token_id=claims.token_id,
            expires_at=claims.expires_at,
        )

    def revoke(self, identity: Identity) -> None:
        """Revoke the presented token string and its jti.

        Raw tokens always contain "." and jti values are hex, so the two kinds
        of key never collide in the shared set.
        """
        self.revocations.revoke(identity.token, expires_at=identity.expires_at)
        self.revocations.revoke(identity.token_id, expires_at=identity.expires_at)
