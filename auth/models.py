"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores, the codec and
the gate do the work; routes map these onto API response models.

Layer rule: no imports from api/, core/, or files/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims carried inside a bearer token.

    Timestamps are integer Unix seconds, as encoded in the JWT. token_id is
    the random jti claim. It keeps two tokens issued to the same subject in
    the same second distinct, and it is the revocation key that survives
    re-encodings of the token text (base64 padding bits, trailing junk).
    """

    subject: str
    issued_at: int
    expires_at: int
    token_id: str


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, derived per request and never persisted.

    token is the raw bearer string the caller presented and token_id its jti;
    logout revokes both. expires_at lets the revocation set forget the
    entries once the token could no longer verify anyway.
    """

    username: str
    token: str
    token_id: str
    expires_at: int
