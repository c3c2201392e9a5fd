"""
auth/store.py -- In-memory credential table checked at login.

Pattern: Repository. CredentialStore owns the username -> bcrypt hash map;
the login route never sees a hash or compares a password itself.

The table is built once from the DEMO_USERS seed and never mutated, so reads
need no locking. Plaintext secrets are hashed on construction and dropped.

Security:
  [C1] Timing equalization. verify() always runs bcrypt, against a dummy hash
       when the username is unknown, so response time does not reveal whether
       a username exists. The dummy hash uses the same cost factor as the
       real ones.

Layer rule: no imports from api/ or files/.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from auth.tokens import hash_password, verify_password

logger = logging.getLogger("tokengate.auth")


class CredentialStore:
    """Static username -> secret table.

    Usage:
        store = CredentialStore({"admin": "admin123"})
        store.verify("admin", "admin123")   # True
        store.authenticate("admin", "nope") # None
    """

    def __init__(self, credentials: Mapping[str, str], rounds: int = 12) -> None:
        self._hashes: dict[str, str] = {
            username: hash_password(password, rounds=rounds) for username, password in credentials.items()
        }
        self._dummy_hash = hash_password("tokengate_timing_dummy", rounds=rounds)
        logger.info("Credential store loaded (%d users)", len(self._hashes))

    def __len__(self) -> int:
        return len(self._hashes)

    def __contains__(self, username: object) -> bool:
        return username in self._hashes

    def verify(self, username: str, password: str) -> bool:
        """Return True only if username exists and password matches its secret."""
        hashed = self._hashes.get(username)
        if hashed is None:
            # Equalize timing -- do NOT return early before running bcrypt [C1]
            verify_password(password, self._dummy_hash)
            return False
        return verify_password(password, hashed)

    def authenticate(self, username: str, password: str) -> str | None:
        """Return the username on a credential match, None on any failure.

        Unknown user and wrong password are indistinguishable to the caller.
        """
        if self.verify(username, password):
            return username
        logger.info("Failed login attempt")
        return None
