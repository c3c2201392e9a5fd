"""
auth/revocation.py -- Thread-safe in-memory denylist of logged-out tokens.

Bearer tokens are stateless; this set is the one deliberate piece of server
state layered on top. A token in the set is rejected by the gate even though
its signature and expiry still check out.

Concurrency: FastAPI runs sync handlers in a thread pool, so logout (write)
and every authenticated request (read) can hit the set at once. Every
operation takes self._lock for its whole duration, which makes each call
atomic and makes a completed revoke() visible to every later is_revoked().

Eviction: entries remember the token's expiry. purge_expired() drops entries
whose token has already expired -- the codec rejects those tokens on its own,
so forgetting them cannot re-admit anything. It runs from a periodic lifespan
task, never inside is_revoked().

Layer rule: no imports from api/ or files/.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

logger = logging.getLogger("tokengate.auth")


class RevocationSet:
    """Process-lifetime set of revoked raw token strings.

    Usage:
        revocations = RevocationSet()
        revocations.revoke(token, expires_at=claims.expires_at)
        revocations.is_revoked(token)   # True from now on
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[str, float | None] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def revoke(self, token: str, expires_at: float | None = None) -> bool:
        """Add token to the set. Returns True if it was not already revoked.

        Idempotent: revoking twice leaves the set as revoking once did, and
        the first recorded expiry is kept. expires_at=None means the entry is
        never purged.
        """
        with self._lock:
            if token in self._entries:
                return False
            self._entries[token] = expires_at
        logger.debug("Token revoked (%d entries)", len(self))
        return True

    def is_revoked(self, token: str) -> bool:
        with self._lock:
            return token in self._entries

    def purge_expired(self, now: float | None = None) -> int:
        """Remove entries whose token expired before now. Returns the count removed.

        An entry whose expiry equals now is kept: the codec still accepts a
        token at exactly its exp second.
        """
        cutoff = self._clock() if now is None else now
        with self._lock:
            expired = [token for token, exp in self._entries.items() if exp is not None and exp < cutoff]
            for token in expired:
                del self._entries[token]
        if expired:
            logger.info("Purged %d expired revocation entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
