"""Token revocation (blacklist) storage.

The default store is an in-memory set shared by every request in one
process. It is cleared on restart and is not visible to other instances;
a multi-instance deployment needs a shared implementation of
RevocationStore (e.g. a cache with per-entry TTL equal to the token lifetime).
Entries are never pruned, so memory grows with the number of revoked
tokens (validly signed ones only; logout ignores unverifiable strings).
"""

import logging
import threading
from functools import lru_cache
from typing import Protocol

logger = logging.getLogger(__name__)


class RevocationStore(Protocol):
    """Set of token strings rejected even while their signature and expiry are valid."""

    def add(self, token: str) -> None: ...

    def contains(self, token: str) -> bool: ...

    def __len__(self) -> int: ...


class InMemoryRevocationStore:
    """Thread-safe in-process revocation set."""

    def __init__(self) -> None:
        self._tokens: set[str] = set()
        self._lock = threading.Lock()

    def add(self, token: str) -> None:
        """Revoke token. Adding an already revoked token is a no-op."""
        with self._lock:
            self._tokens.add(token)

    def contains(self, token: str) -> bool:
        with self._lock:
            return token in self._tokens

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)


@lru_cache
def get_revocation_store() -> RevocationStore:
    """Return the process-wide revocation store (safe to call from dependencies)."""
    logger.info("Using in-memory token revocation store (single-instance only)")
    return InMemoryRevocationStore()
