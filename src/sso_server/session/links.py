"""Links between broker tokens and client sessions.

The attach flow stores the client's session id under the cache key of the
broker token; the bearer flow reads it back.  A key holds at most one
session id and a later attach overwrites it.  Atomicity of a single
``get``/``set`` is the responsibility of the cache backend.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from sso_server.core.errors import CacheReadFailed, CacheWriteFailed
from sso_server.core.types import BrokerId, CacheKey, SessionId, Token
from sso_server.credentials.codec import get_cache_key

if TYPE_CHECKING:
    from sso_server.core.interfaces import Cache


class SessionLinkStore:
    """Maps broker token cache keys to session ids.

    Backend failures are raised as infrastructure errors; logging them with
    the broker context is left to the caller.

    Parameters
    ----------
    cache:
        The key-value backend.
    ttl:
        Lifetime of a link in seconds, or ``None`` for the backend default.
        The TTL is only passed to the cache when set.
    """

    def __init__(self, cache: Cache, *, ttl: int | None = None) -> None:
        self._cache = cache
        self._ttl = ttl

    @property
    def ttl(self) -> int | None:
        """Lifetime of a link in seconds."""
        return self._ttl

    @staticmethod
    def get_cache_key(broker_id: BrokerId, token: Token) -> CacheKey:
        """Return the cache key for *token* of *broker_id*."""
        return get_cache_key(broker_id, token)

    def get(self, key: CacheKey) -> SessionId | None:
        """Return the session id linked to *key*, or ``None`` on a miss.

        Raises
        ------
        CacheReadFailed
            If the cache backend raised.
        """
        try:
            session_id = self._cache.get(key)
        except Exception as exc:
            raise CacheReadFailed(details={"key": key}) from exc

        if not session_id:
            return None
        return SessionId(session_id)

    def set(self, key: CacheKey, session_id: SessionId) -> None:
        """Link *key* to *session_id*, replacing any previous link.

        Raises
        ------
        CacheWriteFailed
            If the cache backend raised or reported that nothing was stored.
        """
        try:
            if self._ttl is None:
                stored = self._cache.set(key, session_id)
            else:
                stored = self._cache.set(key, session_id, self._ttl)
        except Exception as exc:
            raise CacheWriteFailed(details={"key": key}) from exc

        if not stored:
            raise CacheWriteFailed(details={"key": key})
