"""SSO server abstract interfaces and in-memory implementations.

This module defines the *structural* interfaces (``typing.Protocol``) for
every collaborator the server consumes -- broker registry, cache, session
mechanism and request -- plus lightweight in-memory implementations
suitable for testing and local development.

Every Protocol class is decorated with ``@runtime_checkable`` so that
``isinstance`` checks work at run-time in addition to static analysis.

Only :class:`InMemoryCache` is safe to share between threads.  Production
deployments MUST substitute persistent backends; per-key atomicity of the
cache is the backend's responsibility.
"""
from __future__ import annotations

import secrets
import threading
import time
from typing import Protocol, runtime_checkable

from sso_server.core.types import BrokerId, BrokerInfo, SessionId

# ===================================================================
# Protocol (interface) definitions
# ===================================================================

@runtime_checkable
class BrokerInfoProvider(Protocol):
    """Registry of brokers, holding their secret and allowed domains."""

    def get_broker_info(self, broker_id: BrokerId) -> BrokerInfo | None:
        """Return the registration of *broker_id*, or ``None`` if unknown.

        May raise on backend failure; the server reports that as an
        infrastructure error.
        """
        ...


@runtime_checkable
class Cache(Protocol):
    """Key-value store holding broker token to session links."""

    def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or ``None`` on a miss."""
        ...

    def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Store *value* under *key*, return ``False`` if it was not stored."""
        ...


@runtime_checkable
class Session(Protocol):
    """Capability over the client session mechanism of one request."""

    def is_active(self) -> bool:
        """Return ``True`` if a session has been started."""
        ...

    def start(self, session_id: SessionId | None = None) -> None:
        """Start a new session, or resume *session_id* when given."""
        ...

    def get_id(self) -> SessionId:
        """Return the id of the active session."""
        ...


@runtime_checkable
class Request(Protocol):
    """The parts of an incoming HTTP request the server reads."""

    def get_header(self, name: str) -> str:
        """Return the header value, or ``""`` if absent."""
        ...

    def get_query_param(self, name: str) -> str | None:
        """Return the query parameter, or ``None`` if absent."""
        ...


# ===================================================================
# In-memory implementations (testing / development)
# ===================================================================

class InMemoryBrokerRegistry:
    """In-memory broker registry for testing and development."""

    def __init__(self) -> None:
        self._brokers: dict[str, BrokerInfo] = {}

    # -- mutation helpers (not part of the Protocol) --------------------

    def register(
        self,
        broker_id: BrokerId,
        secret: str,
        domains: list[str] | None = None,
    ) -> None:
        """Register or replace a broker (test helper)."""
        self._brokers[str(broker_id)] = BrokerInfo(
            secret=secret,
            domains=list(domains or []),
        )

    def remove(self, broker_id: BrokerId) -> None:
        """Remove a broker (test helper)."""
        self._brokers.pop(str(broker_id), None)

    # -- Protocol implementation ---------------------------------------

    def get_broker_info(self, broker_id: BrokerId) -> BrokerInfo | None:
        """Return the registration of *broker_id*, or ``None``."""
        return self._brokers.get(str(broker_id))


class InMemoryCache:
    """In-memory cache with optional per-entry expiry.

    Entries are ``(value, expires_at)`` pairs, where ``expires_at`` is a
    ``time.monotonic()`` deadline or ``None``.  A lock serialises access so
    concurrent readers never observe a partially written entry.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        """Return the live value for *key*, or ``None``."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Store *value* under *key*, overwriting any previous value."""
        expires_at = time.monotonic() + ttl if ttl is not None else None
        with self._lock:
            self._entries[key] = (value, expires_at)
        return True

    def delete(self, key: str) -> None:
        """Remove *key* (test helper)."""
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class InMemorySessionRegistry:
    """Shared storage behind :class:`InMemorySession` objects.

    Plays the role of the session save handler: session ids map to the
    session data, so a session started in one request can be resumed in
    another.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, dict[str, object]] = {}

    def create(self) -> SessionId:
        """Allocate a fresh, unpredictable session id."""
        session_id = SessionId(secrets.token_urlsafe(32))
        self._sessions[session_id] = {}
        return session_id

    def load(self, session_id: SessionId) -> dict[str, object]:
        """Return the data of *session_id*, creating an empty session if needed."""
        return self._sessions.setdefault(str(session_id), {})

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions


class InMemorySession:
    """Session of a single request, backed by an :class:`InMemorySessionRegistry`.

    Parameters
    ----------
    registry:
        The shared session storage.  A private registry is created when
        omitted.
    """

    def __init__(self, registry: InMemorySessionRegistry | None = None) -> None:
        self._registry = registry if registry is not None else InMemorySessionRegistry()
        self._id: SessionId | None = None
        self._data: dict[str, object] = {}

    @property
    def data(self) -> dict[str, object]:
        """Session data (e.g. the logged in user).  Requires an active session."""
        if self._id is None:
            raise RuntimeError("Session is not active")
        return self._data

    def is_active(self) -> bool:
        """Return ``True`` once :meth:`start` has been called."""
        return self._id is not None

    def start(self, session_id: SessionId | None = None) -> None:
        """Start a new session, or resume *session_id*.

        Raises
        ------
        RuntimeError
            If the session is already active.
        """
        if self._id is not None:
            raise RuntimeError("Session is already active")
        if session_id is None:
            session_id = self._registry.create()
        self._data = self._registry.load(session_id)
        self._id = session_id

    def get_id(self) -> SessionId:
        """Return the id of the active session.

        Raises
        ------
        RuntimeError
            If the session has not been started.
        """
        if self._id is None:
            raise RuntimeError("Session is not active")
        return self._id
