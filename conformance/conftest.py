"""Shared fixtures for SSO handshake conformance tests.

Provides the reference broker (``demo`` / ``abc123``), the in-memory
backends and helpers to build attach and bearer requests.
"""
from __future__ import annotations

import hashlib
import hmac

import pytest

from sso_server.core.interfaces import (
    InMemoryBrokerRegistry,
    InMemoryCache,
    InMemorySession,
    InMemorySessionRegistry,
)
from sso_server.core.types import BrokerId
from sso_server.server import SSOServer
from sso_server.wire.http import HTTPRequest

# ---------------------------------------------------------------------------
# Reference broker
# ---------------------------------------------------------------------------
BROKER_ID = "demo"
BROKER_SECRET = "abc123"
BROKER_DOMAINS = ["app.demo.test"]
TOKEN = "tok1"


def hmac_hex(message: str, secret: str = BROKER_SECRET) -> str:
    """HMAC-SHA256 of *message* keyed by *secret*, computed independently."""
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def broker_registry() -> InMemoryBrokerRegistry:
    registry = InMemoryBrokerRegistry()
    registry.register(BrokerId(BROKER_ID), BROKER_SECRET, BROKER_DOMAINS)
    return registry


@pytest.fixture()
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture()
def session_registry() -> InMemorySessionRegistry:
    return InMemorySessionRegistry()


@pytest.fixture()
def client_server(
    broker_registry: InMemoryBrokerRegistry,
    cache: InMemoryCache,
    session_registry: InMemorySessionRegistry,
) -> SSOServer:
    """Server handling the client's attach redirect."""
    return SSOServer(broker_registry, cache, InMemorySession(session_registry))


@pytest.fixture()
def broker_server(
    client_server: SSOServer,
    session_registry: InMemorySessionRegistry,
) -> SSOServer:
    """Server handling a broker request: same backends, fresh session."""
    return client_server.with_session(InMemorySession(session_registry))


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------
def attach_request(
    checksum: str | None = None,
    *,
    token: str = TOKEN,
    origin: str = "https://app.demo.test",
) -> HTTPRequest:
    """Build the attach redirect of the reference broker."""
    return HTTPRequest(
        {"Origin": origin},
        {
            "broker": BROKER_ID,
            "token": token,
            "checksum": checksum if checksum is not None else hmac_hex(f"attach:{token}"),
        },
    )


def bearer_request(checksum: str | None = None, *, token: str = TOKEN) -> HTTPRequest:
    """Build a broker API request carrying the bearer credential."""
    if checksum is None:
        checksum = hmac_hex(f"bearer:{token}")
    return HTTPRequest({"Authorization": f"Bearer SSO-{BROKER_ID}-{token}-{checksum}"})


@pytest.fixture()
def make_attach_request():
    return attach_request


@pytest.fixture()
def make_bearer_request():
    return bearer_request


@pytest.fixture()
def sign():
    return hmac_hex
