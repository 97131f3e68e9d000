"""SSO Server -- broker-mediated single sign-on.

The server holds the client session.  Brokers never see it: they receive
an opaque bearer credential, ``SSO-{broker}-{token}-{checksum}``, that the
server binds to the session id during the *attach* redirect and resolves
again when the broker calls the server on behalf of the client.

Components
----------
1. Credentials (:mod:`sso_server.credentials`) -- codec and checksums.
2. Domain policy (:mod:`sso_server.policy`) -- allowed broker domains.
3. Session links (:mod:`sso_server.session`) -- token to session id.
4. Server (:mod:`sso_server.server`) -- the attach and bearer flows.
5. HTTP binding (:mod:`sso_server.wire`).
"""
from __future__ import annotations

__version__ = "1.0.0a1"

# ---------------------------------------------------------------------------
# Core types, errors, config, interfaces
# ---------------------------------------------------------------------------
from sso_server.core.config import ServerConfig
from sso_server.core.errors import (
    AlreadyStartedError,
    BrokerError,
    BrokerLookupFailed,
    CacheReadFailed,
    CacheWriteFailed,
    ClientProtocolError,
    DomainNotAllowedError,
    InfrastructureError,
    InvalidChecksumError,
    InvalidCredentialError,
    MissingCredentialError,
    MissingParameterError,
    NoLinkedSessionError,
    ParseError,
    SSOError,
    UnknownBrokerError,
)
from sso_server.core.interfaces import (
    BrokerInfoProvider,
    Cache,
    InMemoryBrokerRegistry,
    InMemoryCache,
    InMemorySession,
    InMemorySessionRegistry,
    Request,
    Session,
)
from sso_server.core.types import (
    BearerCredential,
    BrokerId,
    BrokerInfo,
    CacheKey,
    Checksum,
    Command,
    DomainKind,
    SessionId,
    Token,
)

# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------
from sso_server.credentials import (
    ChecksumAuthority,
    compute_checksum,
    get_cache_key,
    parse_bearer,
    render_bearer,
)
from sso_server.policy import DomainPolicy
from sso_server.server import SSOServer
from sso_server.session import SessionLinkStore
from sso_server.wire import HTTPRequest, create_http_handler, format_error_response

__all__ = [
    "AlreadyStartedError",
    "BearerCredential",
    "BrokerError",
    "BrokerId",
    "BrokerInfo",
    "BrokerInfoProvider",
    "BrokerLookupFailed",
    "Cache",
    "CacheKey",
    "CacheReadFailed",
    "CacheWriteFailed",
    "Checksum",
    "ChecksumAuthority",
    "ClientProtocolError",
    "Command",
    "DomainKind",
    "DomainNotAllowedError",
    "DomainPolicy",
    "HTTPRequest",
    "InMemoryBrokerRegistry",
    "InMemoryCache",
    "InMemorySession",
    "InMemorySessionRegistry",
    "InfrastructureError",
    "InvalidChecksumError",
    "InvalidCredentialError",
    "MissingCredentialError",
    "MissingParameterError",
    "NoLinkedSessionError",
    "ParseError",
    "Request",
    "SSOError",
    "SSOServer",
    "ServerConfig",
    "SessionId",
    "SessionLinkStore",
    "Token",
    "UnknownBrokerError",
    "compute_checksum",
    "create_http_handler",
    "format_error_response",
    "get_cache_key",
    "parse_bearer",
    "render_bearer",
]
