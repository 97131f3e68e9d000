"""SSO handshake conformance tests.

Verifies the end-to-end broker handshake: the attach redirect binds a
broker token to the client session, and a broker presenting the bearer
credential resumes exactly that session.  Checksums are domain-separated
per command and must be signed with the current broker secret.
"""
from __future__ import annotations

import pytest

from sso_server.core.errors import (
    AlreadyStartedError,
    DomainNotAllowedError,
    InvalidChecksumError,
    NoLinkedSessionError,
    UnknownBrokerError,
)
from sso_server.core.interfaces import (
    InMemoryBrokerRegistry,
    InMemoryCache,
    InMemorySession,
    InMemorySessionRegistry,
)
from sso_server.core.types import BrokerId
from sso_server.credentials.codec import parse_bearer, render_bearer
from sso_server.server import SSOServer
from sso_server.wire.http import HTTPRequest

# ===================================================================
# Reference scenario
# ===================================================================

class TestReferenceScenario:
    """Broker ``demo`` with secret ``abc123`` and token ``tok1``."""

    def test_MUST_attach_and_resume_the_same_session(
        self,
        client_server: SSOServer,
        broker_server: SSOServer,
        cache: InMemoryCache,
        make_attach_request,
        make_bearer_request,
    ) -> None:
        session_id = client_server.attach(make_attach_request())
        assert cache.get("SSO-demo-tok1") == session_id

        assert broker_server.start_broker_session(make_bearer_request()) == session_id
        assert broker_server.session.get_id() == session_id

    def test_MUST_reject_attach_checksum_as_bearer(
        self,
        client_server: SSOServer,
        broker_server: SSOServer,
        make_attach_request,
        make_bearer_request,
        sign,
    ) -> None:
        client_server.attach(make_attach_request())
        with pytest.raises(InvalidChecksumError):
            broker_server.start_broker_session(make_bearer_request(sign("attach:tok1")))

    def test_MUST_reject_bearer_checksum_for_attach(
        self,
        client_server: SSOServer,
        make_attach_request,
        sign,
    ) -> None:
        with pytest.raises(InvalidChecksumError):
            client_server.attach(make_attach_request(sign("bearer:tok1")))

    def test_MUST_bind_credential_to_token(
        self,
        client_server: SSOServer,
        broker_server: SSOServer,
        make_attach_request,
        make_bearer_request,
    ) -> None:
        client_server.attach(make_attach_request())
        with pytest.raises(NoLinkedSessionError):
            broker_server.start_broker_session(make_bearer_request(token="tok2"))


# ===================================================================
# Ordering guarantees
# ===================================================================

class TestOrdering:
    """Failures happen before any cache or session side effect."""

    def test_MUST_reject_unknown_broker_before_cache(
        self,
        broker_registry: InMemoryBrokerRegistry,
        client_server: SSOServer,
        cache: InMemoryCache,
        make_attach_request,
    ) -> None:
        broker_registry.remove(BrokerId("demo"))
        with pytest.raises(UnknownBrokerError):
            client_server.attach(make_attach_request())
        assert len(cache) == 0
        assert not client_server.session.is_active()

    def test_MUST_reject_foreign_origin_before_session(
        self,
        client_server: SSOServer,
        cache: InMemoryCache,
        make_attach_request,
    ) -> None:
        with pytest.raises(DomainNotAllowedError):
            client_server.attach(make_attach_request(origin="https://evil.test"))
        assert len(cache) == 0
        assert not client_server.session.is_active()

    def test_MUST_refuse_second_start(
        self,
        client_server: SSOServer,
        make_attach_request,
        make_bearer_request,
    ) -> None:
        client_server.attach(make_attach_request())
        with pytest.raises(AlreadyStartedError):
            client_server.start_broker_session(make_bearer_request())


# ===================================================================
# Secret rotation & re-attach
# ===================================================================

class TestStatelessness:
    """The server keeps no state of its own between requests."""

    def test_MUST_apply_rotated_secret_immediately(
        self,
        broker_registry: InMemoryBrokerRegistry,
        client_server: SSOServer,
        broker_server: SSOServer,
        make_attach_request,
        make_bearer_request,
        sign,
    ) -> None:
        client_server.attach(make_attach_request())
        broker_registry.register(BrokerId("demo"), "rotated", ["app.demo.test"])

        with pytest.raises(InvalidChecksumError):
            broker_server.start_broker_session(make_bearer_request())
        broker_server.start_broker_session(
            make_bearer_request(sign("bearer:tok1", "rotated")),
        )

    def test_MUST_overwrite_link_on_reattach(
        self,
        client_server: SSOServer,
        broker_server: SSOServer,
        session_registry: InMemorySessionRegistry,
        make_attach_request,
        make_bearer_request,
    ) -> None:
        client_server.attach(make_attach_request())
        other_client = client_server.with_session(InMemorySession(session_registry))
        second = other_client.attach(make_attach_request())

        assert broker_server.start_broker_session(make_bearer_request()) == second


# ===================================================================
# Wire format
# ===================================================================

class TestWireFormat:
    """Bearer credentials round-trip through the codec."""

    @pytest.mark.parametrize(
        ("broker_id", "token", "checksum"),
        [
            ("demo", "tok1", "0f"),
            ("b_1", "T0KEN_x", "abcdef0123456789"),
            ("x", "y", "z9"),
        ],
    )
    def test_MUST_round_trip(self, broker_id: str, token: str, checksum: str) -> None:
        credential = parse_bearer(render_bearer(broker_id, token, checksum))
        assert (credential.broker_id, credential.token, credential.checksum) == (
            broker_id,
            token,
            checksum,
        )

    def test_MUST_read_authorization_header_case_insensitively(
        self,
        client_server: SSOServer,
        broker_server: SSOServer,
        make_attach_request,
        sign,
    ) -> None:
        session_id = client_server.attach(make_attach_request())
        request = HTTPRequest(
            {"authorization": f"Bearer SSO-demo-tok1-{sign('bearer:tok1')}"},
        )
        assert broker_server.start_broker_session(request) == session_id
