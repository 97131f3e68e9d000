"""SSO Server -- the handshake orchestrator.

This module implements :class:`SSOServer`, the primary entry point of the
package.  It composes the credential codec, checksum authority, domain
policy and session link store into the two flows of the broker handshake.

Flows
-----

**attach** -- the client is redirected by the broker to the server:

1. Read the ``broker``, ``token`` and ``checksum`` query parameters.
2. Validate the ``attach`` checksum.
3. Validate ``Origin``, ``Referer`` and ``return_url`` against the broker's
   allowed domains.
4. Start a client session if none is active.
5. Link the broker token to the session id in the cache.

**start_broker_session** -- the broker calls the server on behalf of the
client:

1. Refuse if a session is already active.
2. Read ``Authorization: Bearer SSO-{broker}-{token}-{checksum}``.
3. Validate the ``bearer`` checksum.
4. Look up the session id linked to the broker token.
5. Resume that session.

Usage
-----
::

    from sso_server.core.interfaces import (
        InMemoryBrokerRegistry,
        InMemoryCache,
        InMemorySession,
    )
    from sso_server.server import SSOServer

    brokers = InMemoryBrokerRegistry()
    brokers.register("demo", "abc123", ["app.demo.test"])

    server = SSOServer(brokers, InMemoryCache(), InMemorySession())
    session_id = server.attach(request)
"""
from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING

from sso_server.core.config import ServerConfig
from sso_server.core.errors import (
    AlreadyStartedError,
    CacheReadFailed,
    CacheWriteFailed,
    InvalidCredentialError,
    MissingCredentialError,
    MissingParameterError,
    NoLinkedSessionError,
    ParseError,
)
from sso_server.core.types import (
    BrokerId,
    Checksum,
    Command,
    DomainKind,
    SessionId,
    Token,
)
from sso_server.credentials.checksum import ChecksumAuthority
from sso_server.credentials.codec import parse_bearer
from sso_server.policy.domains import DomainPolicy
from sso_server.session.links import SessionLinkStore

if TYPE_CHECKING:
    from sso_server.core.interfaces import (
        BrokerInfoProvider,
        Cache,
        Request,
        Session,
    )


def _check_logger(logger: logging.Logger) -> logging.Logger:
    # LoggerAdapter replaces per-call ``extra`` with its own before 3.13.
    if not isinstance(logger, logging.Logger):
        raise TypeError(
            f"logger must be a logging.Logger, not {type(logger).__name__}",
        )
    return logger


class SSOServer:
    """Single sign-on server.

    Manages the client sessions that brokers resume with a bearer
    credential.  The server itself holds no state between calls: broker
    info is looked up on every request, links live in the cache and
    sessions in the session backend.

    Instances are treated as immutable.  Use :meth:`with_logger` and
    :meth:`with_session` to obtain a reconfigured copy.

    Parameters
    ----------
    broker_info_provider:
        Registry holding the secret and allowed domains of each broker.
    cache:
        Storage for the links between broker tokens and session ids.
    session:
        The client session of the request being handled.
    logger:
        Logger for audit and rejection entries.  Defaults to this
        module's logger.  Must be a :class:`logging.Logger`, since the
        entries carry their context in ``extra``.
    config:
        Server configuration.  Defaults to ``ServerConfig()``.
    """

    def __init__(
        self,
        broker_info_provider: BrokerInfoProvider,
        cache: Cache,
        session: Session,
        *,
        logger: logging.Logger | None = None,
        config: ServerConfig | None = None,
    ) -> None:
        self._broker_info_provider = broker_info_provider
        self._cache = cache
        self._session = session
        self._config = config if config is not None else ServerConfig()
        self._logger = _check_logger(logger or logging.getLogger(__name__))

        self._checksums = ChecksumAuthority(broker_info_provider, logger=self._logger)
        self._domains = DomainPolicy(broker_info_provider, logger=self._logger)
        self._links = SessionLinkStore(cache, ttl=self._config.link_ttl_seconds)

    # ------------------------------------------------------------------
    # Reconfiguration
    # ------------------------------------------------------------------

    def with_logger(self, logger: logging.Logger) -> SSOServer:
        """Return a copy of the server that logs to *logger*."""
        _check_logger(logger)
        clone = copy.copy(self)
        clone._logger = logger
        clone._checksums = ChecksumAuthority(self._broker_info_provider, logger=logger)
        clone._domains = DomainPolicy(self._broker_info_provider, logger=logger)
        return clone

    def with_session(self, session: Session) -> SSOServer:
        """Return a copy of the server bound to *session*."""
        clone = copy.copy(self)
        clone._session = session
        return clone

    # ------------------------------------------------------------------
    # Properties for introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> ServerConfig:
        """The server configuration."""
        return self._config

    @property
    def logger(self) -> logging.Logger:
        """The logger in use."""
        return self._logger

    @property
    def session(self) -> Session:
        """The session this server is bound to."""
        return self._session

    @property
    def checksums(self) -> ChecksumAuthority:
        """The checksum authority."""
        return self._checksums

    @property
    def domains(self) -> DomainPolicy:
        """The domain policy."""
        return self._domains

    @property
    def links(self) -> SessionLinkStore:
        """The session link store."""
        return self._links

    # ------------------------------------------------------------------
    # Broker API: resume the client session
    # ------------------------------------------------------------------

    def start_broker_session(self, request: Request) -> SessionId:
        """Start the session for a broker request to the SSO server.

        Returns
        -------
        SessionId
            The id of the resumed client session.

        Raises
        ------
        AlreadyStartedError
            If a session is already active.
        MissingCredentialError
            If the request has no bearer ``Authorization`` header.
        InvalidCredentialError
            If the bearer credential is malformed.
        UnknownBrokerError, InvalidChecksumError
            If the credential is not signed with a registered broker secret.
        NoLinkedSessionError
            If the token was never attached to a client session.
        InfrastructureError
            If the broker registry or the cache failed.
        """
        if self._session.is_active():
            self._logger.warning("Session is already started")
            raise AlreadyStartedError()

        bearer = self._get_bearer_token(request)
        if bearer is None:
            self._logger.warning("Broker didn't use bearer authentication")
            raise MissingCredentialError()

        try:
            credential = parse_bearer(bearer, log=self._logger)
        except ParseError as exc:
            raise InvalidCredentialError(details=exc.details) from exc

        broker_id, token = credential.broker_id, credential.token
        context = {"broker": broker_id, "token": token}

        self._checksums.validate(credential.checksum, Command.BEARER, broker_id, token)

        try:
            session_id = self._links.get(self._links.get_cache_key(broker_id, token))
        except CacheReadFailed as exc:
            exc.details.update(context)
            self._logger.error(
                "Failed to get session id: %s", exc.__cause__, extra=context,
            )
            raise

        if session_id is None:
            self._logger.warning(
                "Bearer token isn't attached to a client session", extra=context,
            )
            raise NoLinkedSessionError(details=context)

        self._session.start(session_id)

        self._logger.debug(
            "Broker request with session",
            extra={**context, "session": session_id},
        )
        return session_id

    def _get_bearer_token(self, request: Request) -> str | None:
        """Return the credential from the ``Authorization`` header, if any."""
        authorization = request.get_header("Authorization")
        prefix = f"{self._config.bearer_scheme} "

        if not authorization.startswith(prefix):
            return None
        return authorization[len(prefix):]

    # ------------------------------------------------------------------
    # Client redirect: attach the client session to a broker token
    # ------------------------------------------------------------------

    def attach(self, request: Request) -> SessionId:
        """Attach a client session to a broker token.

        Starts a new client session if none is active.

        Returns
        -------
        SessionId
            The id of the session the broker token is now linked to.

        Raises
        ------
        MissingParameterError
            If ``broker``, ``token`` or ``checksum`` is missing.
        UnknownBrokerError, InvalidChecksumError
            If the checksum is not signed with a registered broker secret.
        DomainNotAllowedError
            If ``Origin``, ``Referer`` or ``return_url`` is on a foreign host.
        InfrastructureError
            If the broker registry or the cache failed.
        """
        broker_id, token = self._process_attach_request(request)

        if not self._session.is_active():
            self._session.start()

        session_id = self._session.get_id()
        info = {"broker": broker_id, "token": token, "session": session_id}

        try:
            self._links.set(self._links.get_cache_key(broker_id, token), session_id)
        except CacheWriteFailed as exc:
            exc.details.update(broker=broker_id, token=token)
            self._logger.error(
                "Failed to attach bearer token to session id due to cache issue",
                extra=info,
            )
            raise

        self._logger.info("Attached broker token to session", extra=info)
        return session_id

    def _process_attach_request(self, request: Request) -> tuple[BrokerId, Token]:
        """Validate an attach request and return the broker id and token."""
        context: dict[str, str] = {}
        broker_id = BrokerId(self._get_required_param(request, "broker", context))
        context["broker"] = broker_id
        token = Token(self._get_required_param(request, "token", context))
        context["token"] = token
        checksum = Checksum(self._get_required_param(request, "checksum", context))

        self._checksums.validate(checksum, Command.ATTACH, broker_id, token)

        origin = request.get_header("Origin")
        if origin != "":
            self._domains.validate(DomainKind.ORIGIN, origin, broker_id, token)

        referer = request.get_header("Referer")
        if referer != "":
            self._domains.validate(DomainKind.REFERER, referer, broker_id, token)

        # Validated at broker level, without the token.
        return_url = request.get_query_param("return_url")
        if return_url is not None:
            self._domains.validate(DomainKind.RETURN_URL, return_url, broker_id)

        return broker_id, token

    def _get_required_param(
        self, request: Request, name: str, context: dict[str, str],
    ) -> str:
        """Return query parameter *name*; *context* holds the ones read so far."""
        value = request.get_query_param(name)
        if value is None:
            self._logger.warning(
                "Missing '%s' query parameter", name, extra=context,
            )
            raise MissingParameterError(
                f"Missing '{name}' query parameter",
                details={"parameter": name, **context},
            )
        return value

    # ------------------------------------------------------------------
    # Helpers exposed to applications
    # ------------------------------------------------------------------

    def generate_checksum(
        self, command: Command, broker_id: BrokerId, token: Token,
    ) -> Checksum:
        """Return the checksum *broker_id* must send for *command* and *token*."""
        return self._checksums.generate(command, broker_id, token)

    def validate_domain(
        self,
        kind: DomainKind,
        url: str,
        broker_id: BrokerId,
        token: Token | None = None,
    ) -> None:
        """Assert that *url* is on one of the allowed domains of *broker_id*."""
        self._domains.validate(kind, url, broker_id, token)
