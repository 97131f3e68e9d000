"""Allowed-domain checks for URLs supplied during attach.

An attach request may carry an ``Origin`` header, a ``Referer`` header and
a ``return_url`` query parameter.  Each of them must point to a host the
broker registered.  Matching is exact and case-sensitive: there is no
wildcard or subdomain matching, so ``www.example.com`` does not match an
allow-list containing ``example.com``.
"""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from sso_server.core.errors import BrokerLookupFailed, DomainNotAllowedError
from sso_server.core.types import BrokerId, DomainKind, Token

if TYPE_CHECKING:
    from sso_server.core.interfaces import BrokerInfoProvider

# Browsers read a backslash as a path separator and drop tabs and newlines,
# so the host they see can differ from the one urlsplit reports.
_UNSAFE_URL_CHARS = re.compile(r"[\\\s\x00-\x1f\x7f]")


def get_host(url: str) -> str | None:
    """Return the host of *url* as written, or ``None`` if it has none.

    Unlike :attr:`urllib.parse.SplitResult.hostname` the host is not
    lowercased.  User info and port are stripped.  URLs containing a
    backslash, whitespace or a control character have no host.
    """
    if _UNSAFE_URL_CHARS.search(url):
        return None

    try:
        netloc = urlsplit(url).netloc
    except ValueError:
        return None

    host = netloc.rpartition("@")[2]
    if host.startswith("["):
        end = host.find("]")
        host = host[: end + 1] if end != -1 else ""
    else:
        host = host.partition(":")[0]
    return host or None


class DomainPolicy:
    """Validates that URLs belong to a broker's allowed domains.

    Parameters
    ----------
    broker_info_provider:
        Registry holding the allowed domains of each broker.
    logger:
        Logger for rejections (defaults to this module's logger).
    """

    def __init__(
        self,
        broker_info_provider: BrokerInfoProvider,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._provider = broker_info_provider
        self._logger = logger or logging.getLogger(__name__)

    def _get_domains(self, broker_id: BrokerId, token: Token | None) -> list[str]:
        try:
            info = self._provider.get_broker_info(broker_id)
        except Exception as exc:
            context = {"broker": broker_id, "token": token}
            self._logger.error("Failed to get broker domains: %s", exc, extra=context)
            raise BrokerLookupFailed(
                "Failed to get broker domains", details=context,
            ) from exc
        return info.domains if info is not None else []

    def validate(
        self,
        kind: DomainKind,
        url: str,
        broker_id: BrokerId,
        token: Token | None = None,
    ) -> None:
        """Assert that the host of *url* is allowed for *broker_id*.

        Parameters
        ----------
        kind:
            Where *url* came from; only used in the log entry and error.
        url:
            The URL to check.
        broker_id:
            The broker whose allow-list applies.
        token:
            The broker token, when known, for log correlation.

        Raises
        ------
        DomainNotAllowedError
            If the host is not in the allow-list, the broker is unknown or
            the URL has no host.
        BrokerLookupFailed
            If the broker registry raised.
        """
        domains = self._get_domains(broker_id, token)
        host = get_host(url)

        if host is None or host not in domains:
            kind = DomainKind(kind)
            self._logger.warning(
                "Domain of %s is not allowed for broker",
                kind,
                extra={
                    "kind": str(kind),
                    "url": url,
                    "domain": host,
                    "broker": broker_id,
                    "token": token,
                },
            )
            raise DomainNotAllowedError(
                f"Domain of {kind} is not allowed",
                details={
                    "kind": str(kind),
                    "domain": host,
                    "broker": broker_id,
                    "token": token,
                },
            )
