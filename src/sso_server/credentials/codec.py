"""Bearer credential wire format.

A broker resumes a client session by sending::

    Authorization: Bearer SSO-{broker_id}-{token}-{checksum}

``broker_id`` and ``token`` consist of ASCII word characters (so they never
contain the ``-`` separator) and ``checksum`` of lowercase letters and
digits.  The same ``broker_id`` / ``token`` pair, without checksum, is the
key under which the server links the token to a client session.
"""
from __future__ import annotations

import logging
import re

from sso_server.core.errors import ParseError
from sso_server.core.types import (
    BearerCredential,
    BrokerId,
    CacheKey,
    Checksum,
    Token,
)

logger = logging.getLogger(__name__)

BEARER_PREFIX = "SSO"

_BEARER_RE = re.compile(r"SSO-(\w+)-(\w+)-([a-z0-9]+)", re.ASCII)
_WORD_RE = re.compile(r"\w+", re.ASCII)
_CHECKSUM_RE = re.compile(r"[a-z0-9]+")


def parse_bearer(
    bearer: str,
    *,
    log: logging.Logger | None = None,
) -> BearerCredential:
    """Split a bearer credential into broker id, token and checksum.

    Parameters
    ----------
    bearer:
        The credential, without the ``Bearer`` scheme.
    log:
        Logger for the rejection warning (defaults to this module's logger).

    Raises
    ------
    ParseError
        If *bearer* is not exactly ``SSO-<word>-<word>-<lowercase alnum>``.
    """
    match = _BEARER_RE.fullmatch(bearer)
    if match is None:
        (log or logger).warning("Invalid bearer token", extra={"bearer": bearer})
        raise ParseError(details={"bearer": bearer})

    broker_id, token, checksum = match.groups()
    return BearerCredential(
        broker_id=BrokerId(broker_id),
        token=Token(token),
        checksum=Checksum(checksum),
    )


def render_bearer(broker_id: BrokerId, token: Token, checksum: Checksum) -> str:
    """Build the wire form of a bearer credential.

    Raises
    ------
    ValueError
        If a component contains characters the wire format cannot carry.
    """
    if not _WORD_RE.fullmatch(broker_id):
        raise ValueError(f"Invalid broker id: {broker_id!r}")
    if not _WORD_RE.fullmatch(token):
        raise ValueError(f"Invalid token: {token!r}")
    if not _CHECKSUM_RE.fullmatch(checksum):
        raise ValueError(f"Invalid checksum: {checksum!r}")
    return f"{BEARER_PREFIX}-{broker_id}-{token}-{checksum}"


def get_cache_key(broker_id: BrokerId, token: Token) -> CacheKey:
    """Return the key linking *token* of *broker_id* to a client session."""
    return CacheKey(f"{BEARER_PREFIX}-{broker_id}-{token}")
