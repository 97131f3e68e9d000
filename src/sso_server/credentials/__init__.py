"""Broker credentials.

This subpackage implements the bearer credential wire format and the
HMAC-SHA256 checksums that prove a broker knows its secret.

Public API
----------
- :func:`parse_bearer` / :func:`render_bearer` -- ``SSO-{broker}-{token}-{checksum}``.
- :func:`get_cache_key` -- key linking a broker token to a client session.
- :class:`ChecksumAuthority` -- per-command checksum generation and validation.
"""
from __future__ import annotations

from sso_server.credentials.checksum import ChecksumAuthority, compute_checksum
from sso_server.credentials.codec import get_cache_key, parse_bearer, render_bearer

__all__ = [
    "ChecksumAuthority",
    "compute_checksum",
    "get_cache_key",
    "parse_bearer",
    "render_bearer",
]
