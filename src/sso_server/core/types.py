"""SSO server shared domain types.

Key design decisions:
* ``BrokerId``, ``Token``, ``Checksum``, ``CacheKey`` and ``SessionId`` are
  ``NewType`` wrappers around ``str`` for static type-safety.
* The broker secret is held in a :class:`pydantic.SecretStr` so that
  ``str()``, ``repr()`` and log output never reveal it.
* Enums use *string* values so they can be used directly when building
  the checksum message and in JSON error bodies.
"""
from __future__ import annotations

import enum
from typing import NewType

from pydantic import BaseModel, ConfigDict, Field, SecretStr

# ---------------------------------------------------------------------------
# Value types (NewType wrappers)
# ---------------------------------------------------------------------------

BrokerId = NewType("BrokerId", str)
"""Broker identifier assigned out of band (ASCII word characters)."""

Token = NewType("Token", str)
"""Broker-generated nonce identifying one handshake attempt."""

Checksum = NewType("Checksum", str)
"""Lowercase hex HMAC-SHA256 digest."""

CacheKey = NewType("CacheKey", str)
"""Cache key linking a broker token to a session, ``SSO-{broker}-{token}``."""

SessionId = NewType("SessionId", str)
"""Session identifier, only ever produced by the session backend."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Command(enum.StrEnum):
    """Checksum command; domain-separates the HMAC for each flow."""

    BEARER = "bearer"
    ATTACH = "attach"


class DomainKind(enum.StrEnum):
    """Where a URL validated by the domain policy came from."""

    ORIGIN = "origin"
    REFERER = "referer"
    RETURN_URL = "return_url"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class BrokerInfo(BaseModel):
    """Registration data of a broker, as returned by the broker registry.

    Looked up on every request and never cached by the server, so a
    rotated secret takes effect immediately.
    """

    model_config = ConfigDict(frozen=True)

    secret: SecretStr = Field(description="Shared secret used to key checksums.")
    domains: list[str] = Field(
        default_factory=list,
        description="Hosts the broker may use for origin, referer and return URLs.",
    )


class BearerCredential(BaseModel):
    """Parsed form of ``SSO-{broker_id}-{token}-{checksum}``."""

    model_config = ConfigDict(frozen=True, strict=True)

    broker_id: BrokerId
    token: Token
    checksum: Checksum

    def render(self) -> str:
        """Return the wire form of the credential."""
        return f"SSO-{self.broker_id}-{self.token}-{self.checksum}"

    def __str__(self) -> str:
        return self.render()
