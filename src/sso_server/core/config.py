"""SSO server configuration.

Defines the validated configuration model consumed by the server and the
HTTP binding.  A server is configured once, before construction; changing
the logger or session afterwards goes through ``with_logger`` /
``with_session``, which return a new server instead of mutating this model.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ServerConfig(BaseModel):
    """Configuration for an SSO server.

    All fields carry defaults, so ``ServerConfig()`` is a valid
    configuration for development.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    link_ttl_seconds: int | None = Field(
        default=None,
        ge=1,
        description=(
            "Time-to-live for broker token to session links in the cache. "
            "``None`` leaves expiry to the cache backend."
        ),
    )
    bearer_scheme: str = Field(
        default="Bearer",
        min_length=1,
        description="Authorization scheme that carries the broker credential.",
    )
    attach_path: str = Field(
        default="/attach",
        description="Path served by the attach flow in the HTTP binding.",
    )
    broker_path_prefix: str = Field(
        default="/api/",
        description=(
            "Path prefix of broker API requests that resume a client "
            "session with a bearer credential."
        ),
    )
