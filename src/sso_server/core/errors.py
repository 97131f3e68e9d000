"""SSO server error-code hierarchy.

Every failure of the broker handshake is represented as a concrete
exception class carrying a stable error code and a recommended HTTP status.

Hierarchy
---------
::

    SSOError
    +-- BrokerError          (SSO-E1xx)  the broker or client is at fault
    +-- InfrastructureError  (SSO-E5xx)  the server or a backend is at fault

``ClientProtocolError`` is an alias of :class:`BrokerError`.

Usage
-----
Raise concrete subclasses directly::

    raise UnknownBrokerError(details={"broker": broker_id, "token": token})

Catch by category::

    try:
        server.attach(request)
    except BrokerError:
        # reject the request, the broker sent something invalid
        ...
    except InfrastructureError:
        # server-side failure, the caller may retry later
        ...

Error details MUST NOT contain the broker secret or the expected checksum.
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class SSOError(Exception):
    """Base exception for all SSO server errors.

    Attributes
    ----------
    code : str
        Error code, e.g. ``"SSO-E105"``.
    http_status : int
        Recommended HTTP status code for this error.
    message : str
        Human-readable description (MUST NOT contain secret values).
    details : dict[str, Any]
        Machine-readable context, typically ``broker`` and ``token``.
    resolution : str
        Suggested action for the caller.
    """

    code: str = "SSO-E000"
    http_status: int = 500
    message: str = "Unknown SSO server error"
    resolution: str = ""

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        if resolution is not None:
            self.resolution = resolution
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error to the JSON error body."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["detail"] = self.details
        if self.resolution:
            payload["resolution"] = self.resolution
        return {"error": payload}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# Category base classes
# ===================================================================

class BrokerError(SSOError):
    """SSO-E1xx -- The broker (or the client it redirected) is at fault."""

    code = "SSO-E1XX"
    http_status = 400


ClientProtocolError = BrokerError


class InfrastructureError(SSOError):
    """SSO-E5xx -- A backend of the server failed."""

    code = "SSO-E5XX"
    http_status = 500


# ===================================================================
# SSO-E1xx  Broker / client protocol errors
# ===================================================================

class ParseError(BrokerError):
    """SSO-E100 -- The bearer credential does not have the wire format."""

    code = "SSO-E100"
    http_status = 400
    message = "Invalid bearer token"
    resolution = "Send a bearer credential of the form SSO-{broker}-{token}-{checksum}."


class InvalidCredentialError(BrokerError):
    """SSO-E101 -- The Authorization header holds an unparsable credential."""

    code = "SSO-E101"
    http_status = 400
    message = "Invalid bearer token"
    resolution = "Send a bearer credential of the form SSO-{broker}-{token}-{checksum}."


class MissingCredentialError(BrokerError):
    """SSO-E102 -- The broker did not use bearer authentication."""

    code = "SSO-E102"
    http_status = 401
    message = "Broker didn't use bearer authentication"
    resolution = "Send an 'Authorization: Bearer ...' header."


class MissingParameterError(BrokerError):
    """SSO-E103 -- A required query parameter is absent."""

    code = "SSO-E103"
    http_status = 400
    message = "Missing query parameter"
    resolution = "Include the broker, token and checksum query parameters."


class UnknownBrokerError(BrokerError):
    """SSO-E104 -- No broker is registered under the given id."""

    code = "SSO-E104"
    http_status = 400
    message = "Unknown broker id"
    resolution = "Verify the broker id is registered with the SSO server."


class InvalidChecksumError(BrokerError):
    """SSO-E105 -- The checksum does not prove knowledge of the broker secret."""

    code = "SSO-E105"
    http_status = 400
    message = "Invalid checksum"
    resolution = (
        "Compute the checksum as HMAC-SHA256 of '<command>:<token>' "
        "keyed with the broker secret."
    )


class DomainNotAllowedError(BrokerError):
    """SSO-E106 -- A URL points to a host outside the broker's allow-list."""

    code = "SSO-E106"
    http_status = 400
    message = "Domain is not allowed"
    resolution = "Register the domain for the broker or use an allowed URL."


class NoLinkedSessionError(BrokerError):
    """SSO-E107 -- The bearer token was never attached to a client session."""

    code = "SSO-E107"
    http_status = 403
    message = "Bearer token isn't attached to a client session"
    resolution = "Redirect the client to the attach endpoint first."


class AlreadyStartedError(BrokerError):
    """SSO-E108 -- A session is already active for this request."""

    code = "SSO-E108"
    http_status = 400
    message = "Session is already started"
    resolution = "Start the broker session before any other session handling."


# ===================================================================
# SSO-E5xx  Infrastructure errors
# ===================================================================

class BrokerLookupFailed(InfrastructureError):
    """SSO-E500 -- The broker registry could not be queried."""

    code = "SSO-E500"
    http_status = 500
    message = "Failed to get broker info"
    resolution = "Check the availability of the broker registry."


class CacheReadFailed(InfrastructureError):
    """SSO-E501 -- The session link could not be read from the cache."""

    code = "SSO-E501"
    http_status = 500
    message = "Failed to get session id"
    resolution = "Check the availability of the cache backend."


class CacheWriteFailed(InfrastructureError):
    """SSO-E502 -- The session link could not be written to the cache."""

    code = "SSO-E502"
    http_status = 500
    message = "Failed to attach bearer token to session id"
    resolution = "Check the availability of the cache backend."


# ===================================================================
# Lookup helper
# ===================================================================

_CODE_MAP: dict[str, type[SSOError]] = {
    cls.code: cls
    for cls in [
        # E1xx
        ParseError,
        InvalidCredentialError,
        MissingCredentialError,
        MissingParameterError,
        UnknownBrokerError,
        InvalidChecksumError,
        DomainNotAllowedError,
        NoLinkedSessionError,
        AlreadyStartedError,
        # E5xx
        BrokerLookupFailed,
        CacheReadFailed,
        CacheWriteFailed,
    ]
}


def error_from_code(code: str, message: str | None = None) -> SSOError:
    """Instantiate the correct exception class for an SSO error code.

    Parameters
    ----------
    code:
        An error code such as ``"SSO-E105"``.
    message:
        Optional override for the default error message.

    Raises
    ------
    KeyError
        If *code* is not a recognised error code.
    """
    cls = _CODE_MAP[code]
    return cls(message) if message else cls()
