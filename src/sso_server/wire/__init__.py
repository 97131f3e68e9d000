"""HTTP binding for the SSO server.

* **HTTPRequest** -- request adapter (:mod:`~sso_server.wire.http`).
* **create_http_handler** -- routes attach and broker requests to a server.
* **format_error_response** -- JSON error responses for :class:`SSOError`.
"""
from __future__ import annotations

from sso_server.wire.http import (
    HTTPRequest,
    create_http_handler,
    format_error_response,
)

__all__ = [
    "HTTPRequest",
    "create_http_handler",
    "format_error_response",
]
