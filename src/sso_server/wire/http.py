"""HTTP binding for the SSO server.

This module connects :class:`~sso_server.server.SSOServer` to an HTTP
stack without depending on one.  It provides:

* **HTTPRequest** -- the :class:`~sso_server.core.interfaces.Request`
  implementation, built from a header mapping and a query string.
* **format_error_response** -- maps an :class:`SSOError` to a JSON
  error response.
* **create_http_handler** -- factory that creates a request handler
  suitable for a WSGI adapter or a test harness.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs

from sso_server.core.errors import SSOError

if TYPE_CHECKING:
    from sso_server.core.interfaces import Session
    from sso_server.server import SSOServer

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"

# (status_code, response_headers, response_body)
HTTPResponse = tuple[int, dict[str, str], str]

HTTPHandler = Callable[[str, Mapping[str, str], str], HTTPResponse]


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class HTTPRequest:
    """An incoming HTTP request, as seen by the SSO server.

    Header names are matched case-insensitively.  For repeated query
    parameters the first value wins.

    Parameters
    ----------
    headers:
        Request headers.
    query:
        Query parameters.
    """

    def __init__(
        self,
        headers: Mapping[str, str] | None = None,
        query: Mapping[str, str] | None = None,
    ) -> None:
        self._headers = {k.lower(): v for k, v in (headers or {}).items()}
        self._query = dict(query or {})

    @classmethod
    def from_query_string(
        cls,
        query_string: str,
        headers: Mapping[str, str] | None = None,
    ) -> HTTPRequest:
        """Build a request from a raw (URL encoded) query string."""
        parsed = parse_qs(query_string.lstrip("?"), keep_blank_values=True)
        return cls(headers, {k: v[0] for k, v in parsed.items()})

    def get_header(self, name: str) -> str:
        """Return the header value, or ``""`` if absent."""
        return self._headers.get(name.lower(), "")

    def get_query_param(self, name: str) -> str | None:
        """Return the query parameter, or ``None`` if absent."""
        return self._query.get(name)

    def __repr__(self) -> str:
        # Authorization is left out, it carries the broker credential.
        headers = sorted(k for k in self._headers if k != "authorization")
        return f"HTTPRequest(headers={headers!r}, query={sorted(self._query)!r})"


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def _json_response(
    status: int,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
) -> HTTPResponse:
    response_headers = {"Content-Type": JSON_CONTENT_TYPE}
    response_headers.update(headers or {})
    return status, response_headers, json.dumps(payload, sort_keys=True)


def format_error_response(error: SSOError) -> HTTPResponse:
    """Return the JSON error response for *error*.

    The status is the error's recommended ``http_status``; the body is
    :meth:`SSOError.to_dict`, which never contains the broker secret.
    """
    return _json_response(error.http_status, error.to_dict())


# ---------------------------------------------------------------------------
# Handler factory
# ---------------------------------------------------------------------------


def create_http_handler(
    server: SSOServer,
    session_factory: Callable[[HTTPRequest], Session],
    *,
    broker_api: Callable[[HTTPRequest, Session], dict[str, Any]] | None = None,
) -> HTTPHandler:
    """Create an HTTP request handler for an SSO server.

    The returned handler accepts ``(path, headers, query_string)`` and
    returns ``(status_code, headers, body)``.

    Routes (paths taken from ``server.config``):

    * ``attach_path`` -- runs :meth:`SSOServer.attach`.  Answers ``303``
      to ``return_url`` when given, ``200`` with a JSON body otherwise.
    * ``broker_path_prefix`` -- runs :meth:`SSOServer.start_broker_session`,
      then *broker_api* with the resumed session.  Answers ``200`` with
      its JSON result, or ``204`` when no *broker_api* is given.
    * anything else -- ``404``.

    Parameters
    ----------
    server:
        The configured server.  Each request runs on a copy bound to the
        session returned by *session_factory*.
    session_factory:
        Returns the client session of a request (e.g. from its cookie).
    broker_api:
        Application callback serving broker requests once the client
        session is resumed.  Its return value is the response body.

    Returns
    -------
    HTTPHandler
        A function with signature
        ``(path, headers, query_string) -> (status_code, headers, body)``.
    """
    config = server.config

    def handler(
        path: str,
        headers: Mapping[str, str],
        query_string: str,
    ) -> HTTPResponse:
        """Process an HTTP request to the SSO server."""
        request = HTTPRequest.from_query_string(query_string, headers)

        try:
            session = session_factory(request)
            bound = server.with_session(session)

            if path == config.attach_path:
                bound.attach(request)
                return_url = request.get_query_param("return_url")
                if return_url is not None:
                    return 303, {"Location": return_url}, ""
                return _json_response(200, {"success": "attached"})

            if path.startswith(config.broker_path_prefix):
                bound.start_broker_session(request)
                if broker_api is None:
                    return 204, {}, ""
                return _json_response(200, broker_api(request, session))

            return _json_response(
                404,
                {"error": {"code": "not_found", "message": f"Unknown path: {path}"}},
            )

        except SSOError as exc:
            return format_error_response(exc)

        except Exception:
            logger.exception("Unhandled error while serving %s", path)
            return _json_response(
                500,
                {"error": {"code": "SSO-E000", "message": "Internal server error"}},
            )

    return handler
