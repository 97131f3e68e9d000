#!/usr/bin/env python3
"""SSO server quickstart -- a complete broker handshake.

Demonstrates the two flows of the SSO server:

1. Create a server with in-memory backends and register a broker.
2. The broker generates a token and redirects the client to ``/attach``.
3. The server binds the token to the client's session.
4. The broker calls the server with the bearer credential.
5. The server resumes the client's session for that broker request.

Run:
    python examples/quickstart.py
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from urllib.parse import urlencode

from sso_server import (
    InMemoryBrokerRegistry,
    InMemoryCache,
    InMemorySession,
    InMemorySessionRegistry,
    ServerConfig,
    SSOServer,
    create_http_handler,
)

BROKER_ID = "demo"
BROKER_SECRET = "abc123"


def sign(command: str, token: str) -> str:
    """What the broker computes on its side."""
    return hmac.new(
        BROKER_SECRET.encode(), f"{command}:{token}".encode(), hashlib.sha256,
    ).hexdigest()


def main() -> None:
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(levelname)-7s %(name)s: %(message)s",
    )

    # -- Step 1: Server with in-memory backends ------------------------------
    brokers = InMemoryBrokerRegistry()
    brokers.register(BROKER_ID, BROKER_SECRET, ["app.demo.test"])

    sessions = InMemorySessionRegistry()
    server = SSOServer(
        brokers,
        InMemoryCache(),
        InMemorySession(sessions),
        config=ServerConfig(link_ttl_seconds=3600),
    )

    opened = []

    def session_factory(request):
        session = InMemorySession(sessions)
        opened.append(session)
        cookie = request.get_header("Cookie")
        if cookie.startswith("sid="):
            session.start(cookie[4:])
        return session

    def broker_api(request, session):
        return {"user": session.data.get("user")}

    handler = create_http_handler(server, session_factory, broker_api=broker_api)

    # -- Step 2: Broker redirects the client to /attach -----------------------
    token = secrets.token_hex(16)
    query = urlencode({
        "broker": BROKER_ID,
        "token": token,
        "checksum": sign("attach", token),
        "return_url": "https://app.demo.test/",
    })

    # -- Step 3: Server binds the token to the client session ----------------
    status, headers, _ = handler("/attach", {"Referer": "https://app.demo.test/"}, query)
    print(f"attach      -> {status} {headers.get('Location', '')}")

    # The client logs in on the SSO server (outside the scope of this package).
    opened[-1].data["user"] = "jackie"

    # -- Step 4/5: Broker calls the API with the bearer credential -----------
    bearer = f"Bearer SSO-{BROKER_ID}-{token}-{sign('bearer', token)}"
    status, _, body = handler("/api/user", {"Authorization": bearer}, "")
    print(f"broker api  -> {status} {body}")

    # A checksum for the other command is rejected.
    forged = f"Bearer SSO-{BROKER_ID}-{token}-{sign('attach', token)}"
    status, _, body = handler("/api/user", {"Authorization": forged}, "")
    print(f"wrong check -> {status} {body}")


if __name__ == "__main__":
    main()
