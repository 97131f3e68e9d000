"""Session linking.

Public API
----------
- :class:`SessionLinkStore` -- maps broker tokens to client session ids.
"""
from __future__ import annotations

from sso_server.session.links import SessionLinkStore

__all__ = [
    "SessionLinkStore",
]
