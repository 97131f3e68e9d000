"""Broker domain policy.

Public API
----------
- :class:`DomainPolicy` -- checks URLs against a broker's allowed domains.
"""
from __future__ import annotations

from sso_server.policy.domains import DomainPolicy

__all__ = [
    "DomainPolicy",
]
