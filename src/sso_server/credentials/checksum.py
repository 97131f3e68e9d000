"""HMAC-SHA256 checksums proving knowledge of a broker secret.

Checksum:
    ``HMAC-SHA256(broker_secret, command || ":" || token)``, hex encoded.

The command (``attach`` or ``bearer``) domain-separates the checksums of
the two flows, so a checksum captured from an attach URL cannot be used
as a bearer credential and vice versa.

Broker info is looked up on every call.  Nothing is cached here, so a
rotated broker secret takes effect with the next request.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
from typing import TYPE_CHECKING

from sso_server.core.errors import (
    BrokerLookupFailed,
    InvalidChecksumError,
    UnknownBrokerError,
)
from sso_server.core.types import BrokerId, BrokerInfo, Checksum, Command, Token

if TYPE_CHECKING:
    from sso_server.core.interfaces import BrokerInfoProvider


def compute_checksum(secret: str, command: Command | str, token: Token) -> Checksum:
    """Return the hex HMAC-SHA256 of ``f"{command}:{token}"`` keyed by *secret*."""
    message = f"{command}:{token}"
    return Checksum(
        hmac.new(
            secret.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
    )


class ChecksumAuthority:
    """Generates and validates per-command checksums for brokers.

    Parameters
    ----------
    broker_info_provider:
        Registry used to look up the broker secret.
    logger:
        Logger for rejections (defaults to this module's logger).
    """

    def __init__(
        self,
        broker_info_provider: BrokerInfoProvider,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._provider = broker_info_provider
        self._logger = logger or logging.getLogger(__name__)

    def _get_broker_info(self, broker_id: BrokerId, token: Token) -> BrokerInfo:
        context = {"broker": broker_id, "token": token}
        try:
            info = self._provider.get_broker_info(broker_id)
        except Exception as exc:
            self._logger.error(
                "Failed to get broker secret: %s", exc, extra=context,
            )
            raise BrokerLookupFailed(
                "Failed to get broker secret", details=context,
            ) from exc

        if info is None:
            self._logger.warning("Unknown broker id", extra=context)
            raise UnknownBrokerError(details=context)
        return info

    def generate(self, command: Command, broker_id: BrokerId, token: Token) -> Checksum:
        """Compute the checksum *broker_id* must present for *command* and *token*.

        Raises
        ------
        UnknownBrokerError
            If the broker is not registered.
        BrokerLookupFailed
            If the broker registry raised.
        """
        info = self._get_broker_info(broker_id, token)
        return compute_checksum(info.secret.get_secret_value(), command, token)

    def validate(
        self,
        checksum: str,
        command: Command,
        broker_id: BrokerId,
        token: Token,
    ) -> None:
        """Assert that *checksum* matches the expected checksum.

        Uses constant-time comparison to prevent timing attacks.

        Raises
        ------
        InvalidChecksumError
            If the checksum does not match.
        UnknownBrokerError
            If the broker is not registered.
        BrokerLookupFailed
            If the broker registry raised.
        """
        expected = self.generate(command, broker_id, token)

        if not hmac.compare_digest(
            expected.encode("utf-8"), checksum.encode("utf-8"),
        ):
            self._logger.warning(
                "Invalid %s checksum",
                command,
                extra={
                    "expected": expected,
                    "received": checksum,
                    "broker": broker_id,
                    "token": token,
                },
            )
            raise InvalidChecksumError(
                details={"broker": broker_id, "token": token, "command": str(command)},
            )
