"""Receiver acceptance hooks.

An address may be backed by an object exposing ``on_token_received``. When it
does, the hook must return ``RECEIVER_ACK`` for the operation to go through.
Plain addresses (no registered object, or an object without the hook) always
accept.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from auction.errors import Rejected
from auction.types import normalize_address

logger = logging.getLogger(__name__)

RECEIVER_ACK = bytes.fromhex("150b7a02")


class TokenReceiver(Protocol):
    def on_token_received(self, operator: str, from_address: str, token_id: int, data: bytes) -> bytes:
        """Return RECEIVER_ACK to accept the token or delegation."""


class ReceiverDirectory:
    """Maps addresses to the receiver objects behind them."""

    def __init__(self) -> None:
        self._receivers: dict[str, object] = {}

    def register(self, address: str, receiver: object) -> None:
        self._receivers[normalize_address(address)] = receiver

    def unregister(self, address: str) -> None:
        self._receivers.pop(normalize_address(address), None)

    def get(self, address: str) -> Optional[object]:
        return self._receivers.get(normalize_address(address))

    def check_acceptance(
        self,
        *,
        receiver: str,
        operator: str,
        from_address: str,
        token_id: int,
        data: bytes = b"",
    ) -> None:
        """Invoke the receiver's hook, if any.

        Raises:
            Rejected: If the hook returns anything other than RECEIVER_ACK.
        """
        target = self.get(receiver)
        hook = getattr(target, "on_token_received", None)
        if hook is None:
            return

        result = hook(operator, from_address, token_id, data)
        if result != RECEIVER_ACK:
            logger.warning("Receiver %s rejected token %s", receiver, token_id)
            raise Rejected(f"receiver {receiver} did not acknowledge token {token_id}")
