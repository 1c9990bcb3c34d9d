"""Ownership and delegation registry.

Tracks exactly one owner and at most one approved spender per token id.
Addresses are stored and compared in normalized (lower-case) form.
Mutations commit their effects before invoking receiver hooks; if a hook
rejects or raises, the mutation is reverted before the error propagates.
"""

from __future__ import annotations

import logging
from typing import Optional

from auction.errors import NotApproved, NotOwner, UnknownResource, ZeroAddress, ZeroRecipient
from auction.registry.capabilities import CapabilityTable
from auction.registry.receivers import ReceiverDirectory
from auction.types import CapabilityKind, is_zero_address, normalize_address

logger = logging.getLogger(__name__)

OWNER = CapabilityKind.OWNER
APPROVED = CapabilityKind.APPROVED


class OwnershipRegistry:
    def __init__(self, receivers: Optional[ReceiverDirectory] = None) -> None:
        self._table = CapabilityTable()
        self.receivers = receivers or ReceiverDirectory()

    # ------------------------------------------------------------------
    # Capability primitives
    # ------------------------------------------------------------------

    def grant_ownership(self, token_id: int, address: str) -> None:
        """Make `address` the sole owner of `token_id`. Idempotent."""
        if is_zero_address(address):
            raise ZeroAddress("owner must not be the zero address")
        address = normalize_address(address)
        for holder in self._table.holders(token_id, OWNER):
            if holder != address:
                self._table.revoke(token_id, OWNER, holder)
        self._table.grant(token_id, OWNER, address)

    def revoke_ownership(self, token_id: int, address: str) -> None:
        """Remove `address` as owner of `token_id`. Idempotent."""
        self._table.revoke(token_id, OWNER, normalize_address(address))

    def grant_delegation(self, token_id: int, spender: str) -> None:
        """Make `spender` the only approved address for `token_id`."""
        self.clear_delegation(token_id)
        self._table.grant(token_id, APPROVED, normalize_address(spender))

    def clear_delegation(self, token_id: int) -> None:
        for holder in self._table.holders(token_id, APPROVED):
            self._table.revoke(token_id, APPROVED, holder)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def exists(self, token_id: int) -> bool:
        return bool(self._table.holders(token_id, OWNER))

    def is_owner(self, token_id: int, address: str) -> bool:
        return self._table.holds(token_id, OWNER, normalize_address(address))

    def is_approved(self, token_id: int, address: str) -> bool:
        return self._table.holds(token_id, APPROVED, normalize_address(address))

    def owner_of(self, token_id: int) -> str:
        holders = self._table.holders(token_id, OWNER)
        if not holders:
            raise UnknownResource(f"token {token_id} does not exist")
        (owner,) = holders
        return owner

    def approved_for(self, token_id: int) -> Optional[str]:
        holders = self._table.holders(token_id, APPROVED)
        return next(iter(holders), None)

    def token_ids(self) -> list[int]:
        return list(self._table.token_ids(OWNER))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def register(self, token_id: int, owner: str, *, operator: Optional[str] = None) -> None:
        """Record a freshly minted token and run the owner's acceptance hook."""
        if is_zero_address(owner):
            raise ZeroRecipient("cannot mint to the zero address")
        if self.exists(token_id):
            raise ValueError(f"token {token_id} already registered")

        self.grant_ownership(token_id, owner)
        try:
            self.receivers.check_acceptance(
                receiver=owner,
                operator=operator or owner,
                from_address="",
                token_id=token_id,
            )
        except Exception:
            self.revoke_ownership(token_id, owner)
            raise

    def remove(self, token_id: int) -> str:
        """Permanently drop a token's ownership and delegation. Returns the last owner."""
        owner = self.owner_of(token_id)
        self.clear_delegation(token_id)
        self.revoke_ownership(token_id, owner)
        return owner

    def move(self, token_id: int, from_address: str, to_address: str, *, operator: str, data: bytes = b"") -> None:
        """Move ownership without an approval check (used by purchases).

        Any outstanding delegation is cleared along with the ownership change.
        """
        if is_zero_address(to_address):
            raise ZeroRecipient("cannot transfer to the zero address")
        if not self.is_owner(token_id, from_address):
            raise NotOwner(f"{from_address} does not own token {token_id}")

        state = self._table.snapshot()
        self.clear_delegation(token_id)
        self.revoke_ownership(token_id, from_address)
        self.grant_ownership(token_id, to_address)
        try:
            self.receivers.check_acceptance(
                receiver=to_address,
                operator=operator,
                from_address=from_address,
                token_id=token_id,
                data=data,
            )
        except Exception:
            self._table.restore(state)
            raise

    # ------------------------------------------------------------------
    # Delegated operations
    # ------------------------------------------------------------------

    def transfer(self, token_id: int, from_address: str, to_address: str, *, caller: str, data: bytes = b"") -> None:
        """Transfer `token_id` on behalf of its owner.

        Raises:
            NotApproved: caller does not hold delegation for the token
            ZeroRecipient: `to_address` is the null address
            NotOwner: `from_address` is not the current owner
            Rejected: the recipient's hook refused the token
        """
        if not self.is_approved(token_id, caller):
            raise NotApproved(f"{caller} is not approved for token {token_id}")
        self.move(token_id, from_address, to_address, operator=caller, data=data)
        logger.info("Token %s transferred %s -> %s by %s", token_id, from_address, to_address, caller)

    def approve(self, token_id: int, spender: str, *, caller: str) -> None:
        """Approve `spender` to transfer `token_id`; only the owner may approve."""
        if not self.is_owner(token_id, caller):
            raise NotOwner(f"{caller} does not own token {token_id}")
        self.delegate(token_id, spender, operator=caller)

    def delegate(self, token_id: int, spender: str, *, operator: str) -> None:
        """Grant delegation after authorization has already been established."""
        if is_zero_address(spender):
            raise ZeroAddress("spender must not be the zero address")
        owner = self.owner_of(token_id)

        state = self._table.snapshot()
        self.grant_delegation(token_id, spender)
        try:
            self.receivers.check_acceptance(
                receiver=spender,
                operator=operator,
                from_address=owner,
                token_id=token_id,
                data=b"approve",
            )
        except Exception:
            self._table.restore(state)
            raise
        logger.info("Token %s delegated to %s", token_id, spender)

    def snapshot(self) -> object:
        return self._table.snapshot()

    def restore(self, state: object) -> None:
        self._table.restore(state)  # type: ignore[arg-type]
