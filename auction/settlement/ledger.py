"""Settlement balances.

The market pulls payments into its own account, records the legs of venue
conversions, and pushes payouts to sellers and fee recipients. `AssetLedger` is
the in-memory implementation used by the service and tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from auction.errors import TransferFailed, ZeroAmount
from auction.units import checked_add

logger = logging.getLogger(__name__)


class SettlementVault(Protocol):
    """Balance movement capability used by the market."""

    def balance_of(self, holder: str, asset: str) -> int:
        """Current balance of `asset` held by `holder`."""

    def credit(self, holder: str, asset: str, amount: int) -> int:
        """Fund `holder` with `amount` of `asset`; return the new balance."""

    def pull(self, payer: str, asset: str, amount: int) -> None:
        """Move `amount` of `asset` from `payer` into the market account."""

    def push(self, recipient: str, asset: str, amount: int) -> None:
        """Pay `amount` of `asset` from the market account; raise TransferFailed on failure."""

    def record_swap(self, asset_in: str, amount_in: int, asset_out: str, amount_out: int) -> None:
        """Reflect a venue conversion on the market account."""


@dataclass(frozen=True)
class Balance:
    """Balance of one asset held by one address."""

    holder: str
    asset: str
    amount: int


class AssetLedger:
    """In-memory balances per (holder, asset).

    Supports:
    - Credit/debit and holder-to-holder transfers
    - The SettlementVault operations against a single market account
    - Blocking addresses so payouts to them fail
    """

    def __init__(self, account: str, initial_balances: Optional[dict[tuple[str, str], int]] = None) -> None:
        """Initialize the ledger.

        Args:
            account: Address of the market's own account
            initial_balances: Optional mapping of (holder, asset) -> amount
        """
        self.account = account
        self._balances: dict[tuple[str, str], int] = {}
        self._blocked: set[str] = set()
        for (holder, asset), amount in (initial_balances or {}).items():
            self.credit(holder, asset, amount)

    @staticmethod
    def _key(holder: str, asset: str) -> tuple[str, str]:
        return holder.lower(), asset.lower()

    def balance_of(self, holder: str, asset: str) -> int:
        return self._balances.get(self._key(holder, asset), 0)

    def balances(self, holder: str) -> list[Balance]:
        """All non-zero balances of `holder`."""
        owner = holder.lower()
        return [
            Balance(holder=holder, asset=asset, amount=amount)
            for (h, asset), amount in sorted(self._balances.items())
            if h == owner and amount > 0
        ]

    def credit(self, holder: str, asset: str, amount: int) -> int:
        """Add funds to a balance.

        Raises:
            ZeroAmount: If amount <= 0
        """
        if amount <= 0:
            raise ZeroAmount("credit amount must be positive")
        key = self._key(holder, asset)
        self._balances[key] = checked_add(self._balances.get(key, 0), amount)
        return self._balances[key]

    def debit(self, holder: str, asset: str, amount: int) -> int:
        """Remove funds from a balance.

        Raises:
            ZeroAmount: If amount <= 0
            TransferFailed: If the balance is insufficient
        """
        if amount <= 0:
            raise ZeroAmount("debit amount must be positive")
        key = self._key(holder, asset)
        available = self._balances.get(key, 0)
        if available < amount:
            raise TransferFailed(f"insufficient {asset} balance for {holder}: {available} < {amount}")
        self._balances[key] = available - amount
        return self._balances[key]

    def transfer(self, sender: str, recipient: str, asset: str, amount: int) -> None:
        if recipient.lower() in self._blocked:
            raise TransferFailed(f"recipient {recipient} cannot receive {asset}")
        self.debit(sender, asset, amount)
        self.credit(recipient, asset, amount)

    def block(self, address: str) -> None:
        self._blocked.add(address.lower())

    def unblock(self, address: str) -> None:
        self._blocked.discard(address.lower())

    # ------------------------------------------------------------------
    # SettlementVault
    # ------------------------------------------------------------------

    def pull(self, payer: str, asset: str, amount: int) -> None:
        self.transfer(payer, self.account, asset, amount)

    def push(self, recipient: str, asset: str, amount: int) -> None:
        if amount == 0:
            return
        self.transfer(self.account, recipient, asset, amount)
        logger.debug("Paid %s %s to %s", amount, asset, recipient)

    def record_swap(self, asset_in: str, amount_in: int, asset_out: str, amount_out: int) -> None:
        self.debit(self.account, asset_in, amount_in)
        self.credit(self.account, asset_out, amount_out)

    def snapshot(self) -> dict[tuple[str, str], int]:
        return dict(self._balances)

    def restore(self, state: dict[tuple[str, str], int]) -> None:
        self._balances = dict(state)
