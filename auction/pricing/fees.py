"""Protocol fee ledger.

Accrued protocol fees per asset. Only the pricing engine credits the ledger;
collection drains one asset at a time.
"""

from __future__ import annotations

from auction.errors import ZeroAmount
from auction.units import checked_add


class FeeLedger:
    def __init__(self) -> None:
        self._accrued: dict[str, int] = {}

    def accrue(self, asset: str, amount: int) -> int:
        """Add `amount` to the asset's accrued total and return the new total."""
        if amount < 0:
            raise ValueError("fee amount must be non-negative")
        total = checked_add(self._accrued.get(asset, 0), amount)
        self._accrued[asset] = total
        return total

    def accrued(self, asset: str) -> int:
        return self._accrued.get(asset, 0)

    def all_accrued(self) -> dict[str, int]:
        return {asset: amount for asset, amount in self._accrued.items() if amount > 0}

    def drain(self, asset: str) -> int:
        """Zero the asset's entry and return what was owed.

        Raises:
            ZeroAmount: If nothing has accrued for the asset.
        """
        amount = self._accrued.get(asset, 0)
        if amount == 0:
            raise ZeroAmount(f"no fees accrued for {asset}")
        self._accrued[asset] = 0
        return amount

    def snapshot(self) -> dict[str, int]:
        return dict(self._accrued)

    def restore(self, state: dict[str, int]) -> None:
        self._accrued = dict(state)
