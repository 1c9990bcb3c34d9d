"""Simulated stableswap pool for running the service without a live venue.

Coins trade 1:1 less the pool fee, bounded by the output coin's balance, the
way paper execution fills orders against a declared price instead of a book.
"""

from __future__ import annotations

import logging
from typing import Sequence

from auction.errors import NoLiquidity, SlippageExceeded, ZeroAmount
from auction.units import mul_div

logger = logging.getLogger(__name__)

BPS = 10_000


class PaperStableSwapPool:
    def __init__(self, address: str, coins: Sequence[str], balances: Sequence[int], fee_bps: int = 4) -> None:
        if len(coins) != len(balances) or len(coins) < 2:
            raise ValueError("a pool needs at least two coins, each with a balance")
        if not 0 <= fee_bps < BPS:
            raise ValueError("fee_bps must be within [0, 10000)")
        self.address = address
        self.fee_bps = fee_bps
        self._coins = list(coins)
        self._balances = list(balances)

    def coins(self) -> list[str]:
        return list(self._coins)

    def balances(self) -> list[int]:
        return list(self._balances)

    def get_dy(self, i: int, j: int, dx: int) -> int:
        if dx <= 0:
            raise ZeroAmount("dx must be positive")
        dy = mul_div(dx, BPS - self.fee_bps, BPS)
        if dy >= self._balances[j]:
            raise NoLiquidity(f"pool {self.address} cannot pay {dy} of coin {j}")
        return dy

    def exchange(self, i: int, j: int, dx: int, min_dy: int) -> int:
        dy = self.get_dy(i, j, dx)
        if dy < min_dy:
            raise SlippageExceeded(f"pool {self.address} output {dy} < {min_dy}")
        self._balances[i] += dx
        self._balances[j] -= dy
        logger.debug("Paper exchange on %s: %s of coin %s -> %s of coin %s", self.address, dx, i, dy, j)
        return dy
