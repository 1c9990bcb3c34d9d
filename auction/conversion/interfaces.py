"""Capabilities consumed by the conversion layer.

Concrete venues live outside this package; only the shape the adapters call is
described here.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from auction.types import PoolHandle, VenueKind


class ConstantProductPool(Protocol):
    """Two-asset x*y=k pool with a uniform interface."""

    address: str
    fee_bps: int

    def tokens(self) -> tuple[str, str]:
        """Return (token0, token1)."""

    def get_reserves(self) -> tuple[int, int]:
        """Return reserves ordered like `tokens()`."""

    def swap(self, asset_in: str, amount_in: int, min_out: int) -> int:
        """Swap `amount_in` of `asset_in` for the other token; return amount out."""


class PoolLookup(Protocol):
    """Resolves a deterministic pool address to the deployed pool, if any."""

    def pool_at(self, address: str) -> Optional[ConstantProductPool]:
        """Return the pool deployed at `address`, or None."""


class StableSwapPool(Protocol):
    """Multi-coin stableswap pool addressed by coin index."""

    address: str

    def coins(self) -> Sequence[str]:
        """Coin identities in index order."""

    def balances(self) -> Sequence[int]:
        """Live balances in index order."""

    def exchange(self, i: int, j: int, dx: int, min_dy: int) -> int:
        """Swap `dx` of coin `i` for coin `j`; return amount received."""

    # Optional: get_dy(i, j, dx) -> int. Not every pool exposes it, and some revert.


class StableSwapRegistry(Protocol):
    """Lookup capability listing stableswap pools that hold a pair of coins."""

    def find_pools_for_coins(self, asset_a: str, asset_b: str) -> Sequence[StableSwapPool]:
        """Candidate pools in registry order."""


class VenueAdapter(Protocol):
    """One venue family normalized to quote/swap against the settlement asset."""

    kind: VenueKind

    def resolve_pool(self, asset_in: str) -> PoolHandle:
        """Return the pool that converts `asset_in` into the settlement asset."""

    def quote(self, asset_in: str, amount_in: int) -> int:
        """Expected settlement output for `amount_in` of `asset_in`."""

    def swap(self, asset_in: str, amount_in: int, min_out: int) -> int:
        """Execute the conversion; raise SlippageExceeded below `min_out`."""
