"""Pool discovery cache for venues without deterministic pool addresses.

Stableswap pools cannot be derived from the pair, so they are looked up in a
registry. Each candidate is validated before being trusted: both coins must be
in the pool and both balances must exceed the liquidity floor. The first valid
candidate is cached per asset and never invalidated within a session; a pool
drained after caching shows up later as SlippageExceeded on swap.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from auction.conversion.interfaces import StableSwapPool, StableSwapRegistry
from auction.errors import NoLiquidity, PairNotInPool
from auction.types import PoolHandle, VenueKind, same_asset

logger = logging.getLogger(__name__)


def coin_indices(coins: Sequence[str], asset_in: str, asset_out: str) -> tuple[int, int]:
    """Return (i, j) for `asset_in` and `asset_out` in a pool's coin list.

    Raises:
        PairNotInPool: If either asset is missing.
    """
    i = j = None
    for index, coin in enumerate(coins):
        if i is None and same_asset(coin, asset_in):
            i = index
        elif j is None and same_asset(coin, asset_out):
            j = index
    if i is None or j is None:
        raise PairNotInPool(f"pair {asset_in}/{asset_out} not in pool")
    return i, j


class PoolDiscoveryCache:
    def __init__(
        self,
        *,
        registry: Optional[StableSwapRegistry],
        settlement_asset: str,
        min_liquidity: int,
    ) -> None:
        self._registry = registry
        self.settlement_asset = settlement_asset
        self.min_liquidity = min_liquidity
        self._handles: dict[tuple[str, VenueKind], PoolHandle] = {}
        self._pools: dict[str, StableSwapPool] = {}

    def cached(self, asset: str, venue: VenueKind = VenueKind.STABLESWAP) -> Optional[PoolHandle]:
        return self._handles.get((asset.lower(), venue))

    def pool(self, handle: PoolHandle) -> StableSwapPool:
        return self._pools[handle.address]

    def validate(self, pool: StableSwapPool, asset: str) -> PoolHandle:
        """Check that `pool` holds the pair with enough liquidity on both sides.

        Raises:
            PairNotInPool: either coin is missing
            NoLiquidity: either balance is at or below the floor
        """
        i, j = coin_indices(pool.coins(), asset, self.settlement_asset)
        balances = pool.balances()
        if balances[i] <= self.min_liquidity or balances[j] <= self.min_liquidity:
            raise NoLiquidity(
                f"pool {pool.address} balances {balances[i]}/{balances[j]} not above floor {self.min_liquidity}"
            )
        return PoolHandle(
            venue=VenueKind.STABLESWAP,
            address=pool.address,
            asset_in=asset,
            asset_out=self.settlement_asset,
            index_in=i,
            index_out=j,
        )

    def resolve(self, asset: str) -> PoolHandle:
        """Return the cached pool for `asset`, discovering it on first use."""
        handle = self.cached(asset)
        if handle is not None:
            return handle
        if self._registry is None:
            raise NoLiquidity(f"no pool registry configured to discover {asset}")

        candidates = self._registry.find_pools_for_coins(asset, self.settlement_asset)
        for pool in candidates:
            try:
                handle = self.validate(pool, asset)
            except (PairNotInPool, NoLiquidity) as exc:
                logger.warning("Skipping pool %s for %s: %s", pool.address, asset, exc)
                continue
            self._store(asset, pool, handle)
            logger.info("Discovered pool %s for %s (i=%s, j=%s)", pool.address, asset, handle.index_in, handle.index_out)
            return handle

        raise NoLiquidity(f"no valid pool among {len(candidates)} candidates for {asset}/{self.settlement_asset}")

    def pin(self, asset: str, pool: StableSwapPool) -> PoolHandle:
        """Validate and cache `pool` for `asset`, replacing any earlier resolution."""
        handle = self.validate(pool, asset)
        self._store(asset, pool, handle)
        logger.info("Pinned pool %s for %s", pool.address, asset)
        return handle

    def _store(self, asset: str, pool: StableSwapPool, handle: PoolHandle) -> None:
        self._handles[(asset.lower(), VenueKind.STABLESWAP)] = handle
        self._pools[pool.address] = pool
