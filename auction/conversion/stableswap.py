"""Adapter for stableswap venues.

Pools are found through the discovery cache and addressed by coin index. When a
pool cannot estimate its own output, the quote falls back to a constant-product
approximation over live balances, reduced by a safety margin.
"""

from __future__ import annotations

import logging

from auction.conversion.constant_product import constant_product_out
from auction.conversion.discovery import PoolDiscoveryCache
from auction.conversion.interfaces import StableSwapPool
from auction.errors import AuctionError, SlippageExceeded, ZeroAmount
from auction.types import PoolHandle, VenueKind
from auction.units import mul_div

logger = logging.getLogger(__name__)

BPS = 10_000


class StableSwapAdapter:
    kind = VenueKind.STABLESWAP

    def __init__(self, *, discovery: PoolDiscoveryCache, safety_margin_bps: int = 100) -> None:
        if not 0 <= safety_margin_bps <= BPS:
            raise ValueError("safety_margin_bps must be within [0, 10000]")
        self.discovery = discovery
        self.safety_margin_bps = safety_margin_bps

    @property
    def settlement_asset(self) -> str:
        return self.discovery.settlement_asset

    def resolve_pool(self, asset_in: str) -> PoolHandle:
        return self.discovery.resolve(asset_in)

    def quote(self, asset_in: str, amount_in: int) -> int:
        if amount_in <= 0:
            raise ZeroAmount("amount_in must be positive")
        handle = self.resolve_pool(asset_in)
        pool = self.discovery.pool(handle)

        get_dy = getattr(pool, "get_dy", None)
        if get_dy is not None:
            try:
                expected = int(get_dy(handle.index_in, handle.index_out, amount_in))
                logger.debug("Stableswap quote %s %s -> %s", amount_in, asset_in, expected)
                return expected
            except AuctionError:
                raise
            except Exception as exc:
                logger.warning("get_dy failed on pool %s, using reserve estimate: %s", pool.address, exc)

        return self.estimate_from_balances(pool, handle, amount_in)

    def estimate_from_balances(self, pool: StableSwapPool, handle: PoolHandle, amount_in: int) -> int:
        balances = pool.balances()
        raw = constant_product_out(amount_in, balances[handle.index_in], balances[handle.index_out], 0)
        expected = mul_div(raw, BPS - self.safety_margin_bps, BPS)
        logger.debug("Stableswap fallback quote %s -> %s (margin %s bps)", amount_in, expected, self.safety_margin_bps)
        return expected

    def swap(self, asset_in: str, amount_in: int, min_out: int) -> int:
        if amount_in <= 0:
            raise ZeroAmount("amount_in must be positive")
        handle = self.resolve_pool(asset_in)
        pool = self.discovery.pool(handle)
        received = pool.exchange(handle.index_in, handle.index_out, amount_in, min_out)
        if received < min_out:
            raise SlippageExceeded(f"received {received} < min_out {min_out}")
        logger.info("Swapped %s %s for %s %s via %s", amount_in, asset_in, received, self.settlement_asset, pool.address)
        return received
