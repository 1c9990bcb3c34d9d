"""Adapter for constant-product (x*y=k) venues.

The pool for a pair is found by address derivation from the factory, the two
asset identities and the fee tier, then fetched through a `PoolLookup`.
"""

from __future__ import annotations

import logging

from auction.conversion.addresses import derive_pool_address
from auction.conversion.interfaces import ConstantProductPool, PoolLookup
from auction.errors import NoLiquidity, PairNotInPool, SlippageExceeded, ZeroAmount
from auction.types import PoolHandle, VenueKind, same_asset
from auction.units import checked_add, checked_mul

logger = logging.getLogger(__name__)

BPS = 10_000


def constant_product_out(amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int) -> int:
    """Output of an x*y=k swap after the pool's fee.

    ``amount_in * (1 - fee) * reserve_out / (reserve_in + amount_in * (1 - fee))``
    """
    if amount_in <= 0:
        raise ZeroAmount("amount_in must be positive")
    if reserve_in <= 0 or reserve_out <= 0:
        raise NoLiquidity("pool has zero reserves")
    amount_in_with_fee = checked_mul(amount_in, BPS - fee_bps)
    numerator = checked_mul(amount_in_with_fee, reserve_out)
    denominator = checked_add(checked_mul(reserve_in, BPS), amount_in_with_fee)
    return numerator // denominator


class ConstantProductAdapter:
    kind = VenueKind.CONSTANT_PRODUCT

    def __init__(
        self,
        *,
        factory: str,
        init_code_hash: bytes,
        fee_tier: int,
        settlement_asset: str,
        lookup: PoolLookup,
    ) -> None:
        self.factory = factory
        self.init_code_hash = init_code_hash
        self.fee_tier = fee_tier
        self.settlement_asset = settlement_asset
        self._lookup = lookup

    def pool_address(self, asset_in: str) -> str:
        return derive_pool_address(self.factory, asset_in, self.settlement_asset, self.fee_tier, self.init_code_hash)

    def _pool(self, asset_in: str) -> ConstantProductPool:
        address = self.pool_address(asset_in)
        pool = self._lookup.pool_at(address)
        if pool is None:
            raise NoLiquidity(f"no constant-product pool for {asset_in}/{self.settlement_asset} at {address}")
        tokens = pool.tokens()
        if not any(same_asset(t, asset_in) for t in tokens) or not any(
            same_asset(t, self.settlement_asset) for t in tokens
        ):
            raise PairNotInPool(f"pool {address} does not hold {asset_in}/{self.settlement_asset}")
        return pool

    def resolve_pool(self, asset_in: str) -> PoolHandle:
        pool = self._pool(asset_in)
        return PoolHandle(
            venue=self.kind,
            address=pool.address,
            asset_in=asset_in,
            asset_out=self.settlement_asset,
        )

    def quote(self, asset_in: str, amount_in: int) -> int:
        pool = self._pool(asset_in)
        token0, _ = pool.tokens()
        reserve0, reserve1 = pool.get_reserves()
        if same_asset(token0, asset_in):
            reserve_in, reserve_out = reserve0, reserve1
        else:
            reserve_in, reserve_out = reserve1, reserve0
        expected = constant_product_out(amount_in, reserve_in, reserve_out, pool.fee_bps)
        logger.debug("Constant-product quote %s %s -> %s", amount_in, asset_in, expected)
        return expected

    def swap(self, asset_in: str, amount_in: int, min_out: int) -> int:
        if amount_in <= 0:
            raise ZeroAmount("amount_in must be positive")
        pool = self._pool(asset_in)
        received = pool.swap(asset_in, amount_in, min_out)
        if received < min_out:
            raise SlippageExceeded(f"received {received} < min_out {min_out}")
        logger.info("Swapped %s %s for %s %s via %s", amount_in, asset_in, received, self.settlement_asset, pool.address)
        return received
