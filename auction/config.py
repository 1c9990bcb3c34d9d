"""Runtime configuration for the auction registry."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class Ratio:
    """Fixed rational constant applied with truncating integer division."""

    numerator: int
    basis: int

    def __post_init__(self) -> None:
        if self.basis <= 0:
            raise ValueError("basis must be positive")
        if self.numerator < 0:
            raise ValueError("numerator must be non-negative")

    def apply(self, amount: int) -> int:
        return amount * self.numerator // self.basis


@dataclass(frozen=True)
class AuctionConfig:
    """Auction parameters.

    Ratios default to a 0.5% protocol fee, a 20% seller premium on the spread
    and a 10% minimum price increment. Amounts are in settlement base units.

    `signing_domain_*` fields bind permit digests to one deployment.
    """

    settlement_asset: str = "WETH"
    settlement_decimals: int = 18

    fee_numerator: int = 5
    fee_basis: int = 1_000
    premium_numerator: int = 20
    premium_basis: int = 100
    increment_numerator: int = 10
    increment_basis: int = 100

    min_pool_liquidity: int = 10**18
    quote_safety_margin_bps: int = 100
    default_slippage_bps: int = 50

    chain_id: int = 1
    signing_domain_name: str = "PerpetualAuction"
    signing_domain_version: str = "1"

    def __post_init__(self) -> None:
        for name in ("fee", "premium", "increment"):
            Ratio(getattr(self, f"{name}_numerator"), getattr(self, f"{name}_basis"))
        if self.fee_numerator * self.premium_basis + self.premium_numerator * self.fee_basis > (
            self.fee_basis * self.premium_basis
        ):
            raise ValueError("fee and premium ratios together must not exceed 100%")
        if not 0 <= self.quote_safety_margin_bps <= BPS_DENOMINATOR:
            raise ValueError("quote_safety_margin_bps must be within [0, 10000]")
        if not 0 <= self.default_slippage_bps <= BPS_DENOMINATOR:
            raise ValueError("default_slippage_bps must be within [0, 10000]")
        if self.min_pool_liquidity < 0:
            raise ValueError("min_pool_liquidity must be non-negative")

    @property
    def protocol_fee(self) -> Ratio:
        return Ratio(self.fee_numerator, self.fee_basis)

    @property
    def seller_premium(self) -> Ratio:
        return Ratio(self.premium_numerator, self.premium_basis)

    @property
    def price_increment(self) -> Ratio:
        return Ratio(self.increment_numerator, self.increment_basis)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> AuctionConfig:
        """Build a config from ``AUCTION_<FIELD>`` environment variables.

        Unset variables keep their defaults; integer fields are parsed with ``int``.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(f"AUCTION_{f.name.upper()}")
            if raw is None or raw.strip() == "":
                continue
            overrides[f.name] = int(raw) if f.type in ("int", int) else raw.strip()
        return cls(**overrides)
