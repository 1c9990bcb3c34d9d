from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

ZERO_ADDRESS = "0x" + "00" * 20


def is_zero_address(address: Optional[str]) -> bool:
    return not address or address.lower() == ZERO_ADDRESS


def normalize_address(address: str) -> str:
    """Canonical form used as a key wherever addresses are compared."""
    return address.lower()


class VenueKind(str, Enum):
    """Supported venue families."""

    CONSTANT_PRODUCT = "constant_product"
    STABLESWAP = "stableswap"


class CapabilityKind(str, Enum):
    OWNER = "owner"
    APPROVED = "approved"


@dataclass(frozen=True)
class Payment:
    """Funds offered by a caller: `amount` base units of `asset`.

    `venue` and `min_out` are only used when `asset` is not the settlement asset.
    """

    asset: str
    amount: int
    venue: Optional[VenueKind] = None
    min_out: Optional[int] = None


@dataclass(frozen=True)
class Resource:
    token_id: int
    last_price: int
    exists: bool = True


@dataclass(frozen=True)
class MintQuote:
    amount: int
    protocol_fee: int
    initial_price: int


@dataclass(frozen=True)
class SaleQuote:
    """Split of a sale of `amount` against `prior_price`.

    `seller_payout` is what the prior owner gets back: the escrowed prior price
    plus the premium. `protocol_fee + seller_premium + new_price == amount`.
    """

    token_id: int
    amount: int
    prior_price: int
    protocol_fee: int
    seller_premium: int
    new_price: int
    minimum_price: int

    @property
    def seller_payout(self) -> int:
        return self.prior_price + self.seller_premium


@dataclass(frozen=True)
class MintReceipt:
    token_id: int
    owner: str
    settled_amount: int
    protocol_fee: int
    last_price: int


@dataclass(frozen=True)
class SaleReceipt:
    token_id: int
    buyer: str
    seller: str
    settled_amount: int
    protocol_fee: int
    seller_payout: int
    new_price: int


@dataclass(frozen=True)
class BurnReceipt:
    token_id: int
    owner: str
    refunded: int


@dataclass(frozen=True)
class PoolHandle:
    """A venue-specific pool resolved for one asset pair.

    For stableswap pools `index_in`/`index_out` are the coin indices of the input
    and settlement assets; constant-product pools leave them as None.
    """

    venue: VenueKind
    address: str
    asset_in: str
    asset_out: str
    index_in: Optional[int] = None
    index_out: Optional[int] = None


def same_asset(a: str, b: str) -> bool:
    return a.lower() == b.lower()
