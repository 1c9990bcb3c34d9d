"""Ascending-price fee engine.

Every sale must clear the minimum increment over the recorded price. The spread
``amount - prior_price`` is split three ways: a protocol fee, a premium paid to
the seller, and the remainder which raises the recorded price. Quotes are pure;
``settle_*`` is the only place last prices and the fee ledger change.
"""

from __future__ import annotations

import logging
from typing import Optional

from auction.config import AuctionConfig
from auction.errors import BelowMinimumIncrement, InsufficientPayment, UnknownResource, ZeroAmount
from auction.pricing.fees import FeeLedger
from auction.types import MintQuote, Resource, SaleQuote
from auction.units import checked_add, checked_sub, mul_div

logger = logging.getLogger(__name__)


class PricingEngine:
    def __init__(self, config: AuctionConfig, fee_ledger: Optional[FeeLedger] = None) -> None:
        self.config = config
        self.fees = fee_ledger or FeeLedger()
        self._prices: dict[int, int] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def exists(self, token_id: int) -> bool:
        return token_id in self._prices

    def last_price(self, token_id: int) -> int:
        try:
            return self._prices[token_id]
        except KeyError:
            raise UnknownResource(f"token {token_id} does not exist") from None

    def resource(self, token_id: int) -> Resource:
        return Resource(token_id=token_id, last_price=self.last_price(token_id))

    def next_minimum_price(self, token_id: int) -> int:
        """Smallest post-fee price a buyer must leave on the token."""
        price = self.last_price(token_id)
        increment = self.config.price_increment
        return checked_add(price, mul_div(price, increment.numerator, increment.basis))

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    def quote_mint(self, amount: int) -> MintQuote:
        if amount <= 0:
            raise ZeroAmount("mint amount must be positive")
        fee = self.config.protocol_fee
        protocol_fee = mul_div(amount, fee.numerator, fee.basis)
        return MintQuote(
            amount=amount,
            protocol_fee=protocol_fee,
            initial_price=checked_sub(amount, protocol_fee),
        )

    def quote_sale(self, token_id: int, amount: int) -> SaleQuote:
        """Split a purchase of `amount` against the token's recorded price.

        Raises:
            UnknownResource: token does not exist
            InsufficientPayment: amount does not exceed the prior price
            BelowMinimumIncrement: post-fee price is under the minimum increment
        """
        prior_price = self.last_price(token_id)
        if amount <= prior_price:
            raise InsufficientPayment(f"payment {amount} does not exceed last price {prior_price}")

        spread = checked_sub(amount, prior_price)
        fee = self.config.protocol_fee
        premium = self.config.seller_premium
        protocol_fee = mul_div(spread, fee.numerator, fee.basis)
        seller_premium = mul_div(spread, premium.numerator, premium.basis)
        new_price = checked_sub(checked_sub(amount, protocol_fee), seller_premium)

        minimum_price = self.next_minimum_price(token_id)
        if new_price < minimum_price:
            raise BelowMinimumIncrement(f"new price {new_price} is below the minimum {minimum_price}")

        return SaleQuote(
            token_id=token_id,
            amount=amount,
            prior_price=prior_price,
            protocol_fee=protocol_fee,
            seller_premium=seller_premium,
            new_price=new_price,
            minimum_price=minimum_price,
        )

    def minimum_payment(self, token_id: int) -> int:
        """Settlement amount whose post-fee price clears the minimum increment."""
        prior_price = self.last_price(token_id)
        target_spread = checked_sub(self.next_minimum_price(token_id), prior_price)
        fee = self.config.protocol_fee
        premium = self.config.seller_premium
        # spread - fee(spread) - premium(spread) must cover the increment;
        # truncation keeps at most 2 units more than the exact ratio
        keep_num = fee.basis * premium.basis - fee.numerator * premium.basis - premium.numerator * fee.basis
        keep_basis = fee.basis * premium.basis
        if keep_num <= 0:
            raise BelowMinimumIncrement("fee configuration leaves no room for a price increase")
        spread = max(mul_div(max(target_spread - 2, 0), keep_basis, keep_num), 1)
        while True:
            kept = spread - fee.apply(spread) - premium.apply(spread)
            if kept >= target_spread:
                return checked_add(prior_price, spread)
            spread += 1

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def settle_mint(self, token_id: int, quote: MintQuote) -> None:
        if token_id in self._prices:
            raise ValueError(f"token {token_id} already priced")
        self._prices[token_id] = quote.initial_price
        if quote.protocol_fee:
            self.fees.accrue(self.config.settlement_asset, quote.protocol_fee)
        logger.info("Token %s minted at price %s (fee %s)", token_id, quote.initial_price, quote.protocol_fee)

    def settle_sale(self, quote: SaleQuote) -> None:
        current = self.last_price(quote.token_id)
        if current != quote.prior_price:
            raise ValueError(f"stale quote for token {quote.token_id}: price moved {quote.prior_price} -> {current}")
        self._prices[quote.token_id] = quote.new_price
        if quote.protocol_fee:
            self.fees.accrue(self.config.settlement_asset, quote.protocol_fee)
        logger.info(
            "Token %s resold at %s: price %s -> %s, fee %s, premium %s",
            quote.token_id,
            quote.amount,
            quote.prior_price,
            quote.new_price,
            quote.protocol_fee,
            quote.seller_premium,
        )

    def release(self, token_id: int) -> int:
        """Forget a burned token's price and return the escrowed amount."""
        price = self.last_price(token_id)
        del self._prices[token_id]
        return price

    def snapshot(self) -> tuple[dict[int, int], dict[str, int]]:
        return dict(self._prices), self.fees.snapshot()

    def restore(self, state: tuple[dict[int, int], dict[str, int]]) -> None:
        prices, fees = state
        self._prices = dict(prices)
        self.fees.restore(fees)
