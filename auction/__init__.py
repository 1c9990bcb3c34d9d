"""Perpetual auction registry.

This package contains the building blocks of an ascending-price ownership
registry where every token can be bought out by anyone willing to pay more:

- registry: ownership and delegation facts per token id
- pricing: minimum next price, fee split and the protocol fee ledger
- conversion: venue adapters, pool discovery and the conversion router
- permits: signed, replay-protected approval grants
- settlement: balance movement between payers, owners and the protocol
- market: the public entry points wiring everything together
"""

from auction.config import AuctionConfig
from auction.market import PerpetualAuction

__all__ = ["AuctionConfig", "PerpetualAuction"]
