"""Process-wide market instance shared by the API routes."""

from __future__ import annotations

import logging
import os
from typing import Optional

from auction import AuctionConfig, PerpetualAuction

logger = logging.getLogger(__name__)

_market: PerpetualAuction | None = None


def get_market() -> PerpetualAuction:
    """Get or initialize the market singleton.

    The admin address comes from AUCTION_ADMIN; parameters from AUCTION_* (see AuctionConfig.from_env).
    """
    global _market
    if _market is None:
        admin = os.environ.get("AUCTION_ADMIN")
        if not admin:
            raise RuntimeError("AUCTION_ADMIN environment variable is required")
        _market = PerpetualAuction(admin=admin, config=AuctionConfig.from_env())
        logger.info("Initialized market %s (admin %s)", _market.address, admin)
    return _market


def set_market(market: Optional[PerpetualAuction]) -> None:
    """Replace the market singleton (None resets it)."""
    global _market
    _market = market
