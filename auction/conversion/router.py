"""Conversion router.

Turns a payment in any supported asset into a settlement-asset amount by
dispatching to the adapter registered for the caller's venue tag.
"""

from __future__ import annotations

import logging
from typing import Optional

from auction.conversion.interfaces import VenueAdapter
from auction.errors import InvalidTolerance, SlippageExceeded, UnknownVenue, ZeroAmount
from auction.types import VenueKind, same_asset
from auction.units import mul_div

logger = logging.getLogger(__name__)

BPS = 10_000


def min_out_for(expected_out: int, tolerance_bps: int) -> int:
    """Minimum acceptable output for `expected_out` under a slippage tolerance.

    Raises:
        InvalidTolerance: If the tolerance is negative or above 100%.
    """
    if tolerance_bps < 0 or tolerance_bps > BPS:
        raise InvalidTolerance(f"tolerance {tolerance_bps} bps must be within [0, {BPS}]")
    return mul_div(expected_out, BPS - tolerance_bps, BPS)


class ConversionRouter:
    def __init__(self, settlement_asset: str) -> None:
        self.settlement_asset = settlement_asset
        self._adapters: dict[VenueKind, VenueAdapter] = {}

    def register(self, adapter: VenueAdapter) -> None:
        self._adapters[VenueKind(adapter.kind)] = adapter
        logger.info("Registered venue adapter %s", adapter.kind)

    def venues(self) -> list[VenueKind]:
        return sorted(self._adapters, key=lambda v: v.value)

    def adapter_for(self, venue: Optional[VenueKind | str]) -> VenueAdapter:
        if venue is None:
            raise UnknownVenue("a venue is required to convert a non-settlement asset")
        try:
            kind = VenueKind(venue)
        except ValueError:
            raise UnknownVenue(f"unsupported venue {venue!r}") from None
        adapter = self._adapters.get(kind)
        if adapter is None:
            raise UnknownVenue(f"no adapter registered for venue {kind.value}")
        return adapter

    def is_settlement(self, asset: str) -> bool:
        return same_asset(asset, self.settlement_asset)

    def quote(self, asset: str, amount_in: int, venue: Optional[VenueKind | str]) -> int:
        if amount_in <= 0:
            raise ZeroAmount("amount_in must be positive")
        if self.is_settlement(asset):
            return amount_in
        return self.adapter_for(venue).quote(asset, amount_in)

    def convert(self, asset: str, amount_in: int, venue: Optional[VenueKind | str], min_out: int) -> int:
        """Convert `amount_in` of `asset` into the settlement asset.

        The settlement asset passes through untouched without any venue call.

        Raises:
            ZeroAmount: amount_in is not positive
            UnknownVenue: no adapter for the venue tag
            SlippageExceeded: realized output below `min_out`
        """
        if amount_in <= 0:
            raise ZeroAmount("amount_in must be positive")
        if self.is_settlement(asset):
            return amount_in

        adapter = self.adapter_for(venue)
        amount_out = adapter.swap(asset, amount_in, min_out)
        if amount_out < min_out:
            raise SlippageExceeded(f"venue returned {amount_out} < min_out {min_out}")
        return amount_out

    def convert_with_tolerance(
        self, asset: str, amount_in: int, venue: Optional[VenueKind | str], tolerance_bps: int
    ) -> int:
        """Quote, size `min_out` from the tolerance, then convert."""
        expected = self.quote(asset, amount_in, venue)
        min_out = min_out_for(expected, tolerance_bps)
        logger.debug("Converting %s %s: expected %s, min_out %s", amount_in, asset, expected, min_out)
        return self.convert(asset, amount_in, venue, min_out)
