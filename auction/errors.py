"""Error taxonomy for the auction registry.

Every failure is raised synchronously as a subclass of ``AuctionError`` and
aborts the whole operation. Each class carries a stable ``code`` used by the
HTTP layer.
"""

from __future__ import annotations


class AuctionError(Exception):
    """Base exception for all registry failures."""

    code = "auction_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InvalidInput(AuctionError):
    code = "invalid_input"


class ZeroAmount(InvalidInput):
    code = "zero_amount"


class ZeroAddress(InvalidInput):
    code = "zero_address"


class ZeroRecipient(ZeroAddress):
    code = "zero_recipient"


class UnknownResource(InvalidInput):
    code = "unknown_resource"


class InvalidTolerance(InvalidInput):
    code = "invalid_tolerance"


class ArithmeticOverflow(InvalidInput):
    code = "arithmetic_overflow"


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class Unauthorized(AuctionError):
    code = "unauthorized"


class NotOwner(Unauthorized):
    code = "not_owner"


class NotApproved(Unauthorized):
    code = "not_approved"


class NotAdmin(Unauthorized):
    code = "not_admin"


class Paused(Unauthorized):
    code = "paused"


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------


class PricingError(AuctionError):
    code = "pricing_error"


class InsufficientPayment(PricingError):
    code = "insufficient_payment"


class BelowMinimumIncrement(PricingError):
    code = "below_minimum_increment"


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


class ConversionError(AuctionError):
    code = "conversion_error"


class SlippageExceeded(ConversionError):
    code = "slippage_exceeded"


class PairNotInPool(ConversionError):
    code = "pair_not_in_pool"


class NoLiquidity(ConversionError):
    code = "no_liquidity"


class UnknownVenue(ConversionError):
    code = "unknown_venue"


# ---------------------------------------------------------------------------
# Signed authorization
# ---------------------------------------------------------------------------


class AuthorizationError(AuctionError):
    code = "authorization_error"


class InvalidSignature(AuthorizationError):
    code = "invalid_signature"


class Expired(AuthorizationError):
    code = "expired"


class NonceReplay(AuthorizationError):
    code = "nonce_replay"


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class ReentrantCall(AuctionError):
    code = "reentrant_call"


class TransferFailed(AuctionError):
    code = "transfer_failed"


class Rejected(AuctionError):
    """A receiver's acceptance hook did not acknowledge the token."""

    code = "rejected"
