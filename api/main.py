"""FastAPI application for the perpetual auction.

This module provides a minimal HTTP API service for:
- GET /health - Market status
- GET /tokens, GET /tokens/{token_id} - Ownership and pricing state
- POST /tokens/mint, POST /tokens/{token_id}/buy - Ascending-price sales
- POST /tokens/{token_id}/approve|transfer|permit|burn - Delegation and lifecycle
- GET /fees, POST /fees/collect - Protocol fee ledger
- GET /permits/nonce/{owner}, GET /permits/domain - Permit signing helpers
- POST /admin/deposit, /admin/signers, /admin/pools, /admin/pause, /admin/unpause - Operator actions
- GET /admin/balances/{holder} - Vault balances

Requirements:
- AUCTION_ADMIN must be set in environment
- No authentication (local network only); callers identify themselves in the body
- Operator actions require the caller to hold the admin capability
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from api.routes import admin, fees, permits, tokens
from api.state import get_market
from auction.errors import (
    AuctionError,
    AuthorizationError,
    ConversionError,
    InvalidInput,
    PricingError,
    ReentrantCall,
    Rejected,
    TransferFailed,
    Unauthorized,
    UnknownResource,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Perpetual Auction API",
    description="API for minting, buying and delegating perpetually re-auctioned tokens",
    version="1.0.0",
)

app.include_router(tokens.router)
app.include_router(fees.router)
app.include_router(permits.router)
app.include_router(admin.router)


def status_for(exc: AuctionError) -> int:
    """HTTP status code for an auction error."""
    if isinstance(exc, UnknownResource):
        return 404
    if isinstance(exc, InvalidInput):
        return 400
    if isinstance(exc, Unauthorized):
        return 403
    if isinstance(exc, (PricingError, AuthorizationError, ReentrantCall, Rejected)):
        return 409
    if isinstance(exc, ConversionError):
        return 422
    if isinstance(exc, TransferFailed):
        return 502
    return 400


@app.get("/health")
async def health() -> dict[str, Any]:
    """Market status."""
    market = get_market()
    return {
        "status": "ok",
        "market": market.address,
        "paused": market.paused,
        "settlement_asset": market.settlement_asset,
        "tokens": len(market.token_ids()),
    }


@app.exception_handler(AuctionError)
async def auction_error_handler(_request, exc: AuctionError):
    """Map auction errors to consistent JSON responses."""
    return JSONResponse(
        status_code=status_for(exc),
        content={"error": exc.code, "message": exc.message},
    )


@app.exception_handler(Exception)
async def global_exception_handler(_request, exc):
    """Global exception handler to ensure consistent error responses."""
    logger.error("Unhandled API error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )
