"""API routes for protocol fee accounting."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from api.state import get_market
from auction.units import from_base_units

router = APIRouter(prefix="/fees", tags=["fees"])


class FeesResponse(BaseModel):
    accrued: Dict[str, Decimal]
    settlement_asset: str


class CollectRequest(BaseModel):
    caller: str = Field(..., min_length=1)
    recipient: str = Field(..., min_length=1)
    asset: Optional[str] = None


class CollectResponse(BaseModel):
    asset: str
    recipient: str
    amount: Decimal


@router.get("", response_model=FeesResponse)
async def get_fees():
    """Accrued protocol fees per asset."""
    market = get_market()
    decimals = market.config.settlement_decimals
    return {
        "accrued": {asset: from_base_units(amount, decimals) for asset, amount in market.all_accrued_fees().items()},
        "settlement_asset": market.settlement_asset,
    }


@router.post("/collect", response_model=CollectResponse)
async def collect_fees(request: CollectRequest):
    """Withdraw accrued fees for one asset (admin only)."""
    market = get_market()
    asset = request.asset or market.settlement_asset
    amount = market.collect_fees(request.caller, request.recipient, asset)
    return {
        "asset": asset,
        "recipient": request.recipient,
        "amount": from_base_units(amount, market.config.settlement_decimals),
    }
