"""API routes for operating the market: funding, signers, pools and pause."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from api.state import get_market
from auction.conversion import PaperStableSwapPool
from auction.errors import InvalidInput
from auction.units import from_base_units, to_base_units

router = APIRouter(prefix="/admin", tags=["admin"])


class DepositRequest(BaseModel):
    """Credit a holder's balance in the settlement vault."""

    caller: str = Field(..., min_length=1)
    holder: str = Field(..., min_length=1)
    asset: Optional[str] = Field(None, description="Defaults to the settlement asset")
    amount: Decimal = Field(..., gt=0)
    decimals: int = Field(18, ge=0, le=36)


class BalanceResponse(BaseModel):
    holder: str
    asset: str
    balance: Decimal


class SignerRequest(BaseModel):
    caller: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    secret: str = Field(..., min_length=2, description="Hex-encoded signing secret")


class PoolRequest(BaseModel):
    """Register a simulated stableswap pool for `asset`."""

    caller: str = Field(..., min_length=1)
    asset: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    coins: List[str] = Field(..., min_length=2)
    balances: List[Decimal] = Field(..., min_length=2)
    decimals: int = Field(18, ge=0, le=36)
    fee_bps: int = Field(4, ge=0, lt=10_000)


class PoolResponse(BaseModel):
    asset: str
    address: str
    index_in: int
    index_out: int


class CallerRequest(BaseModel):
    caller: str = Field(..., min_length=1)


@router.post("/deposit", response_model=BalanceResponse)
async def deposit(request: DepositRequest):
    market = get_market()
    asset = request.asset or market.settlement_asset
    balance = market.deposit(request.caller, request.holder, asset, to_base_units(request.amount, request.decimals))
    return {"holder": request.holder, "asset": asset, "balance": from_base_units(balance, request.decimals)}


@router.get("/balances/{holder}", response_model=BalanceResponse)
async def get_balance(
    holder: str,
    asset: Optional[str] = Query(None, description="Defaults to the settlement asset"),
    decimals: int = Query(18, ge=0, le=36),
):
    market = get_market()
    asset = asset or market.settlement_asset
    return {"holder": holder, "asset": asset, "balance": from_base_units(market.balance_of(holder, asset), decimals)}


@router.post("/signers")
async def register_signer(request: SignerRequest):
    """Register the secret that verifies an owner's permit signatures."""
    try:
        secret = bytes.fromhex(request.secret.removeprefix("0x"))
    except ValueError as exc:
        raise InvalidInput("secret must be hex-encoded") from exc
    get_market().register_signer(request.caller, request.address, secret)
    return {"address": request.address, "registered": True}


@router.post("/pools", response_model=PoolResponse)
async def register_pool(request: PoolRequest):
    """Pin a simulated stableswap pool converting `asset` into the settlement asset."""
    if len(request.coins) != len(request.balances):
        raise InvalidInput("coins and balances must have the same length")
    pool = PaperStableSwapPool(
        request.address,
        request.coins,
        [to_base_units(balance, request.decimals) for balance in request.balances],
        fee_bps=request.fee_bps,
    )
    handle = get_market().register_pool(request.caller, request.asset, pool)
    return {
        "asset": request.asset,
        "address": handle.address,
        "index_in": handle.index_in,
        "index_out": handle.index_out,
    }


@router.post("/pause")
async def pause(request: CallerRequest):
    get_market().pause(request.caller)
    return {"paused": True}


@router.post("/unpause")
async def unpause(request: CallerRequest):
    get_market().unpause(request.caller)
    return {"paused": False}
