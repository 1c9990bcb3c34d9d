"""API routes for minting, buying and delegating tokens."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from api.state import get_market
from auction.permits import PermitSignature
from auction.types import Payment, VenueKind
from auction.units import from_base_units, to_base_units

router = APIRouter(prefix="/tokens", tags=["tokens"])


class PaymentModel(BaseModel):
    """Funds offered for a mint or buy.

    `amount` is in units of `asset` (scaled by `decimals`); `min_out` is in
    settlement units.
    """

    asset: Optional[str] = Field(None, description="Asset paid; defaults to the settlement asset")
    amount: Decimal = Field(..., gt=0)
    decimals: int = Field(18, ge=0, le=36)
    venue: Optional[VenueKind] = None
    min_out: Optional[Decimal] = Field(None, ge=0)


class MintRequest(BaseModel):
    caller: str = Field(..., min_length=1)
    payment: PaymentModel


class BuyRequest(BaseModel):
    caller: str = Field(..., min_length=1)
    payment: PaymentModel


class CallerRequest(BaseModel):
    caller: str = Field(..., min_length=1)


class ApproveRequest(BaseModel):
    caller: str = Field(..., min_length=1)
    spender: str = Field(..., min_length=1)


class TransferRequest(BaseModel):
    caller: str = Field(..., min_length=1)
    from_address: str = Field(..., min_length=1)
    to_address: str = Field(..., min_length=1)


class PermitRequest(BaseModel):
    spender: str = Field(..., min_length=1)
    nonce: int = Field(..., ge=0)
    deadline: int = Field(..., ge=0)
    signer: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=2, description="Hex-encoded MAC")


class TokenResponse(BaseModel):
    token_id: str
    owner: str
    approved: Optional[str]
    last_price: Decimal
    next_minimum_price: Decimal
    minimum_payment: Decimal


class MintResponse(BaseModel):
    token_id: str
    owner: str
    settled_amount: Decimal
    protocol_fee: Decimal
    last_price: Decimal


class SaleResponse(BaseModel):
    token_id: str
    buyer: str
    seller: str
    settled_amount: Decimal
    protocol_fee: Decimal
    seller_payout: Decimal
    new_price: Decimal


class SaleQuoteResponse(BaseModel):
    token_id: str
    amount: Decimal
    protocol_fee: Decimal
    seller_premium: Decimal
    seller_payout: Decimal
    new_price: Decimal
    minimum_price: Decimal


class BurnResponse(BaseModel):
    token_id: str
    owner: str
    refunded: Decimal


class TokenListResponse(BaseModel):
    tokens: List[str]
    count: int


def _settlement_units(amount: int) -> Decimal:
    return from_base_units(amount, get_market().config.settlement_decimals)


def _to_payment(model: PaymentModel) -> Payment:
    market = get_market()
    decimals = market.config.settlement_decimals
    return Payment(
        asset=model.asset or market.settlement_asset,
        amount=to_base_units(model.amount, model.decimals),
        venue=model.venue,
        min_out=to_base_units(model.min_out, decimals) if model.min_out is not None else None,
    )


@router.get("", response_model=TokenListResponse)
async def list_tokens():
    tokens = [str(token_id) for token_id in get_market().token_ids()]
    return {"tokens": tokens, "count": len(tokens)}


@router.get("/{token_id}", response_model=TokenResponse)
async def get_token(token_id: int):
    """Owner, delegation and pricing state of one token."""
    market = get_market()
    return {
        "token_id": str(token_id),
        "owner": market.owner_of(token_id),
        "approved": market.approved_for(token_id),
        "last_price": _settlement_units(market.last_price(token_id)),
        "next_minimum_price": _settlement_units(market.next_minimum_price(token_id)),
        "minimum_payment": _settlement_units(market.minimum_payment(token_id)),
    }


@router.get("/{token_id}/quote", response_model=SaleQuoteResponse)
async def quote_sale(
    token_id: int,
    amount: Decimal = Query(..., gt=0, description="Settlement amount offered"),
):
    """Preview the fee split of buying `token_id` for `amount`."""
    market = get_market()
    quote = market.quote_sale(token_id, to_base_units(amount, market.config.settlement_decimals))
    return {
        "token_id": str(token_id),
        "amount": _settlement_units(quote.amount),
        "protocol_fee": _settlement_units(quote.protocol_fee),
        "seller_premium": _settlement_units(quote.seller_premium),
        "seller_payout": _settlement_units(quote.seller_payout),
        "new_price": _settlement_units(quote.new_price),
        "minimum_price": _settlement_units(quote.minimum_price),
    }


@router.post("/mint", response_model=MintResponse)
async def mint(request: MintRequest):
    receipt = get_market().mint(request.caller, _to_payment(request.payment))
    return {
        "token_id": str(receipt.token_id),
        "owner": receipt.owner,
        "settled_amount": _settlement_units(receipt.settled_amount),
        "protocol_fee": _settlement_units(receipt.protocol_fee),
        "last_price": _settlement_units(receipt.last_price),
    }


@router.post("/{token_id}/buy", response_model=SaleResponse)
async def buy(token_id: int, request: BuyRequest):
    receipt = get_market().buy(request.caller, token_id, _to_payment(request.payment))
    return {
        "token_id": str(receipt.token_id),
        "buyer": receipt.buyer,
        "seller": receipt.seller,
        "settled_amount": _settlement_units(receipt.settled_amount),
        "protocol_fee": _settlement_units(receipt.protocol_fee),
        "seller_payout": _settlement_units(receipt.seller_payout),
        "new_price": _settlement_units(receipt.new_price),
    }


@router.post("/{token_id}/burn", response_model=BurnResponse)
async def burn(token_id: int, request: CallerRequest):
    receipt = get_market().burn(request.caller, token_id)
    return {
        "token_id": str(receipt.token_id),
        "owner": receipt.owner,
        "refunded": _settlement_units(receipt.refunded),
    }


@router.post("/{token_id}/approve")
async def approve(token_id: int, request: ApproveRequest):
    get_market().approve(request.caller, token_id, request.spender)
    return {"token_id": str(token_id), "approved": request.spender}


@router.post("/{token_id}/transfer")
async def transfer(token_id: int, request: TransferRequest):
    get_market().transfer(request.caller, token_id, request.from_address, request.to_address)
    return {"token_id": str(token_id), "owner": request.to_address}


@router.post("/{token_id}/permit")
async def permit(token_id: int, request: PermitRequest):
    """Relay an owner's signed approval."""
    try:
        signature = PermitSignature.from_hex(request.signer, request.signature)
    except ValueError:
        signature = PermitSignature(signer=request.signer, mac=b"")
    get_market().permit(
        token_id=token_id,
        spender=request.spender,
        nonce=request.nonce,
        deadline=request.deadline,
        signature=signature,
    )
    return {"token_id": str(token_id), "approved": request.spender}
