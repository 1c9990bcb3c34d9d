"""API routes for permit nonces and signing domain."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from api.state import get_market

router = APIRouter(prefix="/permits", tags=["permits"])


class NonceResponse(BaseModel):
    owner: str
    next_nonce: int


class DomainResponse(BaseModel):
    name: str
    version: str
    chain_id: int
    verifying_contract: str
    separator: str


@router.get("/nonce/{owner}", response_model=NonceResponse)
async def get_nonce(owner: str):
    """Suggested next unused nonce for `owner`."""
    return {"owner": owner, "next_nonce": get_market().nonces(owner)}


@router.get("/domain", response_model=DomainResponse)
async def get_domain():
    """Signing domain that permit digests are bound to."""
    domain = get_market().authorizer.domain
    return {
        "name": domain.name,
        "version": domain.version,
        "chain_id": domain.chain_id,
        "verifying_contract": domain.verifying_contract,
        "separator": "0x" + domain.separator.hex(),
    }
