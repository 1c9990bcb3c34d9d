"""Deterministic pool address derivation for constant-product venues.

Pools are deployed at ``create2(factory, salt(token0, token1, fee), init_code_hash)``,
so the address of a pair can be computed without asking any registry.
"""

from __future__ import annotations

import hashlib


def sort_tokens(asset_a: str, asset_b: str) -> tuple[str, str]:
    if asset_a.lower() == asset_b.lower():
        raise ValueError("identical assets")
    a, b = asset_a.lower(), asset_b.lower()
    return (a, b) if a < b else (b, a)


def pool_salt(asset_a: str, asset_b: str, fee_tier: int) -> bytes:
    token0, token1 = sort_tokens(asset_a, asset_b)
    return hashlib.sha3_256(token0.encode() + token1.encode() + fee_tier.to_bytes(32, "big")).digest()


def derive_pool_address(factory: str, asset_a: str, asset_b: str, fee_tier: int, init_code_hash: bytes) -> str:
    """Compute the pool address for a pair and fee tier.

    Example:
        >>> a = derive_pool_address("0xfactory", "USDC", "WETH", 30, b"\\x00" * 32)
        >>> a == derive_pool_address("0xfactory", "WETH", "USDC", 30, b"\\x00" * 32)
        True
    """
    digest = hashlib.sha3_256(
        b"\xff" + factory.lower().encode() + pool_salt(asset_a, asset_b, fee_tier) + init_code_hash
    ).digest()
    return "0x" + digest[-20:].hex()
