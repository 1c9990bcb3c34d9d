"""Domain-separated digests for permit grants.

A permit digest commits to the grant ``(token_id, spender, nonce, deadline)``
and to the signing domain (name, version, chain id and the verifying market's
address), so a signature for one deployment cannot be replayed on another.

    digest = H(0x19 0x01 || domain_separator || H(PERMIT_TYPE || fields))
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from auction.units import checked

DOMAIN_TYPE = b"Domain(string name,string version,uint256 chainId,address verifyingContract)"
PERMIT_TYPE = b"Permit(address spender,uint256 tokenId,uint256 nonce,uint256 deadline)"


def sha3(data: bytes) -> bytes:
    return hashlib.sha3_256(data).digest()


def encode_uint(value: int) -> bytes:
    return checked(value).to_bytes(32, "big")


def encode_address(address: str) -> bytes:
    return sha3(address.lower().encode())


@dataclass(frozen=True)
class SigningDomain:
    name: str
    version: str
    chain_id: int
    verifying_contract: str

    @property
    def separator(self) -> bytes:
        return sha3(
            sha3(DOMAIN_TYPE)
            + sha3(self.name.encode())
            + sha3(self.version.encode())
            + encode_uint(self.chain_id)
            + encode_address(self.verifying_contract)
        )


def permit_struct_hash(*, token_id: int, spender: str, nonce: int, deadline: int) -> bytes:
    return sha3(
        sha3(PERMIT_TYPE)
        + encode_address(spender)
        + encode_uint(token_id)
        + encode_uint(nonce)
        + encode_uint(deadline)
    )


def permit_digest(domain: SigningDomain, *, token_id: int, spender: str, nonce: int, deadline: int) -> bytes:
    struct_hash = permit_struct_hash(token_id=token_id, spender=spender, nonce=nonce, deadline=deadline)
    return sha3(b"\x19\x01" + domain.separator + struct_hash)
