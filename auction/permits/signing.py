"""Permit signatures.

A signature is an HMAC-SHA256 over the permit digest under the signer's secret.
Verification "recovers" the signer: the claimed signer is returned only when
the keyring holds that signer's secret and the MAC matches in constant time.

Security:
- Secrets are never logged
- MACs are compared with `hmac.compare_digest`
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermitSignature:
    signer: str
    mac: bytes

    @classmethod
    def from_hex(cls, signer: str, mac_hex: str) -> PermitSignature:
        return cls(signer=signer, mac=bytes.fromhex(mac_hex.removeprefix("0x")))

    def to_hex(self) -> str:
        return "0x" + self.mac.hex()


def sign_digest(secret: bytes, digest: bytes) -> bytes:
    """Return the HMAC-SHA256 of `digest` under `secret`.

    Example:
        >>> len(sign_digest(b"secret", b"\\x00" * 32))
        32
    """
    return hmac.new(secret, digest, hashlib.sha256).digest()


class SignerKeyring:
    """Known signer secrets keyed by address."""

    def __init__(self) -> None:
        self._secrets: dict[str, bytes] = {}

    def register(self, address: str, secret: bytes) -> None:
        if not secret:
            raise ValueError("secret must not be empty")
        self._secrets[address.lower()] = secret

    def knows(self, address: str) -> bool:
        return address.lower() in self._secrets

    def sign(self, address: str, digest: bytes) -> PermitSignature:
        """Sign `digest` as `address` (client-side helper)."""
        secret = self._secrets.get(address.lower())
        if secret is None:
            raise KeyError(f"no secret registered for {address}")
        return PermitSignature(signer=address, mac=sign_digest(secret, digest))

    def recover(self, digest: bytes, signature: PermitSignature) -> Optional[str]:
        """Return the signer if the signature verifies over `digest`, else None."""
        secret = self._secrets.get(signature.signer.lower())
        if secret is None:
            logger.debug("Unknown signer in permit signature")
            return None
        if not hmac.compare_digest(sign_digest(secret, digest), signature.mac):
            return None
        return signature.signer
