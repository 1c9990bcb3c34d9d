"""Signature-based delegation grants with replay protection."""

from .authorizer import PermitAuthorizer
from .digest import SigningDomain, permit_digest, permit_struct_hash
from .nonces import NonceTracker
from .signing import PermitSignature, SignerKeyring, sign_digest

__all__ = [
    "NonceTracker",
    "PermitAuthorizer",
    "PermitSignature",
    "SignerKeyring",
    "SigningDomain",
    "permit_digest",
    "permit_struct_hash",
    "sign_digest",
]
