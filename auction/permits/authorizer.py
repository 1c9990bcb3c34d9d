"""Signed, replay-protected delegation grants.

`permit` lets anyone relay an owner's off-chain approval. Checks run in this
order: deadline, nonce replay, signature against the current owner. Only when
all pass is the nonce consumed and delegation granted.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from auction.errors import Expired, InvalidSignature, NonceReplay
from auction.permits.digest import SigningDomain, permit_digest
from auction.permits.nonces import NonceTracker
from auction.permits.signing import PermitSignature, SignerKeyring
from auction.registry import OwnershipRegistry

logger = logging.getLogger(__name__)


class PermitAuthorizer:
    def __init__(
        self,
        *,
        domain: SigningDomain,
        keyring: SignerKeyring,
        registry: OwnershipRegistry,
        nonces: NonceTracker | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.domain = domain
        self.keyring = keyring
        self.registry = registry
        self.nonces = nonces or NonceTracker()
        self._clock = clock

    def digest(self, *, token_id: int, spender: str, nonce: int, deadline: int) -> bytes:
        return permit_digest(self.domain, token_id=token_id, spender=spender, nonce=nonce, deadline=deadline)

    def sign(self, *, signer: str, token_id: int, spender: str, nonce: int, deadline: int) -> PermitSignature:
        """Produce a signature for a grant (client-side helper)."""
        digest = self.digest(token_id=token_id, spender=spender, nonce=nonce, deadline=deadline)
        return self.keyring.sign(signer, digest)

    def verify(self, *, token_id: int, spender: str, nonce: int, deadline: int, signature: PermitSignature) -> str:
        """Validate a grant without consuming anything; return the owner.

        Raises:
            UnknownResource: token does not exist
            Expired: the deadline has passed
            NonceReplay: the owner already used this nonce
            InvalidSignature: signature does not verify or the signer is not the owner
        """
        owner = self.registry.owner_of(token_id)

        now = self._clock()
        if now > deadline:
            raise Expired(f"permit deadline {deadline} passed (now {int(now)})")

        if self.nonces.is_used(owner, nonce):
            raise NonceReplay(f"nonce {nonce} already used by {owner}")

        digest = self.digest(token_id=token_id, spender=spender, nonce=nonce, deadline=deadline)
        signer = self.keyring.recover(digest, signature)
        if signer is None or signer.lower() != owner.lower():
            raise InvalidSignature(f"permit for token {token_id} not signed by its owner")
        return owner

    def permit(self, *, token_id: int, spender: str, nonce: int, deadline: int, signature: PermitSignature) -> None:
        """Verify a signed grant, consume its nonce and delegate to `spender`."""
        owner = self.verify(token_id=token_id, spender=spender, nonce=nonce, deadline=deadline, signature=signature)

        state = self.nonces.snapshot()
        self.nonces.consume(owner, nonce)
        try:
            self.registry.delegate(token_id, spender, operator=owner)
        except Exception:
            self.nonces.restore(state)
            raise
        logger.info("Permit accepted for token %s: %s -> %s (nonce %s)", token_id, owner, spender, nonce)
