"""Public entry points of the perpetual auction.

`PerpetualAuction` wires the registry, pricing engine, conversion router,
permit authorizer and settlement vault together. Every state-mutating call:

- holds the re-entrancy guard for its whole duration (nested entry from a venue
  swap or receiver hook raises ReentrantCall),
- requires the market not to be paused,
- snapshots state on entry and restores it if anything raises, so a failed
  call leaves no partial effects behind.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence

from auction.config import AuctionConfig
from auction.conversion import (
    ConversionRouter,
    PoolDiscoveryCache,
    StableSwapAdapter,
    StableSwapPool,
    StableSwapRegistry,
    VenueAdapter,
    min_out_for,
)
from auction.errors import AuctionError, NotAdmin, NotOwner, Paused, ReentrantCall, ZeroAddress, ZeroAmount, ZeroRecipient
from auction.permits import NonceTracker, PermitAuthorizer, PermitSignature, SignerKeyring, SigningDomain
from auction.pricing import FeeLedger, PricingEngine
from auction.registry import OwnershipRegistry, ReceiverDirectory
from auction.settlement import AssetLedger, SettlementVault
from auction.types import (
    BurnReceipt,
    MintReceipt,
    Payment,
    PoolHandle,
    SaleQuote,
    SaleReceipt,
    is_zero_address,
)

logger = logging.getLogger(__name__)


def derive_market_address(admin: str, chain_id: int) -> str:
    digest = hashlib.sha3_256(f"perpetual_auction:{admin.lower()}:{chain_id}".encode()).digest()
    return "0x" + digest[-20:].hex()


class PerpetualAuction:
    def __init__(
        self,
        *,
        admin: str,
        config: Optional[AuctionConfig] = None,
        address: Optional[str] = None,
        vault: Optional[SettlementVault] = None,
        keyring: Optional[SignerKeyring] = None,
        receivers: Optional[ReceiverDirectory] = None,
        stableswap_registry: Optional[StableSwapRegistry] = None,
        venues: Sequence[VenueAdapter] = (),
        clock: Callable[[], float] = time.time,
        seed_source: Callable[[], bytes] = lambda: secrets.token_bytes(32),
    ) -> None:
        """Bootstrap a market.

        Args:
            admin: Address granted the administrative capability
            config: Auction parameters (defaults to AuctionConfig())
            address: Market account address (derived from admin and chain id if omitted)
            vault: Settlement vault (defaults to an in-memory AssetLedger)
            keyring: Signer secrets used to verify permits
            receivers: Directory of receiver hooks behind addresses
            stableswap_registry: Registry used to discover stableswap pools
            venues: Additional venue adapters registered at bootstrap
            clock: Returns the current unix time, used for permit deadlines
            seed_source: Returns fresh unpredictable bytes for token ids
        """
        if is_zero_address(admin):
            raise ZeroAddress("admin must not be the zero address")

        self.config = config or AuctionConfig()
        self.address = address or derive_market_address(admin, self.config.chain_id)
        self.settlement_asset = self.config.settlement_asset
        self.vault = vault if vault is not None else AssetLedger(account=self.address)

        self.registry = OwnershipRegistry(receivers)
        self.pricing = PricingEngine(self.config, FeeLedger())
        self.router = ConversionRouter(self.settlement_asset)
        self.discovery = PoolDiscoveryCache(
            registry=stableswap_registry,
            settlement_asset=self.settlement_asset,
            min_liquidity=self.config.min_pool_liquidity,
        )
        self.router.register(
            StableSwapAdapter(discovery=self.discovery, safety_margin_bps=self.config.quote_safety_margin_bps)
        )
        for adapter in venues:
            self.router.register(adapter)

        self.authorizer = PermitAuthorizer(
            domain=SigningDomain(
                name=self.config.signing_domain_name,
                version=self.config.signing_domain_version,
                chain_id=self.config.chain_id,
                verifying_contract=self.address,
            ),
            keyring=keyring or SignerKeyring(),
            registry=self.registry,
            nonces=NonceTracker(),
            clock=clock,
        )

        self._admins: set[str] = {admin.lower()}
        self._paused = False
        self._mint_counter = 0
        self._seed_source = seed_source
        self._lock = threading.RLock()
        self._entered = False

    # ------------------------------------------------------------------
    # Guard
    # ------------------------------------------------------------------

    def _snapshot(self) -> tuple[object, ...]:
        vault_snapshot = getattr(self.vault, "snapshot", None)
        return (
            self.registry.snapshot(),
            self.pricing.snapshot(),
            self.authorizer.nonces.snapshot(),
            vault_snapshot() if vault_snapshot is not None else None,
            frozenset(self._admins),
            self._paused,
            self._mint_counter,
        )

    def _restore(self, state: tuple[object, ...]) -> None:
        registry, pricing, nonces, vault, admins, paused, counter = state
        self.registry.restore(registry)
        self.pricing.restore(pricing)  # type: ignore[arg-type]
        self.authorizer.nonces.restore(nonces)  # type: ignore[arg-type]
        if vault is not None:
            self.vault.restore(vault)  # type: ignore[attr-defined]
        self._admins = set(admins)  # type: ignore[arg-type]
        self._paused = bool(paused)
        self._mint_counter = int(counter)  # type: ignore[arg-type]

    @contextmanager
    def _guarded(self, operation: str, *, allow_paused: bool = False) -> Iterator[None]:
        with self._lock:
            if self._entered:
                logger.warning("Re-entrant %s rejected", operation)
                raise ReentrantCall(f"{operation} called while another operation is in progress")
            self._entered = True
            state = self._snapshot()
            try:
                if self._paused and not allow_paused:
                    raise Paused(f"{operation} rejected: market is paused")
                yield
            except AuctionError as exc:
                self._restore(state)
                logger.warning("%s rejected: %s", operation, exc)
                raise
            except BaseException:
                self._restore(state)
                raise
            finally:
                self._entered = False

    def _require_admin(self, caller: str) -> None:
        if caller.lower() not in self._admins:
            raise NotAdmin(f"{caller} lacks the admin capability")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def paused(self) -> bool:
        return self._paused

    def is_admin(self, address: str) -> bool:
        return address.lower() in self._admins

    def owner_of(self, token_id: int) -> str:
        return self.registry.owner_of(token_id)

    def approved_for(self, token_id: int) -> Optional[str]:
        self.registry.owner_of(token_id)
        return self.registry.approved_for(token_id)

    def is_owner(self, token_id: int, address: str) -> bool:
        return self.registry.is_owner(token_id, address)

    def is_approved(self, token_id: int, address: str) -> bool:
        return self.registry.is_approved(token_id, address)

    def last_price(self, token_id: int) -> int:
        return self.pricing.last_price(token_id)

    def next_minimum_price(self, token_id: int) -> int:
        return self.pricing.next_minimum_price(token_id)

    def minimum_payment(self, token_id: int) -> int:
        return self.pricing.minimum_payment(token_id)

    def quote_sale(self, token_id: int, amount: int) -> SaleQuote:
        return self.pricing.quote_sale(token_id, amount)

    def quote_conversion(self, asset: str, amount: int, venue: Optional[str] = None) -> int:
        return self.router.quote(asset, amount, venue)

    def accrued_fees(self, asset: Optional[str] = None) -> int:
        return self.pricing.fees.accrued(asset or self.settlement_asset)

    def all_accrued_fees(self) -> dict[str, int]:
        return self.pricing.fees.all_accrued()

    def nonces(self, owner: str) -> int:
        return self.authorizer.nonces.next_nonce(owner)

    def token_ids(self) -> list[int]:
        return self.registry.token_ids()

    def balance_of(self, holder: str, asset: Optional[str] = None) -> int:
        return self.vault.balance_of(holder, asset or self.settlement_asset)

    # ------------------------------------------------------------------
    # Payment normalization
    # ------------------------------------------------------------------

    def _settle_payment(self, payer: str, payment: Payment, precheck: Callable[[int], object]) -> int:
        """Pull the payment and convert it; return the settlement amount.

        `precheck` runs on the least settlement amount the payment can yield
        (the amount itself, or `min_out` for a conversion) before any venue swap,
        so pricing failures never leave an external trade behind.
        """
        if payment.amount <= 0:
            raise ZeroAmount("payment amount must be positive")
        if self.router.is_settlement(payment.asset):
            precheck(payment.amount)
            self.vault.pull(payer, payment.asset, payment.amount)
            return payment.amount

        min_out = payment.min_out
        if min_out is None:
            expected = self.router.quote(payment.asset, payment.amount, payment.venue)
            min_out = min_out_for(expected, self.config.default_slippage_bps)
        precheck(min_out)
        self.vault.pull(payer, payment.asset, payment.amount)
        settled = self.router.convert(payment.asset, payment.amount, payment.venue, min_out)
        self.vault.record_swap(payment.asset, payment.amount, self.settlement_asset, settled)
        return settled

    def _next_token_id(self, caller: str) -> int:
        self._mint_counter += 1
        seed = self._seed_source()
        digest = hashlib.sha3_256(caller.lower().encode() + self._mint_counter.to_bytes(32, "big") + seed).digest()
        return int.from_bytes(digest, "big")

    # ------------------------------------------------------------------
    # Ownership flows
    # ------------------------------------------------------------------

    def mint(self, caller: str, payment: Payment) -> MintReceipt:
        """Register a new token owned by `caller`, priced at the payment net of the protocol fee."""
        with self._guarded("mint"):
            if is_zero_address(caller):
                raise ZeroRecipient("cannot mint to the zero address")
            settled = self._settle_payment(caller, payment, self.pricing.quote_mint)
            quote = self.pricing.quote_mint(settled)
            token_id = self._next_token_id(caller)
            while self.pricing.exists(token_id) or self.registry.exists(token_id):
                token_id = self._next_token_id(caller)

            self.pricing.settle_mint(token_id, quote)
            self.registry.register(token_id, caller, operator=caller)

            return MintReceipt(
                token_id=token_id,
                owner=caller,
                settled_amount=settled,
                protocol_fee=quote.protocol_fee,
                last_price=quote.initial_price,
            )

    def buy(self, caller: str, token_id: int, payment: Payment) -> SaleReceipt:
        """Buy `token_id` from its current owner by outbidding the recorded price.

        Raises:
            UnknownResource, InsufficientPayment, BelowMinimumIncrement,
            ConversionError subclasses, Rejected, TransferFailed
        """
        with self._guarded("buy"):
            if is_zero_address(caller):
                raise ZeroRecipient("buyer must not be the zero address")
            seller = self.registry.owner_of(token_id)
            settled = self._settle_payment(caller, payment, lambda amount: self.pricing.quote_sale(token_id, amount))
            quote = self.pricing.quote_sale(token_id, settled)

            self.pricing.settle_sale(quote)
            self.registry.move(token_id, seller, caller, operator=caller)
            self.vault.push(seller, self.settlement_asset, quote.seller_payout)

            logger.info("Token %s bought by %s from %s for %s", token_id, caller, seller, settled)
            return SaleReceipt(
                token_id=token_id,
                buyer=caller,
                seller=seller,
                settled_amount=settled,
                protocol_fee=quote.protocol_fee,
                seller_payout=quote.seller_payout,
                new_price=quote.new_price,
            )

    def burn(self, caller: str, token_id: int) -> BurnReceipt:
        """Destroy `token_id` and refund its escrowed price to the owner."""
        with self._guarded("burn"):
            if not self.registry.is_owner(token_id, caller):
                self.registry.owner_of(token_id)
                raise NotOwner(f"{caller} does not own token {token_id}")

            refund = self.pricing.release(token_id)
            self.registry.remove(token_id)
            self.vault.push(caller, self.settlement_asset, refund)

            logger.info("Token %s burned by %s, refunded %s", token_id, caller, refund)
            return BurnReceipt(token_id=token_id, owner=caller, refunded=refund)

    def approve(self, caller: str, token_id: int, spender: str) -> None:
        with self._guarded("approve"):
            self.registry.approve(token_id, spender, caller=caller)

    def permit(
        self,
        *,
        token_id: int,
        spender: str,
        nonce: int,
        deadline: int,
        signature: PermitSignature,
    ) -> None:
        """Grant delegation from an owner's signed approval; callable by anyone."""
        with self._guarded("permit"):
            self.authorizer.permit(
                token_id=token_id,
                spender=spender,
                nonce=nonce,
                deadline=deadline,
                signature=signature,
            )

    def transfer(self, caller: str, token_id: int, from_address: str, to_address: str, data: bytes = b"") -> None:
        with self._guarded("transfer"):
            self.registry.transfer(token_id, from_address, to_address, caller=caller, data=data)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def collect_fees(self, caller: str, recipient: str, asset: Optional[str] = None) -> int:
        """Pay out everything accrued for `asset` to `recipient` and zero the entry."""
        with self._guarded("collect_fees"):
            self._require_admin(caller)
            if is_zero_address(recipient):
                raise ZeroRecipient("fee recipient must not be the zero address")
            fee_asset = asset or self.settlement_asset
            amount = self.pricing.fees.drain(fee_asset)
            self.vault.push(recipient, fee_asset, amount)
            logger.info("Collected %s %s in fees to %s", amount, fee_asset, recipient)
            return amount

    def pause(self, caller: str) -> None:
        with self._guarded("pause", allow_paused=True):
            self._require_admin(caller)
            self._paused = True
            logger.warning("Market paused by %s", caller)

    def unpause(self, caller: str) -> None:
        with self._guarded("unpause", allow_paused=True):
            self._require_admin(caller)
            self._paused = False
            logger.info("Market unpaused by %s", caller)

    def grant_admin(self, caller: str, address: str) -> None:
        with self._guarded("grant_admin"):
            self._require_admin(caller)
            if is_zero_address(address):
                raise ZeroAddress("admin must not be the zero address")
            self._admins.add(address.lower())

    def revoke_admin(self, caller: str, address: str) -> None:
        with self._guarded("revoke_admin"):
            self._require_admin(caller)
            self._admins.discard(address.lower())

    def register_venue(self, caller: str, adapter: VenueAdapter) -> None:
        with self._guarded("register_venue"):
            self._require_admin(caller)
            self.router.register(adapter)

    def register_pool(self, caller: str, asset: str, pool: StableSwapPool) -> PoolHandle:
        """Pin a validated stableswap pool for `asset`."""
        with self._guarded("register_pool"):
            self._require_admin(caller)
            return self.discovery.pin(asset, pool)

    def register_signer(self, caller: str, address: str, secret: bytes) -> None:
        """Record the secret that verifies `address`'s permit signatures."""
        with self._guarded("register_signer"):
            self._require_admin(caller)
            if is_zero_address(address):
                raise ZeroAddress("signer must not be the zero address")
            self.authorizer.keyring.register(address, secret)
            logger.info("Registered permit signer %s", address)

    def deposit(self, caller: str, holder: str, asset: str, amount: int) -> int:
        """Fund `holder` with `amount` of `asset` in the settlement vault; return the new balance."""
        with self._guarded("deposit"):
            self._require_admin(caller)
            if is_zero_address(holder):
                raise ZeroRecipient("deposit holder must not be the zero address")
            balance = self.vault.credit(holder, asset, amount)
            logger.info("Deposited %s %s for %s", amount, asset, holder)
            return balance
