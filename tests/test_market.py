"""Tests for the market entry points: mint, buy, burn, delegation and administration."""

import itertools

import pytest

from auction import PerpetualAuction
from auction.conversion import ConstantProductAdapter
from auction.errors import (
    BelowMinimumIncrement,
    InsufficientPayment,
    NotAdmin,
    NotApproved,
    NotOwner,
    NonceReplay,
    Paused,
    ReentrantCall,
    Rejected,
    SlippageExceeded,
    TransferFailed,
    UnknownResource,
    UnknownVenue,
    ZeroAmount,
    ZeroRecipient,
)
from auction.types import ZERO_ADDRESS, Payment, VenueKind
from conftest import ADMIN, ALICE, BOB, CAROL, MARKET, NOW, ONE
from fakes import (
    CallbackReceiver,
    CallbackLedger,
    CallbackStableSwapPool,
    FakeConstantProductPool,
    FakePoolLookup,
    FakeStableSwapPool,
    FakeStableSwapRegistry,
    RejectingReceiver,
)


def weth(amount: int) -> Payment:
    return Payment(asset="WETH", amount=amount)


def escrow_matches(market: PerpetualAuction, ledger) -> bool:
    """Market balance equals escrowed prices plus accrued fees."""
    escrowed = sum(market.last_price(token_id) for token_id in market.token_ids())
    return ledger.balance_of(MARKET, "WETH") == escrowed + market.accrued_fees()


@pytest.fixture
def minted(market) -> int:
    return market.mint(ALICE, weth(ONE)).token_id


class TestMint:
    def test_mint(self, market, ledger) -> None:
        receipt = market.mint(ALICE, weth(ONE))
        assert receipt.owner == ALICE
        assert receipt.protocol_fee == 5 * 10**15
        assert receipt.last_price == 995 * 10**15
        assert market.owner_of(receipt.token_id) == ALICE
        assert market.last_price(receipt.token_id) == 995 * 10**15
        assert market.accrued_fees() == 5 * 10**15
        assert ledger.balance_of(ALICE, "WETH") == 99 * ONE
        assert escrow_matches(market, ledger)

    def test_token_ids_unique(self, market) -> None:
        first = market.mint(ALICE, weth(ONE)).token_id
        second = market.mint(ALICE, weth(ONE)).token_id
        assert first != second
        assert sorted(market.token_ids()) == sorted([first, second])

    def test_zero_payment(self, market, ledger) -> None:
        with pytest.raises(ZeroAmount):
            market.mint(ALICE, weth(0))
        assert market.token_ids() == []

    def test_insufficient_funds(self, market, ledger) -> None:
        with pytest.raises(TransferFailed):
            market.mint(ALICE, weth(101 * ONE))
        assert ledger.balance_of(ALICE, "WETH") == 100 * ONE
        assert market.token_ids() == []

    def test_rejecting_minter(self, market, ledger, receivers) -> None:
        receivers.register(CAROL, RejectingReceiver())
        with pytest.raises(Rejected):
            market.mint(CAROL, weth(ONE))
        assert ledger.balance_of(CAROL, "WETH") == 100 * ONE
        assert market.accrued_fees() == 0
        assert market.token_ids() == []


class TestBuy:
    def test_buy(self, market, ledger, minted) -> None:
        receipt = market.buy(BOB, minted, weth(12 * 10**17))
        assert receipt.seller == ALICE
        assert receipt.protocol_fee == 1_025 * 10**12
        assert receipt.seller_payout == 1_036 * 10**15
        assert receipt.new_price == 1_157_975 * 10**12
        assert market.owner_of(minted) == BOB
        assert not market.is_owner(minted, ALICE)
        assert ledger.balance_of(ALICE, "WETH") == 99 * ONE + 1_036 * 10**15
        assert ledger.balance_of(BOB, "WETH") == 100 * ONE - 12 * 10**17
        assert escrow_matches(market, ledger)

    def test_minimum_payment_is_accepted(self, market, minted) -> None:
        floor = market.next_minimum_price(minted)
        receipt = market.buy(BOB, minted, weth(market.minimum_payment(minted)))
        assert receipt.new_price >= floor
        assert market.last_price(minted) == receipt.new_price

    def test_buy_below_increment_changes_nothing(self, market, ledger, minted) -> None:
        with pytest.raises(BelowMinimumIncrement):
            market.buy(BOB, minted, weth(ONE))
        assert market.owner_of(minted) == ALICE
        assert market.last_price(minted) == 995 * 10**15
        assert ledger.balance_of(BOB, "WETH") == 100 * ONE
        assert escrow_matches(market, ledger)

    def test_buy_at_last_price(self, market, minted) -> None:
        with pytest.raises(InsufficientPayment):
            market.buy(BOB, minted, weth(995 * 10**15))

    def test_buy_unknown_token(self, market) -> None:
        with pytest.raises(UnknownResource):
            market.buy(BOB, 12345, weth(ONE))

    def test_buy_clears_delegation(self, market, minted) -> None:
        market.approve(ALICE, minted, CAROL)
        market.buy(BOB, minted, weth(2 * ONE))
        assert market.approved_for(minted) is None

    def test_failed_payout_rolls_back(self, market, ledger, minted) -> None:
        ledger.block(ALICE)
        fees_before = market.accrued_fees()
        with pytest.raises(TransferFailed):
            market.buy(BOB, minted, weth(2 * ONE))
        assert market.owner_of(minted) == ALICE
        assert market.last_price(minted) == 995 * 10**15
        assert market.accrued_fees() == fees_before
        assert ledger.balance_of(BOB, "WETH") == 100 * ONE
        assert escrow_matches(market, ledger)

    def test_successive_sales_raise_price(self, market, ledger, minted) -> None:
        buyers = itertools.cycle([BOB, CAROL, ALICE])
        price = market.last_price(minted)
        for _ in range(6):
            market.buy(next(buyers), minted, weth(market.minimum_payment(minted)))
            assert market.last_price(minted) > price
            price = market.last_price(minted)
        assert escrow_matches(market, ledger)


class TestConversion:
    @pytest.fixture
    def cp_market(self, market) -> PerpetualAuction:
        lookup = FakePoolLookup()
        adapter = ConstantProductAdapter(
            factory="0xfactory",
            init_code_hash=b"\x02" * 32,
            fee_tier=30,
            settlement_asset="WETH",
            lookup=lookup,
        )
        address = adapter.pool_address("USDC")
        lookup.deploy(address, FakeConstantProductPool(address, "USDC", "WETH", 1_000 * ONE, 1_000 * ONE))
        market.register_venue(ADMIN, adapter)
        return market

    def test_mint_with_converted_payment(self, cp_market, ledger) -> None:
        payment = Payment(asset="USDC", amount=2 * ONE, venue=VenueKind.CONSTANT_PRODUCT)
        expected = cp_market.quote_conversion("USDC", 2 * ONE, VenueKind.CONSTANT_PRODUCT)
        receipt = cp_market.mint(ALICE, payment)
        assert receipt.settled_amount == expected
        assert ledger.balance_of(ALICE, "USDC") == 98 * ONE
        assert ledger.balance_of(MARKET, "USDC") == 0
        assert escrow_matches(cp_market, ledger)

    def test_slippage_leaves_no_trace(self, cp_market, ledger) -> None:
        expected = cp_market.quote_conversion("USDC", 2 * ONE, VenueKind.CONSTANT_PRODUCT)
        payment = Payment(asset="USDC", amount=2 * ONE, venue=VenueKind.CONSTANT_PRODUCT, min_out=expected + 1)
        with pytest.raises(SlippageExceeded):
            cp_market.mint(ALICE, payment)
        assert ledger.balance_of(ALICE, "USDC") == 100 * ONE
        assert cp_market.token_ids() == []

    def test_missing_venue(self, market) -> None:
        with pytest.raises(UnknownVenue):
            market.mint(ALICE, Payment(asset="USDC", amount=ONE))

    def test_stableswap_payment(self, ledger, keyring, clock) -> None:
        pool = FakeStableSwapPool("0xpool", ["USDC", "WETH"], [50 * ONE, 50 * ONE])
        market = PerpetualAuction(
            admin=ADMIN,
            address=MARKET,
            vault=ledger,
            keyring=keyring,
            stableswap_registry=FakeStableSwapRegistry([pool]),
            clock=clock,
        )
        receipt = market.mint(BOB, Payment(asset="USDC", amount=2 * ONE, venue=VenueKind.STABLESWAP))
        assert receipt.settled_amount == pool.output(2 * ONE)
        assert market.discovery.cached("USDC").address == "0xpool"
        assert escrow_matches(market, ledger)


class TestBurn:
    def test_burn_refunds_escrow(self, market, ledger, minted) -> None:
        receipt = market.burn(ALICE, minted)
        assert receipt.refunded == 995 * 10**15
        assert ledger.balance_of(ALICE, "WETH") == 99 * ONE + 995 * 10**15
        assert minted not in market.token_ids()
        with pytest.raises(UnknownResource):
            market.owner_of(minted)
        assert escrow_matches(market, ledger)

    def test_burn_by_non_owner(self, market, minted) -> None:
        with pytest.raises(NotOwner):
            market.burn(BOB, minted)

    def test_burn_unknown(self, market) -> None:
        with pytest.raises(UnknownResource):
            market.burn(ALICE, 42)


class TestDelegation:
    def test_approve_and_transfer(self, market, minted) -> None:
        market.approve(ALICE, minted, BOB)
        assert market.is_approved(minted, BOB)
        market.transfer(BOB, minted, ALICE, CAROL)
        assert market.owner_of(minted) == CAROL
        assert market.approved_for(minted) is None

    def test_transfer_without_approval(self, market, minted) -> None:
        with pytest.raises(NotApproved):
            market.transfer(BOB, minted, ALICE, BOB)

    def test_transfer_to_zero(self, market, minted) -> None:
        market.approve(ALICE, minted, BOB)
        with pytest.raises(ZeroRecipient):
            market.transfer(BOB, minted, ALICE, ZERO_ADDRESS)

    def test_permit(self, market, minted) -> None:
        fields = {"token_id": minted, "spender": BOB, "nonce": market.nonces(ALICE), "deadline": NOW + 60}
        signature = market.authorizer.sign(signer=ALICE, **fields)
        market.permit(**fields, signature=signature)
        assert market.is_approved(minted, BOB)
        assert market.nonces(ALICE) == 1
        with pytest.raises(NonceReplay):
            market.permit(**fields, signature=signature)


class TestAdministration:
    def test_collect_fees(self, market, ledger, minted) -> None:
        amount = market.collect_fees(ADMIN, CAROL)
        assert amount == 5 * 10**15
        assert ledger.balance_of(CAROL, "WETH") == 100 * ONE + amount
        assert market.accrued_fees() == 0
        assert escrow_matches(market, ledger)
        with pytest.raises(ZeroAmount):
            market.collect_fees(ADMIN, CAROL)

    def test_collect_fees_requires_admin(self, market, minted) -> None:
        with pytest.raises(NotAdmin):
            market.collect_fees(ALICE, ALICE)

    def test_collect_fees_zero_recipient(self, market, minted) -> None:
        with pytest.raises(ZeroRecipient):
            market.collect_fees(ADMIN, ZERO_ADDRESS)
        assert market.accrued_fees() == 5 * 10**15

    def test_pause(self, market, minted) -> None:
        market.pause(ADMIN)
        assert market.paused
        with pytest.raises(Paused):
            market.mint(ALICE, weth(ONE))
        with pytest.raises(Paused):
            market.buy(BOB, minted, weth(2 * ONE))
        assert market.owner_of(minted) == ALICE
        market.unpause(ADMIN)
        market.buy(BOB, minted, weth(2 * ONE))

    def test_pause_requires_admin(self, market) -> None:
        with pytest.raises(NotAdmin):
            market.pause(ALICE)

    def test_grant_and_revoke_admin(self, market) -> None:
        market.grant_admin(ADMIN, BOB)
        assert market.is_admin(BOB)
        market.revoke_admin(BOB, ADMIN)
        assert not market.is_admin(ADMIN)
        with pytest.raises(NotAdmin):
            market.pause(ADMIN)

    def test_register_pool(self, market) -> None:
        pool = FakeStableSwapPool("0xpool", ["DAI", "WETH"], [5 * ONE, 5 * ONE])
        handle = market.register_pool(ADMIN, "DAI", pool)
        assert (handle.index_in, handle.index_out) == (0, 1)
        with pytest.raises(NotAdmin):
            market.register_pool(ALICE, "DAI", pool)


class TestReentrancy:
    def test_nested_call_from_receiver(self, market, ledger, receivers, minted) -> None:
        receivers.register(BOB, CallbackReceiver(lambda: market.mint(BOB, weth(ONE))))
        with pytest.raises(ReentrantCall):
            market.buy(BOB, minted, weth(2 * ONE))
        assert market.owner_of(minted) == ALICE
        assert ledger.balance_of(BOB, "WETH") == 100 * ONE
        assert market.token_ids() == [minted]

        receivers.unregister(BOB)
        market.buy(BOB, minted, weth(2 * ONE))
        assert market.owner_of(minted) == BOB

    def test_nested_call_from_venue_swap(self, ledger, keyring, clock) -> None:
        pool = CallbackStableSwapPool("0xpool", ["USDC", "WETH"], [50 * ONE, 50 * ONE])
        market = PerpetualAuction(
            admin=ADMIN,
            address=MARKET,
            vault=ledger,
            keyring=keyring,
            stableswap_registry=FakeStableSwapRegistry([pool]),
            clock=clock,
        )
        token_id = market.mint(ALICE, weth(ONE)).token_id
        usdc = Payment(asset="USDC", amount=2 * ONE, venue=VenueKind.STABLESWAP)

        pool.callback = lambda: market.mint(BOB, weth(ONE))
        with pytest.raises(ReentrantCall):
            market.mint(BOB, usdc)
        pool.callback = lambda: market.buy(BOB, token_id, weth(2 * ONE))
        with pytest.raises(ReentrantCall):
            market.buy(BOB, token_id, usdc)

        assert pool.exchanges == []
        assert market.token_ids() == [token_id]
        assert market.owner_of(token_id) == ALICE
        assert ledger.balance_of(BOB, "USDC") == 100 * ONE
        assert ledger.balance_of(BOB, "WETH") == 100 * ONE
        assert escrow_matches(market, ledger)

    def test_nested_call_from_transfer_hook(self, market, ledger, receivers, minted) -> None:
        market.approve(ALICE, minted, BOB)
        receivers.register(CAROL, CallbackReceiver(lambda: market.burn(ALICE, minted)))
        with pytest.raises(ReentrantCall):
            market.transfer(BOB, minted, ALICE, CAROL)
        assert market.owner_of(minted) == ALICE
        assert market.approved_for(minted) == BOB
        assert market.last_price(minted) == 995 * 10**15
        assert escrow_matches(market, ledger)

    def test_nested_call_from_permit_spender(self, market, receivers, minted) -> None:
        receivers.register(BOB, CallbackReceiver(lambda: market.transfer(BOB, minted, ALICE, BOB)))
        fields = {"token_id": minted, "spender": BOB, "nonce": 0, "deadline": NOW + 60}
        signature = market.authorizer.sign(signer=ALICE, **fields)
        with pytest.raises(ReentrantCall):
            market.permit(**fields, signature=signature)
        assert market.nonces(ALICE) == 0
        assert market.approved_for(minted) is None
        assert market.owner_of(minted) == ALICE

    def test_nested_call_from_fee_payout(self, keyring, clock) -> None:
        ledger = CallbackLedger(account=MARKET, initial_balances={(ALICE, "WETH"): 10 * ONE})
        market = PerpetualAuction(admin=ADMIN, address=MARKET, vault=ledger, keyring=keyring, clock=clock)
        token_id = market.mint(ALICE, weth(ONE)).token_id

        ledger.callback = lambda: market.collect_fees(ADMIN, CAROL)
        with pytest.raises(ReentrantCall):
            market.collect_fees(ADMIN, CAROL)
        assert market.accrued_fees() == 5 * 10**15
        assert ledger.balance_of(CAROL, "WETH") == 0
        assert escrow_matches(market, ledger)

        ledger.callback = None
        assert market.collect_fees(ADMIN, CAROL) == 5 * 10**15
        assert market.token_ids() == [token_id]


class TestPaymentPrechecks:
    @pytest.fixture
    def pool(self) -> FakeStableSwapPool:
        return FakeStableSwapPool("0xpool", ["USDC", "WETH"], [50 * ONE, 50 * ONE], quote=lambda i, j, dx: dx)

    @pytest.fixture
    def ss_market(self, ledger, keyring, clock, pool) -> PerpetualAuction:
        return PerpetualAuction(
            admin=ADMIN,
            address=MARKET,
            vault=ledger,
            keyring=keyring,
            stableswap_registry=FakeStableSwapRegistry([pool]),
            clock=clock,
        )

    def test_below_increment_never_swaps(self, ss_market, ledger, pool) -> None:
        token_id = ss_market.mint(ALICE, weth(ONE)).token_id
        payment = Payment(asset="USDC", amount=ONE, venue=VenueKind.STABLESWAP, min_out=ONE)
        with pytest.raises(BelowMinimumIncrement):
            ss_market.buy(BOB, token_id, payment)
        assert pool.exchanges == []
        assert pool.balances() == [50 * ONE, 50 * ONE]
        assert ledger.balance_of(BOB, "USDC") == 100 * ONE
        assert ss_market.owner_of(token_id) == ALICE

    def test_quoted_shortfall_never_swaps(self, ss_market, ledger, pool) -> None:
        token_id = ss_market.mint(ALICE, weth(ONE)).token_id
        with pytest.raises(InsufficientPayment):
            ss_market.buy(BOB, token_id, Payment(asset="USDC", amount=ONE, venue=VenueKind.STABLESWAP))
        assert pool.exchanges == []
        assert ledger.balance_of(BOB, "USDC") == 100 * ONE

    def test_zero_buyer_never_swaps(self, ss_market, pool) -> None:
        token_id = ss_market.mint(ALICE, weth(ONE)).token_id
        with pytest.raises(ZeroRecipient):
            ss_market.buy(ZERO_ADDRESS, token_id, Payment(asset="USDC", amount=2 * ONE, venue=VenueKind.STABLESWAP))
        assert pool.exchanges == []

    def test_sufficient_conversion_swaps_once(self, ss_market, ledger, pool) -> None:
        token_id = ss_market.mint(ALICE, weth(ONE)).token_id
        receipt = ss_market.buy(BOB, token_id, Payment(asset="USDC", amount=2 * ONE, venue=VenueKind.STABLESWAP))
        assert len(pool.exchanges) == 1
        assert receipt.settled_amount == pool.output(2 * ONE)
        assert ss_market.owner_of(token_id) == BOB


class TestAddressCase:
    def test_mixed_case_owner_can_approve(self, market, ledger) -> None:
        token_id = market.mint("0xAlice", weth(ONE)).token_id
        assert ledger.balance_of(ALICE, "WETH") == 99 * ONE
        market.approve("0xalice", token_id, BOB)
        assert market.is_owner(token_id, "0xALICE")
        assert market.is_approved(token_id, "0xBob")
        market.transfer("0xBOB", token_id, "0xAlice", CAROL)
        assert market.owner_of(token_id) == CAROL

    def test_mixed_case_owner_can_burn(self, market, minted) -> None:
        receipt = market.burn("0xALICE", minted)
        assert receipt.refunded == 995 * 10**15
