"""Shared test fixtures for pytest.

Provides a funded market, a signer keyring and a fixed clock used across
multiple test files.
"""

from __future__ import annotations

import itertools
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from auction import AuctionConfig, PerpetualAuction  # noqa: E402
from auction.permits import SignerKeyring  # noqa: E402
from auction.registry import ReceiverDirectory  # noqa: E402
from auction.settlement import AssetLedger  # noqa: E402

ONE = 10**18

ADMIN = "0xadmin"
ALICE = "0xalice"
BOB = "0xbob"
CAROL = "0xcarol"
MARKET = "0xmarket"

NOW = 1_700_000_000


@pytest.fixture
def config() -> AuctionConfig:
    return AuctionConfig()


@pytest.fixture
def ledger() -> AssetLedger:
    """Ledger with 100 WETH and 100 USDC for each user."""
    balances = {}
    for user in (ALICE, BOB, CAROL):
        balances[(user, "WETH")] = 100 * ONE
        balances[(user, "USDC")] = 100 * ONE
    return AssetLedger(account=MARKET, initial_balances=balances)


@pytest.fixture
def keyring() -> SignerKeyring:
    ring = SignerKeyring()
    ring.register(ALICE, b"alice-secret")
    ring.register(BOB, b"bob-secret")
    ring.register(CAROL, b"carol-secret")
    return ring


@pytest.fixture
def receivers() -> ReceiverDirectory:
    return ReceiverDirectory()


@pytest.fixture
def clock():
    """Mutable fixed clock; set `clock.now` to move time."""

    class _Clock:
        now = NOW

        def __call__(self) -> float:
            return self.now

    return _Clock()


@pytest.fixture
def market(config, ledger, keyring, receivers, clock) -> PerpetualAuction:
    counter = itertools.count()
    return PerpetualAuction(
        admin=ADMIN,
        config=config,
        address=MARKET,
        vault=ledger,
        keyring=keyring,
        receivers=receivers,
        clock=clock,
        seed_source=lambda: next(counter).to_bytes(32, "big"),
    )
