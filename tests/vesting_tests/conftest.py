"""Shared fixtures for vesting ledger tests."""

import pytest

from vesting_ledger.blockchain.balance_tree import build_distribution
from vesting_ledger.core.contracts.erc20 import ERC20Token
from vesting_ledger.core.contracts.merkle_vesting import MerkleVestingLedger

from .helpers import (
    CLIFF_DURATION,
    DEPLOYER,
    E18,
    PERIOD,
    RECURRENCES,
    SCHEDULE_ID,
    START,
    START_BPS,
    VESTINGS,
    Clock,
)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def distribution():
    return build_distribution(VESTINGS)


@pytest.fixture
def token():
    token = ERC20Token(name="Vesting Token", symbol="VEST", owner=DEPLOYER)
    token.mint(DEPLOYER, DEPLOYER, 1_000_000 * E18)
    return token


@pytest.fixture
def ledger(token, clock):
    ledger = MerkleVestingLedger(token, owner=DEPLOYER, time_provider=clock, period=PERIOD)
    token.approve(DEPLOYER, ledger.address, token.UINT256_MAX)
    return ledger


@pytest.fixture
def funded_ledger(ledger, distribution):
    """Ledger with schedule 1 committed to the shared distribution."""
    ledger.create_schedule(
        DEPLOYER,
        SCHEDULE_ID,
        START,
        CLIFF_DURATION,
        RECURRENCES,
        START_BPS,
        distribution.root,
        distribution.total,
    )
    return ledger
