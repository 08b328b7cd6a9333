"""
Property-based tests for vesting ledger invariants.

These tests verify that:
- The vesting curve is non-decreasing in time and bounded by the total
- Cumulative claims never exceed the vested amount
- Any single-byte change to a proof or leaf breaks verification

Uses Hypothesis for property-based testing with random inputs.
"""

from hypothesis import assume, given, settings, strategies as st

from vesting_ledger.blockchain.balance_tree import build_distribution
from vesting_ledger.blockchain.merkle import hash_leaf, verify_proof
from vesting_ledger.blockchain.vesting_schedule import build_schedule
from vesting_ledger.core.contracts.erc20 import ERC20Token
from vesting_ledger.core.contracts.merkle_vesting import MerkleVestingLedger
from vesting_ledger.core.ledger_exceptions import NothingToClaimError

from ..helpers import DEPLOYER, PERIOD, addr

ROOT = b"\x5a" * 32

schedule_params = st.fixed_dictionaries(
    {
        "start_time": st.integers(min_value=0, max_value=2**40),
        "cliff_duration": st.integers(min_value=0, max_value=5 * PERIOD),
        "recurrences": st.integers(min_value=1, max_value=48),
        "start_bps": st.integers(min_value=0, max_value=10_000),
    }
)
totals = st.integers(min_value=0, max_value=2**128)


class TestVestingCurveInvariants:
    """Property tests for the vested amount curve."""

    @given(params=schedule_params, total=totals, offsets=st.lists(
        st.integers(min_value=-PERIOD, max_value=60 * PERIOD), min_size=2, max_size=10
    ))
    @settings(max_examples=200)
    def test_monotonic_and_bounded(self, params, total, offsets):
        """Vested amount never decreases over time and never exceeds total."""
        schedule = build_schedule(1, merkle_root=ROOT, total_committed=total, period=PERIOD, **params)
        times = sorted(max(0, params["start_time"] + offset) for offset in offsets)

        amounts = [schedule.vested_amount(total, t) for t in times]

        assert all(0 <= a <= total for a in amounts)
        assert amounts == sorted(amounts)

    @given(params=schedule_params, total=totals)
    @settings(max_examples=100)
    def test_endpoints(self, params, total):
        """Nothing before start, start fraction at start, everything at end."""
        schedule = build_schedule(1, merkle_root=ROOT, total_committed=total, period=PERIOD, **params)
        start_amount = total * params["start_bps"] // 10_000

        if schedule.start_time > 0:
            assert schedule.vested_amount(total, schedule.start_time - 1) == 0
        if params["cliff_duration"] > 0:
            assert schedule.vested_amount(total, schedule.start_time) == start_amount
        assert schedule.vested_amount(total, schedule.end_time) == total


class TestClaimInvariants:
    """Property tests for cumulative claims against a live ledger."""

    @given(
        amounts=st.lists(st.integers(min_value=1, max_value=10**24), min_size=1, max_size=4),
        start_bps=st.integers(min_value=0, max_value=10_000),
        steps=st.lists(st.integers(min_value=0, max_value=4 * PERIOD), min_size=1, max_size=8),
    )
    @settings(max_examples=50, deadline=None)
    def test_claimed_never_exceeds_vested(self, amounts, start_bps, steps):
        """Sum of claims equals vested-at-last-claim and never exceeds it."""
        beneficiary = addr(0xBEEF)
        distribution = build_distribution([(beneficiary, amount) for amount in amounts])

        now = [1_000]
        token = ERC20Token(name="Prop", symbol="PRP", owner=DEPLOYER)
        token.mint(DEPLOYER, DEPLOYER, distribution.total)
        ledger = MerkleVestingLedger(token, owner=DEPLOYER, time_provider=lambda: now[0], period=PERIOD)
        token.approve(DEPLOYER, ledger.address, distribution.total)
        ledger.create_schedule(
            DEPLOYER, 1, 1_000, PERIOD, 6, start_bps, distribution.root, distribution.total
        )
        ledger.activate(1, beneficiary, distribution.for_account(beneficiary).entries())

        claimed = 0
        for step in steps:
            now[0] += step
            vested = ledger.get_vested_amount(1, beneficiary)
            try:
                claimed += ledger.claim(1, beneficiary)
            except NothingToClaimError:
                pass
            assert claimed <= vested
            assert token.balance_of(beneficiary) == claimed
            assert ledger.get_position(1, beneficiary).claimed == claimed
            assert ledger.custody_balance(1) == distribution.total - claimed


class TestProofInvariants:
    """Property tests for Merkle proof integrity."""

    @given(
        amounts=st.lists(st.integers(min_value=0, max_value=2**96), min_size=2, max_size=12),
        data=st.data(),
    )
    @settings(max_examples=50, deadline=None)
    def test_byte_flip_breaks_proof(self, amounts, data):
        """Flipping any byte of any proof element makes verification fail."""
        allocations = [(addr(i + 1), amount) for i, amount in enumerate(amounts)]
        distribution = build_distribution(allocations)
        index = data.draw(st.integers(min_value=0, max_value=len(allocations) - 1))
        account, amount = allocations[index]
        alloc = distribution.for_account(account)
        proof = alloc.proofs[0]
        assume(proof)

        leaf = hash_leaf(index, account, amount)
        assert verify_proof(leaf, proof, distribution.root)

        node = data.draw(st.integers(min_value=0, max_value=len(proof) - 1))
        pos = data.draw(st.integers(min_value=0, max_value=31))
        tampered = bytearray(proof[node])
        tampered[pos] ^= 0xFF
        forged = list(proof)
        forged[node] = bytes(tampered)
        assert not verify_proof(leaf, forged, distribution.root)

    @given(
        amounts=st.lists(st.integers(min_value=0, max_value=2**96), min_size=1, max_size=8),
        delta=st.integers(min_value=1, max_value=2**64),
    )
    @settings(max_examples=50, deadline=None)
    def test_inflated_amount_rejected(self, amounts, delta):
        """A valid proof cannot authenticate a larger amount."""
        allocations = [(addr(i + 1), amount) for i, amount in enumerate(amounts)]
        distribution = build_distribution(allocations)
        account, amount = allocations[0]
        proof = distribution.for_account(account).proofs[0]
        assert not verify_proof(hash_leaf(0, account, amount + delta), proof, distribution.root)
