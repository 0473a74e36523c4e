"""
Atomicity Conformance Tests

INVARIANT: Operations are all-or-nothing.

    ∀ operation O:
        O succeeds ⟹ all of its effects are applied
        O fails ⟹ no state changes and no events are recorded

This holds across contracts: a failed create_token() leaves no payment,
no counter increment, no deployed ledger and no events behind.
"""

from datetime import datetime

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from taxtoken import (
    Chain, LedgerError, TaxToken, TokenFactory,
    InsufficientBalance, InvalidRate, NativeTransferFailed,
)
from tests.support import (
    ADMIN, ALICE, BENEFICIARY, BOB, FEE, OWNER, TREASURY,
    RejectingTreasury, make_token,
)


def quiet_chain():
    return Chain("test", datetime(2025, 1, 1), verbose=False, test_mode=True)


def chain_state(chain):
    """Everything observable on a chain, for before/after comparison."""
    return {
        'native_balances': {a: b for a, b in chain.native_balances.items() if b},
        'contracts': sorted(chain.contracts),
        'nonces': dict(chain.nonces),
        'events': list(chain.event_log),
        'contract_states': {a: c.snapshot() for a, c in chain.contracts.items()},
    }


class TestAtomicityProperties:
    """Property-based atomicity tests."""

    @given(
        balance=st.integers(min_value=0, max_value=10**12),
        excess=st.integers(min_value=1, max_value=10**12),
        rate=st.integers(min_value=0, max_value=1_000),
    )
    @settings(max_examples=100, deadline=None)
    def test_failed_transfer_changes_nothing(self, balance, excess, rate):
        """PROPERTY: A transfer above the sender's balance leaves the chain untouched."""
        chain = quiet_chain()
        token = make_token(chain, rate=rate, supply=balance)
        token.transfer(OWNER, ALICE, balance)
        before = chain_state(chain)

        with pytest.raises(InsufficientBalance):
            token.transfer(ALICE, BOB, balance + excess)

        assert chain_state(chain) == before

    @given(st.integers(min_value=1_001, max_value=10_000))
    @settings(max_examples=50, deadline=None)
    def test_failed_creation_changes_nothing(self, rate):
        """
        PROPERTY: A create_token() rejected by the new ledger's initialization
        undoes the payment, the counter, the deployment and every event.
        """
        chain = quiet_chain()
        chain.set_native_balance(ALICE, FEE)
        factory = TokenFactory(chain, ADMIN, TaxToken(chain, ADMIN), TREASURY, creation_fee=FEE)
        factory.unpause(ADMIN)
        before = chain_state(chain)

        with pytest.raises(InvalidRate):
            factory.create_token(ALICE, "T", "T", 1, rate, BENEFICIARY, OWNER, value=FEE)

        assert chain_state(chain) == before
        assert factory.token_counter == 0

    @given(st.integers(min_value=1, max_value=5))
    @settings(max_examples=10, deadline=None)
    def test_failed_fee_collection_changes_nothing(self, creations):
        """PROPERTY: A treasury that rejects payment leaves every fee on the factory."""
        chain = quiet_chain()
        chain.set_native_balance(ALICE, creations * FEE)
        factory = TokenFactory(chain, ADMIN, TaxToken(chain, ADMIN), TREASURY, creation_fee=FEE)
        factory.unpause(ADMIN)
        for _ in range(creations):
            factory.create_token(ALICE, "T", "T", 1, 0, BENEFICIARY, OWNER, value=FEE)
        factory.set_treasury(ADMIN, RejectingTreasury(chain, ADMIN).address)
        before = chain_state(chain)

        with pytest.raises(NativeTransferFailed):
            factory.collect_fees(ADMIN)

        assert chain_state(chain) == before
        assert chain.native_balance_of(factory.address) == creations * FEE


class TestAtomicityEdgeCases:
    """Edge cases for atomic execution."""

    def test_second_initialize_is_a_no_op(self):
        """A rejected re-initialization cannot touch balances, rate or beneficiary."""
        chain = quiet_chain()
        token = make_token(chain)
        before = chain_state(chain)
        with pytest.raises(LedgerError):
            token.initialize(ALICE, "Hijack", "HJK", 10**30, 0, ALICE, ALICE)
        assert chain_state(chain) == before

    def test_failure_after_partial_work_is_undone(self):
        """transfer_from spends allowance before the debit fails; both are undone."""
        chain = quiet_chain()
        token = make_token(chain)
        token.transfer(OWNER, ALICE, 100)
        token.approve(ALICE, BOB, 1_000)
        before = chain_state(chain)
        with pytest.raises(InsufficientBalance):
            token.transfer_from(BOB, ALICE, BOB, 500)
        assert chain_state(chain) == before
        assert token.allowance(ALICE, BOB) == 1_000
