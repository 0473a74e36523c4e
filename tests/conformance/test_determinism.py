"""
Determinism Conformance Tests

INVARIANT: Same initial state + same operations = same final state.

    ∀ chains C1, C2 built identically, ∀ operation sequences S:
        run(C1, S) = run(C2, S)

Contract addresses are derived from deployer and nonce, the registry
assigns ids in creation order, and the event log is totally ordered, so
two replays must agree on every address, id and event.
"""

from datetime import datetime

from hypothesis import given, settings
from hypothesis import strategies as st

from taxtoken import Chain, LedgerError, TaxToken, TokenFactory, ZERO_ADDRESS
from tests.support import ADMIN, ALICE, BENEFICIARY, BOB, FEE, OWNER, TREASURY


CREATORS = [ALICE, BOB]


def build():
    genesis = {ALICE: 100 * FEE, BOB: 100 * FEE}
    chain = Chain("test", datetime(2025, 1, 1), verbose=False, genesis=genesis)
    factory = TokenFactory(chain, ADMIN, TaxToken(chain, ADMIN), TREASURY, creation_fee=FEE)
    factory.unpause(ADMIN)
    return chain, factory


def replay(requests):
    chain, factory = build()
    outcomes = []
    for creator, rate, supply in requests:
        try:
            outcomes.append(factory.create_token(
                creator, "T", "T", supply, rate, BENEFICIARY, OWNER, value=FEE,
            ))
        except LedgerError as e:
            outcomes.append(type(e).__name__)
    return chain, factory, outcomes


creation_request = st.tuples(
    st.sampled_from(CREATORS),
    st.integers(min_value=0, max_value=1_500),
    st.integers(min_value=0, max_value=10**24),
)


class TestDeterminismProperties:
    """Property-based determinism tests."""

    @given(st.lists(creation_request, min_size=1, max_size=8))
    @settings(max_examples=50, deadline=None)
    def test_replay_is_identical(self, requests):
        """PROPERTY: Two replays agree on outcomes, registry and event log."""
        chain1, factory1, outcomes1 = replay(requests)
        chain2, factory2, outcomes2 = replay(requests)

        assert outcomes1 == outcomes2
        assert factory1.list_tokens() == factory2.list_tokens()
        assert chain1.event_log == chain2.event_log
        assert chain1.native_balances == chain2.native_balances

    @given(st.lists(creation_request, min_size=1, max_size=8))
    @settings(max_examples=50, deadline=None)
    def test_registry_ids_have_no_gaps(self, requests):
        """
        PROPERTY: Ids 1..token_counter are all assigned, to distinct ledgers,
        and failed creations consume no id.
        """
        chain, factory, outcomes = replay(requests)
        created = [o for o in outcomes if o.startswith("0x")]

        assert factory.token_counter == len(created)
        assert [factory.get_token_by_id(i) for i in range(1, len(created) + 1)] == created
        assert factory.get_token_by_id(len(created) + 1) == ZERO_ADDRESS
        assert len(set(created)) == len(created)
        assert chain.native_balance_of(factory.address) == len(created) * FEE
