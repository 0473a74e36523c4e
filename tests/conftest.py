"""
conftest.py - Shared pytest fixtures for taxtoken tests

Provides common fixtures used across unit and conformance tests:
- Chains (empty, funded with native currency)
- Ledgers (template, initialized, with a funded non-exempt holder)
- Factories (paused as deployed, active)
"""

import pytest
from datetime import datetime

from taxtoken import Chain, TaxToken, TokenFactory

from tests.support import ADMIN, ALICE, BOB, FEE, OWNER, TREASURY, make_token


# =============================================================================
# CHAIN FIXTURES
# =============================================================================

@pytest.fixture
def chain():
    """Fresh quiet chain in test mode."""
    return Chain("test", datetime(2025, 1, 1), verbose=False, test_mode=True)


@pytest.fixture
def funded_chain(chain):
    """Chain where alice and bob hold native currency for creation fees."""
    chain.set_native_balance(ALICE, 10 * FEE)
    chain.set_native_balance(BOB, 10 * FEE)
    return chain


# =============================================================================
# LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def template(chain):
    """Uninitialized ledger used as a blueprint."""
    return TaxToken(chain, ADMIN)


@pytest.fixture
def token(chain):
    """Initialized ledger: OWNER holds the supply, rate 5%."""
    return make_token(chain)


@pytest.fixture
def funded_token(token):
    """Ledger where alice (not exempt) holds 100,000 units."""
    token.transfer(OWNER, ALICE, 100_000)
    return token


# =============================================================================
# FACTORY FIXTURES
# =============================================================================

@pytest.fixture
def factory(funded_chain):
    """Factory as deployed: paused, fee 10,000, owned by ADMIN."""
    template = TaxToken(funded_chain, ADMIN)
    return TokenFactory(funded_chain, ADMIN, template, TREASURY, creation_fee=FEE)


@pytest.fixture
def active_factory(factory):
    """Factory unpaused and accepting creation calls."""
    factory.unpause(ADMIN)
    return factory
