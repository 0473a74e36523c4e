"""
support.py - Shared test constants, builders and counterparty contracts

Fixture-independent helpers, plus treasuries with different receive behaviour
and a ledger template that re-enters the factory during initialization.
"""

from __future__ import annotations

from taxtoken import Chain, Contract, LedgerError, NativeTransferFailed, TaxToken


ADMIN = "admin"
OWNER = "owner"
BENEFICIARY = "beneficiary"
TREASURY = "treasury"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"

INITIAL_SUPPLY = 1_000_000
RATE = 500  # 5%
FEE = 10_000


def make_token(
    chain: Chain,
    rate: int = RATE,
    supply: int = INITIAL_SUPPLY,
    max_tax_rate: int = 1_000,
) -> TaxToken:
    """Deploy and initialize a ledger owned by OWNER, taxing in favour of BENEFICIARY."""
    token = TaxToken(chain, ADMIN, max_tax_rate=max_tax_rate)
    token.initialize(ADMIN, "Taxed Token", "TAX", supply, rate, BENEFICIARY, OWNER)
    return token


class AcceptingTreasury(Contract):
    """Accepts native currency and counts the payments it received."""

    _STATE_FIELDS = ('received',)

    def __init__(self, chain, deployer):
        self.received = []
        super().__init__(chain, deployer)

    def receive(self, sender, amount):
        self.received.append((sender, amount))


class RejectingTreasury(Contract):
    """Refuses every native payment."""

    def receive(self, sender, amount):
        raise NativeTransferFailed("treasury refuses payments")


class ReentrantTreasury(Contract):
    """Calls back into factory.collect_fees() from its receive hook."""

    _STATE_FIELDS = ('attempts',)

    def __init__(self, chain, deployer, factory=None):
        self.factory = factory
        self.attempts = 0
        super().__init__(chain, deployer)

    def receive(self, sender, amount):
        self.attempts += 1
        self.factory.collect_fees(self.factory.owner)


class SwallowingTreasury(Contract):
    """Re-enters the factory but swallows the failure, then accepts the payment."""

    _STATE_FIELDS = ('errors',)

    def __init__(self, chain, deployer, factory=None):
        self.factory = factory
        self.errors = []
        super().__init__(chain, deployer)

    def receive(self, sender, amount):
        try:
            self.factory.collect_fees(self.factory.owner)
        except LedgerError as e:
            self.errors.append(type(e).__name__)


class ReentrantToken(TaxToken):
    """Template whose initialize() tries to create another token through the factory."""

    factory = None

    def initialize(self, caller, *args, **kwargs):
        type(self).factory.create_token(
            "attacker", "Evil", "EVL", 1, 0, "attacker", "attacker",
            value=type(self).factory.creation_fee,
        )
        return super().initialize(caller, *args, **kwargs)
