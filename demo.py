#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Deploy and Use a Taxed Token Step by Step

This is a pedagogical demonstration of how the factory and its ledgers work.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Bootstrap       - Chain, template, paused factory, ownership handover
  4-5:  Creation        - Paying the fee, the registry, a rejected creation
  6-8:  Transfer Tax    - Taxed transfers, rounding, exemptions
  9-10: Operations      - Collecting fees and tokens, conservation proof

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime
import sys

from taxtoken import (
    Chain, TaxToken, TokenFactory,
    LedgerError, TAX_RATE_SCALE,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    # Accounts
    deployer: str = "0xdeployer"
    operator: str = "0xoperator"
    treasury: str = "0xtreasury"
    alice: str = "0xalice"
    bob: str = "0xbob"
    beneficiary: str = "0xbeneficiary"

    # Factory
    creation_fee: int = 10**16
    alice_native: int = 10**18

    # Token
    initial_supply: int = 1_000_000 * 10**18
    tax_rate: int = 500  # 5%


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


# ============================================================================
# PHASE 1: BOOTSTRAP (Steps 1-3)
# ============================================================================

def step_01_chain_and_template():
    """Create the chain and deploy the template ledger."""
    step_header(1, "Chain and Template",
        "A template is an uninitialized ledger that every new token is cloned from.")

    print(">>> chain = Chain('tutorial', genesis={alice: 10**18})")
    chain = Chain(
        "tutorial",
        initial_time=CONFIG.start_time,
        verbose=True,
        genesis={CONFIG.alice: CONFIG.alice_native},
    )

    print("\n>>> template = TaxToken(chain, deployer)")
    template = TaxToken(chain, CONFIG.deployer)

    section_header("Template State")
    print(f"Initialized:  {template.is_initialized}")
    print(f"Max tax rate: {template.max_tax_rate}/{TAX_RATE_SCALE}")
    print(f"Owner:        {template.owner}")

    return chain, template


def step_02_factory(chain: Chain, template: TaxToken):
    """Deploy the factory; it starts paused."""
    step_header(2, "The Factory",
        "The factory charges a fixed fee per ledger and starts paused.")

    print(">>> factory = TokenFactory(chain, deployer, template, treasury, creation_fee=10**16)")
    factory = TokenFactory(
        chain, CONFIG.deployer, template, CONFIG.treasury,
        creation_fee=CONFIG.creation_fee,
    )

    section_header("Paused Factory Rejects Creation")
    try:
        factory.create_token(
            CONFIG.alice, "Early", "EARLY", 1, 0, CONFIG.alice, CONFIG.alice,
            value=CONFIG.creation_fee,
        )
    except LedgerError as e:
        print(f"Rejected as expected: {type(e).__name__}")

    return factory


def step_03_handover(factory: TokenFactory):
    """Unpause and hand ownership to the operator."""
    step_header(3, "Unpause and Hand Over",
        "Only the owner can unpause; ownership moves to the operating account.")

    print(">>> factory.unpause(deployer)")
    factory.unpause(CONFIG.deployer)
    print(">>> factory.transfer_ownership(deployer, operator)")
    factory.transfer_ownership(CONFIG.deployer, CONFIG.operator)

    section_header("Factory State")
    print(repr(factory))
    print(f"Owner: {factory.owner}")


# ============================================================================
# PHASE 2: CREATION (Steps 4-5)
# ============================================================================

def step_04_create_token(chain: Chain, factory: TokenFactory):
    """Pay the fee and create a taxed token."""
    step_header(4, "Creating a Token",
        "Exactly creation_fee must be attached; the new ledger is registered under id 1.")

    token_address = factory.create_token(
        CONFIG.alice, "Taxed Token", "TAX", CONFIG.initial_supply,
        CONFIG.tax_rate, CONFIG.beneficiary, CONFIG.alice,
        value=CONFIG.creation_fee,
    )
    token = chain.get_contract(token_address)

    section_header("Registry")
    for token_id, address in factory.list_tokens().items():
        print(f"  #{token_id}: {address}")
    print(f"\nToken:          {token!r}")
    print(f"Alice balance:  {token.balance_of(CONFIG.alice):,}")
    print(f"Factory native: {chain.native_balance_of(factory.address):,}")

    return token


def step_05_rejected_creation(factory: TokenFactory):
    """A wrong fee and an excessive rate are both rejected without side effects."""
    step_header(5, "Rejected Creations",
        "Failed creations consume no id and keep no payment.")

    for label, fee, rate in [
        ("wrong fee", CONFIG.creation_fee - 1, CONFIG.tax_rate),
        ("rate above ceiling", CONFIG.creation_fee, 5_000),
    ]:
        try:
            factory.create_token(
                CONFIG.alice, "Bad", "BAD", 1, rate, CONFIG.beneficiary, CONFIG.alice,
                value=fee,
            )
        except LedgerError as e:
            print(f"{label}: {type(e).__name__}")

    print(f"\nToken counter still {factory.token_counter}")


# ============================================================================
# PHASE 3: TRANSFER TAX (Steps 6-8)
# ============================================================================

def step_06_taxed_transfer(token: TaxToken):
    """Move funds through a non-exempt account to see the tax."""
    step_header(6, "Taxed Transfers",
        "A non-exempt transfer of v sends floor(v * rate / 10000) to the beneficiary.")

    token.transfer(CONFIG.alice, CONFIG.bob, 10_000)
    print(f"\nalice is the owner, so she is exempt: bob has {token.balance_of(CONFIG.bob)}")

    token.transfer(CONFIG.bob, CONFIG.operator, 1_000)
    section_header("bob -> operator, 1000 at 5%")
    print(f"operator:    {token.balance_of(CONFIG.operator)}")
    print(f"beneficiary: {token.balance_of(CONFIG.beneficiary)}")


def step_07_rounding(token: TaxToken):
    """Small transfers round the tax down to zero."""
    step_header(7, "Rounding",
        "floor(19 * 500 / 10000) = 0, so a transfer of 19 is untaxed.")

    before = token.balance_of(CONFIG.beneficiary)
    token.transfer(CONFIG.bob, CONFIG.operator, 19)
    print(f"Beneficiary gained: {token.balance_of(CONFIG.beneficiary) - before}")


def step_08_exemptions(token: TaxToken):
    """The owner can exempt accounts as sender or as recipient."""
    step_header(8, "Exemptions",
        "Either side being exempt is enough to skip the tax.")

    token.set_no_tax_recipient_addr(CONFIG.alice, CONFIG.operator, True)
    before = token.balance_of(CONFIG.operator)
    token.transfer(CONFIG.bob, CONFIG.operator, 1_000)
    print(f"operator received {token.balance_of(CONFIG.operator) - before} of 1000")


# ============================================================================
# PHASE 4: OPERATIONS (Steps 9-10)
# ============================================================================

def step_09_collect(chain: Chain, factory: TokenFactory, token: TaxToken):
    """Sweep fees and stray tokens to the treasury."""
    step_header(9, "Collecting Fees and Tokens",
        "Fees go to the treasury; swept tokens pay the ledger's tax like any transfer.")

    token.transfer(CONFIG.bob, factory.address, 2_000)
    fees = factory.collect_fees(CONFIG.operator)
    swept = factory.collect_tokens(CONFIG.operator, token.address)

    section_header("Treasury")
    print(f"Native fees: {fees:,} -> {chain.native_balance_of(CONFIG.treasury):,}")
    print(f"Tokens:      {swept} swept -> {token.balance_of(CONFIG.treasury)} received")


def step_10_conservation(token: TaxToken):
    """Prove balances still add up to the supply."""
    step_header(10, "Conservation Proof",
        "Taxes move value between accounts; they never create or destroy it.")

    result = token.verify_conservation()
    for account, balance in sorted(token.get_positions().items()):
        print(f"  {account:<16} {balance:>32,}")
    print(f"\nTotal supply:    {result['total_supply']:,}")
    print(f"Sum of balances: {result['sum_of_balances']:,}")
    print(f"Valid:           {result['valid']}")


def main():
    print("=" * 70)
    print("       TAXED TOKEN FACTORY TUTORIAL")
    print("=" * 70)

    chain, template = step_01_chain_and_template()
    wait_for_enter()

    factory = step_02_factory(chain, template)
    wait_for_enter()

    step_03_handover(factory)
    wait_for_enter()

    token = step_04_create_token(chain, factory)
    wait_for_enter()

    step_05_rejected_creation(factory)
    wait_for_enter()

    step_06_taxed_transfer(token)
    wait_for_enter()

    step_07_rounding(token)
    wait_for_enter()

    step_08_exemptions(token)
    wait_for_enter()

    step_09_collect(chain, factory, token)
    wait_for_enter()

    step_10_conservation(token)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See taxtoken/__init__.py for the public API
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
