"""
taxtoken - Transfer-Tax Ledger and Ledger Factory

A fungible-asset ledger that diverts a configurable share of every transfer
to a beneficiary, and a factory that deploys independent copies of it for a
fixed fee.

Usage:
    from taxtoken import Chain, TaxToken, TokenFactory

    chain = Chain("main", genesis={"alice": 10**18})
    template = TaxToken(chain, deployer="admin")
    factory = TokenFactory(chain, "admin", template, treasury="treasury",
                           creation_fee=10**16)
    factory.unpause("admin")

    # alice pays the fee and owns the new ledger
    address = factory.create_token(
        "alice", "Taxed", "TAX", 1_000_000, 500, "beneficiary", "alice",
        value=10**16,
    )
    token = chain.get_contract(address)

    token.transfer("alice", "bob", 1000)   # alice is exempt: bob +1000
    token.transfer("bob", "carol", 1000)   # carol +950, beneficiary +50
"""

# Core types
from .core import (
    TokenView,
    Move,
    Event,
    Address,
    Balances,
    LedgerError,
    ZeroAddress,
    ZeroAmount,
    InvalidRate,
    TaxRateExceedsMax,
    IncorrectFee,
    Paused,
    ContractPaused,
    NotPaused,
    Unauthorized,
    InsufficientBalance,
    InsufficientAllowance,
    AlreadyInitialized,
    NotInitialized,
    ReentrantCall,
    NativeTransferFailed,
    UnknownContract,
    compute_tax,
    compute_transfer_moves,
    is_tax_exempt,
    is_zero_address,
    derive_address,
    ZERO_ADDRESS,
    TAX_RATE_SCALE,
    DEFAULT_MAX_TAX_RATE,
    DEFAULT_DECIMALS,
    MAX_ALLOWANCE,
)

# Execution environment
from .chain import Chain, Contract, atomic

# Guards
from .access import (
    Ownable,
    Pausable,
    ReentrancyGuard,
    only_owner,
    when_not_paused,
    non_reentrant,
)

# Ledger
from .token import TaxToken, requires_initialized

# Factory
from .factory import TokenFactory

__all__ = [
    # Core
    'TokenView', 'Move', 'Event', 'Address', 'Balances',
    'LedgerError', 'ZeroAddress', 'ZeroAmount', 'InvalidRate', 'TaxRateExceedsMax',
    'IncorrectFee', 'Paused', 'ContractPaused', 'NotPaused', 'Unauthorized',
    'InsufficientBalance', 'InsufficientAllowance', 'AlreadyInitialized',
    'NotInitialized', 'ReentrantCall', 'NativeTransferFailed', 'UnknownContract',
    'compute_tax', 'compute_transfer_moves', 'is_tax_exempt',
    'is_zero_address', 'derive_address',
    'ZERO_ADDRESS', 'TAX_RATE_SCALE', 'DEFAULT_MAX_TAX_RATE', 'DEFAULT_DECIMALS',
    'MAX_ALLOWANCE',
    # Chain
    'Chain', 'Contract', 'atomic',
    # Guards
    'Ownable', 'Pausable', 'ReentrancyGuard',
    'only_owner', 'when_not_paused', 'non_reentrant',
    # Ledger
    'TaxToken', 'requires_initialized',
    # Factory
    'TokenFactory',
]

__version__ = '1.0.0'
