"""
Core types and pure functions for the transfer-tax ledger.

This module provides the foundational data structures and protocols:
1. Protocols: TokenView for read-only access to a ledger instance
2. Immutable data structures: Move, Event
3. Exceptions: LedgerError and domain-specific error types
4. Type aliases: Address, Balances, EventArgs
5. Tax rules: Pure functions that split a transfer into moves
6. Address helpers: null-account checks and deterministic derivation

All functions in this module are pure and operate on read-only views.
No function can mutate ledger state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
import hashlib
from typing import (
    Dict, List, Optional, Any, Protocol, Tuple, Mapping, runtime_checkable
)


# ============================================================================
# CONSTANTS
# ============================================================================

# The null account. Transfers from it are mints, transfers to it are burns.
ZERO_ADDRESS = "0x" + "0" * 40

# Tax rates are integers out of this scale (hundredths of a percent).
TAX_RATE_SCALE = 10_000

# Ceiling applied to templates constructed without an explicit one (10%).
DEFAULT_MAX_TAX_RATE = 1_000

DEFAULT_DECIMALS = 18

# An allowance of this size is treated as infinite and never decremented.
MAX_ALLOWANCE = 2 ** 256 - 1


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Accounts and contracts are both identified by an opaque hex string.
Address = str

# Mapping from account to the quantity it holds in one ledger instance.
Balances = Dict[Address, int]

# Named arguments carried by a notification.
EventArgs = Mapping[str, Any]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class TokenView(Protocol):
    """
    Read-only interface to a ledger instance.

    Tax rules and tests use this protocol to query balances and policy
    without the ability to modify them. TaxToken implements it; FakeTokenView
    in the test suite provides a plain-dict implementation.
    """

    @property
    def transfer_tax_rate(self) -> int:
        ...

    @property
    def tax_beneficiary(self) -> Address:
        ...

    def balance_of(self, account: Address) -> int:
        """Return the balance of an account (0 if it has never held any)."""
        ...

    def is_no_tax_sender(self, account: Address) -> bool:
        ...

    def is_no_tax_recipient(self, account: Address) -> bool:
        ...


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger and factory errors."""
    pass


class ZeroAddress(LedgerError):
    """Raised when a required account parameter is the null account."""
    pass


class ZeroAmount(LedgerError):
    """Raised when a required amount parameter is zero."""
    pass


class InvalidRate(LedgerError):
    """Raised when a proposed tax rate exceeds the instance's fixed ceiling."""
    pass


TaxRateExceedsMax = InvalidRate


class IncorrectFee(LedgerError):
    """Raised when the payment attached to a creation call is not exactly the fee."""
    pass


class Paused(LedgerError):
    """Raised when a gated operation is attempted while the factory is paused."""
    pass


ContractPaused = Paused


class NotPaused(LedgerError):
    """Raised when unpausing a factory that is already active."""
    pass


class Unauthorized(LedgerError):
    """Raised when the caller lacks the owner capability an operation requires."""
    pass


class InsufficientBalance(LedgerError):
    """Raised when a debit exceeds the account's current balance."""
    pass


class InsufficientAllowance(LedgerError):
    """Raised when a delegated debit exceeds the spender's allowance."""
    pass


class AlreadyInitialized(LedgerError):
    """Raised on a second initialization attempt."""
    pass


class NotInitialized(LedgerError):
    """Raised when operating on a ledger instance that was never initialized."""
    pass


class ReentrantCall(LedgerError):
    """Raised when a guarded operation is re-entered before it completes."""
    pass


class NativeTransferFailed(LedgerError):
    """Raised when the recipient of a native-currency transfer rejects it."""
    pass


class UnknownContract(LedgerError):
    """Raised when an address does not host a deployed contract."""
    pass


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single balance move between two accounts of one ledger instance.

    Attributes:
        quantity: Amount moved (a non-negative int).
        source: Account debited. ZERO_ADDRESS means the quantity is minted.
        dest: Account credited. ZERO_ADDRESS means the quantity is burned.
        reason: Short tag for the audit trail ("transfer", "tax", "mint", ...).
    """
    quantity: int
    source: Address
    dest: Address
    reason: str

    def __post_init__(self):
        if not isinstance(self.quantity, int) or isinstance(self.quantity, bool):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity)}")
        if self.quantity < 0:
            raise ValueError(f"Move quantity cannot be negative, got {self.quantity}")
        if not self.source or not self.dest:
            raise ValueError("Move source and dest cannot be empty")
        if self.source == ZERO_ADDRESS and self.dest == ZERO_ADDRESS:
            raise ValueError("Move cannot go from the null account to itself")
        if not self.reason or not self.reason.strip():
            raise ValueError("Move reason cannot be empty")

    @property
    def is_mint(self) -> bool:
        return self.source == ZERO_ADDRESS

    @property
    def is_burn(self) -> bool:
        return self.dest == ZERO_ADDRESS

    def __repr__(self) -> str:
        return f"Move({self.quantity}: {short(self.source)}→{short(self.dest)} [{self.reason}])"


@dataclass(frozen=True, slots=True)
class Event:
    """
    An emitted notification - the only audit trail of the system.

    Attributes:
        sequence: Monotonic position in the chain's event log.
        emitter: Address of the contract that emitted it.
        name: Event name (e.g. "Transfer", "TokenCreated").
        args: Named arguments of the event.
        timestamp: Chain time at emission.
    """
    sequence: int
    emitter: Address
    name: str
    args: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[datetime] = None

    def __getitem__(self, key: str) -> Any:
        return self.args[key]

    def __repr__(self) -> str:
        rendered = ", ".join(
            f"{k}={short(v) if isinstance(v, str) else v!r}" for k, v in self.args.items()
        )
        return f"Event#{self.sequence} {self.name}({rendered}) @ {short(self.emitter)}"


# ============================================================================
# ADDRESS HELPERS
# ============================================================================

def is_zero_address(address: Optional[Address]) -> bool:
    """Return True for the null account (None and "" are treated as null too)."""
    return not address or address == ZERO_ADDRESS


def derive_address(deployer: Address, nonce: int) -> Address:
    """
    Derive a contract address from its deployer and the deployer's nonce.

    Same inputs always produce the same address, so deployments replay
    identically across chains built the same way.
    """
    digest = hashlib.sha256(f"{deployer.lower()}:{nonce}".encode()).hexdigest()
    return "0x" + digest[-40:]


def short(address: Address) -> str:
    """Abbreviate a hex address for printing; other strings pass through."""
    if isinstance(address, str) and address.startswith("0x") and len(address) == 42:
        return f"{address[:6]}…{address[-4:]}"
    return address


# ============================================================================
# TAX RULES
# ============================================================================

def compute_tax(value: int, rate: int, scale: int = TAX_RATE_SCALE) -> Tuple[int, int]:
    """
    Split a transfer value into (tax_amount, net_amount).

    Uses floor division, so very small values can round the tax down to 0.

    Example:
        compute_tax(1000, 500)  # (50, 950)
        compute_tax(19, 500)    # (0, 19)
    """
    if value < 0:
        raise ValueError(f"value cannot be negative, got {value}")
    tax_amount = value * rate // scale
    return tax_amount, value - tax_amount


def is_tax_exempt(view: TokenView, sender: Address, recipient: Address) -> bool:
    """
    Return True if a transfer between these endpoints skips the tax split.

    Exempt when the sender is a no-tax sender, the recipient is a no-tax
    recipient, or either endpoint is the null account (mint or burn).
    """
    if is_zero_address(sender) or is_zero_address(recipient):
        return True
    return view.is_no_tax_sender(sender) or view.is_no_tax_recipient(recipient)


def compute_transfer_moves(
    view: TokenView,
    sender: Address,
    recipient: Address,
    value: int,
) -> List[Move]:
    """
    Compute the balance moves for a transfer of `value` from sender to recipient.

    Returns one move of the full value when the transfer is untaxed, otherwise
    two moves: the net amount to the recipient and the tax to the beneficiary.
    The moves always debit exactly `value` from the sender.

    Raises:
        InsufficientBalance: If the sender holds less than `value`.
    """
    if not is_zero_address(sender):
        balance = view.balance_of(sender)
        if balance < value:
            raise InsufficientBalance(
                f"{short(sender)} balance {balance} < {value}"
            )

    tax_amount, net_amount = compute_tax(value, view.transfer_tax_rate)
    if tax_amount == 0 or is_tax_exempt(view, sender, recipient):
        return [Move(value, sender, recipient, "transfer")]

    return [
        Move(net_amount, sender, recipient, "transfer"),
        Move(tax_amount, sender, view.tax_beneficiary, "tax"),
    ]
