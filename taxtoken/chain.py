"""
chain.py - Serializing Execution Environment

The Chain hosts everything that lives outside a single ledger instance:
native-currency balances, the address registry of deployed contracts, and
the event log that forms the audit trail. It is the only place where calls
are made atomic.

Key responsibilities:
    - Deploys contracts at deterministic addresses (deployer + nonce)
    - Moves native currency, invoking the recipient contract's receive hook
    - Records every emitted Event in order
    - Runs each public operation all-or-nothing (snapshot what it touches,
      run, restore on error)
    - Tracks logical time
"""

from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple
import copy

from .core import (
    Address, Event,
    LedgerError, InsufficientBalance, NativeTransferFailed, UnknownContract, ZeroAddress,
    derive_address, is_zero_address, short,
)


class Contract:
    """
    Base class for anything deployed at an address on a Chain.

    Subclasses list their mutable attributes in _STATE_FIELDS; those are the
    attributes captured by snapshot() and put back by restore() when a call
    fails. Immutable configuration does not need to be listed.

    State is captured the first time an atomic scope touches the contract, so
    methods that change _STATE_FIELDS must run under the atomic decorator.
    """

    _STATE_FIELDS: Tuple[str, ...] = ()

    def __init__(self, chain: Chain, deployer: Address):
        self.chain = chain
        self.address: Address = chain.deploy(self, deployer)

    def snapshot(self) -> Dict[str, Any]:
        return {name: copy.deepcopy(getattr(self, name)) for name in self._STATE_FIELDS}

    def restore(self, state: Mapping[str, Any]) -> None:
        # The same snapshot may be restored by several nested scopes.
        for name, value in state.items():
            setattr(self, name, copy.deepcopy(value))

    def receive(self, sender: Address, amount: int) -> None:
        """
        Hook invoked when native currency is sent to this contract.

        Contracts reject native currency unless they override this.
        """
        raise NativeTransferFailed(
            f"{type(self).__name__} at {short(self.address)} does not accept native currency"
        )

    def _emit(self, event: str, **args: Any) -> Event:
        return self.chain.emit(self.address, event, args)


class Chain:
    """
    Execution environment shared by a factory and the ledgers it creates.

    Operations are totally ordered: each public contract operation runs to
    completion inside Chain.atomic() before the next one starts.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own Chain instance.

    Example:
        chain = Chain("main", verbose=False, genesis={"0xalice": 10**18})
        template = TaxToken(chain, deployer="0xadmin")
        factory = TokenFactory(chain, "0xadmin", template, treasury="0xtreasury")
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        test_mode: bool = False,
        genesis: Optional[Mapping[Address, int]] = None,
    ):
        """
        Create a chain.

        Args:
            name: Chain identifier
            initial_time: Starting time (default: 1970-01-01)
            verbose: Print an audit line per event and per rejected call (default: True)
            test_mode: Allow set_native_balance() calls (default: False)
            genesis: Initial native-currency balances
        """
        self.name = name
        self.verbose = verbose
        self._test_mode = test_mode
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self.native_balances: Dict[Address, int] = {}
        self.contracts: Dict[Address, Contract] = {}
        self.nonces: Dict[Address, int] = {}
        self.event_log: List[Event] = []
        # One entry per open atomic scope: address -> (contract, state at first touch)
        self._scopes: List[Dict[Address, Tuple[Contract, Dict[str, Any]]]] = []

        for account, amount in (genesis or {}).items():
            if amount < 0:
                raise ValueError(f"genesis balance for {account} cannot be negative")
            self.native_balances[account] = amount

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        return self._current_time

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the chain's logical clock. Time can only move forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # CONTRACTS
    # ========================================================================

    def deploy(self, contract: Contract, deployer: Address) -> Address:
        """
        Register a contract at the next address of its deployer.

        Returns:
            The new contract address
        """
        if is_zero_address(deployer):
            raise ZeroAddress("deployer cannot be the null account")
        nonce = self.nonces.get(deployer, 0)
        address = derive_address(deployer, nonce)
        self.nonces[deployer] = nonce + 1
        self.contracts[address] = contract
        if self.verbose:
            print(f"📝 Deployed: {type(contract).__name__} at {short(address)} by {short(deployer)}")
        return address

    def get_contract(self, address: Address) -> Contract:
        if address not in self.contracts:
            raise UnknownContract(f"No contract deployed at {address}")
        return self.contracts[address]

    def is_contract(self, address: Address) -> bool:
        return address in self.contracts

    # ========================================================================
    # NATIVE CURRENCY
    # ========================================================================

    def native_balance_of(self, account: Address) -> int:
        return self.native_balances.get(account, 0)

    def set_native_balance(self, account: Address, amount: int) -> None:
        """
        Set an account's native balance directly.

        WARNING: Only available in test mode; it creates value from nothing.

        Raises:
            LedgerError: If called when test_mode is False
        """
        if not self._test_mode:
            raise LedgerError(
                "set_native_balance() is disabled in production mode. "
                "Pass genesis balances to Chain() instead. "
                "Set test_mode=True when creating Chain for testing."
            )
        if amount < 0:
            raise ValueError(f"native balance cannot be negative, got {amount}")
        self.native_balances[account] = amount

    def _debit_native(self, source: Address, dest: Address, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"amount cannot be negative, got {amount}")
        if is_zero_address(dest):
            raise ZeroAddress("cannot send native currency to the null account")
        balance = self.native_balance_of(source)
        if balance < amount:
            raise InsufficientBalance(
                f"{short(source)} native balance {balance} < {amount}"
            )
        self.native_balances[source] = balance - amount
        self.native_balances[dest] = self.native_balance_of(dest) + amount

    def collect_payment(self, payer: Address, contract: Contract, amount: int) -> None:
        """Move value attached to a call from the caller to the called contract."""
        with self.atomic():
            self._debit_native(payer, contract.address, amount)

    def transfer_native(self, source: Address, dest: Address, amount: int) -> None:
        """
        Send native currency, running the recipient's receive hook if it is a contract.

        Raises:
            NativeTransferFailed: If the recipient's receive hook rejects the transfer
        """
        with self.atomic():
            self._debit_native(source, dest, amount)
            recipient = self.contracts.get(dest)
            if recipient is not None:
                self.touch(recipient)
                try:
                    recipient.receive(source, amount)
                except NativeTransferFailed:
                    raise
                except LedgerError as e:
                    raise NativeTransferFailed(
                        f"{short(dest)} rejected {amount} from {short(source)}: {e}"
                    ) from e

    # ========================================================================
    # EVENTS
    # ========================================================================

    def emit(self, emitter: Address, name: str, args: Mapping[str, Any]) -> Event:
        event = Event(
            sequence=len(self.event_log),
            emitter=emitter,
            name=name,
            args=dict(args),
            timestamp=self._current_time,
        )
        self.event_log.append(event)
        if self.verbose:
            print(f"✓ {event!r}")
        return event

    def events(self, name: Optional[str] = None, emitter: Optional[Address] = None) -> List[Event]:
        """Return logged events, optionally filtered by name and emitter."""
        return [
            e for e in self.event_log
            if (name is None or e.name == name)
            and (emitter is None or e.emitter == emitter)
        ]

    # ========================================================================
    # ATOMICITY
    # ========================================================================

    def touch(self, contract: Contract) -> None:
        """
        Record a contract's state in every open scope that has not seen it yet.

        Only contracts a call actually reaches are captured; state at first
        touch equals state at scope entry because every change runs under a
        scope that touched the contract first.
        """
        if not self._scopes or contract.address in self._scopes[-1]:
            return
        state = contract.snapshot()
        for scope in self._scopes:
            scope.setdefault(contract.address, (contract, state))

    def _snapshot(self) -> Dict[str, Any]:
        return {
            'native_balances': dict(self.native_balances),
            'contract_count': len(self.contracts),
            'nonces': dict(self.nonces),
            'event_count': len(self.event_log),
        }

    def _restore(
        self,
        snap: Dict[str, Any],
        touched: Mapping[Address, Tuple[Contract, Dict[str, Any]]],
    ) -> None:
        self.native_balances = snap['native_balances']
        # Contracts are only ever appended, so the ones deployed in scope are at the end.
        for address in list(self.contracts)[snap['contract_count']:]:
            del self.contracts[address]
        self.nonces = snap['nonces']
        del self.event_log[snap['event_count']:]
        for contract, state in touched.values():
            contract.restore(state)

    @contextmanager
    def atomic(self, contract: Optional[Contract] = None) -> Iterator[None]:
        """
        Run a block all-or-nothing.

        Every level keeps its own record, so a nested call that fails is
        undone even if the outer call handles the error and carries on.

        Args:
            contract: Contract the block is about to change, touched on entry
        """
        snap = self._snapshot()
        self._scopes.append({})
        try:
            if contract is not None:
                self.touch(contract)
            yield
        except Exception as e:
            self._restore(snap, self._scopes[-1])
            if self.verbose and len(self._scopes) == 1:
                print(f"✗ REJECTED: {type(e).__name__}: {e}")
            raise
        finally:
            self._scopes.pop()


def atomic(method):
    """Decorator running a Contract method inside its chain's atomic block."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.chain.atomic(self):
            return method(self, *args, **kwargs)
    return wrapper
