"""
token.py - Transfer-Tax Ledger

TaxToken is one ledger instance for a single fungible asset. Every transfer
diverts transfer_tax_rate / TAX_RATE_SCALE of its value to the tax
beneficiary unless one of the exemption rules applies.

Key responsibilities:
    - Stores balances, allowances and total supply (Python ints, unbounded)
    - Routes every balance change (transfer, transfer_from, mint, burn)
      through compute_transfer_moves(), so the tax split cannot be bypassed
    - Governs the tax rate, the beneficiary and the exemption sets (owner only)
    - Initializes exactly once; templates are cloned, never initialized

All mutating operations take the calling account first and run atomically.
"""

from __future__ import annotations
from functools import wraps
from typing import Any, Dict, List, Set, Tuple

from .access import Ownable, only_owner
from .chain import Chain, Contract, atomic
from .core import (
    Address, Balances, Move,
    ZERO_ADDRESS, DEFAULT_DECIMALS, DEFAULT_MAX_TAX_RATE, MAX_ALLOWANCE, TAX_RATE_SCALE,
    AlreadyInitialized, InsufficientAllowance, InsufficientBalance, InvalidRate,
    NotInitialized, ZeroAddress, ZeroAmount,
    compute_transfer_moves, is_zero_address, short,
)


def requires_initialized(method):
    """Reject operations on an instance whose initialize() has not run."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        if not self._initialized:
            raise NotInitialized(
                f"{method.__name__} called on uninitialized ledger {short(self.address)}"
            )
        return method(self, *args, **kwargs)
    return wrapper


def _check_amount(amount: int, label: str = "amount") -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise ValueError(f"{label} must be int, got {type(amount)}")
    if amount < 0:
        raise ValueError(f"{label} cannot be negative, got {amount}")


class TaxToken(Ownable, Contract):
    """
    Fungible-asset ledger that taxes transfers in favour of a beneficiary.

    A TaxToken is constructed uninitialized. Constructing one directly gives a
    template; TokenFactory clones the template and initializes each clone.
    max_tax_rate is fixed at construction and inherited by clones.

    Example:
        chain = Chain("main", verbose=False)
        token = TaxToken(chain, deployer="0xadmin")
        token.initialize("0xadmin", "Taxed", "TAX", 10_000, 500, "0xbene", "0xadmin")
        token.transfer("0xadmin", "0xalice", 1000)       # owner is exempt: alice +1000
        token.transfer("0xalice", "0xbob", 1000)         # bob +950, 0xbene +50
    """

    _STATE_FIELDS = (
        '_initialized', '_name', '_symbol',
        '_transfer_tax_rate', '_tax_beneficiary', '_owner',
        '_no_tax_sender', '_no_tax_recipient',
        '_balances', '_allowances', '_total_supply',
    )

    def __init__(
        self,
        chain: Chain,
        deployer: Address,
        max_tax_rate: int = DEFAULT_MAX_TAX_RATE,
        decimals: int = DEFAULT_DECIMALS,
    ):
        """
        Deploy an uninitialized ledger.

        Args:
            chain: Chain hosting the ledger
            deployer: Account (or factory) deploying it
            max_tax_rate: Ceiling for transfer_tax_rate, out of TAX_RATE_SCALE
            decimals: Display precision, informational only
        """
        if not isinstance(max_tax_rate, int) or not 0 <= max_tax_rate <= TAX_RATE_SCALE:
            raise ValueError(
                f"max_tax_rate must be an int in [0, {TAX_RATE_SCALE}], got {max_tax_rate}"
            )
        self._max_tax_rate = max_tax_rate
        self._decimals = decimals

        self._initialized = False
        self._name = ""
        self._symbol = ""
        self._transfer_tax_rate = 0
        self._tax_beneficiary = ZERO_ADDRESS
        self._owner = ZERO_ADDRESS
        self._no_tax_sender: Set[Address] = set()
        self._no_tax_recipient: Set[Address] = set()
        self._balances: Balances = {}
        self._allowances: Dict[Tuple[Address, Address], int] = {}
        self._total_supply = 0

        super().__init__(chain, deployer)

    def clone(self, deployer: Address) -> TaxToken:
        """
        Deploy a fresh, uninitialized ledger with this one's logic and ceiling.

        The clone shares no mutable state with this instance.
        """
        return type(self)(
            self.chain, deployer,
            max_tax_rate=self._max_tax_rate,
            decimals=self._decimals,
        )

    # ========================================================================
    # TokenView PROTOCOL AND READ ACCESSORS
    # ========================================================================

    @property
    def name(self) -> str:
        return self._name

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def decimals(self) -> int:
        return self._decimals

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def transfer_tax_rate(self) -> int:
        return self._transfer_tax_rate

    @property
    def tax_beneficiary(self) -> Address:
        return self._tax_beneficiary

    @property
    def max_tax_rate(self) -> int:
        return self._max_tax_rate

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def balance_of(self, account: Address) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: Address, spender: Address) -> int:
        return self._allowances.get((owner, spender), 0)

    def is_no_tax_sender(self, account: Address) -> bool:
        return account in self._no_tax_sender

    def is_no_tax_recipient(self, account: Address) -> bool:
        return account in self._no_tax_recipient

    def get_positions(self) -> Balances:
        """Return all non-zero balances. The result is a copy."""
        return {account: amount for account, amount in self._balances.items() if amount}

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Check that the balances add up to the total supply.

        Transfers only split value between accounts, so the sum of balances
        can only change through mint and burn, which move total_supply with it.

        Returns:
            Dict with keys 'valid', 'total_supply', 'sum_of_balances', 'difference'

        Example:
            result = token.verify_conservation()
            assert result['valid'], f"Conservation violated: {result}"
        """
        held = sum(self._balances[a] for a in sorted(self._balances))
        return {
            'valid': held == self._total_supply,
            'total_supply': self._total_supply,
            'sum_of_balances': held,
            'difference': held - self._total_supply,
        }

    # ========================================================================
    # INITIALIZATION
    # ========================================================================

    @atomic
    def initialize(
        self,
        caller: Address,
        name: str,
        symbol: str,
        initial_supply: int,
        transfer_tax_rate: int,
        tax_beneficiary: Address,
        owner: Address,
    ) -> None:
        """
        Set up the instance. Callable exactly once.

        The owner becomes exempt as sender and recipient and receives the
        whole initial supply. The beneficiary gets no exemption here; only
        update_tax_beneficiary() grants one.

        Raises:
            AlreadyInitialized: On any call after the first successful one
            InvalidRate: If transfer_tax_rate is outside [0, max_tax_rate]
            ZeroAddress: If tax_beneficiary or owner is the null account
        """
        if self._initialized:
            raise AlreadyInitialized(f"ledger {short(self.address)} is already initialized")
        self._check_rate(transfer_tax_rate)
        if is_zero_address(tax_beneficiary):
            raise ZeroAddress("tax beneficiary cannot be the null account")
        if is_zero_address(owner):
            raise ZeroAddress("owner cannot be the null account")
        _check_amount(initial_supply, "initial_supply")

        self._initialized = True
        self._name = name
        self._symbol = symbol
        self._transfer_ownership(owner)

        self._set_transfer_tax_rate(transfer_tax_rate)
        self._tax_beneficiary = tax_beneficiary
        self._emit(
            "TaxBeneficiaryUpdated",
            previous_beneficiary=ZERO_ADDRESS, new_beneficiary=tax_beneficiary,
        )
        self._set_no_tax_sender(owner, True)
        self._set_no_tax_recipient(owner, True)

        if initial_supply:
            self._update(ZERO_ADDRESS, owner, initial_supply)
        self._emit("Initialized", name=name, symbol=symbol, initial_supply=initial_supply)

    # ========================================================================
    # BALANCE MUTATION
    # ========================================================================

    def _apply_moves(self, moves: List[Move]) -> None:
        for move in moves:
            if move.is_mint:
                self._total_supply += move.quantity
            else:
                balance = self.balance_of(move.source)
                if balance < move.quantity:
                    raise InsufficientBalance(
                        f"{short(move.source)} balance {balance} < {move.quantity}"
                    )
                self._set_balance(move.source, balance - move.quantity)

            if move.is_burn:
                self._total_supply -= move.quantity
            else:
                self._set_balance(move.dest, self.balance_of(move.dest) + move.quantity)

            self._emit("Transfer", source=move.source, dest=move.dest, value=move.quantity)

    def _set_balance(self, account: Address, amount: int) -> None:
        # Zero balances are dropped to keep get_positions() compact.
        if amount:
            self._balances[account] = amount
        else:
            self._balances.pop(account, None)

    def _update(self, source: Address, dest: Address, value: int) -> List[Move]:
        """Every balance change goes through here and through the tax rule."""
        moves = compute_transfer_moves(self, source, dest, value)
        self._apply_moves(moves)
        return moves

    def _transfer(self, source: Address, dest: Address, value: int) -> List[Move]:
        if is_zero_address(source):
            raise ZeroAddress("cannot transfer from the null account")
        if is_zero_address(dest):
            raise ZeroAddress("cannot transfer to the null account")
        _check_amount(value, "value")
        return self._update(source, dest, value)

    @requires_initialized
    @atomic
    def transfer(self, caller: Address, to: Address, value: int) -> bool:
        """
        Transfer `value` from the caller, taxing it unless an exemption applies.

        The caller is always debited exactly `value`. When taxed, the recipient
        gets value - floor(value * rate / 10_000) and the beneficiary the rest.

        Raises:
            InsufficientBalance: If the caller holds less than `value`
            ZeroAddress: If `to` is the null account
        """
        self._transfer(caller, to, value)
        return True

    @requires_initialized
    @atomic
    def transfer_from(self, caller: Address, source: Address, to: Address, value: int) -> bool:
        """Transfer on behalf of `source`, spending the caller's allowance. Taxed like transfer()."""
        self._spend_allowance(source, caller, value)
        self._transfer(source, to, value)
        return True

    @requires_initialized
    @atomic
    @only_owner
    def mint(self, caller: Address, to: Address, amount: int) -> None:
        """Create `amount` new units for `to`. Never taxed."""
        if is_zero_address(to):
            raise ZeroAddress("cannot mint to the null account")
        _check_amount(amount)
        if amount == 0:
            raise ZeroAmount("cannot mint zero")
        self._update(ZERO_ADDRESS, to, amount)

    @requires_initialized
    @atomic
    def burn(self, caller: Address, amount: int) -> None:
        """Destroy `amount` of the caller's own units. Never taxed."""
        _check_amount(amount)
        if amount == 0:
            raise ZeroAmount("cannot burn zero")
        if is_zero_address(caller):
            raise ZeroAddress("cannot burn from the null account")
        self._update(caller, ZERO_ADDRESS, amount)

    @requires_initialized
    @atomic
    def burn_from(self, caller: Address, account: Address, amount: int) -> None:
        """Destroy `amount` of `account`'s units, spending the caller's allowance."""
        _check_amount(amount)
        if amount == 0:
            raise ZeroAmount("cannot burn zero")
        if is_zero_address(account):
            raise ZeroAddress("cannot burn from the null account")
        self._spend_allowance(account, caller, amount)
        self._update(account, ZERO_ADDRESS, amount)

    # ========================================================================
    # ALLOWANCES
    # ========================================================================

    def _approve(self, owner: Address, spender: Address, value: int) -> None:
        if is_zero_address(owner) or is_zero_address(spender):
            raise ZeroAddress("approval endpoints cannot be the null account")
        _check_amount(value, "value")
        if value:
            self._allowances[(owner, spender)] = value
        else:
            self._allowances.pop((owner, spender), None)
        self._emit("Approval", owner=owner, spender=spender, value=value)

    def _spend_allowance(self, owner: Address, spender: Address, value: int) -> None:
        current = self.allowance(owner, spender)
        if current == MAX_ALLOWANCE:
            return
        if current < value:
            raise InsufficientAllowance(
                f"{short(spender)} allowance {current} from {short(owner)} < {value}"
            )
        if current - value:
            self._allowances[(owner, spender)] = current - value
        else:
            self._allowances.pop((owner, spender), None)

    @requires_initialized
    @atomic
    def approve(self, caller: Address, spender: Address, value: int) -> bool:
        self._approve(caller, spender, value)
        return True

    @requires_initialized
    @atomic
    def increase_allowance(self, caller: Address, spender: Address, added_value: int) -> bool:
        _check_amount(added_value, "added_value")
        self._approve(caller, spender, self.allowance(caller, spender) + added_value)
        return True

    @requires_initialized
    @atomic
    def decrease_allowance(self, caller: Address, spender: Address, subtracted_value: int) -> bool:
        _check_amount(subtracted_value, "subtracted_value")
        current = self.allowance(caller, spender)
        if current < subtracted_value:
            raise InsufficientAllowance(
                f"cannot decrease allowance {current} by {subtracted_value}"
            )
        self._approve(caller, spender, current - subtracted_value)
        return True

    # ========================================================================
    # TAX POLICY (owner only)
    # ========================================================================

    def _check_rate(self, rate: int) -> None:
        if not isinstance(rate, int) or isinstance(rate, bool) or not 0 <= rate <= self._max_tax_rate:
            raise InvalidRate(f"tax rate {rate} outside [0, {self._max_tax_rate}]")

    def _set_transfer_tax_rate(self, new_rate: int) -> None:
        previous = self._transfer_tax_rate
        self._transfer_tax_rate = new_rate
        self._emit("TransferTaxRateUpdated", previous_rate=previous, new_rate=new_rate)

    def _set_tax_beneficiary(self, new_beneficiary: Address) -> None:
        previous = self._tax_beneficiary
        self._set_no_tax_sender(previous, False)
        self._set_no_tax_recipient(previous, False)
        self._tax_beneficiary = new_beneficiary
        self._set_no_tax_sender(new_beneficiary, True)
        self._set_no_tax_recipient(new_beneficiary, True)
        self._emit(
            "TaxBeneficiaryUpdated",
            previous_beneficiary=previous, new_beneficiary=new_beneficiary,
        )

    def _set_no_tax_sender(self, account: Address, value: bool) -> None:
        if value:
            self._no_tax_sender.add(account)
        else:
            self._no_tax_sender.discard(account)
        self._emit("NoTaxSenderAddrSet", account=account, value=value)

    def _set_no_tax_recipient(self, account: Address, value: bool) -> None:
        if value:
            self._no_tax_recipient.add(account)
        else:
            self._no_tax_recipient.discard(account)
        self._emit("NoTaxRecipientAddrSet", account=account, value=value)

    @requires_initialized
    @atomic
    @only_owner
    def update_transfer_tax_rate(self, caller: Address, new_rate: int) -> None:
        """
        Replace the tax rate.

        Raises:
            InvalidRate: If new_rate > max_tax_rate (the ceiling itself never changes)
        """
        self._check_rate(new_rate)
        self._set_transfer_tax_rate(new_rate)

    @requires_initialized
    @atomic
    @only_owner
    def update_tax_beneficiary(self, caller: Address, new_beneficiary: Address) -> None:
        """
        Move the beneficiary role to another account.

        The previous beneficiary loses both exemptions and the new one gains
        them, so the beneficiary never taxes itself when paying funds out.
        """
        if is_zero_address(new_beneficiary):
            raise ZeroAddress("tax beneficiary cannot be the null account")
        self._set_tax_beneficiary(new_beneficiary)

    @requires_initialized
    @atomic
    @only_owner
    def set_no_tax_sender_addr(self, caller: Address, account: Address, value: bool) -> None:
        if is_zero_address(account):
            raise ZeroAddress("cannot exempt the null account")
        self._set_no_tax_sender(account, bool(value))

    @requires_initialized
    @atomic
    @only_owner
    def set_no_tax_recipient_addr(self, caller: Address, account: Address, value: bool) -> None:
        if is_zero_address(account):
            raise ZeroAddress("cannot exempt the null account")
        self._set_no_tax_recipient(account, bool(value))

    # Ownership changes need an initialized instance like every other operation.
    transfer_ownership = requires_initialized(Ownable.transfer_ownership)
    renounce_ownership = requires_initialized(Ownable.renounce_ownership)

    def __repr__(self) -> str:
        if not self._initialized:
            return f"TaxToken(uninitialized @ {short(self.address)})"
        return (
            f"TaxToken({self._symbol} @ {short(self.address)}, "
            f"supply={self._total_supply}, rate={self._transfer_tax_rate}/{TAX_RATE_SCALE})"
        )
