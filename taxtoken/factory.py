"""
factory.py - TaxToken Factory

TokenFactory deploys independent TaxToken instances for a fixed creation fee
and records each one in a sequential registry.

Lifecycle:
    Paused --unpause()--> Active --pause()--> Paused
    The factory starts Paused; create_token() only works while Active.

Each created ledger is a clone of the template: same logic and tax ceiling,
its own state, owned by whatever owner was passed in. The factory keeps only
the address.
"""

from __future__ import annotations
from typing import Dict

from .access import Ownable, Pausable, ReentrancyGuard, non_reentrant, only_owner, when_not_paused
from .chain import Chain, Contract, atomic
from .core import (
    Address, ZERO_ADDRESS,
    IncorrectFee, UnknownContract, ZeroAddress,
    is_zero_address, short,
)
from .token import TaxToken


class TokenFactory(Ownable, Pausable, ReentrancyGuard, Contract):
    """
    Creates TaxToken ledgers on demand and keeps a registry of them.

    Registry ids run 1..token_counter with no gaps. Collected fees stay on
    the factory until the owner sends them to the treasury.

    Example:
        factory = TokenFactory(chain, "0xadmin", template, treasury="0xtreasury",
                               creation_fee=10**16)
        factory.unpause("0xadmin")
        token_address = factory.create_token(
            "0xalice", "Taxed", "TAX", 10**24, 500, "0xbene", "0xalice", value=10**16,
        )
    """

    _STATE_FIELDS = (
        '_owner', '_paused',
        '_treasury', '_creation_fee', '_token_counter', '_registry',
    )

    def __init__(
        self,
        chain: Chain,
        deployer: Address,
        template: TaxToken,
        treasury: Address,
        creation_fee: int = 0,
    ):
        """
        Deploy a paused factory owned by its deployer.

        Args:
            chain: Chain hosting the factory and the ledgers it creates
            deployer: Account deploying the factory; becomes its owner
            template: Uninitialized TaxToken every new ledger is cloned from
            treasury: Account that receives collected fees and tokens
            creation_fee: Exact native payment create_token() requires
        """
        if not isinstance(template, TaxToken):
            raise TypeError(f"template must be a TaxToken, got {type(template).__name__}")
        if is_zero_address(treasury):
            raise ZeroAddress("treasury cannot be the null account")
        if not isinstance(creation_fee, int) or isinstance(creation_fee, bool) or creation_fee < 0:
            raise ValueError(f"creation_fee must be a non-negative int, got {creation_fee!r}")

        self._template = template
        self._owner = ZERO_ADDRESS
        self._paused = True
        self._treasury = treasury
        self._creation_fee = creation_fee
        self._token_counter = 0
        self._registry: Dict[int, Address] = {}

        super().__init__(chain, deployer)
        self._transfer_ownership(deployer)

    # ========================================================================
    # READ ACCESSORS
    # ========================================================================

    @property
    def template(self) -> TaxToken:
        return self._template

    @property
    def treasury(self) -> Address:
        return self._treasury

    @property
    def creation_fee(self) -> int:
        return self._creation_fee

    @property
    def token_counter(self) -> int:
        return self._token_counter

    def get_token_by_id(self, token_id: int) -> Address:
        """Return the ledger created with this id, or ZERO_ADDRESS if none was."""
        return self._registry.get(token_id, ZERO_ADDRESS)

    def list_tokens(self) -> Dict[int, Address]:
        """Return the registry in creation order. The result is a copy."""
        return {i: self._registry[i] for i in sorted(self._registry)}

    # ========================================================================
    # CREATION
    # ========================================================================

    @atomic
    @non_reentrant
    @when_not_paused
    def create_token(
        self,
        caller: Address,
        name: str,
        symbol: str,
        initial_supply: int,
        transfer_tax_rate: int,
        tax_beneficiary: Address,
        owner: Address,
        value: int = 0,
    ) -> Address:
        """
        Deploy and initialize a new ledger, paying `value` as the creation fee.

        Returns:
            Address of the new ledger

        Raises:
            Paused: While the factory is paused, whatever the payment
            ZeroAddress: If tax_beneficiary or owner is the null account
            IncorrectFee: If value is not exactly creation_fee
            InvalidRate: If the ledger rejects transfer_tax_rate
        """
        if is_zero_address(tax_beneficiary) or is_zero_address(owner):
            raise ZeroAddress("tax beneficiary and owner cannot be the null account")
        if value != self._creation_fee:
            raise IncorrectFee(f"fee is {self._creation_fee}, got {value}")
        if value:
            self.chain.collect_payment(caller, self, value)

        self._token_counter += 1
        token_id = self._token_counter

        token = self._template.clone(self.address)
        token.initialize(
            self.address, name, symbol, initial_supply,
            transfer_tax_rate, tax_beneficiary, owner,
        )
        self._registry[token_id] = token.address

        self._emit("TokenCreated", token=token.address, creator=caller, token_id=token_id)
        return token.address

    # ========================================================================
    # CONFIGURATION (owner only)
    # ========================================================================

    @atomic
    @only_owner
    def set_treasury(self, caller: Address, treasury: Address) -> None:
        if is_zero_address(treasury):
            raise ZeroAddress("treasury cannot be the null account")
        previous = self._treasury
        self._treasury = treasury
        self._emit("TreasuryUpdated", previous_treasury=previous, new_treasury=treasury)

    @atomic
    @only_owner
    def set_creation_fee(self, caller: Address, amount: int) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValueError(f"creation fee must be a non-negative int, got {amount!r}")
        previous = self._creation_fee
        self._creation_fee = amount
        self._emit("CreationFeeUpdated", previous_fee=previous, new_fee=amount)

    @atomic
    @only_owner
    def pause(self, caller: Address) -> None:
        self._pause(caller)

    @atomic
    @only_owner
    def unpause(self, caller: Address) -> None:
        self._unpause(caller)

    # ========================================================================
    # COLLECTION (owner only)
    # ========================================================================

    @atomic
    @non_reentrant
    @only_owner
    def collect_fees(self, caller: Address) -> int:
        """
        Send the factory's whole native balance to the treasury.

        Returns:
            Amount sent

        Raises:
            NativeTransferFailed: If the treasury rejects the payment; nothing changes
        """
        amount = self.chain.native_balance_of(self.address)
        self.chain.transfer_native(self.address, self._treasury, amount)
        self._emit("FeesCollected", treasury=self._treasury, amount=amount)
        return amount

    @atomic
    @non_reentrant
    @only_owner
    def collect_tokens(self, caller: Address, token_address: Address) -> int:
        """
        Sweep the factory's whole balance of a ledger to the treasury.

        The sweep is an ordinary transfer, so that ledger's tax rules apply to it.

        Returns:
            Amount debited from the factory

        Raises:
            ZeroAddress: token_address is the null account
            UnknownContract: nothing, or something other than a ledger, is deployed there
        """
        if is_zero_address(token_address):
            raise ZeroAddress("token cannot be the null account")
        token = self.chain.get_contract(token_address)
        if not isinstance(token, TaxToken):
            raise UnknownContract(f"no ledger deployed at {token_address}")
        amount = token.balance_of(self.address)
        token.transfer(self.address, self._treasury, amount)
        self._emit("TokensCollected", token=token_address, treasury=self._treasury, amount=amount)
        return amount

    def __repr__(self) -> str:
        state = "paused" if self._paused else "active"
        return (
            f"TokenFactory({short(self.address)}, {state}, tokens={self._token_counter}, "
            f"fee={self._creation_fee})"
        )
