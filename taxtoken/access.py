"""
access.py - Ownership, Pause and Reentrancy Guards

Reusable guards shared by TaxToken and TokenFactory:
1. Ownable - a single owner capability, transferable and renounceable
2. Pausable - a two-state gate (Paused <-> Active)
3. ReentrancyGuard - a single-entry marker for operations that call out

Guards are mixins for Contract subclasses. The decorators expect the
guarded method to take the calling account as its first argument.
"""

from __future__ import annotations
from functools import wraps

from .chain import atomic
from .core import (
    Address, ZERO_ADDRESS,
    Paused, NotPaused, ReentrantCall, Unauthorized, ZeroAddress,
    is_zero_address, short,
)


# ============================================================================
# DECORATORS
# ============================================================================

def only_owner(method):
    """Reject callers that do not hold the owner capability."""
    @wraps(method)
    def wrapper(self, caller: Address, *args, **kwargs):
        self._check_owner(caller)
        return method(self, caller, *args, **kwargs)
    return wrapper


def when_not_paused(method):
    """Reject calls while the contract is paused."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._paused:
            raise Paused(f"{method.__name__} is disabled while paused")
        return method(self, *args, **kwargs)
    return wrapper


def non_reentrant(method):
    """
    Reject a call that enters any guarded method of the same contract while
    another guarded call is still running. The marker is released on every exit.
    """
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._entered:
            raise ReentrantCall(f"reentrant call to {method.__name__}")
        self._entered = True
        try:
            return method(self, *args, **kwargs)
        finally:
            self._entered = False
    return wrapper


# ============================================================================
# MIXINS
# ============================================================================

class Ownable:
    """Owner capability held by exactly one account at a time."""

    _owner: Address = ZERO_ADDRESS

    @property
    def owner(self) -> Address:
        return self._owner

    def _check_owner(self, caller: Address) -> None:
        if is_zero_address(caller) or caller != self._owner:
            raise Unauthorized(f"{short(caller)} is not the owner")

    def _transfer_ownership(self, new_owner: Address) -> None:
        previous = self._owner
        self._owner = new_owner
        self._emit("OwnershipTransferred", previous_owner=previous, new_owner=new_owner)

    @atomic
    @only_owner
    def transfer_ownership(self, caller: Address, new_owner: Address) -> None:
        """Hand the owner capability to another account."""
        if is_zero_address(new_owner):
            raise ZeroAddress("new owner cannot be the null account")
        self._transfer_ownership(new_owner)

    @atomic
    @only_owner
    def renounce_ownership(self, caller: Address) -> None:
        """Give up the owner capability for good; owner-only operations become unreachable."""
        self._transfer_ownership(ZERO_ADDRESS)


class Pausable:
    """Two-state gate. Transitions are only made through _pause() and _unpause()."""

    _paused: bool = False

    @property
    def paused(self) -> bool:
        return self._paused

    def _pause(self, account: Address) -> None:
        if self._paused:
            raise Paused("already paused")
        self._paused = True
        self._emit("Paused", account=account)

    def _unpause(self, account: Address) -> None:
        if not self._paused:
            raise NotPaused("not paused")
        self._paused = False
        self._emit("Unpaused", account=account)


class ReentrancyGuard:
    _entered: bool = False
