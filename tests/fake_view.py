"""
fake_view.py - Test Helper for TokenView

Provides a minimal TokenView implementation for testing the pure tax rules
without deploying a TaxToken on a Chain.
"""

from __future__ import annotations
from typing import Dict, Iterable, Optional


class FakeTokenView:
    """
    Minimal TokenView implementation backed by plain dicts and sets.

    Example:
        view = FakeTokenView(
            balances={'alice': 1000},
            rate=500,
            beneficiary='bene',
            no_tax_senders={'owner'},
        )
        compute_transfer_moves(view, 'alice', 'bob', 1000)
        # [Move(950: alice→bob [transfer]), Move(50: alice→bene [tax])]
    """

    def __init__(
        self,
        balances: Dict[str, int],
        rate: int = 0,
        beneficiary: str = "beneficiary",
        no_tax_senders: Optional[Iterable[str]] = None,
        no_tax_recipients: Optional[Iterable[str]] = None,
    ):
        self._balances = balances
        self._rate = rate
        self._beneficiary = beneficiary
        self._no_tax_senders = set(no_tax_senders or ())
        self._no_tax_recipients = set(no_tax_recipients or ())

    @property
    def transfer_tax_rate(self) -> int:
        return self._rate

    @property
    def tax_beneficiary(self) -> str:
        return self._beneficiary

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def is_no_tax_sender(self, account: str) -> bool:
        return account in self._no_tax_senders

    def is_no_tax_recipient(self, account: str) -> bool:
        return account in self._no_tax_recipients
