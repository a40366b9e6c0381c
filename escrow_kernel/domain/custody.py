"""
Funds-custody contract (``escrow_kernel.domain.custody``).

Responsibility
--------------
Defines the collaborator that actually moves value.  The ledger only
tracks accounting state; every deposit, payout and refund goes through a
``FundsCustody`` implementation, and every one of those calls may fail.

Contract
--------
* ``hold_deposit(depositor, amount)`` takes ``amount`` into trust.
* ``payout(recipient, amount)`` and ``refund(recipient, amount)`` release
  funds from trust.
* ``reverse(receipt)`` undoes a previously completed operation.  The
  ledger uses it to compensate legs that already executed when a later
  step of the same transition fails.
* Implementations signal failure by raising ``CustodyError``.  Any other
  exception is treated the same way by the ledger.

``InMemoryCustody`` is a complete in-process implementation used by the
demo script and the test suite.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import uuid4


class CustodyOperation(str, Enum):
    DEPOSIT = "deposit"
    PAYOUT = "payout"
    REFUND = "refund"


class CustodyError(Exception):
    """Raised by custody implementations when a money movement fails."""


@dataclass(frozen=True)
class CustodyReceipt:
    """Proof that custody completed an operation."""

    receipt_id: str
    operation: CustodyOperation
    party: str
    amount: int


@runtime_checkable
class FundsCustody(Protocol):
    def hold_deposit(self, depositor: str, amount: int) -> CustodyReceipt: ...

    def payout(self, recipient: str, amount: int) -> CustodyReceipt: ...

    def refund(self, recipient: str, amount: int) -> CustodyReceipt: ...

    def reverse(self, receipt: CustodyReceipt) -> None: ...


class InMemoryCustody:
    """
    In-process custody keeping a trust balance and per-identity credits.

    ``held`` is the total currently in trust.  ``credited[identity]`` is the
    net amount released to ``identity`` through payouts and refunds.
    """

    def __init__(self) -> None:
        self.held = 0
        self.credited: dict[str, int] = defaultdict(int)
        self.receipts: list[CustodyReceipt] = []
        self._reversed: set[str] = set()

    def _issue(
        self,
        operation: CustodyOperation,
        party: str,
        amount: int,
    ) -> CustodyReceipt:
        receipt = CustodyReceipt(
            receipt_id=str(uuid4()),
            operation=operation,
            party=party,
            amount=amount,
        )
        self.receipts.append(receipt)
        return receipt

    def _release(
        self,
        operation: CustodyOperation,
        party: str,
        amount: int,
    ) -> CustodyReceipt:
        if amount < 0:
            raise CustodyError(f"Cannot {operation.value} a negative amount")
        if amount > self.held:
            raise CustodyError(
                f"Insufficient funds in trust: {amount} requested, {self.held} held"
            )
        self.held -= amount
        self.credited[party] += amount
        return self._issue(operation, party, amount)

    def hold_deposit(self, depositor: str, amount: int) -> CustodyReceipt:
        if amount <= 0:
            raise CustodyError("Deposit must be positive")
        self.held += amount
        return self._issue(CustodyOperation.DEPOSIT, depositor, amount)

    def payout(self, recipient: str, amount: int) -> CustodyReceipt:
        return self._release(CustodyOperation.PAYOUT, recipient, amount)

    def refund(self, recipient: str, amount: int) -> CustodyReceipt:
        return self._release(CustodyOperation.REFUND, recipient, amount)

    def reverse(self, receipt: CustodyReceipt) -> None:
        if receipt.receipt_id in self._reversed:
            raise CustodyError(f"Receipt {receipt.receipt_id} already reversed")
        if receipt.operation is CustodyOperation.DEPOSIT:
            if receipt.amount > self.held:
                raise CustodyError("Deposit no longer held in trust")
            self.held -= receipt.amount
        else:
            self.credited[receipt.party] -= receipt.amount
            self.held += receipt.amount
        self._reversed.add(receipt.receipt_id)

    def balance_of(self, identity: str) -> int:
        return self.credited.get(identity, 0)
