"""Shared identities, times and custody test doubles for the escrow tests."""

from datetime import UTC, datetime

from escrow_kernel.domain.custody import (
    CustodyError,
    CustodyOperation,
    CustodyReceipt,
    InMemoryCustody,
)

OWNER = "platform"
CLIENT = "alice"
FREELANCER = "bob"
OTHER_FREELANCER = "carol"

START_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
ONE_DAY = 86400


class FlakyCustody(InMemoryCustody):
    """
    InMemoryCustody that fails on demand.

    ``fail_on`` maps an operation to the 1-based call numbers that raise
    ``CustodyError``; ``fail_reverse`` makes every reversal fail too.
    """

    def __init__(self, fail_on=None, fail_reverse=False):
        super().__init__()
        self.fail_on: dict[CustodyOperation, set[int]] = {
            op: set(calls) for op, calls in (fail_on or {}).items()
        }
        self.fail_reverse = fail_reverse
        self.calls: dict[CustodyOperation, int] = {op: 0 for op in CustodyOperation}

    def _maybe_fail(self, operation: CustodyOperation) -> None:
        self.calls[operation] += 1
        if self.calls[operation] in self.fail_on.get(operation, set()):
            raise CustodyError(f"{operation.value} rejected by custodian")

    def hold_deposit(self, depositor: str, amount: int) -> CustodyReceipt:
        self._maybe_fail(CustodyOperation.DEPOSIT)
        return super().hold_deposit(depositor, amount)

    def payout(self, recipient: str, amount: int) -> CustodyReceipt:
        self._maybe_fail(CustodyOperation.PAYOUT)
        return super().payout(recipient, amount)

    def refund(self, recipient: str, amount: int) -> CustodyReceipt:
        self._maybe_fail(CustodyOperation.REFUND)
        return super().refund(recipient, amount)

    def reverse(self, receipt: CustodyReceipt) -> None:
        if self.fail_reverse:
            raise CustodyError("reversal rejected by custodian")
        super().reverse(receipt)
