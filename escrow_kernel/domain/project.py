"""
Project domain types (``escrow_kernel.domain.project``).

Responsibility
--------------
Pure value objects for the escrow project lifecycle: the status enum, the
transition graph, the immutable ``ProjectInfo`` snapshot returned to
callers, and the fee/payout split computed at completion.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``PROJECT_TRANSITIONS`` defines the only valid status changes.  Terminal
  states have no outgoing edges, and no edge leads back to ``OPEN``.
* ``DISPUTED`` is representable but no edge leads to it.  There is no
  dispute flow in this kernel.
* ``split_budget`` floors the fee and pays out the exact remainder, so
  ``fee + payout == budget`` always.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


# =========================================================================
# Status lifecycle
# =========================================================================


class ProjectStatus(str, Enum):
    """Escrow project lifecycle states."""

    OPEN = "open"
    ASSIGNED = "assigned"
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    # Declared for forward compatibility; nothing transitions here yet.
    DISPUTED = "disputed"


PROJECT_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    ProjectStatus.OPEN: frozenset({
        ProjectStatus.ASSIGNED,
        ProjectStatus.CANCELLED,
    }),
    ProjectStatus.ASSIGNED: frozenset({
        ProjectStatus.SUBMITTED,
    }),
    ProjectStatus.SUBMITTED: frozenset({
        ProjectStatus.COMPLETED,
    }),
    ProjectStatus.COMPLETED: frozenset(),
    ProjectStatus.CANCELLED: frozenset(),
    ProjectStatus.DISPUTED: frozenset(),
}

TERMINAL_PROJECT_STATUSES: frozenset[ProjectStatus] = frozenset({
    ProjectStatus.COMPLETED,
    ProjectStatus.CANCELLED,
})


def can_transition(current: ProjectStatus, target: ProjectStatus) -> bool:
    """Return True when ``current -> target`` is an edge of the lifecycle graph."""
    return target in PROJECT_TRANSITIONS.get(current, frozenset())


# =========================================================================
# Platform fee
# =========================================================================

# Hard ceiling for the platform fee percentage.  Configuration may lower
# the ceiling but never raise it.
MAX_PLATFORM_FEE_PCT = 10
DEFAULT_PLATFORM_FEE_PCT = 5

# Amounts are stored as signed 64-bit integers.
MAX_AMOUNT = 2**63 - 1

# Identities are stored in 255-character columns.
MAX_IDENTITY_LENGTH = 255


@dataclass(frozen=True)
class FeeSplit:
    """How a completed project's budget is disbursed."""

    budget: int
    fee_pct: int
    fee: int
    payout: int

    def __post_init__(self) -> None:
        if self.fee + self.payout != self.budget:
            raise ValueError(
                f"Fee split leaks funds: {self.fee} + {self.payout} != {self.budget}"
            )


def split_budget(budget: int, fee_pct: int) -> FeeSplit:
    """
    Split ``budget`` into the owner's fee and the freelancer's payout.

    The fee is floored (``budget * fee_pct // 100``); the payout is the
    exact remainder so the two amounts always sum to ``budget``.

    >>> split_budget(1000, 5)
    FeeSplit(budget=1000, fee_pct=5, fee=50, payout=950)
    >>> split_budget(999, 5).fee
    49
    """
    if budget < 0:
        raise ValueError(f"Budget cannot be negative: {budget}")
    if not 0 <= fee_pct <= MAX_PLATFORM_FEE_PCT:
        raise ValueError(f"Fee percentage out of range: {fee_pct}")
    fee = budget * fee_pct // 100
    return FeeSplit(budget=budget, fee_pct=fee_pct, fee=fee, payout=budget - fee)


# =========================================================================
# Project snapshot
# =========================================================================


@dataclass(frozen=True)
class ProjectInfo:
    """
    Immutable snapshot of a project record.

    ``freelancer`` is None until the project is assigned.  ``funds_deposited``
    is True from creation until completion or cancellation releases the
    escrowed budget.
    """

    id: int
    client: str
    freelancer: str | None
    title: str
    description: str
    budget: int
    deadline: datetime
    status: ProjectStatus
    funds_deposited: bool
    created_at: datetime

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PROJECT_STATUSES

    @property
    def has_freelancer(self) -> bool:
        return self.freelancer is not None

    @property
    def escrow_balance(self) -> int:
        """Amount still held in trust for this project."""
        return self.budget if self.funds_deposited else 0
