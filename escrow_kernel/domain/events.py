"""
Ledger events (``escrow_kernel.domain.events``).

Responsibility
--------------
Immutable records of what each successful transition did.  The ledger
persists every event in its append-only event table inside the
transition's transaction, then hands the same objects to subscribers
once the transaction has committed.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects plus the subscriber
protocol.  ZERO I/O.

Invariants enforced
-------------------
* Every event carries the project id and the actor the transition was
  about.
* Subscribers only ever see events of committed transitions.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, ClassVar, Protocol, runtime_checkable


class LedgerEventType(str, Enum):
    """Kinds of ledger events."""

    PROJECT_CREATED = "project_created"
    BID_SUBMITTED = "bid_submitted"
    FREELANCER_ASSIGNED = "freelancer_assigned"
    WORK_SUBMITTED = "work_submitted"
    PROJECT_COMPLETED = "project_completed"
    PROJECT_CANCELLED = "project_cancelled"
    PLATFORM_FEE_UPDATED = "platform_fee_updated"


@dataclass(frozen=True)
class LedgerEvent:
    """Base class for ledger events."""

    event_type: ClassVar[LedgerEventType]

    project_id: int | None
    actor: str

    def payload(self) -> dict[str, Any]:
        """Event fields other than project id and actor, for persistence."""
        data = asdict(self)
        data.pop("project_id")
        data.pop("actor")
        return data


@dataclass(frozen=True)
class ProjectCreated(LedgerEvent):
    event_type: ClassVar[LedgerEventType] = LedgerEventType.PROJECT_CREATED

    title: str = ""
    budget: int = 0

    @property
    def client(self) -> str:
        return self.actor


@dataclass(frozen=True)
class BidSubmitted(LedgerEvent):
    event_type: ClassVar[LedgerEventType] = LedgerEventType.BID_SUBMITTED

    @property
    def freelancer(self) -> str:
        return self.actor


@dataclass(frozen=True)
class FreelancerAssigned(LedgerEvent):
    event_type: ClassVar[LedgerEventType] = LedgerEventType.FREELANCER_ASSIGNED

    @property
    def freelancer(self) -> str:
        return self.actor


@dataclass(frozen=True)
class WorkSubmitted(LedgerEvent):
    event_type: ClassVar[LedgerEventType] = LedgerEventType.WORK_SUBMITTED

    @property
    def freelancer(self) -> str:
        return self.actor


@dataclass(frozen=True)
class ProjectCompleted(LedgerEvent):
    event_type: ClassVar[LedgerEventType] = LedgerEventType.PROJECT_COMPLETED

    payout_amount: int = 0
    fee_amount: int = 0

    @property
    def freelancer(self) -> str:
        return self.actor


@dataclass(frozen=True)
class ProjectCancelled(LedgerEvent):
    event_type: ClassVar[LedgerEventType] = LedgerEventType.PROJECT_CANCELLED

    refund_amount: int = 0

    @property
    def client(self) -> str:
        return self.actor


@dataclass(frozen=True)
class PlatformFeeUpdated(LedgerEvent):
    event_type: ClassVar[LedgerEventType] = LedgerEventType.PLATFORM_FEE_UPDATED

    old_fee_pct: int = 0
    new_fee_pct: int = 0


EVENT_CLASSES: dict[LedgerEventType, type[LedgerEvent]] = {
    cls.event_type: cls
    for cls in (
        ProjectCreated,
        BidSubmitted,
        FreelancerAssigned,
        WorkSubmitted,
        ProjectCompleted,
        ProjectCancelled,
        PlatformFeeUpdated,
    )
}


def event_from_record(
    event_type: str,
    project_id: int | None,
    actor: str,
    payload: dict[str, Any],
) -> LedgerEvent:
    """Rebuild a typed event from its persisted columns."""
    cls = EVENT_CLASSES[LedgerEventType(event_type)]
    return cls(project_id=project_id, actor=actor, **payload)


# =========================================================================
# Subscribers
# =========================================================================


@runtime_checkable
class EventSubscriber(Protocol):
    """Receives events after the transition that produced them committed."""

    def __call__(self, event: LedgerEvent) -> None: ...


@dataclass
class InMemoryEventLog:
    """Append-only subscriber that keeps every event it is handed."""

    events: list[LedgerEvent] = field(default_factory=list)

    def __call__(self, event: LedgerEvent) -> None:
        self.events.append(event)

    def of_type(self, event_cls: type[LedgerEvent]) -> list[LedgerEvent]:
        return [e for e in self.events if isinstance(e, event_cls)]

    def for_project(self, project_id: int) -> list[LedgerEvent]:
        return [e for e in self.events if e.project_id == project_id]
