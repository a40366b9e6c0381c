"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

DTOs and events are immutable. The in-memory custody and event log
are reference collaborators and hold mutable state.
"""

from escrow_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from escrow_kernel.domain.custody import (
    CustodyError,
    CustodyOperation,
    CustodyReceipt,
    FundsCustody,
    InMemoryCustody,
)
from escrow_kernel.domain.events import (
    BidSubmitted,
    EventSubscriber,
    FreelancerAssigned,
    InMemoryEventLog,
    LedgerEvent,
    LedgerEventType,
    PlatformFeeUpdated,
    ProjectCancelled,
    ProjectCompleted,
    ProjectCreated,
    WorkSubmitted,
)
from escrow_kernel.domain.project import (
    DEFAULT_PLATFORM_FEE_PCT,
    MAX_AMOUNT,
    MAX_IDENTITY_LENGTH,
    MAX_PLATFORM_FEE_PCT,
    PROJECT_TRANSITIONS,
    TERMINAL_PROJECT_STATUSES,
    FeeSplit,
    ProjectInfo,
    ProjectStatus,
    can_transition,
    split_budget,
)

__all__ = [
    "BidSubmitted",
    "Clock",
    "CustodyError",
    "CustodyOperation",
    "CustodyReceipt",
    "DEFAULT_PLATFORM_FEE_PCT",
    "DeterministicClock",
    "EventSubscriber",
    "FeeSplit",
    "FreelancerAssigned",
    "FundsCustody",
    "InMemoryCustody",
    "InMemoryEventLog",
    "LedgerEvent",
    "LedgerEventType",
    "MAX_AMOUNT",
    "MAX_IDENTITY_LENGTH",
    "MAX_PLATFORM_FEE_PCT",
    "PROJECT_TRANSITIONS",
    "PlatformFeeUpdated",
    "ProjectCancelled",
    "ProjectCompleted",
    "ProjectCreated",
    "ProjectInfo",
    "ProjectStatus",
    "SystemClock",
    "TERMINAL_PROJECT_STATUSES",
    "WorkSubmitted",
    "can_transition",
    "split_budget",
]
