"""ORM models for the escrow kernel."""

from escrow_kernel.models.ledger import (
    SETTINGS_ROW_ID,
    LedgerEventRecord,
    LedgerSettingsRecord,
)
from escrow_kernel.models.project import (
    ActorProjectIndexRecord,
    ActorRole,
    ProjectBidRecord,
    ProjectRecord,
)

__all__ = [
    "ActorProjectIndexRecord",
    "ActorRole",
    "LedgerEventRecord",
    "LedgerSettingsRecord",
    "ProjectBidRecord",
    "ProjectRecord",
    "SETTINGS_ROW_ID",
]
