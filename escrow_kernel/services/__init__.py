"""Services for the escrow kernel (write side)."""

from escrow_kernel.services.project_ledger import CompletionResult, ProjectLedger
from escrow_kernel.services.sequence_service import SequenceService

__all__ = [
    "CompletionResult",
    "ProjectLedger",
    "SequenceService",
]
