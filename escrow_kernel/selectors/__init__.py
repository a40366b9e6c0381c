"""Selectors for the escrow kernel (read side)."""

from escrow_kernel.selectors.project_selector import (
    LedgerSettingsInfo,
    ProjectSelector,
)

__all__ = [
    "LedgerSettingsInfo",
    "ProjectSelector",
]
