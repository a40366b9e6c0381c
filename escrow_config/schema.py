"""
Ledger configuration schema.

``LedgerConfig`` is the runtime configuration artifact: YAML is parsed into
it by the loader and handed out by ``escrow_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from escrow_kernel.domain.project import (
    DEFAULT_PLATFORM_FEE_PCT,
    MAX_PLATFORM_FEE_PCT,
)


@dataclass(frozen=True)
class LedgerConfig:
    """Configuration for one escrow ledger deployment."""

    # Fee written to the settings row when a ledger is first opened
    default_platform_fee_pct: int = DEFAULT_PLATFORM_FEE_PCT
    # Upper bound accepted by update_platform_fee; never above 10
    max_platform_fee_pct: int = MAX_PLATFORM_FEE_PCT
    database_url: str = "sqlite://"
    log_level: str = "INFO"
    checksum: str = ""
