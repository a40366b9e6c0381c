"""
Config -> Kernel Bridges.

Functions that turn a ``LedgerConfig`` into kernel objects.  These live in
escrow_config (the producer) because the kernel must NEVER import
escrow_config.

Usage:
    from escrow_config import get_active_config
    from escrow_config.bridges import open_ledger

    config = get_active_config()
    ledger = open_ledger(session, custody, owner="platform", config=config)
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from escrow_config.schema import LedgerConfig
from escrow_kernel.db.engine import init_engine_from_url
from escrow_kernel.domain.clock import Clock
from escrow_kernel.domain.custody import FundsCustody
from escrow_kernel.domain.events import EventSubscriber
from escrow_kernel.services.project_ledger import ProjectLedger


def init_engine_from_config(config: LedgerConfig, *, echo: bool = False) -> Engine:
    """Initialize the kernel engine for ``config.database_url``."""
    return init_engine_from_url(config.database_url, echo=echo)


def open_ledger(
    session: Session,
    custody: FundsCustody,
    owner: str,
    config: LedgerConfig,
    *,
    clock: Clock | None = None,
    subscribers: Iterable[EventSubscriber] = (),
) -> ProjectLedger:
    """Open a ``ProjectLedger`` with the fee settings of ``config``."""
    return ProjectLedger(
        session,
        custody,
        owner,
        clock=clock,
        default_platform_fee_pct=config.default_platform_fee_pct,
        max_platform_fee_pct=config.max_platform_fee_pct,
        subscribers=subscribers,
    )
