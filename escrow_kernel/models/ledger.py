"""
Module: escrow_kernel.models.ledger
Responsibility: ORM persistence for ledger-wide state: the settings row
    (owner identity and platform fee) and the append-only event log.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Exactly one settings row, keyed by ``SETTINGS_ROW_ID``.
    - ``owner`` is written once when the ledger is first opened.
    - Event rows are append-only (db/immutability.py) and ordered by ``seq``.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, BigInteger, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import Base
from escrow_kernel.db.types import UUIDString

SETTINGS_ROW_ID = 1


class LedgerSettingsRecord(Base):
    """Ledger owner and current platform fee."""

    __tablename__ = "escrow_ledger_settings"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False,
        default=SETTINGS_ROW_ID,
    )

    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    platform_fee_pct: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<LedgerSettingsRecord owner={self.owner} fee={self.platform_fee_pct}%>"


class LedgerEventRecord(Base):
    """
    One committed ledger event.

    ``payload`` holds the event-specific fields (title, budget, payout ...);
    ``project_id`` is NULL for ledger-wide events such as fee updates.
    """

    __tablename__ = "escrow_ledger_events"

    __table_args__ = (
        Index("idx_ledger_event_project", "project_id"),
        Index("idx_ledger_event_type", "event_type"),
    )

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    project_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    actor: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<LedgerEventRecord #{self.seq} {self.event_type} project={self.project_id}>"
