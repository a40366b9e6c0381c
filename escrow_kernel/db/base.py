"""
Module: escrow_kernel.db.base
Responsibility: Declarative base class for all SQLAlchemy ORM models of the
    escrow ledger, with the type annotation map that keeps column types
    consistent across the schema.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Integer amounts: ``int`` maps to BigInteger.  Budgets, fees and payouts
      are whole numbers of the smallest currency unit; never floats.
    - Timestamps: ``datetime`` maps to UTCDateTime, so every timestamp read
      back from any backend is timezone-aware UTC.
"""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import DeclarativeBase

from escrow_kernel.db.types import UTCDateTime


class Base(DeclarativeBase):
    """
    Declarative base for all escrow ledger models.

    Guarantees:
        - int maps to BigInteger -- safe for ids, sequences and amounts.
        - datetime maps to UTCDateTime -- always timezone-aware UTC.
        - str maps to String(255) unless a column says otherwise.
    """

    type_annotation_map: ClassVar[dict] = {
        int: BigInteger,
        datetime: UTCDateTime(),
        str: String(255),
    }
