"""
BaseService -- abstract base for kernel services.

Responsibility:
    Provides the common constructor for services that write through a
    caller-supplied SQLAlchemy ``Session``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Transaction boundaries:
    Helper services (``SequenceService``) only ``flush()`` and leave
    commit/rollback to whoever called them.  ``ProjectLedger`` is the one
    service that owns the boundary: each public transition commits on
    success and rolls back on any failure, because a transition also moves
    money through the custody collaborator and must settle both sides
    before returning.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Non-goals:
        - Does NOT provide query-only (read) methods -- those belong
          in ``escrow_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        """
        Initialize the service.

        Args:
            session: SQLAlchemy session for database operations.
        """
        self.session = session
