"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Allocates project ids and event sequence numbers.  Each named sequence
    is one row in ``escrow_sequence_counters``; allocation locks the row
    (``SELECT ... FOR UPDATE`` on backends that support it), increments it
    and flushes.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by
    ProjectLedger inside its transition transaction.

Invariants enforced:
    - Monotonicity: values are strictly increasing per sequence and start
      at 1.  The aggregate-max-plus-one pattern is never used.
    - Transactional: the increment is only visible once the caller's
      transaction commits.  A rolled-back creation does not consume an id,
      so ids are never reused and never skipped by failed calls.

Failure modes:
    - IntegrityError if two transactions create the same counter row at
      the same time.  The ledger's serialized-execution contract rules this
      out; the first ledger open creates both counters up front.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from escrow_kernel.db.base import Base
from escrow_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named sequence with the last value handed out.
    """

    __tablename__ = "escrow_sequence_counters"

    # Sequence name (e.g., "project", "ledger_event")
    name: Mapped[str] = mapped_column(String(50), primary_key=True)

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    PROJECT = "project"
    LEDGER_EVENT = "ledger_event"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def ensure(self, sequence_name: str) -> None:
        """Create the counter row at zero if it does not exist yet."""
        if self._session.get(SequenceCounter, sequence_name) is None:
            self._session.add(SequenceCounter(name=sequence_name, current_value=0))
            self._session.flush()
            logger.debug("sequence_created", extra={"sequence_name": sequence_name})

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Postconditions:
            - Returns an integer > 0 strictly greater than any value
              previously committed for this sequence name.
            - The counter row stays locked until the transaction completes.
        """
        counter = self._locked_counter(sequence_name)
        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=0)
            self._session.add(counter)

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int:
        """
        Get the last allocated value without incrementing.

        Returns 0 for a sequence that has never been used.
        """
        value = self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return value or 0
