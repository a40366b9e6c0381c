"""
Module: escrow_kernel.models.project
Responsibility: ORM persistence for escrow projects, their bid lists and the
    per-actor project indexes.
Architecture position: Kernel > Models.  May import from db/ and the pure
    domain layer only.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - Project ids come from the ``project`` sequence counter and are never
      reused; the column is NOT autoincrement.
    - One bid per (project, bidder) -- uq_bid_project_bidder.
    - Bid ``position`` and index ``position`` give insertion order.
    - Field-level immutability is enforced by db/immutability.py.

Failure modes:
    - IntegrityError on a duplicate bid or index row (the ledger's guards
      reject these earlier with typed errors).

Audit relevance:
    ``budget`` and ``funds_deposited`` are the escrow accounting state: the
    project's trust balance is ``budget`` while ``funds_deposited`` is True
    and zero afterwards.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from escrow_kernel.db.base import Base
from escrow_kernel.db.types import UUIDString
from escrow_kernel.domain.project import ProjectInfo, ProjectStatus


class ActorRole(str, Enum):
    """Which side of a project an index row records."""

    CLIENT = "client"
    FREELANCER = "freelancer"


class ProjectRecord(Base):
    """
    A freelance engagement with client funds held in escrow.

    Guarantees:
        - ``budget`` equals the amount deposited at creation.
        - ``freelancer`` is NULL until assignment.
        - ``status`` holds a ``ProjectStatus`` value.
    """

    __tablename__ = "escrow_projects"

    __table_args__ = (
        Index("idx_escrow_project_client", "client"),
        Index("idx_escrow_project_freelancer", "freelancer"),
        Index("idx_escrow_project_status", "status"),
    )

    id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
    )

    client: Mapped[str] = mapped_column(String(255), nullable=False)
    freelancer: Mapped[str | None] = mapped_column(String(255), nullable=True)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    budget: Mapped[int] = mapped_column(nullable=False)
    deadline: Mapped[datetime] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProjectStatus.OPEN.value,
    )

    # True while the budget is held in trust for this project
    funds_deposited: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    bids: Mapped[list["ProjectBidRecord"]] = relationship(
        "ProjectBidRecord",
        back_populates="project",
        order_by="ProjectBidRecord.position",
        lazy="selectin",
    )

    @property
    def bidders(self) -> list[str]:
        return [bid.bidder for bid in self.bids]

    def to_dto(self) -> ProjectInfo:
        return ProjectInfo(
            id=self.id,
            client=self.client,
            freelancer=self.freelancer,
            title=self.title,
            description=self.description,
            budget=self.budget,
            deadline=self.deadline,
            status=ProjectStatus(self.status),
            funds_deposited=self.funds_deposited,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<ProjectRecord {self.id}: {self.title} [{self.status}]>"


class ProjectBidRecord(Base):
    """
    One freelancer's bid on one project.

    Guarantees:
        - (project_id, bidder) is unique.
        - ``position`` starts at 1 and follows submission order.
    """

    __tablename__ = "escrow_project_bids"

    __table_args__ = (
        UniqueConstraint("project_id", "bidder", name="uq_bid_project_bidder"),
        UniqueConstraint("project_id", "position", name="uq_bid_project_position"),
    )

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)

    project_id: Mapped[int] = mapped_column(
        ForeignKey("escrow_projects.id"),
        nullable=False,
    )
    bidder: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(nullable=False)

    project: Mapped["ProjectRecord"] = relationship(
        "ProjectRecord",
        back_populates="bids",
    )

    def __repr__(self) -> str:
        return f"<ProjectBidRecord project={self.project_id} #{self.position} {self.bidder}>"


class ActorProjectIndexRecord(Base):
    """
    Reverse index entry: ``actor`` took part in ``project_id`` as ``role``.

    Written once per project for the client (at creation) and once for the
    freelancer (at assignment).
    """

    __tablename__ = "escrow_actor_projects"

    __table_args__ = (
        UniqueConstraint("actor", "role", "project_id", name="uq_actor_role_project"),
        UniqueConstraint("actor", "role", "position", name="uq_actor_role_position"),
        Index("idx_actor_projects_lookup", "actor", "role"),
    )

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)

    actor: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("escrow_projects.id"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<ActorProjectIndexRecord {self.role}:{self.actor} -> {self.project_id}>"
