"""
Module: escrow_kernel.selectors.project_selector
Responsibility: Read-only queries over the escrow ledger: project records,
    bid lists, per-actor project lists, totals, ledger settings and the
    event history of a project.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Queries never fail except for unknown project ids
      (ProjectNotFoundError) and an unopened ledger
      (LedgerConfigurationError).
    - Every historical project stays queryable, whatever its status.
"""

from dataclasses import dataclass

from sqlalchemy import func, select

from escrow_kernel.domain.events import LedgerEvent, event_from_record
from escrow_kernel.domain.project import ProjectInfo
from escrow_kernel.exceptions import LedgerConfigurationError, ProjectNotFoundError
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
from escrow_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class LedgerSettingsInfo:
    """Ledger owner and current platform fee percentage."""

    owner: str
    platform_fee_pct: int


class ProjectSelector(BaseSelector):
    """Read side of the project ledger."""

    def _project(self, project_id: int) -> ProjectRecord:
        if isinstance(project_id, bool) or not isinstance(project_id, int):
            raise ProjectNotFoundError(project_id)
        project = self.session.get(ProjectRecord, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def get_project(self, project_id: int) -> ProjectInfo:
        """
        Full project record by id.

        Raises:
            ProjectNotFoundError: If the id was never allocated.
        """
        return self._project(project_id).to_dto()

    def get_project_bids(self, project_id: int) -> list[str]:
        """Bidder identities in submission order."""
        self._project(project_id)
        rows = self.session.execute(
            select(ProjectBidRecord.bidder)
            .where(ProjectBidRecord.project_id == project_id)
            .order_by(ProjectBidRecord.position)
        ).scalars()
        return list(rows)

    def _actor_projects(self, actor: str, role: ActorRole) -> list[int]:
        rows = self.session.execute(
            select(ActorProjectIndexRecord.project_id)
            .where(
                ActorProjectIndexRecord.actor == actor,
                ActorProjectIndexRecord.role == role.value,
            )
            .order_by(ActorProjectIndexRecord.position)
        ).scalars()
        return list(rows)

    def get_client_projects(self, client: str) -> list[int]:
        """Ids of projects created by ``client``, oldest first."""
        return self._actor_projects(client, ActorRole.CLIENT)

    def get_freelancer_projects(self, freelancer: str) -> list[int]:
        """Ids of projects ``freelancer`` was assigned to, in assignment order."""
        return self._actor_projects(freelancer, ActorRole.FREELANCER)

    def get_total_projects(self) -> int:
        # Ids are dense: a failed creation rolls its id back.
        return self.session.execute(
            select(func.count()).select_from(ProjectRecord)
        ).scalar_one()

    def find_settings(self) -> LedgerSettingsInfo | None:
        settings = self.session.get(LedgerSettingsRecord, SETTINGS_ROW_ID)
        if settings is None:
            return None
        return LedgerSettingsInfo(
            owner=settings.owner,
            platform_fee_pct=settings.platform_fee_pct,
        )

    def get_settings(self) -> LedgerSettingsInfo:
        settings = self.find_settings()
        if settings is None:
            raise LedgerConfigurationError("ledger has not been opened")
        return settings

    def get_project_events(self, project_id: int) -> list[LedgerEvent]:
        """Committed events of a project, oldest first."""
        self._project(project_id)
        rows = self.session.execute(
            select(LedgerEventRecord)
            .where(LedgerEventRecord.project_id == project_id)
            .order_by(LedgerEventRecord.seq)
        ).scalars()
        return [
            event_from_record(row.event_type, row.project_id, row.actor, row.payload)
            for row in rows
        ]
