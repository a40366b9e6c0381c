"""
Guard predicates for ledger transitions (``escrow_kernel.domain.guards``).

Every mutating ledger operation starts by calling the guards it needs, in
order.  A guard either returns ``None`` or raises a typed exception; it
never mutates anything, so a rejected call leaves no trace.

Guards take any object exposing ``id``, ``client``, ``freelancer`` and
``status`` -- the ORM ``ProjectRecord`` and the ``ProjectInfo`` DTO both
qualify.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from escrow_kernel.domain.project import (
    MAX_IDENTITY_LENGTH,
    ProjectStatus,
    can_transition,
)
from escrow_kernel.exceptions import (
    AuthorizationError,
    DeadlinePassedError,
    EmptyFieldError,
    InvalidIdentityError,
    InvalidStateError,
)


class ProjectLike(Protocol):
    id: int
    client: str
    freelancer: str | None
    status: ProjectStatus
    deadline: datetime


def require_owner(caller: str, owner: str) -> None:
    if caller != owner:
        raise AuthorizationError(caller, "ledger owner")


def require_client(caller: str, project: ProjectLike) -> None:
    if caller != project.client:
        raise AuthorizationError(caller, "client", project.id)


def require_freelancer(caller: str, project: ProjectLike) -> None:
    # An unassigned project has no freelancer, so nobody passes.
    if project.freelancer is None or caller != project.freelancer:
        raise AuthorizationError(caller, "assigned freelancer", project.id)


def require_status(
    project: ProjectLike,
    expected: ProjectStatus,
    action: str,
) -> None:
    status = ProjectStatus(project.status)
    if status != expected:
        raise InvalidStateError(project.id, status.value, action)


def require_transition(
    project: ProjectLike,
    target: ProjectStatus,
    action: str,
) -> None:
    """Reject ``project.status -> target`` unless it is a lifecycle edge."""
    status = ProjectStatus(project.status)
    if not can_transition(status, target):
        raise InvalidStateError(project.id, status.value, action)


def require_before_deadline(
    project: ProjectLike,
    now: datetime,
    action: str,
    *,
    inclusive: bool = False,
) -> None:
    """
    Reject calls made after the project deadline.

    Bids must arrive strictly before the deadline; work may be submitted
    up to and including it (``inclusive=True``).
    """
    on_time = now <= project.deadline if inclusive else now < project.deadline
    if not on_time:
        raise DeadlinePassedError(project.id, project.deadline.isoformat(), action)


def require_non_empty(field_name: str, value: str | None) -> None:
    if value is None or not value.strip():
        raise EmptyFieldError(field_name)


def require_storable_identity(role: str, identity: str) -> None:
    if isinstance(identity, str) and len(identity) > MAX_IDENTITY_LENGTH:
        raise InvalidIdentityError(role, len(identity), MAX_IDENTITY_LENGTH)
