"""Tests for the transition guard predicates."""

from dataclasses import dataclass
from datetime import datetime, timedelta

import pytest

from escrow_kernel.domain.guards import (
    require_before_deadline,
    require_client,
    require_freelancer,
    require_non_empty,
    require_owner,
    require_status,
    require_storable_identity,
    require_transition,
)
from escrow_kernel.domain.project import MAX_IDENTITY_LENGTH, ProjectStatus
from escrow_kernel.exceptions import (
    AuthorizationError,
    DeadlinePassedError,
    EmptyFieldError,
    InvalidIdentityError,
    InvalidStateError,
)
from tests.support import CLIENT, FREELANCER, OTHER_FREELANCER, OWNER, START_TIME


@dataclass
class _Project:
    id: int = 7
    client: str = CLIENT
    freelancer: str | None = None
    status: str = ProjectStatus.OPEN.value
    deadline: datetime = START_TIME + timedelta(days=1)


class TestRoleGuards:
    def test_owner_passes(self):
        require_owner(OWNER, OWNER)

    def test_non_owner_rejected(self):
        with pytest.raises(AuthorizationError) as exc_info:
            require_owner(CLIENT, OWNER)
        assert exc_info.value.required_role == "ledger owner"
        assert exc_info.value.code == "UNAUTHORIZED"

    def test_client_passes(self):
        require_client(CLIENT, _Project())

    def test_non_client_rejected(self):
        with pytest.raises(AuthorizationError) as exc_info:
            require_client(FREELANCER, _Project())
        assert exc_info.value.project_id == 7

    def test_assigned_freelancer_passes(self):
        require_freelancer(FREELANCER, _Project(freelancer=FREELANCER))

    def test_other_freelancer_rejected(self):
        with pytest.raises(AuthorizationError):
            require_freelancer(OTHER_FREELANCER, _Project(freelancer=FREELANCER))

    def test_unassigned_project_rejects_everyone(self):
        with pytest.raises(AuthorizationError):
            require_freelancer(FREELANCER, _Project())


class TestStatusGuards:
    def test_matching_status_passes(self):
        require_status(_Project(), ProjectStatus.OPEN, "bid on")

    def test_other_status_rejected(self):
        project = _Project(status=ProjectStatus.CANCELLED.value)
        with pytest.raises(InvalidStateError) as exc_info:
            require_status(project, ProjectStatus.OPEN, "bid on")
        assert exc_info.value.current_status == "cancelled"
        assert exc_info.value.action == "bid on"

    def test_transition_edge_passes(self):
        require_transition(_Project(), ProjectStatus.ASSIGNED, "assign")

    def test_transition_shortcut_rejected(self):
        with pytest.raises(InvalidStateError):
            require_transition(_Project(), ProjectStatus.COMPLETED, "complete")


class TestDeadlineGuard:
    def test_before_deadline_passes(self):
        require_before_deadline(_Project(), START_TIME, "bid on")

    def test_exact_deadline_rejected_when_exclusive(self):
        project = _Project()
        with pytest.raises(DeadlinePassedError):
            require_before_deadline(project, project.deadline, "bid on")

    def test_exact_deadline_accepted_when_inclusive(self):
        project = _Project()
        require_before_deadline(project, project.deadline, "submit", inclusive=True)

    def test_after_deadline_rejected_when_inclusive(self):
        project = _Project()
        with pytest.raises(DeadlinePassedError):
            require_before_deadline(
                project,
                project.deadline + timedelta(seconds=1),
                "submit",
                inclusive=True,
            )


class TestNonEmpty:
    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_blank_rejected(self, value):
        with pytest.raises(EmptyFieldError) as exc_info:
            require_non_empty("title", value)
        assert exc_info.value.field_name == "title"

    def test_text_passes(self):
        require_non_empty("title", "Logo")


class TestStorableIdentity:
    def test_identity_at_limit_passes(self):
        require_storable_identity("caller", "x" * MAX_IDENTITY_LENGTH)

    def test_overlong_identity_rejected(self):
        with pytest.raises(InvalidIdentityError) as exc_info:
            require_storable_identity("caller", "x" * (MAX_IDENTITY_LENGTH + 1))
        assert exc_info.value.role == "caller"
        assert exc_info.value.max_length == MAX_IDENTITY_LENGTH
