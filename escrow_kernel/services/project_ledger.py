"""
ProjectLedger -- the escrow project state machine.

Responsibility:
    Owns the project records, bid lists, per-actor indexes and the platform
    fee setting, and exposes every state transition and read query of the
    escrow ledger.  Client funds are taken into trust at creation and leave
    exactly once: as payout + fee on completion, or as a full refund on
    cancellation.

Architecture position:
    Kernel > Services.  Imports from domain/, models/, selectors/ and the
    sequence service.  Never imports from escrow_config; configuration is
    passed in (see escrow_config.bridges.open_ledger).

Lifecycle:
    OPEN --assign--> ASSIGNED --submit work--> SUBMITTED --complete--> COMPLETED
    OPEN --cancel--> CANCELLED
    DISPUTED exists in ProjectStatus but nothing leads to it.

Transaction model:
    Each public transition runs inside ``_transition()``:

        guards (raise before anything is written)
          -> mutate ORM rows + flush
          -> custody legs (deposit / payout / refund)
          -> persist events + commit
          -> notify subscribers

    Any failure rolls the session back and reverses, newest first, every
    custody leg that already completed in the same call.  A payout failure
    therefore can never leave a project COMPLETED with funds still held,
    and a commit failure can never leave money moved for a transition the
    ledger does not show.

Failure modes:
    - AuthorizationError, ProjectNotFoundError, InvalidStateError,
      ValidationError subclasses: precondition violations, nothing written.
    - CustodyFailure: a money movement failed; ledger rolled back.
      ``compensated`` is False only when reversing an earlier leg also
      failed (logged CRITICAL).
    - LedgerConfigurationError: ledger opened with a different owner than
      the persisted one, or with fee bounds outside [0, 10].

Concurrency:
    The surrounding environment serializes calls.  Within a call the
    project row is read with ``populate_existing`` (and ``FOR UPDATE``
    where supported) so guards never see a stale status.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.domain.custody import (
    CustodyOperation,
    CustodyReceipt,
    FundsCustody,
)
from escrow_kernel.domain.events import (
    BidSubmitted,
    EventSubscriber,
    FreelancerAssigned,
    LedgerEvent,
    PlatformFeeUpdated,
    ProjectCancelled,
    ProjectCompleted,
    ProjectCreated,
    WorkSubmitted,
)
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
from escrow_kernel.domain.project import (
    DEFAULT_PLATFORM_FEE_PCT,
    MAX_AMOUNT,
    MAX_IDENTITY_LENGTH,
    MAX_PLATFORM_FEE_PCT,
    FeeSplit,
    ProjectInfo,
    ProjectStatus,
    split_budget,
)
from escrow_kernel.exceptions import (
    CustodyFailure,
    DeadlineNotInFutureError,
    DuplicateBidError,
    EscrowKernelError,
    InvalidDepositError,
    InvalidFreelancerError,
    InvalidStateError,
    LedgerConfigurationError,
    NotABidderError,
    PlatformFeeOutOfRangeError,
    ProjectNotFoundError,
    SelfDealingError,
    ValidationError,
)
from escrow_kernel.logging_config import LogContext, get_logger
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
from escrow_kernel.selectors.project_selector import ProjectSelector
from escrow_kernel.services.base import BaseService
from escrow_kernel.services.sequence_service import SequenceService

logger = get_logger("services.project_ledger")


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of a completed project: the final record and the split paid."""

    project: ProjectInfo
    split: FeeSplit


@dataclass
class _PendingTransition:
    """What one transition has done so far, for commit or unwind."""

    operation: str
    receipts: list[CustodyReceipt] = field(default_factory=list)
    events: list[LedgerEvent] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    def emit(self, event: LedgerEvent) -> None:
        self.events.append(event)


class ProjectLedger(BaseService):
    """
    Escrow ledger of freelance projects.

    Contract:
        Every mutating method takes the already-authenticated caller
        identity as its first argument and either completes fully (state,
        funds, indexes, events) or raises before committing anything.

    Guarantees:
        - Project ids start at 1, increase by one per successful creation
          and are never reused.
        - ``COMPLETED`` implies payout + fee == budget were released and
          ``funds_deposited`` is False.
        - ``CANCELLED`` implies the full budget was refunded to the client
          and nothing was paid to anyone else.
        - Subscribers see events only after their transition committed.

    Non-goals:
        - No dispute, milestone or partial-payment flow.
        - No abort path once a freelancer is assigned.
        - No automatic expiry: a past deadline only blocks bids and
          submissions.
    """

    def __init__(
        self,
        session: Session,
        custody: FundsCustody,
        owner: str,
        *,
        clock: Clock | None = None,
        default_platform_fee_pct: int = DEFAULT_PLATFORM_FEE_PCT,
        max_platform_fee_pct: int = MAX_PLATFORM_FEE_PCT,
        subscribers: Iterable[EventSubscriber] = (),
    ):
        """
        Open the ledger, creating its settings row on first use.

        Args:
            session: SQLAlchemy session; the ledger commits and rolls back.
            custody: Funds-custody collaborator.
            owner: Ledger owner identity.  Fixed by the first open; later
                opens must pass the same identity.
            clock: Clock for deadlines and timestamps. Defaults to SystemClock.
            default_platform_fee_pct: Fee stored when the ledger is first
                opened.
            max_platform_fee_pct: Upper bound for update_platform_fee
                (at most 10).
            subscribers: Post-commit event subscribers.

        Raises:
            LedgerConfigurationError: Owner mismatch or fee bounds invalid.
        """
        super().__init__(session)
        if not 0 <= max_platform_fee_pct <= MAX_PLATFORM_FEE_PCT:
            raise LedgerConfigurationError(
                f"max_platform_fee_pct must be between 0 and {MAX_PLATFORM_FEE_PCT}"
            )
        if not 0 <= default_platform_fee_pct <= max_platform_fee_pct:
            raise LedgerConfigurationError(
                f"default_platform_fee_pct must be between 0 and {max_platform_fee_pct}"
            )

        self._custody = custody
        self._clock = clock or SystemClock()
        self._max_fee_pct = max_platform_fee_pct
        self._subscribers: list[EventSubscriber] = list(subscribers)
        self._sequences = SequenceService(session)
        self._selector = ProjectSelector(session)
        self._owner = self._open(owner, default_platform_fee_pct)

    # =========================================================================
    # Setup
    # =========================================================================

    def _open(self, owner: str, default_fee_pct: int) -> str:
        existing = self._selector.find_settings()
        if existing is not None:
            if existing.owner != owner:
                raise LedgerConfigurationError(
                    f"ledger is owned by {existing.owner!r}, not {owner!r}"
                )
            return existing.owner

        if not owner or not owner.strip():
            raise LedgerConfigurationError("owner identity is required")
        if len(owner) > MAX_IDENTITY_LENGTH:
            raise LedgerConfigurationError(
                f"owner identity must be at most {MAX_IDENTITY_LENGTH} characters"
            )

        now = self._clock.now()
        try:
            self.session.add(
                LedgerSettingsRecord(
                    id=SETTINGS_ROW_ID,
                    owner=owner,
                    platform_fee_pct=default_fee_pct,
                    created_at=now,
                    updated_at=now,
                )
            )
            self._sequences.ensure(SequenceService.PROJECT)
            self._sequences.ensure(SequenceService.LEDGER_EVENT)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(
            "ledger_opened",
            extra={"owner": owner, "platform_fee_pct": default_fee_pct},
        )
        return owner

    def subscribe(self, subscriber: EventSubscriber) -> None:
        """Register a subscriber for events of future committed transitions."""
        self._subscribers.append(subscriber)

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def max_platform_fee_pct(self) -> int:
        return self._max_fee_pct

    # =========================================================================
    # Transition plumbing
    # =========================================================================

    @contextmanager
    def _transition(
        self,
        operation: str,
        caller: str,
        project_id: int | None = None,
    ) -> Iterator[_PendingTransition]:
        tx = _PendingTransition(operation=operation)
        bound_project = str(project_id) if project_id is not None else None

        with LogContext.bind(
            actor=caller,
            project_id=bound_project,
            operation=operation,
        ):
            logger.debug(f"{operation}_started", extra={"operation": operation})
            try:
                require_storable_identity("caller", caller)
                yield tx
                self._record_events(tx)
                self.session.commit()
            except EscrowKernelError as exc:
                self.session.rollback()
                compensated = self._unwind(tx)
                if isinstance(exc, CustodyFailure):
                    exc.compensated = exc.compensated and compensated
                logger.warning(
                    f"{operation}_rejected",
                    extra={
                        "operation": operation,
                        "error_code": exc.code,
                        "reason": str(exc),
                    },
                )
                if not compensated and not isinstance(exc, CustodyFailure):
                    raise self._uncompensated(tx, project_id, exc) from exc
                raise
            except Exception as exc:
                self.session.rollback()
                compensated = self._unwind(tx)
                logger.error(
                    f"{operation}_failed",
                    extra={"operation": operation},
                    exc_info=True,
                )
                if not compensated:
                    raise self._uncompensated(tx, project_id, exc) from exc
                raise

            logger.info(
                f"{operation}_committed",
                extra={"operation": operation, **tx.details},
            )

        self._dispatch(tx.events)

    def _uncompensated(
        self,
        tx: _PendingTransition,
        project_id: int | None,
        cause: BaseException,
    ) -> CustodyFailure:
        moved = sum(r.amount for r in tx.receipts)
        return CustodyFailure(
            "reverse",
            moved,
            project_id=project_id,
            reason=f"{tx.operation} failed ({cause}) and custody could not be unwound",
            compensated=False,
        )

    def _move_funds(
        self,
        tx: _PendingTransition,
        operation: CustodyOperation,
        party: str,
        amount: int,
        project_id: int | None,
    ) -> CustodyReceipt:
        """Run one custody leg and remember its receipt for unwinding."""
        call = {
            CustodyOperation.DEPOSIT: self._custody.hold_deposit,
            CustodyOperation.PAYOUT: self._custody.payout,
            CustodyOperation.REFUND: self._custody.refund,
        }[operation]
        try:
            receipt = call(party, amount)
        except Exception as exc:
            logger.error(
                "custody_operation_failed",
                extra={
                    "custody_operation": operation.value,
                    "party": party,
                    "amount": amount,
                },
                exc_info=True,
            )
            raise CustodyFailure(
                operation.value,
                amount,
                recipient=party,
                project_id=project_id,
                reason=str(exc),
            ) from exc
        tx.receipts.append(receipt)
        return receipt

    def _unwind(self, tx: _PendingTransition) -> bool:
        """Reverse completed custody legs, newest first. True if all reversed."""
        ok = True
        for receipt in reversed(tx.receipts):
            try:
                self._custody.reverse(receipt)
            except Exception:
                ok = False
                logger.critical(
                    "custody_compensation_failed",
                    extra={
                        "operation": tx.operation,
                        "receipt_id": receipt.receipt_id,
                        "custody_operation": receipt.operation.value,
                        "party": receipt.party,
                        "amount": receipt.amount,
                    },
                    exc_info=True,
                )
            else:
                logger.warning(
                    "custody_leg_reversed",
                    extra={
                        "operation": tx.operation,
                        "receipt_id": receipt.receipt_id,
                        "custody_operation": receipt.operation.value,
                        "amount": receipt.amount,
                    },
                )
        tx.receipts.clear()
        return ok

    def _record_events(self, tx: _PendingTransition) -> None:
        now = self._clock.now()
        for ev in tx.events:
            self.session.add(
                LedgerEventRecord(
                    seq=self._sequences.next_value(SequenceService.LEDGER_EVENT),
                    event_type=ev.event_type.value,
                    project_id=ev.project_id,
                    actor=ev.actor,
                    payload=ev.payload(),
                    occurred_at=now,
                )
            )
        self.session.flush()

    def _dispatch(self, events: list[LedgerEvent]) -> None:
        for ev in events:
            for subscriber in self._subscribers:
                try:
                    subscriber(ev)
                except Exception:
                    # The transition is committed; a subscriber cannot undo it.
                    logger.error(
                        "event_subscriber_failed",
                        extra={
                            "event_type": ev.event_type.value,
                            "project_id": ev.project_id,
                        },
                        exc_info=True,
                    )

    def _load(self, project_id: int) -> ProjectRecord:
        if isinstance(project_id, bool) or not isinstance(project_id, int):
            raise ProjectNotFoundError(project_id)
        project = self.session.get(
            ProjectRecord,
            project_id,
            with_for_update=True,
            populate_existing=True,
        )
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def _settings(self) -> LedgerSettingsRecord:
        settings = self.session.get(
            LedgerSettingsRecord,
            SETTINGS_ROW_ID,
            populate_existing=True,
        )
        if settings is None:
            raise LedgerConfigurationError("ledger settings row is missing")
        return settings

    def _index(
        self,
        actor: str,
        role: ActorRole,
        project_id: int,
        now: datetime,
    ) -> None:
        position = self.session.execute(
            select(func.count())
            .select_from(ActorProjectIndexRecord)
            .where(
                ActorProjectIndexRecord.actor == actor,
                ActorProjectIndexRecord.role == role.value,
            )
        ).scalar_one() + 1
        self.session.add(
            ActorProjectIndexRecord(
                actor=actor,
                role=role.value,
                project_id=project_id,
                position=position,
                recorded_at=now,
            )
        )

    @staticmethod
    def _set_status(project: ProjectRecord, target: ProjectStatus, action: str) -> None:
        require_transition(project, target, action)
        project.status = target.value

    # =========================================================================
    # Transitions
    # =========================================================================

    def create_project(
        self,
        caller: str,
        title: str,
        description: str,
        deadline: datetime,
        deposit: int,
    ) -> ProjectInfo:
        """
        Create a project and take ``deposit`` into escrow as its budget.

        Raises:
            InvalidDepositError: deposit is not a positive integer or exceeds
                MAX_AMOUNT.
            DeadlineNotInFutureError: deadline is not after now.
            EmptyFieldError: blank title or description.
            InvalidIdentityError: caller identity longer than MAX_IDENTITY_LENGTH.
            CustodyFailure: custody refused the deposit; no project recorded.
        """
        with self._transition("create_project", caller) as tx:
            if isinstance(deposit, bool) or not isinstance(deposit, int) or deposit <= 0:
                raise InvalidDepositError(deposit)
            if deposit > MAX_AMOUNT:
                raise InvalidDepositError(deposit, MAX_AMOUNT)
            if deadline.tzinfo is None:
                raise ValidationError("deadline must be timezone-aware")
            now = self._clock.now()
            if deadline <= now:
                raise DeadlineNotInFutureError(deadline.isoformat(), now.isoformat())
            require_non_empty("title", title)
            require_non_empty("description", description)

            project_id = self._sequences.next_value(SequenceService.PROJECT)
            project = ProjectRecord(
                id=project_id,
                client=caller,
                freelancer=None,
                title=title,
                description=description,
                budget=deposit,
                deadline=deadline,
                status=ProjectStatus.OPEN.value,
                funds_deposited=True,
                created_at=now,
            )
            self.session.add(project)
            self._index(caller, ActorRole.CLIENT, project_id, now)
            self.session.flush()

            self._move_funds(tx, CustodyOperation.DEPOSIT, caller, deposit, project_id)

            tx.emit(
                ProjectCreated(
                    project_id=project_id,
                    actor=caller,
                    title=title,
                    budget=deposit,
                )
            )
            tx.details.update(project_id=project_id, budget=deposit)
            return project.to_dto()

    def submit_bid(self, caller: str, project_id: int) -> ProjectInfo:
        """
        Record the caller's bid on an open project.

        Raises:
            ProjectNotFoundError, InvalidStateError (not OPEN),
            SelfDealingError (caller is the client),
            DeadlinePassedError (now >= deadline), DuplicateBidError.
        """
        with self._transition("submit_bid", caller, project_id) as tx:
            project = self._load(project_id)
            require_status(project, ProjectStatus.OPEN, "bid on")
            if caller == project.client:
                raise SelfDealingError(project_id, caller, "bid")
            now = self._clock.now()
            require_before_deadline(project, now, "bid on")
            if caller in project.bidders:
                raise DuplicateBidError(project_id, caller)

            project.bids.append(
                ProjectBidRecord(
                    bidder=caller,
                    position=len(project.bids) + 1,
                    submitted_at=now,
                )
            )
            self.session.flush()

            tx.emit(BidSubmitted(project_id=project_id, actor=caller))
            tx.details.update(project_id=project_id, bid_count=len(project.bids))
            return project.to_dto()

    def assign_freelancer(
        self,
        caller: str,
        project_id: int,
        freelancer: str | None,
    ) -> ProjectInfo:
        """
        Award an open project to one of its bidders.

        Raises:
            ProjectNotFoundError, AuthorizationError (caller not client),
            InvalidStateError (not OPEN), InvalidFreelancerError (unset),
            SelfDealingError (freelancer is the client), NotABidderError.
        """
        with self._transition("assign_freelancer", caller, project_id) as tx:
            project = self._load(project_id)
            require_client(caller, project)
            require_status(project, ProjectStatus.OPEN, "assign")
            if not freelancer:
                raise InvalidFreelancerError(project_id)
            if freelancer == project.client:
                raise SelfDealingError(project_id, project.client, "be assigned")
            if freelancer not in project.bidders:
                raise NotABidderError(project_id, freelancer)

            now = self._clock.now()
            project.freelancer = freelancer
            self._set_status(project, ProjectStatus.ASSIGNED, "assign")
            self._index(freelancer, ActorRole.FREELANCER, project_id, now)
            self.session.flush()

            tx.emit(FreelancerAssigned(project_id=project_id, actor=freelancer))
            tx.details.update(project_id=project_id, freelancer=freelancer)
            return project.to_dto()

    def submit_work(self, caller: str, project_id: int) -> ProjectInfo:
        """
        Mark the assigned freelancer's work as submitted.

        Work is accepted up to and including the deadline.

        Raises:
            ProjectNotFoundError, AuthorizationError (caller not the
            assigned freelancer), InvalidStateError (not ASSIGNED),
            DeadlinePassedError.
        """
        with self._transition("submit_work", caller, project_id) as tx:
            project = self._load(project_id)
            require_freelancer(caller, project)
            require_status(project, ProjectStatus.ASSIGNED, "submit work on")
            require_before_deadline(
                project, self._clock.now(), "submit work on", inclusive=True
            )

            self._set_status(project, ProjectStatus.SUBMITTED, "submit work on")
            self.session.flush()

            tx.emit(WorkSubmitted(project_id=project_id, actor=caller))
            tx.details.update(project_id=project_id)
            return project.to_dto()

    def complete_project(self, caller: str, project_id: int) -> CompletionResult:
        """
        Accept submitted work and release the escrow.

        The freelancer receives ``budget - fee`` and the owner receives
        ``fee = budget * platform_fee_pct // 100``.

        Raises:
            ProjectNotFoundError, AuthorizationError (caller not client),
            InvalidStateError (not SUBMITTED, or escrow already released),
            CustodyFailure: a payout failed; the project stays SUBMITTED
                with its funds held, and any payout already made was
                reversed.
        """
        with self._transition("complete_project", caller, project_id) as tx:
            project = self._load(project_id)
            require_client(caller, project)
            require_status(project, ProjectStatus.SUBMITTED, "complete")
            if not project.funds_deposited:
                raise InvalidStateError(project_id, project.status, "complete")

            split = split_budget(project.budget, self._settings().platform_fee_pct)
            freelancer = project.freelancer

            self._set_status(project, ProjectStatus.COMPLETED, "complete")
            project.funds_deposited = False
            self.session.flush()

            # Zero-amount legs have nothing to move.
            if split.payout:
                self._move_funds(
                    tx, CustodyOperation.PAYOUT, freelancer, split.payout, project_id
                )
            if split.fee:
                self._move_funds(
                    tx, CustodyOperation.PAYOUT, self._owner, split.fee, project_id
                )

            tx.emit(
                ProjectCompleted(
                    project_id=project_id,
                    actor=freelancer,
                    payout_amount=split.payout,
                    fee_amount=split.fee,
                )
            )
            tx.details.update(
                project_id=project_id,
                budget=split.budget,
                payout=split.payout,
                fee=split.fee,
                fee_pct=split.fee_pct,
            )
            return CompletionResult(project=project.to_dto(), split=split)

    def cancel_project(self, caller: str, project_id: int) -> ProjectInfo:
        """
        Withdraw an open project and refund the full budget to the client.

        Raises:
            ProjectNotFoundError, AuthorizationError (caller not client),
            InvalidStateError (not OPEN, or escrow already released),
            CustodyFailure: the refund failed; the project stays OPEN.
        """
        with self._transition("cancel_project", caller, project_id) as tx:
            project = self._load(project_id)
            require_client(caller, project)
            require_status(project, ProjectStatus.OPEN, "cancel")
            if not project.funds_deposited:
                raise InvalidStateError(project_id, project.status, "cancel")

            self._set_status(project, ProjectStatus.CANCELLED, "cancel")
            project.funds_deposited = False
            self.session.flush()

            self._move_funds(
                tx, CustodyOperation.REFUND, project.client, project.budget, project_id
            )

            tx.emit(
                ProjectCancelled(
                    project_id=project_id,
                    actor=project.client,
                    refund_amount=project.budget,
                )
            )
            tx.details.update(project_id=project_id, refund=project.budget)
            return project.to_dto()

    def update_platform_fee(self, caller: str, fee_pct: int) -> int:
        """
        Set the platform fee percentage applied to future completions.

        Raises:
            AuthorizationError: caller is not the owner.
            PlatformFeeOutOfRangeError: fee_pct outside [0, max_platform_fee_pct].
        """
        with self._transition("update_platform_fee", caller) as tx:
            require_owner(caller, self._owner)
            if (
                isinstance(fee_pct, bool)
                or not isinstance(fee_pct, int)
                or not 0 <= fee_pct <= self._max_fee_pct
            ):
                raise PlatformFeeOutOfRangeError(fee_pct, self._max_fee_pct)

            settings = self._settings()
            old_fee_pct = settings.platform_fee_pct
            settings.platform_fee_pct = fee_pct
            settings.updated_at = self._clock.now()
            self.session.flush()

            tx.emit(
                PlatformFeeUpdated(
                    project_id=None,
                    actor=caller,
                    old_fee_pct=old_fee_pct,
                    new_fee_pct=fee_pct,
                )
            )
            tx.details.update(old_fee_pct=old_fee_pct, new_fee_pct=fee_pct)
            return fee_pct

    # =========================================================================
    # Queries
    # =========================================================================

    def get_project(self, project_id: int) -> ProjectInfo:
        return self._selector.get_project(project_id)

    def get_project_bids(self, project_id: int) -> list[str]:
        return self._selector.get_project_bids(project_id)

    def get_client_projects(self, client: str) -> list[int]:
        return self._selector.get_client_projects(client)

    def get_freelancer_projects(self, freelancer: str) -> list[int]:
        return self._selector.get_freelancer_projects(freelancer)

    def get_total_projects(self) -> int:
        return self._selector.get_total_projects()

    def get_platform_fee(self) -> int:
        return self._selector.get_settings().platform_fee_pct

    def get_owner(self) -> str:
        return self._owner

    def get_project_events(self, project_id: int) -> list[LedgerEvent]:
        return self._selector.get_project_events(project_id)
