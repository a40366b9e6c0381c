"""
ORM-Level Immutability Enforcement for the escrow ledger.

===============================================================================
WHY THIS EXISTS
===============================================================================

The ledger's trust guarantees rest on a handful of fields that must never
change once written: the escrowed budget, the parties, the project text
and deadline.  ``ProjectLedger`` never writes them after creation, but
any other code holding a Session could.  These listeners make such writes
fail at flush time, before SQL reaches the database.

    session.flush()
         |
         v
    [before_update] --> _check_project_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete() ------------------^
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                   | Rule
-------------------------|---------------------------------------------------
ProjectRecord            | title, description, budget, client, deadline and
                         | created_at never change; freelancer may only be set
                         | from unset; funds_deposited may only go True->False;
                         | never deleted
ProjectBidRecord         | append-only (no UPDATE, no DELETE)
ActorProjectIndexRecord  | append-only (no UPDATE, no DELETE)
LedgerEventRecord        | append-only (no UPDATE, no DELETE)

===============================================================================
USAGE
===============================================================================

    from escrow_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from escrow_kernel.exceptions import ImmutabilityViolationError
from escrow_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Fields fixed at project creation
PROJECT_FROZEN_FIELDS = frozenset({
    "title",
    "description",
    "budget",
    "client",
    "deadline",
    "created_at",
})


def _block(entity_type: str, entity_id: str, operation: str, reason: str, field=None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


def _check_project_immutability(mapper, connection, target):
    """
    Allow only the lifecycle writes the ledger performs on a project.

    status is policed by the ledger's guards, not here.
    """
    insp = inspect(target)
    for attr in insp.attrs:
        if attr.key in PROJECT_FROZEN_FIELDS and attr.history.has_changes():
            _block(
                "ProjectRecord",
                str(target.id),
                "UPDATE",
                f"Cannot modify field '{attr.key}' after creation",
                field=attr.key,
            )

    freelancer = get_history(target, "freelancer")
    if freelancer.deleted and freelancer.deleted[0] is not None:
        _block(
            "ProjectRecord",
            str(target.id),
            "UPDATE",
            "Assigned freelancer cannot be changed",
            field="freelancer",
        )

    funds = get_history(target, "funds_deposited")
    if funds.deleted and funds.deleted[0] is False:
        _block(
            "ProjectRecord",
            str(target.id),
            "UPDATE",
            "Released escrow cannot be re-deposited",
            field="funds_deposited",
        )


def _check_project_delete(mapper, connection, target):
    _block("ProjectRecord", str(target.id), "DELETE", "Projects cannot be deleted")


def _append_only_update(mapper, connection, target):
    _block(
        type(target).__name__,
        str(target.id),
        "UPDATE",
        "Append-only records cannot be modified",
    )


def _append_only_delete(mapper, connection, target):
    _block(
        type(target).__name__,
        str(target.id),
        "DELETE",
        "Append-only records cannot be deleted",
    )


def _listeners():
    from escrow_kernel.models.ledger import LedgerEventRecord
    from escrow_kernel.models.project import (
        ActorProjectIndexRecord,
        ProjectBidRecord,
        ProjectRecord,
    )

    listeners = [
        (ProjectRecord, "before_update", _check_project_immutability),
        (ProjectRecord, "before_delete", _check_project_delete),
    ]
    for model in (ProjectBidRecord, ActorProjectIndexRecord, LedgerEventRecord):
        listeners.append((model, "before_update", _append_only_update))
        listeners.append((model, "before_delete", _append_only_delete))
    return listeners


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: listeners already registered are skipped.
    """
    for target, event_name, fn in _listeners():
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules.
    """
    for target, event_name, fn in _listeners():
        if event.contains(target, event_name, fn):
            event.remove(target, event_name, fn)
