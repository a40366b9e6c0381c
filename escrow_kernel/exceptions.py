"""
Typed Exception Hierarchy for the Escrow Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected ledger call is a precondition violation that the caller
must be able to act on without parsing message strings.  Each error:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (project id, caller, status)

Example - WRONG way to handle errors:
    try:
        ledger.submit_bid(caller, project_id)
    except Exception as e:
        if "deadline" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way:
    try:
        ledger.submit_bid(caller, project_id)
    except DeadlinePassedError as e:
        notify(f"Project {e.project_id} stopped taking bids at {e.deadline}")
    except InvalidStateError as e:
        api_response(code=e.code, status=e.current_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    EscrowKernelError (base)
    |
    +-- AuthorizationError
    |
    +-- NotFoundError
    |   +-- ProjectNotFoundError
    |
    +-- InvalidStateError
    |
    +-- ValidationError
    |   +-- EmptyFieldError
    |   +-- InvalidIdentityError
    |   +-- InvalidDepositError
    |   +-- DeadlineNotInFutureError
    |   +-- DeadlinePassedError
    |   +-- PlatformFeeOutOfRangeError
    |   +-- DuplicateBidError
    |   +-- SelfDealingError
    |   +-- InvalidFreelancerError
    |   +-- NotABidderError
    |
    +-- CustodyFailure
    |
    +-- LedgerConfigurationError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Authorization   | UNAUTHORIZED                | Caller is not owner/client/freelancer
Not found       | PROJECT_NOT_FOUND           | Project id was never allocated
State           | INVALID_PROJECT_STATE       | Status does not permit the operation
Validation      | EMPTY_FIELD                 | Blank title or description
                | INVALID_IDENTITY            | Identity longer than the stored maximum
                | INVALID_DEPOSIT             | Deposit not in [1, MAX_AMOUNT]
                | DEADLINE_NOT_IN_FUTURE      | Deadline <= now at creation
                | DEADLINE_PASSED             | Bid/submission after the deadline
                | PLATFORM_FEE_OUT_OF_RANGE   | Fee percentage outside [0, max]
                | DUPLICATE_BID               | Same freelancer bids twice
                | SELF_DEALING                | Client bids on / assigns own project
                | INVALID_FREELANCER          | Unset freelancer identity
                | NOT_A_BIDDER                | Assignment target never bid
Custody         | CUSTODY_FAILURE             | Deposit/payout/refund did not complete
Configuration   | LEDGER_CONFIGURATION_ERROR  | Ledger opened with inconsistent settings
Immutability    | IMMUTABILITY_VIOLATION      | Write to a frozen ledger field or row

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Every rejection happens BEFORE the ledger commits anything.  No exception
   in this module ever describes a half-applied transition.

2. ``CustodyFailure.compensated`` tells the caller whether every custody leg
   that had already executed was reversed.  ``compensated=False`` means
   custody and ledger disagree and needs manual reconciliation.

3. Errors for one project never affect another project; nothing here is
   fatal to the ledger as a whole.

===============================================================================
"""


class EscrowKernelError(Exception):
    """
    Base exception for all escrow kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "ESCROW_KERNEL_ERROR"


# Authorization


class AuthorizationError(EscrowKernelError):
    """Caller does not hold the role an operation is restricted to."""

    code: str = "UNAUTHORIZED"

    def __init__(
        self,
        caller: str,
        required_role: str,
        project_id: int | None = None,
    ):
        self.caller = caller
        self.required_role = required_role
        self.project_id = project_id
        where = f" on project {project_id}" if project_id is not None else ""
        super().__init__(
            f"Caller {caller!r} is not the {required_role}{where}"
        )


# Lookup


class NotFoundError(EscrowKernelError):
    """Base exception for lookups that found nothing."""

    code: str = "NOT_FOUND"


class ProjectNotFoundError(NotFoundError):
    """Project id was never allocated by this ledger."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


# State machine


class InvalidStateError(EscrowKernelError):
    """Operation attempted from a status that does not permit it."""

    code: str = "INVALID_PROJECT_STATE"

    def __init__(self, project_id: int, current_status: str, action: str):
        self.project_id = project_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} project {project_id} in status '{current_status}'"
        )


# Validation


class ValidationError(EscrowKernelError):
    """Base exception for rejected call arguments."""

    code: str = "VALIDATION_ERROR"


class EmptyFieldError(ValidationError):
    """A required text field is empty or whitespace."""

    code: str = "EMPTY_FIELD"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Field '{field_name}' must not be empty")


class InvalidIdentityError(ValidationError):
    """An actor identity is longer than the ledger can store."""

    code: str = "INVALID_IDENTITY"

    def __init__(self, role: str, length: int, max_length: int):
        self.role = role
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"{role} identity is {length} characters; at most {max_length} allowed"
        )


class InvalidDepositError(ValidationError):
    """Escrow deposit must be a positive amount the ledger can store."""

    code: str = "INVALID_DEPOSIT"

    def __init__(self, amount: int, max_amount: int | None = None):
        self.amount = amount
        self.max_amount = max_amount
        if max_amount is None:
            message = f"Deposit must be greater than zero, got {amount}"
        else:
            message = f"Deposit must be at most {max_amount}, got {amount}"
        super().__init__(message)


class DeadlineNotInFutureError(ValidationError):
    """Deadline supplied at creation is not strictly after now."""

    code: str = "DEADLINE_NOT_IN_FUTURE"

    def __init__(self, deadline: str, now: str):
        self.deadline = deadline
        self.now = now
        super().__init__(f"Deadline {deadline} must be after {now}")


class DeadlinePassedError(ValidationError):
    """The project deadline has passed for this operation."""

    code: str = "DEADLINE_PASSED"

    def __init__(self, project_id: int, deadline: str, action: str):
        self.project_id = project_id
        self.deadline = deadline
        self.action = action
        super().__init__(
            f"Cannot {action} project {project_id}: deadline {deadline} has passed"
        )


class PlatformFeeOutOfRangeError(ValidationError):
    """Platform fee percentage outside the permitted range."""

    code: str = "PLATFORM_FEE_OUT_OF_RANGE"

    def __init__(self, fee_pct: int, max_pct: int):
        self.fee_pct = fee_pct
        self.max_pct = max_pct
        super().__init__(
            f"Platform fee {fee_pct}% is outside the range 0-{max_pct}%"
        )


class DuplicateBidError(ValidationError):
    """Freelancer has already bid on the project."""

    code: str = "DUPLICATE_BID"

    def __init__(self, project_id: int, bidder: str):
        self.project_id = project_id
        self.bidder = bidder
        super().__init__(f"{bidder!r} has already bid on project {project_id}")


class SelfDealingError(ValidationError):
    """Client attempted to bid on or be assigned to its own project."""

    code: str = "SELF_DEALING"

    def __init__(self, project_id: int, client: str, action: str):
        self.project_id = project_id
        self.client = client
        self.action = action
        super().__init__(
            f"Client {client!r} cannot {action} on own project {project_id}"
        )


class InvalidFreelancerError(ValidationError):
    """Assignment target is the unset identity."""

    code: str = "INVALID_FREELANCER"

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(
            f"A freelancer identity is required to assign project {project_id}"
        )


class NotABidderError(ValidationError):
    """Assignment target never bid on the project."""

    code: str = "NOT_A_BIDDER"

    def __init__(self, project_id: int, freelancer: str):
        self.project_id = project_id
        self.freelancer = freelancer
        super().__init__(
            f"{freelancer!r} has not bid on project {project_id}"
        )


# Custody


class CustodyFailure(EscrowKernelError):
    """
    The funds-custody collaborator could not complete a money movement.

    Raised after the ledger transaction has been rolled back.  Custody legs
    that already executed within the same call have been reversed when
    ``compensated`` is True.
    """

    code: str = "CUSTODY_FAILURE"

    def __init__(
        self,
        operation: str,
        amount: int,
        recipient: str | None = None,
        project_id: int | None = None,
        reason: str = "",
        compensated: bool = True,
    ):
        self.operation = operation
        self.amount = amount
        self.recipient = recipient
        self.project_id = project_id
        self.reason = reason
        self.compensated = compensated
        target = f" to {recipient!r}" if recipient else ""
        super().__init__(
            f"Custody {operation} of {amount}{target} failed"
            + (f": {reason}" if reason else "")
        )


# Configuration


class LedgerConfigurationError(EscrowKernelError):
    """Ledger settings are missing or inconsistent with the caller's view."""

    code: str = "LEDGER_CONFIGURATION_ERROR"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Ledger configuration error: {reason}")


# Immutability


class ImmutabilityError(EscrowKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an immutable ledger record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
