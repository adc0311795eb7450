"""
Typed Exception Hierarchy for the Settlement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every lifecycle operation is invoked by an HTTP layer that maps failures to
status codes.  Callers catch by type and read the ``code`` attribute; they
never parse message strings.

Example - WRONG way to handle errors:
    try:
        service.review_milestone(...)
    except Exception as e:
        if "submitted" in str(e):  # FRAGILE - message might change
            return 409

Example - RIGHT way (what this module enables):
    try:
        service.review_milestone(...)
    except InvalidStateError as e:
        return api_response(409, code=e.code, status=e.current_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from SettlementError:

    SettlementError (base)
    |
    +-- NotFoundError
    |
    +-- InvalidStateError
    |   +-- ConcurrentTransitionError
    |
    +-- ValidationError
    |
    +-- InvalidOperationError
    |   +-- ProjectTypeMismatchError
    |   +-- PayoutAccountMissingError
    |   +-- NoApprovedHoursError
    |   +-- DuplicateSettlementError
    |
    +-- PaymentError
    |   +-- TransferFailureError
    |   +-- PaymentAmountMismatchError
    |
    +-- PersistenceError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Lookup          | NOT_FOUND                   | Entity absent OR actor not a party to it
----------------|-----------------------------|-----------------------------------------
State           | INVALID_STATE               | Transition not allowed from current status
                | CONCURRENT_TRANSITION       | Status changed between read and write
----------------|-----------------------------|-----------------------------------------
Input           | VALIDATION_ERROR            | Malformed input (non-positive hours, ...)
----------------|-----------------------------|-----------------------------------------
Operation       | INVALID_OPERATION           | Operation not applicable to this contract
                | PROJECT_TYPE_MISMATCH       | Hourly-only operation on fixed price work
                | PAYOUT_ACCOUNT_MISSING      | Talent has no payout destination
                | NO_APPROVED_HOURS           | Settlement period has nothing to pay
                | DUPLICATE_SETTLEMENT        | Period already paid or being paid
----------------|-----------------------------|-----------------------------------------
Payment         | TRANSFER_FAILED             | External transfer raised or timed out
                | PAYMENT_AMOUNT_MISMATCH     | net_amount != amount - platform_fee
----------------|-----------------------------|-----------------------------------------
Storage         | PERSISTENCE_FAILURE         | Storage layer rejected a write

===============================================================================
DESIGN DECISIONS
===============================================================================

1. NOT FOUND AND ACCESS DENIED ARE ONE ERROR.
   An actor who is not a party to a contract gets the same NotFoundError
   as one asking for an id that does not exist, so existence of other
   parties' records never leaks.

2. CONCURRENT TRANSITIONS ARE INVALID STATE.
   A status-guarded UPDATE that matches zero rows means another actor won
   the race.  It subclasses InvalidStateError so callers that only care
   about "wrong state" need one except clause.
"""

from decimal import Decimal


class SettlementError(Exception):
    """
    Base exception for all settlement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SETTLEMENT_ERROR"


# Lookup


class NotFoundError(SettlementError):
    """Entity does not exist or the actor is not a party to it."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found or access denied: {entity_id}")


# State


class InvalidStateError(SettlementError):
    """Operation is not permitted from the entity's current status."""

    code: str = "INVALID_STATE"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str,
        message: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        super().__init__(message)


class ConcurrentTransitionError(InvalidStateError):
    """The entity left the expected status before the write landed."""

    code: str = "CONCURRENT_TRANSITION"

    def __init__(self, entity_type: str, entity_id: str, expected_status: str):
        self.expected_status = expected_status
        super().__init__(
            entity_type,
            entity_id,
            expected_status,
            f"{entity_type} {entity_id} is no longer {expected_status}; "
            "it was modified concurrently",
        )


# Input


class ValidationError(SettlementError):
    """Caller supplied malformed input."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


# Operation applicability


class InvalidOperationError(SettlementError):
    """Operation is not applicable to this contract or a precondition is unmet."""

    code: str = "INVALID_OPERATION"

    def __init__(self, contract_id: str, message: str):
        self.contract_id = contract_id
        super().__init__(message)


class ProjectTypeMismatchError(InvalidOperationError):
    """Operation requires a different project type."""

    code: str = "PROJECT_TYPE_MISMATCH"

    def __init__(self, contract_id: str, required_type: str, actual_type: str, message: str):
        self.required_type = required_type
        self.actual_type = actual_type
        super().__init__(contract_id, message)


class PayoutAccountMissingError(InvalidOperationError):
    """Talent has no payout destination configured."""

    code: str = "PAYOUT_ACCOUNT_MISSING"

    def __init__(self, contract_id: str, talent_id: str):
        self.talent_id = talent_id
        super().__init__(
            contract_id, "Talent does not have a payout account set up",
        )


class NoApprovedHoursError(InvalidOperationError):
    """Settlement period contains no approved hours."""

    code: str = "NO_APPROVED_HOURS"

    def __init__(self, contract_id: str, period_start: str, period_end: str):
        self.period_start = period_start
        self.period_end = period_end
        super().__init__(
            contract_id,
            f"No approved hours to process for period {period_start} to {period_end}",
        )


class DuplicateSettlementError(InvalidOperationError):
    """A payment for this settlement period is already processing or completed."""

    code: str = "DUPLICATE_SETTLEMENT"

    def __init__(self, contract_id: str, period_start: str, period_end: str, payment_id: str):
        self.period_start = period_start
        self.period_end = period_end
        self.payment_id = payment_id
        super().__init__(
            contract_id,
            f"Period {period_start} to {period_end} already settled by payment {payment_id}",
        )


# Payment


class PaymentError(SettlementError):
    """Base exception for payment processing errors."""

    code: str = "PAYMENT_ERROR"


class TransferFailureError(PaymentError):
    """External transfer failed; the payment row has been marked FAILED."""

    code: str = "TRANSFER_FAILED"

    def __init__(self, payment_id: str, reason: str, kind: str = "payment"):
        self.payment_id = payment_id
        self.reason = reason
        super().__init__(f"Failed to transfer {kind}: {reason}")


class PaymentAmountMismatchError(PaymentError):
    """net_amount does not equal amount minus platform_fee."""

    code: str = "PAYMENT_AMOUNT_MISMATCH"

    def __init__(self, amount: Decimal, platform_fee: Decimal, net_amount: Decimal):
        self.amount = str(amount)
        self.platform_fee = str(platform_fee)
        self.net_amount = str(net_amount)
        super().__init__(
            f"Payment amounts do not reconcile: amount={amount}, "
            f"platform_fee={platform_fee}, net_amount={net_amount}"
        )


# Storage


class PersistenceError(SettlementError):
    """Storage layer rejected a read or write."""

    code: str = "PERSISTENCE_FAILURE"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Persistence failure during {operation}: {reason}")
