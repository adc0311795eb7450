"""
settlement_services.payment_processor -- Turn approved work into a Payment.

Responsibility:
    Records a Payment, moves the net amount to the talent through the
    transfer gateway, and reconciles the outcome onto the Payment row.
    Both milestone approvals and biweekly hourly settlements end here.

Architecture position:
    Services layer.  Imports the kernel (models, selectors, services/base)
    and the transfer/notification collaborators.  Called by
    settlement_modules; never by the HTTP layer directly.

Invariants enforced:
    - The payout destination is checked before any row is written.
    - The PROCESSING row is committed before the transfer is attempted.
    - PROCESSING resolves exactly once, to COMPLETED or FAILED, through a
      status-guarded UPDATE.  A failed transfer is committed as FAILED
      before TransferFailureError propagates; the row is never deleted.
    - net_amount == amount - platform_fee for every Payment written.

Failure modes:
    - PayoutAccountMissingError: talent has no payout destination.
    - PersistenceError: the PROCESSING row, or a terminal mark, could not
      be written.  A lost COMPLETED mark is logged CRITICAL with the
      transfer id; the row stays PROCESSING.
    - TransferFailureError: transfer raised or timed out.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from settlement_kernel.db.types import ZERO
from settlement_kernel.domain.clock import Clock
from settlement_kernel.domain.dtos import PaymentDTO
from settlement_kernel.domain.statuses import PaymentStatus
from settlement_kernel.domain.workflow import Transition, Workflow
from settlement_kernel.exceptions import (
    PaymentAmountMismatchError,
    PayoutAccountMissingError,
    PersistenceError,
    TransferFailureError,
    ValidationError,
)
from settlement_kernel.logging_config import LogContext, get_logger
from settlement_kernel.models.contract import Contract
from settlement_kernel.models.payment import Payment
from settlement_kernel.selectors.scope_selector import ScopeSelector
from settlement_kernel.services.base import BaseService
from settlement_services.notifications import (
    NotificationDispatcher,
    NotificationEvent,
    safe_dispatch,
)
from settlement_services.transfer import (
    TimeoutTransferGateway,
    TransferError,
    TransferService,
    describe_transfer,
)

logger = get_logger("services.payment_processor")

PAYMENT_WORKFLOW = Workflow(
    name="payment",
    description="Payment lifecycle: one transfer attempt, one terminal outcome",
    initial_state=PaymentStatus.PROCESSING.value,
    states=tuple(s.value for s in PaymentStatus),
    transitions=(
        Transition(PaymentStatus.PROCESSING.value, PaymentStatus.COMPLETED.value, action="complete"),
        Transition(PaymentStatus.PROCESSING.value, PaymentStatus.FAILED.value, action="fail"),
    ),
    terminal_states=(PaymentStatus.COMPLETED.value, PaymentStatus.FAILED.value),
)


@dataclass(frozen=True)
class PaymentInstruction:
    """
    What to pay for one unit of approved work.

    Either ``milestone_id`` is set (milestone approval) or the period fields
    are (hourly settlement).  ``kind`` names the payment in error messages.
    """

    amount: Decimal
    platform_fee: Decimal
    net_amount: Decimal
    description: str
    milestone_id: UUID | None = None
    period_start: date | None = None
    period_end: date | None = None
    total_hours: Decimal | None = None
    kind: str = "payment"

    def __post_init__(self) -> None:
        if self.amount < ZERO or self.platform_fee < ZERO:
            raise ValidationError("amount", "Payment amounts must be non-negative")
        if self.amount - self.platform_fee != self.net_amount:
            raise PaymentAmountMismatchError(self.amount, self.platform_fee, self.net_amount)

    def transfer_metadata(self, contract_id: UUID, payment_id: UUID) -> dict[str, str]:
        metadata: dict[str, object] = {
            "contractId": contract_id,
            "paymentId": payment_id,
            "description": self.description,
        }
        if self.milestone_id is not None:
            metadata["milestoneId"] = self.milestone_id
        if self.period_start is not None:
            metadata["periodStart"] = self.period_start.isoformat()
            metadata["periodEnd"] = self.period_end.isoformat() if self.period_end else None
            hours = self.total_hours
            metadata["totalHours"] = format(hours.normalize(), "f") if hours is not None else None
        return describe_transfer(metadata)


class PaymentProcessor(BaseService[Payment]):
    """
    Settles approved work against a contract.

    Contract:
        ``settle`` commits twice: once for the PROCESSING row, once for the
        terminal status.  The caller's session must have no pending work it
        does not want committed.

    Non-goals:
        - Does NOT retry failed transfers.  A FAILED row is left for
          external reconciliation.
    """

    def __init__(
        self,
        session: Session,
        transfer_service: TransferService,
        notifier: NotificationDispatcher | None = None,
        clock: Clock | None = None,
        transfer_timeout_seconds: float = 30.0,
    ):
        super().__init__(session, clock)
        if isinstance(transfer_service, TimeoutTransferGateway):
            self._gateway = transfer_service
        else:
            self._gateway = TimeoutTransferGateway(transfer_service, transfer_timeout_seconds)
        self._notifier = notifier
        self._selector = ScopeSelector(session)

    def settle(self, contract: Contract, instruction: PaymentInstruction) -> PaymentDTO:
        """
        Record, transfer and reconcile one payment.

        Postconditions:
            - On success the returned DTO is COMPLETED with a transfer_id.
            - On TransferFailureError the stored row is FAILED.

        Raises:
            PayoutAccountMissingError: No row is written.
            PersistenceError: The PROCESSING row could not be written and no
                transfer was attempted, or the transfer succeeded but its
                outcome could not be recorded.
            TransferFailureError: The row has been committed as FAILED.
        """
        talent = contract.talent
        destination = talent.payout_account_id if talent is not None else None
        if not destination:
            logger.warning(
                "payment_blocked_no_payout_account",
                extra={"contract_id": str(contract.id), "talent_id": str(contract.talent_id)},
            )
            raise PayoutAccountMissingError(str(contract.id), str(contract.talent_id))

        payment = Payment(
            id=uuid4(),
            contract_id=contract.id,
            milestone_id=instruction.milestone_id,
            payer_id=contract.business_id,
            payee_id=contract.talent_id,
            amount=instruction.amount,
            platform_fee=instruction.platform_fee,
            net_amount=instruction.net_amount,
            status=PaymentStatus.PROCESSING.value,
            period_start=instruction.period_start,
            period_end=instruction.period_end,
            total_hours=instruction.total_hours,
        )

        with LogContext.bind(contract_id=contract.id, payment_id=payment.id):
            try:
                self.session.add(payment)
                self.session.commit()
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.error("payment_record_failed", exc_info=True)
                raise PersistenceError("create_payment", str(exc)) from exc

            logger.info(
                "payment_processing",
                extra={
                    "amount": str(instruction.amount),
                    "platform_fee": str(instruction.platform_fee),
                    "net_amount": str(instruction.net_amount),
                    "milestone_id": str(instruction.milestone_id) if instruction.milestone_id else None,
                },
            )

            t0 = time.monotonic()
            try:
                receipt = self._gateway.transfer_to_payee(
                    instruction.net_amount,
                    destination,
                    instruction.transfer_metadata(contract.id, payment.id),
                )
            except TransferError as exc:
                self._mark_failed(payment, exc.message)
                raise TransferFailureError(str(payment.id), exc.message, kind=instruction.kind) from exc

            self._mark_completed(payment, receipt.transfer_id)

            logger.info(
                "payment_completed",
                extra={
                    "transfer_id": receipt.transfer_id,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )

            safe_dispatch(
                self._notifier,
                NotificationEvent.PAYMENT_RECEIVED,
                contract.talent_id,
                {
                    "paymentId": str(payment.id),
                    "contractId": str(contract.id),
                    "amount": str(instruction.net_amount),
                    "description": instruction.description,
                },
            )
            return payment.to_dto()

    def _mark_completed(self, payment: Payment, transfer_id: str) -> None:
        """Commit PROCESSING -> COMPLETED.  The money has already moved."""
        try:
            self._guarded_update(
                Payment,
                payment.id,
                PaymentStatus.PROCESSING.value,
                {
                    "status": PaymentStatus.COMPLETED.value,
                    "transfer_id": transfer_id,
                    "processed_at": self.clock.now(),
                },
            )
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.critical(
                "payment_completion_not_recorded",
                extra={"transfer_id": transfer_id},
                exc_info=True,
            )
            raise PersistenceError("mark_payment_completed", str(exc)) from exc

    def _mark_failed(self, payment: Payment, reason: str) -> None:
        """Commit PROCESSING -> FAILED.  Runs even though the transfer raised."""
        try:
            self._guarded_update(
                Payment,
                payment.id,
                PaymentStatus.PROCESSING.value,
                {
                    "status": PaymentStatus.FAILED.value,
                    "failure_reason": reason,
                },
            )
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.critical("payment_failure_not_recorded", exc_info=True)
            raise PersistenceError("mark_payment_failed", str(exc)) from exc
        logger.error("payment_transfer_failed", extra={"failure_reason": reason})

    def list_contract_payments(self, contract_id: UUID, actor_id: UUID) -> list[PaymentDTO]:
        """Payments on a contract the actor is party to, newest first."""
        contract = self._selector.contract_for_either_party(contract_id, actor_id)
        return [p.to_dto() for p in self._selector.payments_for_contract(contract.id)]
