"""
Settlement Service (``settlement_modules.settlement.service``).

Responsibility
--------------
Biweekly settlement of hourly contracts: summarize the approved hours in a
period, and pay them out through the payment processor.

Architecture position
---------------------
**Modules layer** -- service facade.  Entry selection via ``ScopeSelector``,
arithmetic via ``settlement_engines.settlement``, payment via
``PaymentProcessor``.

Invariants enforced
-------------------
* Only APPROVED entries dated inside [period_start, period_end] count.
* A period with no approved hours is never paid.
* The payout destination is checked before any Payment row is written.
* With ``reject_duplicate_periods`` on, a period that already has a
  PROCESSING or COMPLETED payment is refused.  FAILED periods may be
  processed again.

Failure modes
-------------
* ValidationError -- period_start after period_end.
* ProjectTypeMismatchError -- contract is not HOURLY.
* NoApprovedHoursError, PayoutAccountMissingError, DuplicateSettlementError.
* TransferFailureError -- propagated from the payment processor; the
  Payment row is FAILED.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from settlement_config.schema import Defaults, SettlementConfig, SettlementPolicy
from settlement_engines.fees import FeeCalculator, ProvincialFeeCalculator
from settlement_engines.settlement import HourLine, summarize_hours
from settlement_kernel.domain.clock import Clock
from settlement_kernel.domain.dtos import PaymentDTO
from settlement_kernel.domain.statuses import ActorRole, ProjectType
from settlement_kernel.exceptions import (
    DuplicateSettlementError,
    NoApprovedHoursError,
    PayoutAccountMissingError,
    ProjectTypeMismatchError,
    ValidationError,
)
from settlement_kernel.logging_config import LogContext, get_logger
from settlement_kernel.models.contract import Contract
from settlement_kernel.models.payment import Payment
from settlement_kernel.selectors.scope_selector import ScopeSelector
from settlement_kernel.services.base import BaseService
from settlement_modules.settlement.models import PeriodSummary
from settlement_services.notifications import NotificationDispatcher
from settlement_services.payment_processor import PaymentInstruction, PaymentProcessor
from settlement_services.transfer import TransferService

logger = get_logger("modules.settlement.service")


class SettlementService(BaseService[Payment]):
    """
    Summarize and pay out periods of approved hourly work.

    Non-goals
    ---------
    * Does NOT schedule periods; the caller chooses the bounds.
    * Does NOT retry failed payouts automatically.
    """

    def __init__(
        self,
        session: Session,
        payment_processor: PaymentProcessor,
        fee_calculator: FeeCalculator,
        clock: Clock | None = None,
        defaults: Defaults | None = None,
        policy: SettlementPolicy | None = None,
    ):
        super().__init__(session, clock)
        self._processor = payment_processor
        self._fees = fee_calculator
        self._defaults = defaults or Defaults()
        self._policy = policy or SettlementPolicy()
        self._selector = ScopeSelector(session)

    @classmethod
    def from_config(
        cls,
        session: Session,
        config: SettlementConfig,
        transfer_service: TransferService,
        notifier: NotificationDispatcher | None = None,
        clock: Clock | None = None,
    ) -> SettlementService:
        processor = PaymentProcessor(
            session,
            transfer_service,
            notifier=notifier,
            clock=clock,
            transfer_timeout_seconds=config.transfers.timeout_seconds,
        )
        return cls(
            session,
            processor,
            ProvincialFeeCalculator(config.fees),
            clock=clock,
            defaults=config.defaults,
            policy=config.settlement,
        )

    def summarize_period(
        self,
        contract_id: UUID,
        business_id: UUID,
        period_start: date,
        period_end: date,
    ) -> PeriodSummary:
        """Approved hours, gross, fee and net for one period.  Read only."""
        with LogContext.bind(actor_id=business_id, actor_role=ActorRole.BUSINESS, contract_id=contract_id):
            _, summary = self._summarize(contract_id, business_id, period_start, period_end)
            return summary

    def process_period(
        self,
        contract_id: UUID,
        business_id: UUID,
        period_start: date,
        period_end: date,
    ) -> PaymentDTO:
        """
        Pay the talent for a period's approved hours.

        Raises:
            NoApprovedHoursError: The period has nothing to pay.
            PayoutAccountMissingError: No Payment row is created.
            DuplicateSettlementError: The period is already paid or being paid.
            TransferFailureError: The Payment row has been marked FAILED.
        """
        with LogContext.bind(actor_id=business_id, actor_role=ActorRole.BUSINESS, contract_id=contract_id):
            contract, summary = self._summarize(contract_id, business_id, period_start, period_end)

            if not summary.can_process:
                raise NoApprovedHoursError(
                    str(contract.id), period_start.isoformat(), period_end.isoformat(),
                )
            if not contract.talent.payout_account_id:
                raise PayoutAccountMissingError(str(contract.id), str(contract.talent_id))

            if self._policy.reject_duplicate_periods:
                existing = self._selector.live_settlement_payment(contract.id, period_start, period_end)
                if existing is not None:
                    logger.warning(
                        "settlement_period_already_paid",
                        extra={"existing_payment_id": str(existing.id), "status": existing.status},
                    )
                    raise DuplicateSettlementError(
                        str(contract.id),
                        period_start.isoformat(),
                        period_end.isoformat(),
                        str(existing.id),
                    )

            logger.info(
                "settlement_period_processing",
                extra={
                    "period_start": period_start.isoformat(),
                    "period_end": period_end.isoformat(),
                    "total_hours": str(summary.total_hours),
                    "gross_amount": str(summary.gross_amount),
                },
            )
            instruction = PaymentInstruction(
                amount=summary.gross_amount,
                platform_fee=summary.platform_fee,
                net_amount=summary.net_amount,
                description=summary.description,
                period_start=period_start,
                period_end=period_end,
                total_hours=summary.total_hours,
                kind="biweekly payment",
            )
            return self._processor.settle(contract, instruction)

    def _summarize(
        self,
        contract_id: UUID,
        business_id: UUID,
        period_start: date,
        period_end: date,
    ) -> tuple[Contract, PeriodSummary]:
        if period_start > period_end:
            raise ValidationError("period_start", "Period start must not be after period end")

        contract = self._selector.contract_for_party(contract_id, business_id, ActorRole.BUSINESS)
        if contract.project_type is not ProjectType.HOURLY:
            raise ProjectTypeMismatchError(
                str(contract.id),
                ProjectType.HOURLY.value,
                contract.project_type.value,
                "Biweekly payments only apply to hourly projects",
            )

        entries = self._selector.approved_time_entries(contract.id, period_start, period_end)
        talent = contract.talent
        figures = summarize_hours(
            [HourLine(e.date, e.hours, e.description, e.id) for e in entries],
            contract.hourly_rate,
            self._fees,
            talent.province or self._defaults.province,
            talent.has_tax_exemption,
        )
        summary = PeriodSummary(
            contract_id=contract.id,
            period_start=period_start,
            period_end=period_end,
            time_entries=tuple(e.to_dto() for e in entries),
            total_hours=figures.total_hours,
            hourly_rate=figures.hourly_rate,
            gross_amount=figures.gross_amount,
            base_fee=figures.fee.base_fee,
            tax_amount=figures.fee.tax_amount,
            platform_fee=figures.platform_fee,
            net_amount=figures.net_amount,
            can_process=figures.can_process,
            fee_reason=figures.fee.reason,
        )
        return contract, summary
