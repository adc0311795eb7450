"""
Fulfillment Service (``settlement_modules.fulfillment.service``).

Responsibility
--------------
Drives deliverables, time entries and milestones through their workflows
on behalf of an authenticated actor, and hands approved milestones to the
payment processor.

Architecture position
---------------------
**Modules layer** -- service facade.  Authorization and re-fetching go
through ``ScopeSelector``; status writes go through
``BaseService._guarded_update``; money goes through the fee engine and
``PaymentProcessor``.

Invariants enforced
-------------------
* Every operation re-fetches its entity scoped to the acting party.  An
  actor who is not on the contract gets NotFoundError.
* Status, timestamp and rejection reason land in one guarded UPDATE.
* A fixed price milestone cannot reach SUBMITTED while any of its
  deliverables is PENDING.  The condition is re-checked inside the UPDATE.
* Milestone approval is committed before payment is attempted, and the
  payment is then always attempted.  A payment failure never rolls back
  the approval.

Failure modes
-------------
* NotFoundError, InvalidStateError, ConcurrentTransitionError,
  ValidationError, ProjectTypeMismatchError -- raised, nothing written.
* Payment failures after an approval -- reported on
  ``MilestoneReviewResult.payment_error``.

Usage::

    service = FulfillmentService.from_config(
        session, config, transfer_service=gateway, notifier=notifier, clock=clock,
    )
    result = service.review_milestone(milestone_id, business_id, Approve())
    if not result.is_success:
        ...
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import exists
from sqlalchemy.orm import Session

from settlement_config.schema import Defaults, SettlementConfig
from settlement_engines.fees import FeeCalculator, ProvincialFeeCalculator
from settlement_kernel.db.types import HOURS_DECIMAL_PLACES, ZERO, round_money, to_decimal
from settlement_kernel.domain.clock import Clock
from settlement_kernel.domain.dtos import DeliverableDTO, MilestoneDTO, TimeEntryDTO
from settlement_kernel.domain.review import Approve, ReviewDecision
from settlement_kernel.domain.statuses import (
    ActorRole,
    DeliverableStatus,
    ProjectType,
    can_approve_milestone,
    can_submit_milestone,
)
from settlement_kernel.exceptions import (
    InvalidStateError,
    ProjectTypeMismatchError,
    SettlementError,
    TransferFailureError,
    ValidationError,
)
from settlement_kernel.logging_config import LogContext, get_logger
from settlement_kernel.models.fulfillment import Deliverable, Milestone, TimeEntry
from settlement_kernel.models.payment import Payment
from settlement_kernel.selectors.scope_selector import ScopeSelector
from settlement_kernel.services.base import BaseService
from settlement_modules._transition_helpers import commit, require_transition, transition_values
from settlement_modules.fulfillment.models import MilestoneReviewResult, MilestoneView
from settlement_modules.fulfillment.workflows import (
    DELIVERABLE_WORKFLOW,
    MILESTONE_WORKFLOW,
    SUBMIT,
    TIME_ENTRY_WORKFLOW,
)
from settlement_services.notifications import (
    NotificationDispatcher,
    NotificationEvent,
    safe_dispatch,
)
from settlement_services.payment_processor import PaymentInstruction, PaymentProcessor
from settlement_services.transfer import TransferService

logger = get_logger("modules.fulfillment.service")


def _parse_entry_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError as exc:
            raise ValidationError("date", f"Invalid date: {value!r}") from exc
    raise ValidationError("date", f"Invalid date: {value!r}")


def _parse_hours(value: Any) -> Decimal:
    """Positive hours, kept exactly as entered."""
    try:
        hours = to_decimal(value)
    except ValueError as exc:
        raise ValidationError("hours", "Hours must be a valid positive number") from exc
    if hours <= ZERO:
        raise ValidationError("hours", "Hours must be a valid positive number")
    if -hours.normalize().as_tuple().exponent > HOURS_DECIMAL_PLACES:
        raise ValidationError(
            "hours", f"Hours cannot have more than {HOURS_DECIMAL_PLACES} decimal places",
        )
    return hours


class FulfillmentService(BaseService[Milestone]):
    """
    Lifecycle operations for the work recorded under a contract.

    Contract
    --------
    * Each public method is one transaction: it commits on success and
      leaves the session rolled back on failure.
    * Returned values are DTOs; ORM rows never leave the service.

    Non-goals
    ---------
    * Does NOT create contracts or milestones; they arrive with the contract.
    * Does NOT offer a resubmission path for rejected deliverables.
    """

    def __init__(
        self,
        session: Session,
        payment_processor: PaymentProcessor,
        fee_calculator: FeeCalculator,
        notifier: NotificationDispatcher | None = None,
        clock: Clock | None = None,
        defaults: Defaults | None = None,
    ):
        super().__init__(session, clock)
        self._processor = payment_processor
        self._fees = fee_calculator
        self._notifier = notifier
        self._defaults = defaults or Defaults()
        self._selector = ScopeSelector(session)

    @classmethod
    def from_config(
        cls,
        session: Session,
        config: SettlementConfig,
        transfer_service: TransferService,
        notifier: NotificationDispatcher | None = None,
        clock: Clock | None = None,
    ) -> FulfillmentService:
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
            notifier=notifier,
            clock=clock,
            defaults=config.defaults,
        )

    # =========================================================================
    # Deliverables
    # =========================================================================

    def create_deliverable(
        self,
        milestone_id: UUID,
        talent_id: UUID,
        title: str,
        description: str | None = None,
        file_url: str | None = None,
    ) -> DeliverableDTO:
        """Attach a new PENDING deliverable to a milestone on the talent's contract."""
        with LogContext.bind(actor_id=talent_id, actor_role=ActorRole.TALENT):
            milestone = self._selector.milestone_for_party(milestone_id, talent_id, ActorRole.TALENT)
            if not title or not title.strip():
                raise ValidationError("title", "Deliverable title is required")

            deliverable = Deliverable(
                id=uuid4(),
                milestone=milestone,
                title=title.strip(),
                description=description or None,
                file_url=file_url or None,
                status=DELIVERABLE_WORKFLOW.initial_state,
            )
            self.session.add(deliverable)
            commit(self.session, "create_deliverable")

            logger.info(
                "deliverable_created",
                extra={"deliverable_id": str(deliverable.id), "milestone_id": str(milestone.id)},
            )
            return deliverable.to_dto()

    def submit_deliverable(self, deliverable_id: UUID, talent_id: UUID) -> DeliverableDTO:
        """PENDING -> SUBMITTED."""
        with LogContext.bind(actor_id=talent_id, actor_role=ActorRole.TALENT):
            deliverable = self._selector.deliverable_for_party(deliverable_id, talent_id, ActorRole.TALENT)
            transition = require_transition(
                DELIVERABLE_WORKFLOW,
                "Deliverable",
                deliverable.id,
                deliverable.status,
                SUBMIT,
                "Deliverable has already been submitted",
            )
            self._guarded_update(
                Deliverable,
                deliverable.id,
                transition.from_state,
                transition_values(transition, self.clock.now()),
            )
            commit(self.session, "submit_deliverable")

            logger.info("deliverable_submitted", extra={"deliverable_id": str(deliverable.id)})
            return deliverable.to_dto()

    def review_deliverable(
        self,
        deliverable_id: UUID,
        business_id: UUID,
        decision: ReviewDecision,
    ) -> DeliverableDTO:
        """SUBMITTED -> APPROVED or REJECTED."""
        with LogContext.bind(actor_id=business_id, actor_role=ActorRole.BUSINESS):
            deliverable = self._selector.deliverable_for_party(deliverable_id, business_id, ActorRole.BUSINESS)
            transition = require_transition(
                DELIVERABLE_WORKFLOW,
                "Deliverable",
                deliverable.id,
                deliverable.status,
                decision.action,
                "Deliverable must be submitted before it can be reviewed",
            )
            self._guarded_update(
                Deliverable,
                deliverable.id,
                transition.from_state,
                transition_values(
                    transition, self.clock.now(), decision, self._defaults.rejection_reason,
                ),
            )
            commit(self.session, "review_deliverable")

            logger.info(
                "deliverable_reviewed",
                extra={"deliverable_id": str(deliverable.id), "status": transition.to_state},
            )
            return deliverable.to_dto()

    # =========================================================================
    # Time entries
    # =========================================================================

    def add_time_entry(
        self,
        contract_id: UUID,
        talent_id: UUID,
        entry_date: date | str,
        hours: Decimal | int | float | str,
        description: str,
        milestone_id: UUID | None = None,
    ) -> TimeEntryDTO:
        """
        Log hours against an hourly contract.

        Raises:
            ProjectTypeMismatchError: The contract is not HOURLY.
            ValidationError: hours is not a finite number > 0, the date is
                unparseable or the description is blank.
            NotFoundError: The contract is not the talent's, or the tagged
                milestone is not on this contract.
        """
        with LogContext.bind(actor_id=talent_id, actor_role=ActorRole.TALENT, contract_id=contract_id):
            contract = self._selector.contract_for_party(contract_id, talent_id, ActorRole.TALENT)
            if contract.project_type is not ProjectType.HOURLY:
                raise ProjectTypeMismatchError(
                    str(contract.id),
                    ProjectType.HOURLY.value,
                    contract.project_type.value,
                    "Time entries can only be added to hourly projects",
                )

            parsed_hours = _parse_hours(hours)
            parsed_date = _parse_entry_date(entry_date)
            if not description or not description.strip():
                raise ValidationError("description", "Time entry description is required")

            if milestone_id is not None:
                self._selector.milestone_in_contract(milestone_id, contract.id)

            entry = TimeEntry(
                id=uuid4(),
                contract_id=contract.id,
                milestone_id=milestone_id,
                date=parsed_date,
                hours=parsed_hours,
                description=description.strip(),
                status=TIME_ENTRY_WORKFLOW.initial_state,
            )
            self.session.add(entry)
            commit(self.session, "add_time_entry")

            logger.info(
                "time_entry_added",
                extra={
                    "time_entry_id": str(entry.id),
                    "hours": str(parsed_hours),
                    "entry_date": parsed_date.isoformat(),
                },
            )
            return entry.to_dto()

    def review_time_entry(
        self,
        time_entry_id: UUID,
        business_id: UUID,
        decision: ReviewDecision,
    ) -> TimeEntryDTO:
        """PENDING -> APPROVED or REJECTED."""
        with LogContext.bind(actor_id=business_id, actor_role=ActorRole.BUSINESS):
            entry = self._selector.time_entry_for_party(time_entry_id, business_id, ActorRole.BUSINESS)
            transition = require_transition(
                TIME_ENTRY_WORKFLOW,
                "TimeEntry",
                entry.id,
                entry.status,
                decision.action,
                "Time entry has already been reviewed",
            )
            self._guarded_update(
                TimeEntry,
                entry.id,
                transition.from_state,
                transition_values(
                    transition, self.clock.now(), decision, self._defaults.rejection_reason,
                ),
            )
            commit(self.session, "review_time_entry")

            logger.info(
                "time_entry_reviewed",
                extra={"time_entry_id": str(entry.id), "status": transition.to_state},
            )
            return entry.to_dto()

    # =========================================================================
    # Milestones
    # =========================================================================

    def list_milestones(
        self,
        contract_id: UUID,
        actor_id: UUID,
        role: ActorRole | str,
    ) -> list[MilestoneView]:
        """Milestones by ``order`` with their work and what ``role`` may do next."""
        role = ActorRole(role)
        with LogContext.bind(actor_id=actor_id, actor_role=role, contract_id=contract_id):
            contract = self._selector.contract_for_party(contract_id, actor_id, role)
            views = []
            for milestone in self._selector.milestones_for_contract(contract.id):
                entries = tuple(e.to_dto() for e in milestone.time_entries)
                views.append(
                    MilestoneView(
                        milestone=milestone.to_dto(),
                        deliverables=tuple(d.to_dto() for d in milestone.deliverables),
                        time_entries=entries,
                        total_hours=sum((e.hours for e in entries), ZERO),
                        can_submit=can_submit_milestone(milestone.status, role),
                        can_approve=can_approve_milestone(milestone.status, role),
                    )
                )
            return views

    def submit_milestone(self, milestone_id: UUID, talent_id: UUID) -> MilestoneDTO:
        """
        PENDING or IN_PROGRESS -> SUBMITTED.

        Raises:
            InvalidStateError: Wrong status, or (fixed price) a deliverable
                is still PENDING.
        """
        with LogContext.bind(actor_id=talent_id, actor_role=ActorRole.TALENT):
            milestone = self._selector.milestone_for_party(milestone_id, talent_id, ActorRole.TALENT)
            contract = milestone.contract
            transition = require_transition(
                MILESTONE_WORKFLOW,
                "Milestone",
                milestone.id,
                milestone.status,
                SUBMIT,
                "Milestone cannot be submitted in its current state",
            )

            criteria: tuple[Any, ...] = ()
            if contract.project_type is ProjectType.FIXED_PRICE:
                pending = [
                    d for d in milestone.deliverables
                    if d.status == DeliverableStatus.PENDING.value
                ]
                if pending:
                    raise InvalidStateError(
                        "Milestone",
                        str(milestone.id),
                        milestone.status,
                        "All deliverables must be submitted before milestone can be submitted",
                    )
                criteria = (
                    ~exists().where(
                        Deliverable.milestone_id == Milestone.id,
                        Deliverable.status == DeliverableStatus.PENDING.value,
                    ),
                )

            self._guarded_update(
                Milestone,
                milestone.id,
                transition.from_state,
                transition_values(transition, self.clock.now()),
                extra_criteria=criteria,
            )
            commit(self.session, "submit_milestone")

            logger.info("milestone_submitted", extra={"milestone_id": str(milestone.id)})
            safe_dispatch(
                self._notifier,
                NotificationEvent.MILESTONE_SUBMITTED,
                contract.business_id,
                {
                    "milestoneId": str(milestone.id),
                    "contractId": str(contract.id),
                    "title": milestone.title,
                },
            )
            return milestone.to_dto()

    def review_milestone(
        self,
        milestone_id: UUID,
        business_id: UUID,
        decision: ReviewDecision,
    ) -> MilestoneReviewResult:
        """
        SUBMITTED -> APPROVED (then pay) or REJECTED.

        Postconditions:
            - The status write is committed before any payment work.
            - On approval a payment has been attempted; its outcome is on
              the returned result.
        """
        with LogContext.bind(actor_id=business_id, actor_role=ActorRole.BUSINESS):
            milestone = self._selector.milestone_for_party(milestone_id, business_id, ActorRole.BUSINESS)
            transition = require_transition(
                MILESTONE_WORKFLOW,
                "Milestone",
                milestone.id,
                milestone.status,
                decision.action,
                "Milestone must be submitted before it can be reviewed",
            )
            self._guarded_update(
                Milestone,
                milestone.id,
                transition.from_state,
                transition_values(
                    transition, self.clock.now(), decision, self._defaults.rejection_reason,
                ),
            )
            commit(self.session, "review_milestone")

            contract = milestone.contract
            reviewed = milestone.to_dto()
            logger.info(
                "milestone_reviewed",
                extra={"milestone_id": str(milestone.id), "status": transition.to_state},
            )
            safe_dispatch(
                self._notifier,
                (
                    NotificationEvent.MILESTONE_APPROVED
                    if isinstance(decision, Approve)
                    else NotificationEvent.MILESTONE_REJECTED
                ),
                contract.talent_id,
                {
                    "milestoneId": str(milestone.id),
                    "contractId": str(contract.id),
                    "title": milestone.title,
                    "rejectionReason": reviewed.rejection_reason,
                },
            )

            if not transition.settles_payment:
                return MilestoneReviewResult(milestone=reviewed)
            return self._pay_milestone(milestone, reviewed)

    def _pay_milestone(self, milestone: Milestone, reviewed: MilestoneDTO) -> MilestoneReviewResult:
        contract = milestone.contract
        talent = contract.talent
        amount = round_money(milestone.amount)
        fee = self._fees.calculate_talent_platform_fee(
            amount,
            talent.province or self._defaults.province,
            talent.has_tax_exemption,
        )
        instruction = PaymentInstruction(
            amount=amount,
            platform_fee=fee.platform_fee,
            net_amount=fee.net_of(amount),
            description=f"Milestone payment: {milestone.title}",
            milestone_id=milestone.id,
            kind="milestone payment",
        )

        try:
            payment = self._processor.settle(contract, instruction)
        except SettlementError as exc:
            logger.error(
                "milestone_payment_failed",
                extra={"milestone_id": str(milestone.id), "error_code": exc.code},
            )
            failed = None
            if isinstance(exc, TransferFailureError):
                row = self.session.get(Payment, UUID(exc.payment_id), populate_existing=True)
                failed = row.to_dto() if row is not None else None
            return MilestoneReviewResult(milestone=reviewed, payment=failed, payment_error=exc)

        return MilestoneReviewResult(milestone=reviewed, payment=payment)

    # =========================================================================
    # Payments
    # =========================================================================

    def list_contract_payments(self, contract_id: UUID, actor_id: UUID):
        """Payments on a contract either party may see, newest first."""
        with LogContext.bind(actor_id=actor_id, contract_id=contract_id):
            return self._processor.list_contract_payments(contract_id, actor_id)
