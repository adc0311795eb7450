"""
Module: settlement_kernel.selectors.scope_selector
Responsibility: Party-scoped lookups.  Each method finds an entity by id
    *through* the contract that owns it, filtered to the acting business or
    talent, so a single query answers both "does it exist" and "may this
    actor touch it".
Architecture position: Kernel > Selectors.  Used by every service in
    settlement_modules/ and settlement_services/.

Invariants enforced:
    - Not found and access denied are indistinguishable: both raise
      NotFoundError with the same message.
    - Rows are returned attached to the caller's session so the service can
      issue a status-guarded UPDATE in the same transaction.  They never
      leave the service layer; callers outside it receive DTOs.

Failure modes:
    - NotFoundError when the id is unknown or the actor is not the
      contract's party for the requested role.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import selectinload

from settlement_kernel.domain.statuses import (
    SETTLED_PAYMENT_STATUSES,
    ActorRole,
    TimeEntryStatus,
)
from settlement_kernel.exceptions import NotFoundError
from settlement_kernel.models.contract import Contract
from settlement_kernel.models.fulfillment import Deliverable, Milestone, TimeEntry
from settlement_kernel.models.payment import Payment
from settlement_kernel.selectors.base import BaseSelector


def _party_column(role: ActorRole | str):
    if ActorRole(role) is ActorRole.BUSINESS:
        return Contract.business_id
    return Contract.talent_id


class ScopeSelector(BaseSelector[Contract]):
    """
    Scoped finders for contracts and the work recorded under them.

    Every lookup refreshes rows already in the session's identity map, so a
    service always decides on the stored status and not on a stale copy.

    Usage:
        selector = ScopeSelector(session)
        milestone = selector.milestone_for_party(milestone_id, talent_id, ActorRole.TALENT)
    """

    def _scoped_one(self, stmt: Select, entity_type: str, entity_id: UUID):
        row = self.session.scalars(
            stmt.execution_options(populate_existing=True)
        ).unique().one_or_none()
        if row is None:
            raise NotFoundError(entity_type, str(entity_id))
        return row

    # Contracts

    def contract_for_party(
        self, contract_id: UUID, actor_id: UUID, role: ActorRole | str,
    ) -> Contract:
        stmt = select(Contract).where(
            Contract.id == contract_id,
            _party_column(role) == actor_id,
        )
        return self._scoped_one(stmt, "Contract", contract_id)

    def contract_for_either_party(self, contract_id: UUID, actor_id: UUID) -> Contract:
        """Find a contract the actor is on, as business or as talent."""
        stmt = select(Contract).where(
            Contract.id == contract_id,
            or_(Contract.business_id == actor_id, Contract.talent_id == actor_id),
        )
        return self._scoped_one(stmt, "Contract", contract_id)

    # Milestones

    def milestone_for_party(
        self, milestone_id: UUID, actor_id: UUID, role: ActorRole | str,
    ) -> Milestone:
        stmt = (
            select(Milestone)
            .join(Milestone.contract)
            .where(
                Milestone.id == milestone_id,
                _party_column(role) == actor_id,
            )
            .options(selectinload(Milestone.deliverables))
        )
        return self._scoped_one(stmt, "Milestone", milestone_id)

    def milestone_in_contract(self, milestone_id: UUID, contract_id: UUID) -> Milestone:
        """A milestone that belongs to an already-authorized contract."""
        stmt = select(Milestone).where(
            Milestone.id == milestone_id,
            Milestone.contract_id == contract_id,
        )
        return self._scoped_one(stmt, "Milestone", milestone_id)

    def milestones_for_contract(self, contract_id: UUID) -> list[Milestone]:
        """All milestones of a contract by ``order``, with their work loaded."""
        return list(
            self.session.scalars(
                select(Milestone)
                .where(Milestone.contract_id == contract_id)
                .order_by(Milestone.order.asc(), Milestone.created_at.asc())
                .options(
                    selectinload(Milestone.deliverables),
                    selectinload(Milestone.time_entries),
                )
                .execution_options(populate_existing=True)
            ).unique()
        )

    # Deliverables

    def deliverable_for_party(
        self, deliverable_id: UUID, actor_id: UUID, role: ActorRole | str,
    ) -> Deliverable:
        stmt = (
            select(Deliverable)
            .join(Deliverable.milestone)
            .join(Milestone.contract)
            .where(
                Deliverable.id == deliverable_id,
                _party_column(role) == actor_id,
            )
        )
        return self._scoped_one(stmt, "Deliverable", deliverable_id)

    # Time entries

    def time_entry_for_party(
        self, time_entry_id: UUID, actor_id: UUID, role: ActorRole | str,
    ) -> TimeEntry:
        stmt = (
            select(TimeEntry)
            .join(TimeEntry.contract)
            .where(
                TimeEntry.id == time_entry_id,
                _party_column(role) == actor_id,
            )
        )
        return self._scoped_one(stmt, "TimeEntry", time_entry_id)

    def approved_time_entries(
        self, contract_id: UUID, period_start: date, period_end: date,
    ) -> list[TimeEntry]:
        """APPROVED entries dated within [period_start, period_end], oldest first."""
        return list(
            self.session.scalars(
                select(TimeEntry)
                .where(
                    TimeEntry.contract_id == contract_id,
                    TimeEntry.status == TimeEntryStatus.APPROVED.value,
                    TimeEntry.date >= period_start,
                    TimeEntry.date <= period_end,
                )
                .order_by(TimeEntry.date.asc(), TimeEntry.created_at.asc())
                .execution_options(populate_existing=True)
            )
        )

    # Payments

    def payments_for_contract(self, contract_id: UUID) -> list[Payment]:
        """Payments for a contract, newest first."""
        return list(
            self.session.scalars(
                select(Payment)
                .where(Payment.contract_id == contract_id)
                .order_by(Payment.created_at.desc())
                .execution_options(populate_existing=True)
            )
        )

    def live_settlement_payment(
        self, contract_id: UUID, period_start: date, period_end: date,
    ) -> Payment | None:
        """A PROCESSING or COMPLETED payment already covering exactly this period."""
        return self.session.scalars(
            select(Payment)
            .where(
                Payment.contract_id == contract_id,
                Payment.period_start == period_start,
                Payment.period_end == period_end,
                Payment.status.in_([s.value for s in SETTLED_PAYMENT_STATUSES]),
            )
            .order_by(Payment.created_at.desc())
        ).first()
